"""HTTP session setup for talking to remote Maven repositories.

Corporate SSL inspection proxies (e.g. Netskope) re-sign traffic with their
own CA. When such a bundle is installed, or one is configured explicitly,
the session verifies against it instead of the certifi default.
"""

import os
import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from . import __version__

logger = logging.getLogger(__name__)

# Known corporate SSL inspection cert bundle locations
CORPORATE_CERT_PATHS = [
    "/Library/Application Support/Netskope/STAgent/data/netskope-cert-bundle.pem",  # Netskope macOS
    "/etc/netskope/cert-bundle.pem",  # Netskope Linux
]


def find_ca_bundle(explicit: Optional[str] = None) -> Optional[str]:
    """Return the CA bundle to verify against, or None for the requests default."""
    if explicit:
        if not os.path.exists(explicit):
            logger.warning(f"Configured CA bundle {explicit} does not exist, using default")
            return None
        return explicit
    for path in CORPORATE_CERT_PATHS:
        if os.path.exists(path):
            return path
    return None


def create_session(ca_bundle: Optional[str] = None, retries: int = 3) -> requests.Session:
    """Create a requests session with retries on transient server errors."""
    session = requests.Session()
    session.headers.update({"User-Agent": f"pomtree/{__version__}"})

    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=("GET", "HEAD"),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)

    bundle = find_ca_bundle(ca_bundle)
    if bundle:
        logger.info(f"Verifying TLS against {bundle}")
        session.verify = bundle

    return session
