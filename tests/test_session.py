"""Tests for HTTP session setup."""

from unittest.mock import patch

from pomtree import __version__
from pomtree.session import create_session, find_ca_bundle


class TestFindCaBundle:
    """Tests for CA bundle discovery."""

    def test_explicit_bundle(self, tmp_path):
        bundle = tmp_path / "corp.pem"
        bundle.write_text("")
        assert find_ca_bundle(str(bundle)) == str(bundle)

    def test_missing_explicit_bundle_falls_back(self, tmp_path):
        assert find_ca_bundle(str(tmp_path / "nope.pem")) is None

    @patch('pomtree.session.os.path.exists', return_value=False)
    def test_no_corporate_bundle(self, mock_exists):
        assert find_ca_bundle() is None

    @patch('pomtree.session.CORPORATE_CERT_PATHS', ["/etc/netskope/cert-bundle.pem"])
    @patch('pomtree.session.os.path.exists', return_value=True)
    def test_detects_corporate_bundle(self, mock_exists):
        assert find_ca_bundle() == "/etc/netskope/cert-bundle.pem"


class TestCreateSession:
    """Tests for create_session."""

    def test_user_agent_and_retries(self):
        session = create_session(retries=5)

        assert session.headers["User-Agent"] == f"pomtree/{__version__}"
        adapter = session.get_adapter("https://repo1.maven.org/maven2")
        assert adapter.max_retries.total == 5
        assert 503 in adapter.max_retries.status_forcelist

    def test_verifies_against_bundle(self, tmp_path):
        bundle = tmp_path / "corp.pem"
        bundle.write_text("")

        session = create_session(ca_bundle=str(bundle))

        assert session.verify == str(bundle)
