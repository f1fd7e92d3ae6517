"""Version range parsing and the local 'latest directory' heuristic."""

import re
from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class VersionRange:
    """
    Parsed interval-bracket version range.

    Attributes:
        lower: Lower bound, or None when open ("(,1.0]")
        upper: Upper bound, or None when open ("[1.0,)")
        lower_inclusive: True for '[', False for '('
        upper_inclusive: True for ']', False for ')'
        original_string: The range as written in the descriptor
    """
    lower: Optional[str]
    upper: Optional[str]
    lower_inclusive: bool
    upper_inclusive: bool
    original_string: str

    def __str__(self) -> str:
        return self.original_string


class VersionParser:
    """Parser for Maven version range syntax."""

    # Example: [1.0,2.0)  (,1.5]  [1.2,)
    RANGE_PATTERN = re.compile(
        r'^([\[(])'                  # Lower bracket
        r'([A-Za-z0-9_.\-]*)'        # Lower bound (may be empty)
        r','
        r'([A-Za-z0-9_.\-]*)'        # Upper bound (may be empty)
        r'([\])])$'                  # Upper bracket
    )

    @classmethod
    def parse_range(cls, version: str) -> Optional[VersionRange]:
        """
        Parse a version range.

        Args:
            version: The version string from a coordinate or declaration

        Returns:
            VersionRange, or None if the version is a plain version
        """
        match = cls.RANGE_PATTERN.match(version.strip())
        if not match:
            return None

        return VersionRange(
            lower=match.group(2) or None,
            upper=match.group(3) or None,
            lower_inclusive=match.group(1) == '[',
            upper_inclusive=match.group(4) == ']',
            original_string=version,
        )

    @classmethod
    def is_range(cls, version: str) -> bool:
        return cls.parse_range(version) is not None

    @staticmethod
    def pick_latest(candidates: Iterable[str]) -> Optional[str]:
        """
        Pick the lexicographically greatest candidate.

        This is the resolution heuristic for ranges: bounds are not evaluated
        and '10.0' sorts before '9.0'. Good enough for a local cache that
        holds the versions Maven itself selected.
        """
        return max(candidates, default=None)
