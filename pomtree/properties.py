"""Immutable property tables with ${...} placeholder interpolation."""

import logging
import re
from typing import Callable, Dict, Iterator, Mapping, Optional

from .errors import PropertyCycle

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r'\$\{([^}]+)\}')


class _Unresolved(Exception):
    """Internal signal: a placeholder names a property that is not defined."""


def is_placeholder(value: Optional[str]) -> bool:
    """Return True if the value still contains an unexpanded ${...} reference."""
    return bool(value) and PLACEHOLDER.search(value) is not None


class PropertyTable(Mapping[str, str]):
    """
    Read-only mapping of property names to string values.

    Tables are never mutated: overlay() returns a new table, so the
    precedence of parent, own, and imported properties can be inspected
    step by step.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values: Dict[str, str] = dict(values) if values else {}

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"PropertyTable({self._values!r})"

    def overlay(self, values: Mapping[str, str]) -> 'PropertyTable':
        """Return a new table with `values` laid over this one (values win)."""
        if not values:
            return self
        merged = dict(self._values)
        merged.update(values)
        return PropertyTable(merged)

    def without(self, predicate: Callable[[str], bool]) -> 'PropertyTable':
        """Return a copy holding only the keys for which predicate is false."""
        return PropertyTable({k: v for k, v in self._values.items() if not predicate(k)})

    def expand(self, value: str) -> str:
        """
        Expand every placeholder in value.

        Raises:
            PropertyCycle: if a placeholder chain refers back to itself
            KeyError: if a referenced property is not defined
        """
        try:
            return self._expand(value, ())
        except _Unresolved as e:
            raise KeyError(e.args[0]) from None

    def _expand(self, value: str, chain) -> str:
        def replace(match):
            key = match.group(1)
            if key in chain:
                raise PropertyCycle(chain + (key,))
            if key not in self._values:
                raise _Unresolved(key)
            return self._expand(self._values[key], chain + (key,))

        return PLACEHOLDER.sub(replace, value)

    def resolve(self, raw: Optional[str], fallback: Optional[Callable[[], Optional[str]]] = None) -> Optional[str]:
        """
        Resolve a raw declaration value through this table.

        Returns the expanded value, or fallback() when the raw value is
        absent, references an undefined property, or is part of a
        placeholder cycle. Without a fallback, None is returned instead.
        """
        if raw is not None:
            raw = raw.strip()
        if raw:
            try:
                return self._expand(raw, ())
            except _Unresolved as e:
                logger.debug(f"Property {e.args[0]} is not defined, cannot resolve '{raw}'")
            except PropertyCycle as e:
                logger.warning(f"{e} while resolving '{raw}', using fallback")
        return fallback() if fallback is not None else None


def is_identity_key(key: str) -> bool:
    """True for the project.* keys seeded from an artifact's own coordinate."""
    return key.startswith('project.')


EMPTY = PropertyTable()
