"""Exceptions raised while resolving artifacts."""


class PomtreeError(Exception):
    """Base class for all pomtree errors."""


class MalformedCoordinate(PomtreeError, ValueError):
    """A coordinate string does not have 3 or 4 colon-separated tokens."""


class DescriptorUnavailable(PomtreeError):
    """The descriptor could not be fetched into the local repository."""


class DescriptorParseError(PomtreeError):
    """The descriptor exists but is not a readable POM."""


class MissingRequiredField(PomtreeError):
    """Group, name or version could not be determined, not even via the parent."""


class PropertyCycle(PomtreeError):
    """A placeholder refers back to itself, directly or through other properties."""

    def __init__(self, chain):
        self.chain = list(chain)
        super().__init__(f"Property cycle: {' -> '.join(self.chain)}")


class CyclicDependency(PomtreeError):
    """An artifact was requested while its own resolution is still in progress."""

    def __init__(self, key):
        self.key = key
        super().__init__(f"Cyclic dependency on {':'.join(key)}")


class PackageUnavailable(PomtreeError):
    """The package payload (jar, war) of an artifact cannot be opened."""
