"""pomtree - resolve Maven dependency graphs from a local repository."""

__version__ = "1.0.0"

from .cache import ArtifactCache
from .models import Artifact, Coordinate, DependencyDecl, DescriptorModel
from .repository import LocalRepository
from .resolver import ArtifactResolver
