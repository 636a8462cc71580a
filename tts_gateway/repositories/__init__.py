from .artifacts import ArtifactRepository, InMemoryArtifactRepository
from .profiles import InMemoryProfileStore, ProfileStore

__all__ = [
    "ArtifactRepository",
    "InMemoryArtifactRepository",
    "InMemoryProfileStore",
    "ProfileStore",
]
