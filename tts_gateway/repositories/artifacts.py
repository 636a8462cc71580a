from __future__ import annotations

from threading import RLock
from typing import Dict, List, Optional, Protocol

from ..models import SynthesisArtifact


class ArtifactRepository(Protocol):
    """Persistence interface for synthesis artifacts."""

    def get(self, artifact_id: str) -> Optional[SynthesisArtifact]:
        ...

    def save(self, artifact: SynthesisArtifact) -> None:
        ...

    def delete(self, artifact_id: str) -> None:
        ...

    def list_for_owner(self, principal_id: str) -> List[SynthesisArtifact]:
        ...


class InMemoryArtifactRepository(ArtifactRepository):
    """Simple in-memory artifact store for development and tests."""

    def __init__(self) -> None:
        self._items: Dict[str, SynthesisArtifact] = {}
        self._lock = RLock()

    def get(self, artifact_id: str) -> Optional[SynthesisArtifact]:
        with self._lock:
            return self._items.get(artifact_id)

    def save(self, artifact: SynthesisArtifact) -> None:
        with self._lock:
            self._items[artifact.id] = artifact

    def delete(self, artifact_id: str) -> None:
        with self._lock:
            self._items.pop(artifact_id, None)

    def list_for_owner(self, principal_id: str) -> List[SynthesisArtifact]:
        """Return the owner's artifacts, newest first."""
        with self._lock:
            items = [a for a in self._items.values() if a.owner_principal_id == principal_id]
        return sorted(items, key=lambda a: a.created_at, reverse=True)
