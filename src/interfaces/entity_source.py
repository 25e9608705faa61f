"""Entity source protocol — supplies the entity graph for one run."""
from typing import Protocol

from ..models import Entity
from ..sources.snapshot import Snapshot


class EntitySource(Protocol):
    """Abstract interface for building the entity graph from external state."""

    def load(self) -> Snapshot: ...

    def load_entities(self) -> dict[str, Entity]: ...
