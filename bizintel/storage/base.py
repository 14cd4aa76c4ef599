"""
Storage backend contract for the shared store.

A backend holds named collections of JSON-able records. Repositories never
write records directly: they hand the backend a function that receives the
current list and returns (new_list, result), and the backend runs it as one
read-modify-write cycle under whatever exclusion it has.
"""
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

T = TypeVar("T")

Records = list[dict[str, Any]]
Mutation = Callable[[Records], tuple[Records, T]]


class StorageBackend(ABC):
    name: str = "abstract"

    @abstractmethod
    async def load(self, collection: str) -> Records:
        """Return a snapshot of every record in the collection, in insertion order."""

    @abstractmethod
    async def mutate(self, collection: str, fn: Mutation) -> T:
        """Apply fn to the collection atomically and return fn's result."""

    async def ping(self) -> bool:
        """Readiness probe. Raises or returns False when the backend is unusable."""
        await self.load("__ping__")
        return True

    async def close(self) -> None:
        return None
