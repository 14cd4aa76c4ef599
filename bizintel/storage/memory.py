"""
Process-local backend. Lost on restart and not shared between workers;
used for tests and single-process development.
"""
import asyncio
import copy

from bizintel.storage.base import Mutation, Records, StorageBackend


class MemoryBackend(StorageBackend):
    name = "memory"

    def __init__(self):
        self._collections: dict[str, Records] = {}
        self._lock = asyncio.Lock()

    async def load(self, collection: str) -> Records:
        return copy.deepcopy(self._collections.get(collection, []))

    async def mutate(self, collection: str, fn: Mutation):
        async with self._lock:
            records = copy.deepcopy(self._collections.get(collection, []))
            new_records, result = fn(records)
            self._collections[collection] = new_records
            return result
