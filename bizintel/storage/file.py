"""
JSON-file backend - one document per collection, guarded by a lock file.

Readers never take the lock: writers replace the document atomically with
os.replace, so a reader sees either the old or the new list. Writers hold the
lock for the whole read-modify-write cycle.

Files live in the temp directory by default, which does not survive a
redeploy on serverless hosts. Use the database backend where that matters.
"""
import asyncio
import json
import logging
import os
import tempfile

from bizintel.storage.base import Mutation, Records, StorageBackend
from bizintel.utils.locks import (
    LOCK_MAX_RETRIES,
    LOCK_RETRY_INTERVAL,
    LOCK_STALE_SECONDS,
    file_lock,
)

logger = logging.getLogger(__name__)

FILE_PREFIX = "bizintel-"


class JsonFileBackend(StorageBackend):
    name = "file"

    def __init__(
        self,
        directory: str,
        stale_after: float = LOCK_STALE_SECONDS,
        retries: int = LOCK_MAX_RETRIES,
        interval: float = LOCK_RETRY_INTERVAL,
    ):
        self.directory = directory
        self.stale_after = stale_after
        self.retries = retries
        self.interval = interval

    def data_path(self, collection: str) -> str:
        return os.path.join(self.directory, f"{FILE_PREFIX}{collection}.json")

    def lock_path(self, collection: str) -> str:
        return self.data_path(collection) + ".lock"

    async def load(self, collection: str) -> Records:
        return await asyncio.to_thread(self._read, self.data_path(collection))

    async def mutate(self, collection: str, fn: Mutation):
        os.makedirs(self.directory, exist_ok=True)
        path = self.data_path(collection)
        async with file_lock(
            self.lock_path(collection),
            stale_after=self.stale_after,
            retries=self.retries,
            interval=self.interval,
        ):
            records = await asyncio.to_thread(self._read, path)
            new_records, result = fn(records)
            await asyncio.to_thread(self._write, path, new_records)
            return result

    async def ping(self) -> bool:
        os.makedirs(self.directory, exist_ok=True)
        return os.access(self.directory, os.W_OK)

    def _read(self, path: str) -> Records:
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return []
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Corrupt store file %s, treating as empty: %s", path, str(e))
            return []

        if not isinstance(data, list):
            logger.error("Store file %s does not hold a list, treating as empty", path)
            return []
        return data

    def _write(self, path: str, records: Records) -> None:
        fd, tmp_path = tempfile.mkstemp(
            dir=self.directory, prefix=os.path.basename(path), suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(records, fh, ensure_ascii=False)
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.remove(tmp_path)
            except FileNotFoundError:
                pass
            raise
