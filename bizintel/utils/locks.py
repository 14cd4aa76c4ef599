"""
Advisory lock files - serialise read-modify-write cycles on the JSON store.
A lock is a file created with O_CREAT|O_EXCL holding the owner's token.
Locks older than the stale timeout are assumed abandoned and broken.

Only cooperating processes on the same filesystem are excluded; this is not
a substitute for a database transaction.
"""
import asyncio
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

LOCK_STALE_SECONDS = 5.0
LOCK_MAX_RETRIES = 20
LOCK_RETRY_INTERVAL = 0.1  # 100ms


@asynccontextmanager
async def file_lock(
    lock_path: str,
    stale_after: float = LOCK_STALE_SECONDS,
    retries: int = LOCK_MAX_RETRIES,
    interval: float = LOCK_RETRY_INTERVAL,
):
    """
    Acquire an advisory lock file for the duration of the block.

    Usage:
        async with file_lock("/tmp/companies.json.lock"):
            # read, modify and write the JSON document
    """
    token = uuid.uuid4().hex  # Unique value so we only ever remove our own lock

    acquired = False
    try:
        acquired = await _acquire_lock(lock_path, token, stale_after, retries, interval)
        if not acquired:
            raise LockTimeoutError(
                f"Could not acquire {os.path.basename(lock_path)} after {retries} attempts"
            )
        yield
    finally:
        if acquired:
            _release_lock(lock_path, token)


async def _acquire_lock(
    path: str,
    token: str,
    stale_after: float,
    retries: int,
    interval: float,
) -> bool:
    """Try to create the lock file, breaking stale locks and polling between attempts."""
    for _ in range(retries):
        if _try_create(path, token):
            return True

        if _is_stale(path, stale_after):
            logger.warning("Breaking stale lock file %s", path)
            _break_lock(path)
            continue

        await asyncio.sleep(interval)

    logger.warning("Lock acquisition timed out for %s", path)
    return False


def _try_create(path: str, token: str) -> bool:
    try:
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return False
    with os.fdopen(fd, "w") as fh:
        fh.write(f"{token}:{os.getpid()}")
    return True


def _is_stale(path: str, stale_after: float) -> bool:
    """A lock is stale once its mtime is older than stale_after seconds."""
    try:
        age = time.time() - os.path.getmtime(path)
    except FileNotFoundError:
        # Released between our create attempt and this check
        return False
    return age > stale_after


def _break_lock(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


def _release_lock(path: str, token: str) -> None:
    """Remove the lock file only if we still own it (compare-and-delete)."""
    try:
        with open(path) as fh:
            owner = fh.read().split(":", 1)[0]
        if owner == token:
            os.remove(path)
        else:
            logger.warning("Lock file %s was taken over by another owner; leaving it", path)
    except FileNotFoundError:
        logger.warning("Lock file %s vanished before release", path)
    except OSError as e:
        logger.warning("Lock release error for %s: %s", path, str(e))


class LockTimeoutError(Exception):
    """Raised when a lock file cannot be acquired within the retry budget."""
    pass
