"""Per-interface run serialization."""
import asyncio
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class InterfaceLockRegistry:
    """Hands out one asyncio lock per (device, interface) pair.

    Two runs on the same interface execute one after the other; runs on
    different interfaces are not synchronized. A lock is dropped as soon
    as no run holds or waits for it.
    """

    def __init__(self):
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._users: dict[tuple[str, str], int] = {}

    @asynccontextmanager
    async def hold(self, device_id: str, interface: str):
        """Hold the interface lock for the duration of the block."""
        key = (device_id, interface)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1

        if lock.locked():
            logger.info(
                f"Waiting for running reconciliation on {device_id}/{interface}"
            )
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


# Process-wide registry shared by all controllers
default_registry = InterfaceLockRegistry()
