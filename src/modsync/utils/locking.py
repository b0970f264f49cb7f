"""
Per-instance run exclusion.
"""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager

from .exceptions import SyncInProgressError


class KeyedLock:
    """
    One ``asyncio.Lock`` per key, created on first use.

    The reconciler holds no lock of its own. The runner keys this registry by
    resolved instance path, so two runs against "/games/packA" never overlap
    while a run against "/games/packB" is unaffected.

    Entries are never evicted; the key space is the set of instance
    directories seen by the process.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = defaultdict(asyncio.Lock)

    def locked(self, key: Hashable) -> bool:
        """True while some task holds ``key``. Unknown keys are never locked."""
        return key in self._locks and self._locks[key].locked()

    @asynccontextmanager
    async def acquire(self, key: Hashable, wait: bool = True) -> AsyncIterator[None]:
        """
        Hold ``key`` for the duration of the block.

        Args:
            key: Normally the resolved instance path as a string
            wait: Queue behind the current holder. When False, a held key
                raises instead.

        Raises:
            SyncInProgressError: If ``wait`` is False and ``key`` is held
        """
        if not wait and self.locked(key):
            raise SyncInProgressError(str(key))
        async with self._locks[key]:
            yield
