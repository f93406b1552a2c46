# stockledger/core/locks.py

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from stockledger.core.config import LOCK_TIMEOUT_SECONDS
from stockledger.core.exceptions import ConflictError
from stockledger.utils.logger import get_logger

logger = get_logger(__name__)


class _Slot:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class ProductLockTable:
    """
    Serializes mutations per product inside one process.

    Keys are parts numbers: they identify a product before it exists
    (first import) and never change afterwards. Multi-key holders take
    keys in sorted order so two baskets sharing products cannot deadlock.
    Slots are dropped once nobody holds or waits on them.
    """

    def __init__(self, timeout: float = LOCK_TIMEOUT_SECONDS):
        self.timeout = timeout
        self._slots: dict[str, _Slot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def is_locked(self, key: str) -> bool:
        slot = self._slots.get(key)
        return bool(slot and slot.lock.locked())

    def _checkout(self, key: str) -> _Slot:
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = _Slot()
        slot.users += 1
        return slot

    def _checkin(self, key: str, slot: _Slot) -> None:
        slot.users -= 1
        if slot.users == 0 and self._slots.get(key) is slot:
            del self._slots[key]

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]) -> AsyncIterator[None]:
        ordered = sorted(set(keys))
        acquired: list[tuple[str, _Slot]] = []

        try:
            for key in ordered:
                slot = self._checkout(key)
                try:
                    await asyncio.wait_for(slot.lock.acquire(), timeout=self.timeout)
                except asyncio.TimeoutError:
                    self._checkin(key, slot)
                    logger.warning(
                        "Product lock wait timed out",
                        extra={"product_key": key, "timeout": self.timeout},
                    )
                    raise ConflictError(
                        "Product is being updated by another request, retry later",
                        details={"product_key": key},
                    )
                except BaseException:
                    # cancelled while waiting (client went away)
                    self._checkin(key, slot)
                    raise
                acquired.append((key, slot))

            yield

        finally:
            for key, slot in reversed(acquired):
                slot.lock.release()
                self._checkin(key, slot)


# Shared by every workflow in this process
product_locks = ProductLockTable()
