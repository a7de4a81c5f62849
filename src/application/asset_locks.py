from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generator


@dataclass
class _Entry:
    lock: threading.RLock = field(default_factory=threading.RLock)
    holders: int = 0  # threads holding or waiting for `lock`


class AssetLockRegistry:
    """Per-asset mutual exclusion for ledger read-modify-write sequences.

    Operations on different assets never contend; operations on the same asset
    run one at a time. Locks are re-entrant so a locked operation may call
    other locked reads of the same asset. An asset's entry lives only while
    some thread holds or waits for it.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, asset_id: str) -> Generator[None, None, None]:
        with self._lock:
            entry = self._entries.get(asset_id)
            if entry is None:
                entry = self._entries[asset_id] = _Entry()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._lock:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._entries[asset_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Process-wide registry shared by every controller instance
_REGISTRY = AssetLockRegistry()


def get_asset_locks() -> AssetLockRegistry:
    return _REGISTRY
