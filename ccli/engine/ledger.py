"""Append-only record of completed counter transactions for the current session."""
from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass

import whenever


class CounterMethod(enum.Enum):
    Increment = "Increment"
    Decrement = "Decrement"


@dataclass(slots=True, frozen=True)
class TransactionRecord:
    method: CounterMethod
    txHash: str
    observedAt: whenever.ZonedDateTime


class LedgerSnapshot:
    """Most-recent-first view over the ledger as it was when the snapshot was taken.

    Iterating is lazy and can be repeated. Records appended after the snapshot
    are not visible and a later ``clear()`` doesn't affect it, because clearing
    swaps in a fresh list instead of emptying the one we reference.
    """

    __slots__ = ("_records", "_size")

    def __init__(self, records: list[TransactionRecord]):
        self._records = records
        self._size = len(records)

    def __iter__(self) -> Iterator[TransactionRecord]:
        for idx in range(self._size - 1, -1, -1):
            yield self._records[idx]

    def __len__(self) -> int:
        return self._size

    def __bool__(self) -> bool:
        return self._size > 0

    def __repr__(self) -> str:
        return f"LedgerSnapshot({list(self)!r})"


class TransactionLedger:
    def __init__(self):
        self._records: list[TransactionRecord] = []

    def append(self, record: TransactionRecord) -> None:
        self._records.append(record)

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(self._records)

    def clear(self) -> None:
        self._records = []

    def __len__(self) -> int:
        return len(self._records)
