"""Filesystem journaling — staged, all-or-nothing mutation.

Every change to the inode table is recorded in a **transaction** before
it reaches the backing store.  Each entry carries the *before image* of
the record it touches, so an interrupted operation can be undone.

Key concepts:

- **Transaction** — the group of record puts/deletes produced by one
  filesystem operation (a whole subtree rename is *one* transaction).
- **Before image** — the serialized record as it was before the change
  (``None`` if the path did not exist).  Rolling back replays the before
  images newest-first.
- **Net changes** — when a transaction commits, only the final state of
  each touched path is sent to the store, so a path that was written and
  then deleted in the same transaction costs one delete.

Why composition instead of a subclass of the filesystem?  The journal is
a *layer* the filesystem uses, not a different filesystem.  The journal
knows nothing about inode semantics; it only stores serialized records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from time import monotonic
from typing import Any, TypeAlias

Record: TypeAlias = dict[str, Any]


class JournalOp(StrEnum):
    """Represent the type of record mutation being logged."""

    PUT = "put"
    DELETE = "delete"


class TransactionState(StrEnum):
    """Represent the lifecycle state of a transaction."""

    ACTIVE = "active"
    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass
class JournalEntry:
    """A single logged record mutation within a transaction.

    Attributes:
        op: Whether the record was written or removed.
        path: The canonical key of the record.
        record: The new serialized record (``None`` for deletes).
        before: The serialized record before the change, or ``None``
            if the path did not exist.
        timestamp: Monotonic time the entry was appended.

    """

    op: JournalOp
    path: str
    record: Record | None
    before: Record | None
    timestamp: float = field(default_factory=monotonic)


@dataclass
class Transaction:
    """Group journal entries into an atomic unit.

    Each transaction is identified by a unique ``txn_id`` and moves
    through ACTIVE → COMMITTED or ACTIVE → ABORTED.
    """

    txn_id: int
    state: TransactionState = TransactionState.ACTIVE
    entries: list[JournalEntry] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]

    def net_changes(self) -> tuple[dict[str, Record], set[str]]:
        """Collapse the entries into the final puts and deletes.

        Returns:
            ``(puts, deletes)`` — records to write keyed by path, and
            paths to remove.  A path appears in at most one of the two.

        """
        puts: dict[str, Record] = {}
        deletes: set[str] = set()
        for entry in self.entries:
            if entry.op is JournalOp.PUT and entry.record is not None:
                puts[entry.path] = entry.record
                deletes.discard(entry.path)
            else:
                puts.pop(entry.path, None)
                deletes.add(entry.path)
        return puts, deletes

    def undo_log(self) -> list[tuple[str, Record | None]]:
        """Return ``(path, before image)`` pairs newest-first for rollback."""
        return [(entry.path, entry.before) for entry in reversed(self.entries)]


class Journal:
    """The write-ahead log itself.

    Manages transactions: begin, append entries, commit or abort.
    Finished transactions can be cleared to free memory.
    """

    def __init__(self) -> None:
        """Create an empty journal."""
        self._transactions: list[Transaction] = []
        self._next_txn_id: int = 0

    def begin(self) -> Transaction:
        """Begin a new ACTIVE transaction.

        Returns:
            The newly created transaction.

        """
        txn = Transaction(txn_id=self._next_txn_id)
        self._next_txn_id += 1
        self._transactions.append(txn)
        return txn

    def append(self, txn: Transaction, entry: JournalEntry) -> None:
        """Append an entry to an ACTIVE transaction.

        Raises:
            ValueError: If the transaction is not ACTIVE.

        """
        if txn.state is not TransactionState.ACTIVE:
            msg = f"Cannot append to {txn.state} transaction"
            raise ValueError(msg)
        txn.entries.append(entry)

    def commit(self, txn: Transaction) -> None:
        """Mark an ACTIVE transaction as COMMITTED.

        Raises:
            ValueError: If the transaction is not ACTIVE.

        """
        if txn.state is not TransactionState.ACTIVE:
            msg = f"Cannot commit {txn.state} transaction"
            raise ValueError(msg)
        txn.state = TransactionState.COMMITTED

    def abort(self, txn: Transaction) -> None:
        """Mark an ACTIVE transaction as ABORTED.

        Raises:
            ValueError: If the transaction is not ACTIVE.

        """
        if txn.state is not TransactionState.ACTIVE:
            msg = f"Cannot abort {txn.state} transaction"
            raise ValueError(msg)
        txn.state = TransactionState.ABORTED

    def active_transactions(self) -> list[Transaction]:
        """Return all ACTIVE transactions."""
        return [t for t in self._transactions if t.state is TransactionState.ACTIVE]

    @property
    def transactions(self) -> list[Transaction]:
        """Return all transactions (read-only snapshot)."""
        return list(self._transactions)

    def clear(self) -> None:
        """Remove all COMMITTED and ABORTED transactions.

        Only ACTIVE transactions survive (they represent in-flight work).
        """
        self._transactions = [t for t in self._transactions if t.state is TransactionState.ACTIVE]
