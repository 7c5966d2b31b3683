"""
snapshots.py - Executor State and Snapshot Table

ExecutorState bundles everything a simulation step mutates: the account
store, the transaction index and the pending message queue. They change
together, so they are captured and restored together.

Snapshots are full deep copies. A stored snapshot is never handed out
directly; load() returns a fresh copy, so restoring the same id twice yields
two independent live states.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List
import copy

from .accounts import AccountStore
from .core import SnapshotNotFound
from .message_queue import MessageQueue
from .transactions import TransactionIndex


@dataclass
class ExecutorState:
    """Mutable live state of one executor."""
    accounts: AccountStore = field(default_factory=AccountStore)
    transactions: TransactionIndex = field(default_factory=TransactionIndex)
    queue: MessageQueue = field(default_factory=MessageQueue)

    def clone(self) -> ExecutorState:
        """
        Deep copy of this state.

        Modifications to the clone never affect the original, and vice versa.
        """
        return copy.deepcopy(self)


class SnapshotManager:
    """
    Table of saved executor states keyed by sequential ids.

    Ids are assigned by post-increment and are never reused, even after
    clear().
    """

    def __init__(self):
        self._snapshots: Dict[int, ExecutorState] = {}
        self._nonce: int = 0

    def save(self, state: ExecutorState) -> int:
        """
        Store a deep copy of ``state``.

        Returns:
            The id assigned to the snapshot
        """
        snapshot_id = self._nonce
        self._snapshots[snapshot_id] = state.clone()
        self._nonce += 1
        return snapshot_id

    def load(self, snapshot_id: int) -> ExecutorState:
        """
        Fresh copy of a stored snapshot.

        Raises:
            SnapshotNotFound: If the id was never saved or has been cleared
        """
        if snapshot_id not in self._snapshots:
            raise SnapshotNotFound(snapshot_id)
        return self._snapshots[snapshot_id].clone()

    def clear(self) -> None:
        """Drop every stored snapshot. The id counter keeps counting."""
        self._snapshots.clear()

    @property
    def next_id(self) -> int:
        return self._nonce

    def ids(self) -> List[int]:
        return sorted(self._snapshots)

    def __contains__(self, snapshot_id: int) -> bool:
        return snapshot_id in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)
