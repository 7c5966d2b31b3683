"""
transactions.py - Transaction Index

Three coupled mappings kept in lockstep by record():
    - transaction hash -> Transaction
    - inbound message hash -> transaction hash
    - account address -> transaction hashes, newest first
plus the diagnostic trace stored for every transaction hash.
"""

from __future__ import annotations
from collections import deque
from itertools import islice
from typing import Deque, Dict, Iterator, List, Optional

from .core import Trace, Transaction


class TransactionIndex:
    """Lookup structures for executed transactions."""

    def __init__(self):
        self._transactions: Dict[str, Transaction] = {}
        self._msg_to_transaction: Dict[str, str] = {}
        self._addr_to_transactions: Dict[str, Deque[str]] = {}
        self._traces: Dict[str, Trace] = {}

    def record(self, tx: Transaction, trace: Trace = ()) -> None:
        """
        Index an executed transaction.

        The transaction is stored by hash, linked from its inbound message
        hash, prepended to its account history and its trace is stored
        (possibly empty). A message hash seen again links to the newest
        transaction.

        Raises:
            ValueError: If a transaction with the same hash was already recorded
        """
        if tx.hash in self._transactions:
            raise ValueError(f"Transaction {tx.hash} already recorded")
        self._transactions[tx.hash] = tx
        self._msg_to_transaction[tx.in_message.hash] = tx.hash
        self._addr_to_transactions.setdefault(tx.account, deque()).appendleft(tx.hash)
        self._traces[tx.hash] = tuple(trace)

    def by_hash(self, tx_hash: str) -> Optional[Transaction]:
        return self._transactions.get(tx_hash)

    def by_inbound_message(self, msg_hash: str) -> Optional[Transaction]:
        """Transaction produced by the message with the given hash."""
        tx_hash = self._msg_to_transaction.get(msg_hash)
        if tx_hash is None:
            return None
        return self._transactions.get(tx_hash)

    def trace(self, tx_hash: str) -> Optional[Trace]:
        """Stored trace (empty for transactions that did not abort), None for unknown hashes."""
        return self._traces.get(tx_hash)

    def iter_history(self, address: str, upper_bound_lt: int) -> Iterator[Transaction]:
        """Lazily yield transactions on an account with lt <= upper_bound_lt, newest first."""
        for tx_hash in self._addr_to_transactions.get(address, ()):
            tx = self._transactions[tx_hash]
            if tx.lt <= upper_bound_lt:
                yield tx

    def history(self, address: str, upper_bound_lt: int, limit: int) -> List[Transaction]:
        """
        Up to ``limit`` transactions on ``address`` with lt <= ``upper_bound_lt``.

        Scanning stops as soon as ``limit`` matches are found.

        Args:
            address: Account address
            upper_bound_lt: Inclusive logical time bound
            limit: Maximum number of transactions to return

        Returns:
            Transactions, most recent first
        """
        if limit <= 0:
            return []
        return list(islice(self.iter_history(address, upper_bound_lt), limit))

    def history_size(self, address: str) -> int:
        return len(self._addr_to_transactions.get(address, ()))

    def __contains__(self, tx_hash: str) -> bool:
        return tx_hash in self._transactions

    def __len__(self) -> int:
        return len(self._transactions)

    def __repr__(self) -> str:
        return f"TransactionIndex({len(self._transactions)} transactions)"
