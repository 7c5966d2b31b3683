"""
accounts.py - Ledger Store

Mapping from account address to its current decoded state. The store is
plain data: no collaborators are referenced from here, so deep copies of it
are safe to hand out as snapshots. Lazy fetching of missing accounts is the
Executor's job.
"""

from __future__ import annotations
from typing import Dict, Iterator, List, Optional, Tuple

from .core import AccountState, AccountPredicate


class AccountStore:
    """Live account states keyed by address."""

    def __init__(self):
        self._accounts: Dict[str, AccountState] = {}

    def get(self, address: str) -> Optional[AccountState]:
        """Current state of an account, or None if it is not in the store."""
        return self._accounts.get(address)

    def set(self, address: str, state: AccountState) -> None:
        """Overwrite the state of an account."""
        if not address:
            raise ValueError("Account address cannot be empty")
        self._accounts[address] = state

    def remove(self, address: str) -> bool:
        """
        Drop an account (destroyed by a transaction).

        Returns:
            True if the account existed
        """
        return self._accounts.pop(address, None) is not None

    def find(self, predicate: AccountPredicate) -> List[str]:
        """Addresses whose state matches the predicate, in insertion order."""
        return [address for address, state in self._accounts.items() if predicate(address, state)]

    def items(self) -> Iterator[Tuple[str, AccountState]]:
        return iter(list(self._accounts.items()))

    def as_dict(self) -> Dict[str, AccountState]:
        """Shallow copy of the address -> state mapping (states are immutable)."""
        return dict(self._accounts)

    def __contains__(self, address: str) -> bool:
        return address in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)

    def __repr__(self) -> str:
        return f"AccountStore({len(self._accounts)} accounts)"
