"""
transport.py - Connector Façade

Node-shaped interface consumed by a generic blockchain client. Every query is
answered from the executor; every read returns opaque blobs, exactly what a
remote node would send over the wire. send_message() runs the whole cascade
of the submitted message before returning.
"""

from __future__ import annotations
from dataclasses import dataclass
from itertools import islice
from typing import List, Optional, Union

from .core import (
    ChainConfig, EMPTY_STATE, MAX_TRANSACTIONS_PER_FETCH, TEST_CODE_HASH,
    LocalnetError,
)
from .executor import Executor


@dataclass(frozen=True, slots=True)
class TransportInfo:
    """Static transport capabilities advertised to the client."""
    has_key_blocks: bool = False
    max_transactions_per_fetch: int = MAX_TRANSACTIONS_PER_FETCH
    reliable_behavior: str = "IntensivePolling"


@dataclass(frozen=True, slots=True)
class NetworkCapabilities:
    global_id: int
    raw: int


class Transport:
    """
    Proxy connector backed by a local Executor.

    The executor is attached after construction (set_executor) because the
    executor and the connection factory are built around the same transport.
    """

    def __init__(self, config: ChainConfig):
        self.config = config
        self._executor: Optional[Executor] = None
        self._capabilities: Optional[NetworkCapabilities] = None

    def set_executor(self, executor: Executor) -> None:
        self._executor = executor

    @property
    def executor(self) -> Executor:
        if self._executor is None:
            raise LocalnetError("Transport has no executor attached")
        return self._executor

    # ------------------------------------------------------------------------
    # Network metadata
    # ------------------------------------------------------------------------

    def info(self) -> TransportInfo:
        return TransportInfo()

    def get_blockchain_config(self) -> ChainConfig:
        return self.config

    def get_capabilities(self, now_ms: Optional[int] = None) -> NetworkCapabilities:
        """Capabilities decoded from the config blob; computed once and cached."""
        if self._capabilities is None:
            self._capabilities = NetworkCapabilities(
                global_id=self.config.global_id,
                raw=self.executor.adapter.capabilities(self.config),
            )
        return self._capabilities

    def get_latest_key_block(self) -> str:
        return ""

    def get_library_cell(self, cell_hash: str) -> Optional[str]:
        """Library cells are not stored locally; every lookup misses."""
        return None

    # ------------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------------

    def get_accounts_by_code_hash(
        self,
        code_hash: str,
        limit: int = MAX_TRANSACTIONS_PER_FETCH,
        continuation: Optional[str] = None,
    ) -> List[str]:
        """
        Addresses of accounts with the given code fingerprint.

        The test code hash always resolves to the zero address alone.
        ``continuation`` is accepted for interface compatibility; results are
        never paginated.
        """
        if code_hash == TEST_CODE_HASH:
            return [self.config.zero_address]
        return list(islice(self.executor.get_accounts_by_code_hash(code_hash), max(limit, 0)))

    def get_contract_state(self, address: str) -> str:
        """Account blob, fetched lazily if missing; the empty-state sentinel if absent."""
        account = self.executor.fetch_account(address)
        return account.boc if account is not None else EMPTY_STATE

    # ------------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------------

    def get_transaction(self, tx_hash: str) -> Optional[str]:
        tx = self.executor.get_transaction(tx_hash)
        return tx.boc if tx is not None else None

    def get_dst_transaction(self, msg_hash: str) -> Optional[str]:
        tx = self.executor.get_dst_transaction(msg_hash)
        return tx.boc if tx is not None else None

    def get_transactions(self, address: str, from_lt: Union[int, str], count: int) -> List[str]:
        return [tx.boc for tx in self.executor.get_transactions(address, from_lt, count)]

    # ------------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------------

    def send_message(self, message_boc: str) -> None:
        """Decode an external message, enqueue it and drain the queue."""
        message = self.executor.adapter.decode_message(message_boc)
        self.executor.submit(message)

    def __repr__(self) -> str:
        return f"Transport(global_id={self.config.global_id})"

