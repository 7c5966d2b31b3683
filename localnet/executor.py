"""
executor.py - Simulation Engine

The Executor is the central state manager of the local network. It is the
only object that mutates the account store, the transaction index and the
message queue, and it always mutates them together, one message at a time.

Key responsibilities:
    - Drains the message queue in (logical time, insertion order) order
    - Drives the execution oracle and re-runs aborted messages with tracing on
    - Applies account changes and indexes every produced transaction
    - Saves and restores snapshots of the full live state
    - Answers read-only queries for the connector layer

Failures of a single message never stop a drain: the message is dropped and
a diagnostic line is printed (when verbose). Caller misuse (unknown snapshot,
second clock) raises.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, List, Optional, Union
import threading

from .clock import Clock
from .core import (
    AccountFetcher, AccountPredicate, AccountState, ChainConfig, Message,
    Trace, Transaction,
    ACCOUNT_STUFF, TEST_CODE_HASH,
    AccountFetchFailure, ClockAlreadySet, ClockNotSet, LocalnetError,
)
from .oracle import OracleAdapter, OracleFailure, OracleSuccess
from .snapshots import ExecutorState, SnapshotManager


class Executor:
    """
    Deterministic message executor with snapshot support.

    Thread Safety:
        Every mutating operation runs under one re-entrant lock, so a
        threaded caller never observes a half-applied step. Steps themselves
        are strictly sequential.

    Example:
        executor = Executor(config, OracleAdapter(oracle, codec), clock=FixedClock(0))
        executor.enqueue(message)
        transactions = executor.drain()

        snapshot_id = executor.save_snapshot()
        executor.submit(other_message)
        executor.load_snapshot(snapshot_id)
    """

    def __init__(
        self,
        config: ChainConfig,
        adapter: OracleAdapter,
        clock: Optional[Clock] = None,
        account_fetcher: Optional[AccountFetcher] = None,
        verbose: bool = True,
    ):
        """
        Create an executor seeded with the bootstrap accounts.

        Args:
            config: Chain configuration
            adapter: Oracle adapter used for execution and decoding
            clock: Simulated time source (can also be assigned once via set_clock)
            account_fetcher: Optional lookup for accounts missing from the store
            verbose: Print applied transactions and dropped messages (default: True)
        """
        self.config = config
        self.adapter = adapter
        self.verbose = verbose
        self._clock: Optional[Clock] = clock
        self._account_fetcher = account_fetcher
        self._snapshots = SnapshotManager()
        self._lock = threading.RLock()
        self.state: ExecutorState = self._bootstrap_state()

    # ========================================================================
    # BOOTSTRAP AND CLOCK
    # ========================================================================

    def _bootstrap_state(self) -> ExecutorState:
        """Fresh state holding the zero address and the giver, both decoded from the seed blob."""
        seed = self.adapter.decode_account(self.config.seed_account_boc)
        if seed is None:
            raise LocalnetError("Seed account blob does not decode to an account")
        state = ExecutorState()
        # The zero address exists only to pass client start-up checks
        state.accounts.set(self.config.zero_address, replace(seed, code_hash=TEST_CODE_HASH))
        state.accounts.set(self.config.giver_address, seed)
        return state

    def set_clock(self, clock: Clock) -> None:
        """
        Assign the simulated time source.

        Raises:
            ClockAlreadySet: If a clock was already assigned
        """
        with self._lock:
            if self._clock is not None:
                raise ClockAlreadySet("Clock already set")
            self._clock = clock

    @property
    def clock(self) -> Optional[Clock]:
        return self._clock

    def _now(self) -> int:
        """Simulated unix seconds."""
        if self._clock is None:
            raise ClockNotSet("Clock is not set; cannot execute messages")
        return self._clock.now_ms // 1000

    # ========================================================================
    # QUERY FAÇADE (read-only)
    # ========================================================================

    def get_account(self, address: str) -> Optional[AccountState]:
        """State of an account in the local store (no remote fetch)."""
        return self.state.accounts.get(address)

    def get_accounts(self) -> Dict[str, AccountState]:
        """Copy of every live account keyed by address."""
        return self.state.accounts.as_dict()

    def find_accounts(self, predicate: AccountPredicate) -> List[str]:
        """Addresses of accounts matching ``predicate(address, state)``."""
        return self.state.accounts.find(predicate)

    def get_accounts_by_code_hash(self, code_hash: str) -> List[str]:
        return self.find_accounts(lambda _, state: state.code_hash == code_hash)

    def get_transaction(self, tx_hash: str) -> Optional[Transaction]:
        return self.state.transactions.by_hash(tx_hash)

    def get_dst_transaction(self, msg_hash: str) -> Optional[Transaction]:
        """Transaction produced by the message with hash ``msg_hash``."""
        return self.state.transactions.by_inbound_message(msg_hash)

    def get_transactions(self, address: str, from_lt: Union[int, str], count: int) -> List[Transaction]:
        """
        Transaction history of an account.

        Args:
            address: Account address
            from_lt: Inclusive upper bound on logical time (int or decimal string)
            count: Maximum number of transactions

        Returns:
            Up to ``count`` transactions, most recent first
        """
        return self.state.transactions.history(address, int(from_lt), count)

    def get_tx_trace(self, tx_hash: str) -> Optional[Trace]:
        """
        Diagnostic trace of a transaction.

        Returns:
            The captured steps for an aborted transaction, an empty tuple when
            no trace was captured (the transaction did not abort, or the traced
            re-run failed), None for an unknown hash
        """
        return self.state.transactions.trace(tx_hash)

    def pending_message_count(self) -> int:
        return self.state.queue.size()

    # ========================================================================
    # LAZY ACCOUNT FETCH
    # ========================================================================

    def fetch_account(self, address: str) -> Optional[AccountState]:
        """
        Account state, fetching it through the account fetcher on a store miss.

        A fetched account is stored and becomes authoritative. Fetch errors
        are printed (when verbose) and the account is treated as absent.
        """
        with self._lock:
            account = self.state.accounts.get(address)
            if account is not None or self._account_fetcher is None:
                return account
            try:
                account = self._fetch_remote(address)
            except AccountFetchFailure as e:
                if self.verbose:
                    print(f"⚠️  FETCH FAILED: {address}: {e}")
                return None
            if account is not None:
                self.state.accounts.set(address, account)
            return account

    def _fetch_remote(self, address: str) -> Optional[AccountState]:
        try:
            response = self._account_fetcher(address)
        except Exception as e:
            raise AccountFetchFailure(f"fetcher raised {type(e).__name__}: {e}") from e
        if response is None or not response.boc:
            return None
        try:
            if response.kind == ACCOUNT_STUFF:
                return self.adapter.decode_account_stuff(response.boc, response.code_hash)
            return self.adapter.decode_account(response.boc, response.code_hash)
        except Exception as e:
            raise AccountFetchFailure(f"cannot decode fetched account: {e}") from e

    # ========================================================================
    # MUTATION
    # ========================================================================

    def set_account(self, address: str, boc: str) -> Optional[AccountState]:
        """
        Overwrite an account from a full-account blob.

        A blob that decodes to no account removes the address.
        """
        with self._lock:
            account = self.adapter.decode_account(boc)
            if account is None:
                self.state.accounts.remove(address)
            else:
                self.state.accounts.set(address, account)
            return account

    def enqueue(self, message: Message) -> bool:
        """
        Push a message onto the queue.

        Returns:
            False if the message is an outbound event and was discarded
        """
        if message.is_event:
            return False
        with self._lock:
            self.state.queue.enqueue(message)
        return True

    def submit(self, message: Message) -> List[Transaction]:
        """Enqueue a message and drain the queue before returning."""
        with self._lock:
            self.enqueue(message)
            return self.drain()

    def drain(self) -> List[Transaction]:
        """
        Process messages until the queue is empty.

        Returns:
            Transactions recorded during this drain, in execution order
        """
        executed: List[Transaction] = []
        with self._lock:
            while not self.state.queue.is_empty():
                tx = self.process_one()
                if tx is not None:
                    executed.append(tx)
        return executed

    def process_one(self) -> Optional[Transaction]:
        """
        Execute the message with the lowest logical time.

        Returns:
            The recorded transaction, or None if the queue was empty or the
            message was dropped

        Raises:
            ClockNotSet: If there is a message to execute but no clock
        """
        with self._lock:
            if self.state.queue.is_empty():
                return None
            utime = self._now()
            message = self.state.queue.pop_lowest()
            receiver = self.fetch_account(message.dst)

            outcome = self.adapter.execute(self.config, receiver, message, utime, trace=False)
            if isinstance(outcome, OracleFailure):
                if self.verbose:
                    print(f"✗ DROPPED: {message!r}: {outcome.reason}")
                return None
            if outcome.transaction.hash in self.state.transactions:
                if self.verbose:
                    print(f"✗ DROPPED: {message!r}: transaction {outcome.transaction.hash} already recorded")
                return None

            trace: Trace = ()
            if outcome.transaction.aborted:
                trace = self._capture_trace(receiver, message, utime)

            self._apply(message, outcome, trace)
            return outcome.transaction

    def _capture_trace(self, receiver: Optional[AccountState], message: Message, utime: int) -> Trace:
        """
        Re-run an aborted message with tracing on.

        Only the trace of this run is kept; the account and transaction of
        the first run stay authoritative.
        """
        outcome = self.adapter.execute(self.config, receiver, message, utime, trace=True)
        if isinstance(outcome, OracleFailure):
            if self.verbose:
                print(f"⚠️  TRACE UNAVAILABLE: {message!r}: {outcome.reason}")
            return ()
        return outcome.trace

    def _apply(self, message: Message, outcome: OracleSuccess, trace: Trace) -> None:
        tx = outcome.transaction
        # Recording first: it is the only step that can raise
        self.state.transactions.record(tx, trace)
        if outcome.destroyed:
            self.state.accounts.remove(message.dst)
        else:
            self.state.accounts.set(message.dst, outcome.account)
        for out in tx.out_messages:
            if out.is_event:
                continue
            self.state.queue.enqueue(out)

        if self.verbose:
            if tx.aborted:
                self._print_tx_result(tx, f"ABORTED ({len(trace)} trace steps)", "✗")
            else:
                self._print_tx_result(tx, "APPLIED", "✓")

    def _print_tx_result(self, tx: Transaction, result: str, icon: str) -> None:
        """Print the transaction box with a result line appended."""
        lines = repr(tx).split("\n")
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines[-1] = f"├{bar}┤"
        lines.append(f"│{pad(' ' + icon + ' ' + result)}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))

    # ========================================================================
    # SNAPSHOTS
    # ========================================================================

    def save_snapshot(self) -> int:
        """
        Capture the full live state.

        Returns:
            Snapshot id (ids strictly increase and are never reused)
        """
        with self._lock:
            return self._snapshots.save(self.state)

    def load_snapshot(self, snapshot_id: int) -> None:
        """
        Replace the live state with a copy of a saved snapshot.

        Raises:
            SnapshotNotFound: If the id was never saved or has been cleared
        """
        with self._lock:
            self.state = self._snapshots.load(snapshot_id)

    def clear_snapshots(self) -> None:
        """Drop every saved snapshot. Live state and id counter are untouched."""
        with self._lock:
            self._snapshots.clear()

    def reset_to_initial(self) -> None:
        """Replace the live state with the bootstrap state. Saved snapshots are kept."""
        with self._lock:
            self.state = self._bootstrap_state()

    @property
    def snapshots(self) -> SnapshotManager:
        return self._snapshots

    def __repr__(self) -> str:
        return (
            f"Executor({len(self.state.accounts)} accounts, "
            f"{len(self.state.transactions)} transactions, "
            f"{self.state.queue.size()} pending)"
        )
