"""
Core types and protocols for the local blockchain simulator.

This module provides the foundational data structures shared by every other module:
1. Immutable records: AccountState, Message, Transaction, TraceStep
2. Configuration: ChainConfig and the well-known addresses it defaults to
3. Exceptions: LocalnetError and the caller-misuse errors derived from it
4. Protocols: the external collaborators (oracle, codec, account fetcher)

Nothing in this module mutates simulator state. The Executor is the only
object that changes the ledger, the transaction index and the message queue.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import hashlib
from typing import (
    Any, Callable, Mapping, Optional, Protocol, Tuple,
    runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Address used only to satisfy client-side sanity checks.
ZERO_ADDRESS = "0:" + "0" * 64

# Funded faucet account seeded into every fresh network.
GIVER_ADDRESS = "0:ece57bcc6c530283becbbd8a3b24d3c5987cdddc3c8b7b33be6e4a6312490415"

# Code fingerprint reported for the zero address. Clients query accounts by
# this hash during start-up and expect exactly the zero address back.
TEST_CODE_HASH = hashlib.sha256(b"localnet:test-code").hexdigest()

# Sentinel passed to the oracle (and returned to clients) for an account that
# does not exist.
EMPTY_STATE = ""

DEFAULT_GLOBAL_ID = 42

MAX_TRANSACTIONS_PER_FETCH = 255


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LocalnetError(Exception):
    """Base exception for all simulator errors."""
    pass


class SnapshotNotFound(LocalnetError, KeyError):
    """Raised when restoring a snapshot id that was never saved or has been cleared."""

    def __init__(self, snapshot_id: int):
        super().__init__(f"Snapshot {snapshot_id} not found")
        self.snapshot_id = snapshot_id

    def __str__(self) -> str:
        return f"Snapshot {self.snapshot_id} not found"


class ClockAlreadySet(LocalnetError):
    """Raised when the simulated clock is assigned a second time."""
    pass


class ClockNotSet(LocalnetError):
    """Raised when a message is processed before any clock was assigned."""
    pass


class AccountFetchFailure(LocalnetError):
    """Raised by the lazy account-fetch plumbing; never escapes a query."""
    pass


# ============================================================================
# ACCOUNT STATE
# ============================================================================

@dataclass(frozen=True, slots=True)
class LastTransactionId:
    """Reference to the last transaction applied to an account."""
    lt: int
    hash: str


@dataclass(frozen=True, slots=True)
class GenTimings:
    """Logical and unix time at which an account state was generated."""
    gen_lt: int = 0
    gen_utime: int = 0


@dataclass(frozen=True, slots=True)
class AccountState:
    """
    Decoded state of one ledger participant.

    The blob in ``boc`` is opaque to the simulator; it is only ever handed back
    to the oracle or to clients. Everything else is metadata decoded from it.

    Attributes:
        boc: Opaque account state blob
        balance: Balance in the chain's smallest unit
        is_deployed: True once the account carries code
        code_hash: Fingerprint of the account code, if any
        last_transaction_id: Last applied transaction (None for a fresh account)
        gen_timings: Generation timing of this state
    """
    boc: str
    balance: int = 0
    is_deployed: bool = False
    code_hash: Optional[str] = None
    last_transaction_id: Optional[LastTransactionId] = None
    gen_timings: GenTimings = field(default_factory=GenTimings)

    def __repr__(self) -> str:
        status = "deployed" if self.is_deployed else "uninit"
        code = self.code_hash[:8] if self.code_hash else "-"
        return f"AccountState({self.balance}, {status}, code={code})"


# ============================================================================
# MESSAGES AND TRANSACTIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Message:
    """
    Directed unit of work.

    Attributes:
        hash: Message hash
        boc: Opaque message blob
        dst: Destination address (None for outbound events)
        src: Source address (None for external inbound messages)
        lt: Logical time hint used for queue ordering
    """
    hash: str
    boc: str
    dst: Optional[str] = None
    src: Optional[str] = None
    lt: int = 0

    def __post_init__(self):
        if not self.hash:
            raise ValueError("Message hash cannot be empty")
        if not isinstance(self.lt, int) or isinstance(self.lt, bool):
            raise ValueError(f"Message lt must be int, got {type(self.lt)}")

    @property
    def is_event(self) -> bool:
        """True for outbound event messages, which are never enqueued."""
        return self.dst is None

    def __repr__(self) -> str:
        return f"Message({self.hash[:8]}: {self.src or 'external'}→{self.dst or 'event'}, lt={self.lt})"


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    The immutable record of one executed message.

    Attributes:
        hash: Transaction hash
        boc: Opaque transaction blob returned to clients
        lt: Logical time of the transaction
        now: Unix seconds the transaction was executed at
        aborted: True when the VM aborted the compute or action phase
        in_message: The message that produced this transaction
        out_messages: Messages emitted by the transaction, in emission order
    """
    hash: str
    boc: str
    lt: int
    in_message: Message
    now: int = 0
    aborted: bool = False
    out_messages: Tuple[Message, ...] = ()

    def __post_init__(self):
        if not self.hash:
            raise ValueError("Transaction hash cannot be empty")
        if self.in_message.dst is None:
            raise ValueError("Transaction inbound message must have a destination")

    @property
    def account(self) -> str:
        """Address the transaction was executed on."""
        return self.in_message.dst

    def __repr__(self) -> str:
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Transaction: ' + self.hash)}│",
            f"├{bar}┤",
            f"│{pad('   account     : ' + self.account)}│",
            f"│{pad('   lt          : ' + str(self.lt))}│",
            f"│{pad('   now         : ' + str(self.now))}│",
            f"│{pad('   aborted     : ' + str(self.aborted))}│",
            f"│{pad('   in_message  : ' + repr(self.in_message))}│",
            f"├{bar}┤",
            f"│{pad(' Out messages (' + str(len(self.out_messages)) + '):')}│",
        ]
        for i, msg in enumerate(self.out_messages):
            lines.append(f"│{pad(f'   [{i}] {msg!r}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


# ============================================================================
# TRACES
# ============================================================================

@dataclass(frozen=True, slots=True)
class TraceStep:
    """
    One VM step of a diagnostic trace.

    Gas fields are strings to match the collaborator's wire format. Steps
    parsed from raw trace text always report zero gas.
    """
    step: int
    cmd_str: str
    stack: Tuple[str, ...] = ()
    cmd_code_cell_hash: str = ""
    cmd_code_offset: str = ""
    gas_cmd: str = "0"
    gas_used: str = "0"
    cmd_code_hex: str = ""
    cmd_code_rem_bits: str = ""
    info_type: str = "Normal"


Trace = Tuple[TraceStep, ...]


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class ChainConfig:
    """
    Static network configuration.

    Attributes:
        config_boc: Blockchain config blob handed to the oracle on every call
        seed_account_boc: Full-account blob both bootstrap accounts decode from
        global_id: Chain identifier
        giver_address: Address of the funded faucet account
        zero_address: Address of the sanity-check account
    """
    config_boc: str
    seed_account_boc: str
    global_id: int = DEFAULT_GLOBAL_ID
    giver_address: str = GIVER_ADDRESS
    zero_address: str = ZERO_ADDRESS

    def __post_init__(self):
        if not self.config_boc:
            raise ValueError("ChainConfig config_boc cannot be empty")
        if not self.seed_account_boc:
            raise ValueError("ChainConfig seed_account_boc cannot be empty")
        if self.giver_address == self.zero_address:
            raise ValueError("Giver and zero addresses must be different")


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class ExecutionOracle(Protocol):
    """
    External VM that executes one message against one account.

    Implementations may raise on malformed input; the OracleAdapter turns any
    exception into an OracleFailure.
    """

    def execute(
        self,
        config_boc: str,
        account_boc: str,
        message_boc: str,
        utime: int,
        global_id: int,
        trace: bool,
    ) -> Mapping[str, Any]:
        """
        Execute a message.

        Returns a mapping with "account", "transaction" and optionally "trace"
        on success. Any mapping without "account" is a failure.
        """
        ...


@runtime_checkable
class BocCodec(Protocol):
    """External binary codec for accounts, messages and config."""

    def parse_account(self, boc: str) -> Optional[Mapping[str, Any]]:
        """Decode a full-account blob; None when it encodes a non-existent account."""
        ...

    def make_full_account_boc(self, account_stuff_boc: Optional[str]) -> str:
        """Wrap an account-stuff blob into a full-account blob."""
        ...

    def parse_message(self, boc: str) -> Mapping[str, Any]:
        """Decode a message blob."""
        ...

    def capabilities(self, config_boc: str) -> int:
        """Extract the capability bitmask from a config blob."""
        ...


ACCOUNT_STUFF = "account_stuff"
FULL_ACCOUNT = "full_account"


@dataclass(frozen=True, slots=True)
class FetchedAccount:
    """
    Response of an AccountFetcher.

    Attributes:
        boc: Account blob (None when the remote side has no such account)
        kind: ACCOUNT_STUFF or FULL_ACCOUNT, naming the encoding of ``boc``
        code_hash: Optional code fingerprint overriding the decoded one
    """
    boc: Optional[str]
    kind: str = FULL_ACCOUNT
    code_hash: Optional[str] = None

    def __post_init__(self):
        if self.kind not in (ACCOUNT_STUFF, FULL_ACCOUNT):
            raise ValueError(f"Unknown fetched account kind: {self.kind}")


# Lazy lookup of accounts missing from the local store.
AccountFetcher = Callable[[str], Optional[FetchedAccount]]

# Predicate used by account enumeration queries.
AccountPredicate = Callable[[str, AccountState], bool]
