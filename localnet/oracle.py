"""
oracle.py - Execution Oracle Adapter

Stateless translation layer between the simulator's domain types and the
external VM collaborators (ExecutionOracle and BocCodec).

The raw oracle reports success or failure through the shape of its result.
The adapter turns that into an explicit tagged outcome:

    OracleOutcome = OracleSuccess | OracleFailure

Exceptions raised by the oracle or by decoding its result are also converted
into OracleFailure, so nothing raised by the VM crosses this boundary.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from .core import (
    AccountState, BocCodec, ChainConfig, ExecutionOracle, GenTimings,
    LastTransactionId, Message, Trace, Transaction, EMPTY_STATE,
)
from .trace import coerce_trace


# ============================================================================
# OUTCOMES
# ============================================================================

@dataclass(frozen=True, slots=True)
class OracleSuccess:
    """
    Oracle executed the message.

    Attributes:
        account: Resulting account state (None when the account was destroyed)
        transaction: The produced transaction (may be aborted)
        trace: Diagnostic trace; empty unless tracing was requested
    """
    account: Optional[AccountState]
    transaction: Transaction
    trace: Trace = ()

    @property
    def destroyed(self) -> bool:
        return self.account is None


@dataclass(frozen=True, slots=True)
class OracleFailure:
    """Oracle could not execute the message (malformed input or VM crash)."""
    reason: str


OracleOutcome = Union[OracleSuccess, OracleFailure]


# ============================================================================
# ADAPTER
# ============================================================================

class OracleAdapter:
    """
    Packs domain types into oracle calls and unpacks the results.

    Example:
        adapter = OracleAdapter(oracle, codec)
        outcome = adapter.execute(config, receiver, message, utime, trace=False)
        if isinstance(outcome, OracleSuccess):
            ...
    """

    def __init__(self, oracle: ExecutionOracle, codec: BocCodec):
        self.oracle = oracle
        self.codec = codec

    def execute(
        self,
        config: ChainConfig,
        account: Optional[AccountState],
        message: Message,
        utime: int,
        trace: bool = False,
    ) -> OracleOutcome:
        """
        Execute a message against an account.

        Args:
            config: Chain configuration (config blob and global id)
            account: Receiver state, or None for an account that does not exist
            message: Message to execute
            utime: Simulated unix seconds
            trace: Ask the oracle for a diagnostic trace

        Returns:
            OracleSuccess or OracleFailure
        """
        try:
            account_boc = self.codec.make_full_account_boc(account.boc) if account else EMPTY_STATE
            raw = self.oracle.execute(
                config.config_boc,
                account_boc,
                message.boc,
                utime,
                config.global_id,
                trace,
            )
        except Exception as e:
            return OracleFailure(f"{type(e).__name__}: {e}")

        if not isinstance(raw, Mapping) or "account" not in raw:
            return OracleFailure(self._failure_reason(raw))

        try:
            return OracleSuccess(
                account=self.decode_account(raw["account"]),
                transaction=self.decode_transaction(raw["transaction"]),
                trace=coerce_trace(raw.get("trace")) if trace else (),
            )
        except Exception as e:
            return OracleFailure(f"malformed oracle result: {type(e).__name__}: {e}")

    @staticmethod
    def _failure_reason(raw: Any) -> str:
        if isinstance(raw, Mapping):
            for key in ("reason", "error", "message"):
                if raw.get(key):
                    return str(raw[key])
        return f"unexpected oracle result: {raw!r}"

    # ------------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------------

    def decode_account(self, boc: Optional[str], code_hash: Optional[str] = None) -> Optional[AccountState]:
        """
        Decode a full-account blob.

        Args:
            boc: Full-account blob (None or empty for no account)
            code_hash: Optional fingerprint overriding the decoded one

        Returns:
            AccountState, or None when the blob encodes a non-existent account
        """
        if not boc:
            return None
        raw = self.codec.parse_account(boc)
        if raw is None:
            return None
        return account_from_raw(raw, code_hash)

    def decode_account_stuff(self, boc: Optional[str], code_hash: Optional[str] = None) -> Optional[AccountState]:
        """Decode an account-stuff blob by wrapping it into a full-account blob first."""
        if not boc:
            return None
        return self.decode_account(self.codec.make_full_account_boc(boc), code_hash)

    def decode_message(self, boc: str) -> Message:
        """Decode an externally submitted message blob."""
        raw = dict(self.codec.parse_message(boc))
        raw.setdefault("boc", boc)
        return message_from_raw(raw)

    def decode_transaction(self, raw: Mapping[str, Any]) -> Transaction:
        return transaction_from_raw(raw)

    def capabilities(self, config: ChainConfig) -> int:
        return int(self.codec.capabilities(config.config_boc))


# ============================================================================
# RAW RECORD CONVERSION
# ============================================================================

def _to_int(value: Any, default: int = 0) -> int:
    """Logical times and balances arrive as ints or decimal strings."""
    if value is None or value == "":
        return default
    return int(value)


def account_from_raw(raw: Mapping[str, Any], code_hash: Optional[str] = None) -> AccountState:
    last_tx = raw.get("last_transaction_id")
    timings = raw.get("gen_timings") or {}
    return AccountState(
        boc=raw["boc"],
        balance=_to_int(raw.get("balance")),
        is_deployed=bool(raw.get("is_deployed", False)),
        code_hash=code_hash or raw.get("code_hash"),
        last_transaction_id=(
            LastTransactionId(lt=_to_int(last_tx.get("lt")), hash=str(last_tx.get("hash", "")))
            if last_tx else None
        ),
        gen_timings=GenTimings(
            gen_lt=_to_int(timings.get("gen_lt")),
            gen_utime=_to_int(timings.get("gen_utime")),
        ),
    )


def message_from_raw(raw: Mapping[str, Any]) -> Message:
    return Message(
        hash=raw["hash"],
        boc=raw["boc"],
        dst=raw.get("dst") or None,
        src=raw.get("src") or None,
        lt=_to_int(raw.get("lt")),
    )


def transaction_from_raw(raw: Mapping[str, Any]) -> Transaction:
    return Transaction(
        hash=raw["hash"],
        boc=raw["boc"],
        lt=_to_int(raw.get("lt")),
        now=_to_int(raw.get("now")),
        aborted=bool(raw.get("aborted", False)),
        in_message=message_from_raw(raw["in_message"]),
        out_messages=tuple(message_from_raw(m) for m in raw.get("out_messages", ())),
    )
