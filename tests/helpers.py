"""
helpers.py - Shared builders for localnet tests

Configuration, message and executor builders used by fixtures and tests.
"""

from localnet import (
    ChainConfig, Executor, Message, OracleAdapter,
    GIVER_ADDRESS,
)

from tests.fake_oracle import (
    CONFIG_BOC, FakeCodec, FakeOracle, account_boc, message_boc, raw_message,
)


GIVER_CODE = "giver-code"
GIVER_BALANCE = 10 ** 18
START_MS = 1_700_000_000_000

ALICE = "0:" + "a" * 64
BOB = "0:" + "b" * 64
CAROL = "0:" + "c" * 64


def make_config(**overrides) -> ChainConfig:
    params = dict(
        config_boc=CONFIG_BOC,
        seed_account_boc=account_boc(GIVER_ADDRESS, GIVER_BALANCE, GIVER_CODE),
    )
    params.update(overrides)
    return ChainConfig(**params)


def make_message(dst, body=None, src=None, lt=0, value=0, nonce="") -> Message:
    """Decoded message built from a fake message blob."""
    raw = raw_message(message_boc(dst, body, src=src, lt=lt, value=value, nonce=nonce))
    return Message(hash=raw["hash"], boc=raw["boc"], dst=raw["dst"], src=raw["src"], lt=raw["lt"])


def make_executor(oracle=None, clock=None, verbose=False, **kwargs) -> Executor:
    return Executor(
        make_config(),
        OracleAdapter(oracle or FakeOracle(), FakeCodec()),
        clock=clock,
        verbose=verbose,
        **kwargs,
    )


def executor_fingerprint(executor: Executor) -> dict:
    """Observable state of an executor, for equality checks."""
    state = executor.state
    return {
        "accounts": executor.get_accounts(),
        "transactions": {
            address: [tx.hash for tx in state.transactions.iter_history(address, 2 ** 64)]
            for address in executor.get_accounts()
        },
        "tx_count": len(state.transactions),
        "pending": executor.pending_message_count(),
    }
