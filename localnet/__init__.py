"""
localnet - Local Blockchain Simulator

An in-process, deterministic test network. Messages are sequenced by logical
time, executed by an external VM oracle, and the results are indexed so a
generic blockchain client can query them as if talking to a real node.

Usage:
    from localnet import LocalNetwork, ChainConfig, FixedClock

    network = LocalNetwork(
        ChainConfig(config_boc=CONFIG_BOC, seed_account_boc=GIVER_BOC),
        oracle, codec,
    )
    transport = network.connection_factory.create(FixedClock(1_700_000_000_000))

    snapshot = network.executor.save_snapshot()
    transport.send_message(deploy_message_boc)
    network.executor.load_snapshot(snapshot)
"""

# Core types
from .core import (
    AccountState,
    LastTransactionId,
    GenTimings,
    Message,
    Transaction,
    TraceStep,
    Trace,
    ChainConfig,
    FetchedAccount,
    AccountFetcher,
    AccountPredicate,
    ExecutionOracle,
    BocCodec,
    LocalnetError,
    SnapshotNotFound,
    ClockAlreadySet,
    ClockNotSet,
    AccountFetchFailure,
    ZERO_ADDRESS,
    GIVER_ADDRESS,
    TEST_CODE_HASH,
    EMPTY_STATE,
    DEFAULT_GLOBAL_ID,
    MAX_TRANSACTIONS_PER_FETCH,
    ACCOUNT_STUFF,
    FULL_ACCOUNT,
)

# Engine components
from .message_queue import MessageQueue
from .accounts import AccountStore
from .transactions import TransactionIndex
from .snapshots import ExecutorState, SnapshotManager
from .trace import parse_trace, coerce_trace
from .oracle import OracleAdapter, OracleSuccess, OracleFailure, OracleOutcome
from .clock import Clock, ClockWithOffset, FixedClock
from .executor import Executor

# Connector layer
from .transport import Transport, TransportInfo, NetworkCapabilities
from .network import LocalNetwork, ProxyConnectionFactory


__all__ = [
    # Core
    'AccountState', 'LastTransactionId', 'GenTimings',
    'Message', 'Transaction', 'TraceStep', 'Trace',
    'ChainConfig', 'FetchedAccount', 'AccountFetcher', 'AccountPredicate',
    'ExecutionOracle', 'BocCodec',
    'LocalnetError', 'SnapshotNotFound', 'ClockAlreadySet', 'ClockNotSet',
    'AccountFetchFailure',
    'ZERO_ADDRESS', 'GIVER_ADDRESS', 'TEST_CODE_HASH', 'EMPTY_STATE',
    'DEFAULT_GLOBAL_ID', 'MAX_TRANSACTIONS_PER_FETCH',
    'ACCOUNT_STUFF', 'FULL_ACCOUNT',
    # Engine
    'MessageQueue', 'AccountStore', 'TransactionIndex',
    'ExecutorState', 'SnapshotManager',
    'parse_trace', 'coerce_trace',
    'OracleAdapter', 'OracleSuccess', 'OracleFailure', 'OracleOutcome',
    'Clock', 'ClockWithOffset', 'FixedClock',
    'Executor',
    # Connector
    'Transport', 'TransportInfo', 'NetworkCapabilities',
    'LocalNetwork', 'ProxyConnectionFactory',
]
