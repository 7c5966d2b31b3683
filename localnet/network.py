"""
network.py - Local Network Entry Point

Wires a Transport and an Executor together and hands out a connection
factory. A client library creates its connection through the factory, which
is also how the executor receives its clock.
"""

from __future__ import annotations
from typing import Optional

from .clock import Clock
from .core import (
    AccountFetcher, AccountState, BocCodec, ChainConfig, ExecutionOracle, Trace,
)
from .executor import Executor
from .oracle import OracleAdapter
from .transport import Transport


class ProxyConnectionFactory:
    """
    Connection factory handed to a client library.

    create() passes the client's clock to the executor. The executor accepts
    exactly one clock, so a second create() raises ClockAlreadySet.
    """

    def __init__(self, transport: Transport, executor: Executor):
        self.transport = transport
        self._executor = executor

    def create(self, clock: Clock) -> Transport:
        self._executor.set_clock(clock)
        return self.transport


class LocalNetwork:
    """
    In-process test network.

    Example:
        network = LocalNetwork(config, oracle, codec, verbose=False)
        transport = network.connection_factory.create(FixedClock(1_700_000_000_000))
        transport.send_message(message_boc)
        network.get_tx_trace(tx_hash)
    """

    def __init__(
        self,
        config: ChainConfig,
        oracle: ExecutionOracle,
        codec: BocCodec,
        account_fetcher: Optional[AccountFetcher] = None,
        verbose: bool = True,
    ):
        self._transport = Transport(config)
        self._executor = Executor(
            config,
            OracleAdapter(oracle, codec),
            account_fetcher=account_fetcher,
            verbose=verbose,
        )
        self._transport.set_executor(self._executor)
        self._connection_factory = ProxyConnectionFactory(self._transport, self._executor)

    @property
    def connection_factory(self) -> ProxyConnectionFactory:
        return self._connection_factory

    @property
    def executor(self) -> Executor:
        return self._executor

    @property
    def transport(self) -> Transport:
        return self._transport

    def set_account(self, address: str, boc: str) -> Optional[AccountState]:
        return self._executor.set_account(address, boc)

    def get_tx_trace(self, tx_hash: str) -> Optional[Trace]:
        return self._executor.get_tx_trace(tx_hash)
