"""
conftest.py - Shared pytest fixtures for localnet tests

Provides common fixtures used across unit, conformance and functional tests:
- The fake oracle and a fixed clock
- Executors wired to the fake oracle
- A full LocalNetwork with a connected transport
"""

import pytest

from localnet import FixedClock, LocalNetwork

from tests.fake_oracle import FakeCodec, FakeOracle
from tests.helpers import START_MS, make_config, make_executor


@pytest.fixture
def oracle():
    return FakeOracle()


@pytest.fixture
def clock():
    return FixedClock(START_MS)


@pytest.fixture
def executor(oracle, clock):
    return make_executor(oracle, clock)


@pytest.fixture
def network(oracle):
    return LocalNetwork(make_config(), oracle, FakeCodec(), verbose=False)


@pytest.fixture
def transport(network, clock):
    return network.connection_factory.create(clock)
