"""
Pytest configuration for the arisan client tests.

Provides fixtures for:
- a ChainReader bound to a fake AsyncWeb3
- the event decoder and a recording transaction sender
- an in-memory SQLite cache
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from arisan_client.cache import CacheStore
from arisan_client.decoder import EventDecoder
from arisan_client.reader import ChainReader
from tests.fakes import FACTORY, TOKEN, FakeSender, FakeWeb3

# ----------------------------------------------------------------------
# fixtures
# ----------------------------------------------------------------------
@pytest.fixture
def test_config() -> Dict[str, Any]:
    return {
        "factory_address": FACTORY,
        "token_address": TOKEN,
        "currency": "USDT",
        "list_timeout": 0.2,
        "read_retries": 1,
        "retry_delay": 0,
        "start_block": 0,
        "batch_size": 0,
        "intervals": {"balance": 0.01, "pending_prize": 0.01, "history": 0.01, "cache_sync": 0.01},
    }


@pytest.fixture
def fake_w3() -> FakeWeb3:
    w3 = FakeWeb3()
    w3.eth.add_contract(TOKEN, decimals=18)
    return w3


@pytest.fixture
def reader(test_config: Dict[str, Any], fake_w3: FakeWeb3) -> ChainReader:
    return ChainReader(test_config, w3=fake_w3)


@pytest.fixture
def decoder() -> EventDecoder:
    return EventDecoder()


@pytest.fixture
def sender() -> FakeSender:
    return FakeSender()


@pytest.fixture
def cache():
    store = CacheStore(":memory:")
    yield store
    store.close()
