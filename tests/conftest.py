"""Shared fixtures: in-process Redis, vault config and a recording API client."""
import os
from typing import Any

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis, FakeServer

from navigator_relay.conf import RelayConfig
from navigator_relay.exceptions import ApiError
from navigator_relay.registry import ConnectionRegistry
from navigator_relay.relay import Relay
from navigator_relay.vault import CredentialStore, VaultConfig


class RecordingClient:
    """Stand-in for IndexMeNowClient that records every request."""

    def __init__(self, response: Any = None, error: ApiError | None = None):
        self.response = {"credits": 42} if response is None else response
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def request(self, endpoint, params=None, method="GET", api_key=None):
        self.calls.append(
            {
                "endpoint": endpoint,
                "params": params,
                "method": method,
                "api_key": api_key,
            }
        )
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def secret() -> bytes:
    return os.urandom(32)


@pytest.fixture
def vault_config(secret) -> VaultConfig:
    return VaultConfig(session_secret=secret)


@pytest.fixture
def relay_config(vault_config) -> RelayConfig:
    return RelayConfig(vault=vault_config, sse_heartbeat=0.05)


@pytest_asyncio.fixture
async def redis():
    client = FakeAsyncRedis(server=FakeServer())
    yield client
    await client.aclose()


@pytest.fixture
def store(vault_config, redis) -> CredentialStore:
    return CredentialStore(vault_config, redis=redis)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def relay(registry, store) -> Relay:
    return Relay(registry, store)


@pytest.fixture
def api_client() -> RecordingClient:
    return RecordingClient()
