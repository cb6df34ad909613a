"""
Tests for the Redis-backed credential store.

Uses fakeredis so TTL expiry behaves like a real server.
"""
import os
import asyncio
from unittest.mock import AsyncMock

import orjson
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from navigator_relay.exceptions import StoreError
from navigator_relay.vault import CredentialStore, VaultConfig


def _flip_bit(hex_value: str, bit: int) -> str:
    raw = bytearray(bytes.fromhex(hex_value))
    raw[bit // 8] ^= 1 << (bit % 8)
    return raw.hex()


@pytest.fixture
def failing_redis():
    redis = AsyncMock()
    error = RedisConnectionError("Connection refused")
    redis.set.side_effect = error
    redis.get.side_effect = error
    redis.delete.side_effect = error
    redis.ping.side_effect = error
    return redis


class TestStoreAndResolve:

    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        await store.store("s1", "sk_live_abc123")
        assert await store.resolve("s1") == "sk_live_abc123"

    @pytest.mark.asyncio
    async def test_persisted_record_is_encrypted(self, store, redis):
        await store.store("s1", "sk_live_abc123")
        payload = await redis.get("s1")
        assert b"sk_live_abc123" not in payload
        assert set(orjson.loads(payload)) == {"iv", "data", "tag"}

    @pytest.mark.asyncio
    async def test_default_ttl_is_set_on_write(self, store, redis):
        await store.store("s1", "sk_live_abc123")
        ttl = await redis.ttl("s1")
        assert 0 < ttl <= 1800

    @pytest.mark.asyncio
    async def test_custom_ttl(self, store, redis):
        await store.store("s1", "sk_live_abc123", ttl_seconds=60)
        assert 0 < await redis.ttl("s1") <= 60

    @pytest.mark.asyncio
    async def test_rejects_non_positive_ttl(self, store):
        with pytest.raises(ValueError):
            await store.store("s1", "sk_live_abc123", ttl_seconds=0)

    @pytest.mark.asyncio
    async def test_last_write_wins(self, store, redis):
        await store.store("s1", "first")
        await store.store("s1", "second")
        assert await store.resolve("s1") == "second"
        assert await redis.dbsize() == 1

    @pytest.mark.asyncio
    async def test_resolve_absent(self, store):
        assert await store.resolve("never-stored") is None

    @pytest.mark.asyncio
    async def test_resolve_does_not_refresh_ttl(self, store, redis):
        await store.store("s1", "sk_live_abc123", ttl_seconds=100)
        await redis.expire("s1", 50)
        await store.resolve("s1")
        assert await redis.ttl("s1") <= 50

    @pytest.mark.asyncio
    async def test_ttl_expiry(self, store):
        await store.store("s1", "sk_live_abc123", ttl_seconds=1)
        await asyncio.sleep(1.2)
        assert await store.resolve("s1") is None

    @pytest.mark.asyncio
    async def test_key_prefix(self, secret, redis):
        config = VaultConfig(session_secret=secret, key_prefix="mcp:")
        store = CredentialStore(config, redis=redis)
        await store.store("s1", "sk_live_abc123")
        assert await redis.exists("mcp:s1") == 1
        assert await redis.exists("s1") == 0
        assert await store.resolve("s1") == "sk_live_abc123"


class TestFailClosed:
    """Corrupted, forged or foreign records never yield plaintext."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["data", "tag"])
    async def test_bit_flips_are_rejected(self, store, redis, field):
        await store.store("s1", "sk_live_abc123")
        original = orjson.loads(await redis.get("s1"))
        bits = len(bytes.fromhex(original[field])) * 8
        for bit in range(0, bits, 7):
            tampered = dict(original)
            tampered[field] = _flip_bit(original[field], bit)
            await redis.set("s1", orjson.dumps(tampered))
            assert await store.resolve("s1") is None

    @pytest.mark.asyncio
    async def test_flipped_iv_is_rejected(self, store, redis):
        await store.store("s1", "sk_live_abc123")
        record = orjson.loads(await redis.get("s1"))
        record["iv"] = _flip_bit(record["iv"], 3)
        await redis.set("s1", orjson.dumps(record))
        assert await store.resolve("s1") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [b"garbage", b"{}", b'{"iv": 1, "data": 2, "tag": 3}', b"null"],
    )
    async def test_malformed_records(self, store, redis, payload):
        await redis.set("s1", payload)
        assert await store.resolve("s1") is None

    @pytest.mark.asyncio
    async def test_record_from_another_key(self, store, redis):
        other = CredentialStore(VaultConfig(session_secret=os.urandom(32)), redis=redis)
        await other.store("s1", "sk_live_abc123")
        assert await store.resolve("s1") is None

    @pytest.mark.asyncio
    async def test_failure_is_logged_without_contents(self, store, redis, caplog):
        await redis.set("s1", b'{"iv": "zz", "data": "sk_live_abc123", "tag": ""}')
        with caplog.at_level("WARNING", logger="navigator.vault"):
            assert await store.resolve("s1") is None
        assert "s1" in caplog.text
        assert "sk_live_abc123" not in caplog.text


class TestPurge:

    @pytest.mark.asyncio
    async def test_purge_removes_credential(self, store):
        await store.store("s1", "sk_live_abc123")
        await store.purge("s1")
        assert await store.resolve("s1") is None

    @pytest.mark.asyncio
    async def test_purge_is_idempotent(self, store):
        await store.store("s1", "sk_live_abc123")
        await store.purge("s1")
        await store.purge("s1")
        await store.purge("never-stored")

    @pytest.mark.asyncio
    async def test_isolation(self, store):
        await store.store("a", "key-a")
        await store.store("b", "key-b")
        await store.purge("a")
        assert await store.resolve("a") is None
        assert await store.resolve("b") == "key-b"


class TestBackendFailures:
    """Backend errors surface as StoreError."""

    @pytest.mark.asyncio
    async def test_store_failure(self, vault_config, failing_redis):
        store = CredentialStore(vault_config, redis=failing_redis)
        with pytest.raises(StoreError) as exc_info:
            await store.store("s1", "sk_live_abc123")
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)
        assert "sk_live_abc123" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_resolve_failure(self, vault_config, failing_redis):
        store = CredentialStore(vault_config, redis=failing_redis)
        with pytest.raises(StoreError):
            await store.resolve("s1")

    @pytest.mark.asyncio
    async def test_purge_failure(self, vault_config, failing_redis):
        store = CredentialStore(vault_config, redis=failing_redis)
        with pytest.raises(StoreError):
            await store.purge("s1")

    @pytest.mark.asyncio
    async def test_os_error_is_wrapped(self, vault_config):
        redis = AsyncMock()
        redis.get.side_effect = OSError("network unreachable")
        store = CredentialStore(vault_config, redis=redis)
        with pytest.raises(StoreError):
            await store.resolve("s1")

    @pytest.mark.asyncio
    async def test_ping(self, store, vault_config, failing_redis):
        assert await store.ping() is True
        assert await CredentialStore(vault_config, redis=failing_redis).ping() is False
