"""
Tests for vault and relay configuration loading.
"""
import pytest
from pydantic import ValidationError

from navigator_relay.conf import INDEXMENOW_API_URL, RelayConfig
from navigator_relay.vault.config import (
    DEFAULT_CREDENTIAL_TTL,
    VaultConfig,
    generate_session_secret,
    load_session_secret,
)

HEX_KEY = "ab" * 32


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "SESSION_SECRET", "REDIS_URL", "CREDENTIAL_TTL", "REDIS_TIMEOUT",
        "HOST", "PORT", "INDEXMENOW_API_URL", "API_TIMEOUT", "SSE_HEARTBEAT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSessionSecret:

    def test_missing_secret_is_fatal(self, clean_env):
        with pytest.raises(RuntimeError, match="SESSION_SECRET"):
            load_session_secret()

    def test_non_hex_secret(self, clean_env):
        clean_env.setenv("SESSION_SECRET", "not-a-hex-key")
        with pytest.raises(ValueError, match="hex"):
            load_session_secret()

    def test_wrong_length_secret(self, clean_env):
        clean_env.setenv("SESSION_SECRET", "ab" * 16)
        with pytest.raises(ValueError, match="32 bytes"):
            load_session_secret()

    def test_valid_secret(self, clean_env):
        clean_env.setenv("SESSION_SECRET", HEX_KEY)
        assert load_session_secret() == bytes.fromhex(HEX_KEY)

    def test_generated_secret_is_loadable(self, clean_env):
        value = generate_session_secret()
        assert len(value) == 64
        clean_env.setenv("SESSION_SECRET", value)
        assert load_session_secret() == bytes.fromhex(value)


class TestVaultConfig:

    def test_from_env_defaults(self, clean_env):
        clean_env.setenv("SESSION_SECRET", HEX_KEY)
        config = VaultConfig.from_env()
        assert config.redis_url == "redis://localhost:6379"
        assert config.credential_ttl == DEFAULT_CREDENTIAL_TTL == 1800
        assert config.key_prefix == ""

    def test_from_env_overrides(self, clean_env):
        clean_env.setenv("SESSION_SECRET", HEX_KEY)
        clean_env.setenv("REDIS_URL", "redis://cache:6380/2")
        clean_env.setenv("CREDENTIAL_TTL", "60")
        config = VaultConfig.from_env()
        assert config.redis_url == "redis://cache:6380/2"
        assert config.credential_ttl == 60

    def test_repr_redacts_secret(self):
        config = VaultConfig(session_secret=bytes.fromhex(HEX_KEY))
        assert HEX_KEY not in repr(config)
        assert "redacted" in str(config)

    def test_rejects_short_secret(self):
        with pytest.raises(ValidationError):
            VaultConfig(session_secret=b"short")

    def test_rejects_zero_ttl(self):
        with pytest.raises(ValidationError):
            VaultConfig(session_secret=bytes(32), credential_ttl=0)

    def test_rejects_unknown_scheme(self):
        with pytest.raises(ValidationError):
            VaultConfig(session_secret=bytes(32), redis_url="http://cache")


class TestRelayConfig:

    def test_from_env(self, clean_env):
        clean_env.setenv("SESSION_SECRET", HEX_KEY)
        clean_env.setenv("PORT", "8080")
        clean_env.setenv("LOG_LEVEL", "debug")
        config = RelayConfig.from_env()
        assert config.port == 8080
        assert config.log_level == "DEBUG"
        assert config.api_base_url == INDEXMENOW_API_URL
        assert config.vault.session_secret == bytes.fromhex(HEX_KEY)

    def test_missing_secret_propagates(self, clean_env):
        with pytest.raises(RuntimeError):
            RelayConfig.from_env()

    def test_strips_trailing_slash(self, vault_config):
        config = RelayConfig(vault=vault_config, api_base_url="http://api/v1/")
        assert config.api_base_url == "http://api/v1"

    def test_rejects_unknown_log_level(self, vault_config):
        with pytest.raises(ValidationError):
            RelayConfig(vault=vault_config, log_level="chatty")
