"""
Vault Configuration — Session secret loading and validated settings.

Reads the process-wide credential key from the environment:
    SESSION_SECRET = <hex-encoded 32-byte key>
    REDIS_URL      = <redis connection url>
    CREDENTIAL_TTL = <seconds, default 1800>
    REDIS_TIMEOUT  = <seconds, default 5.0>

Security Note:
    Never log key material. Only log key lengths and store addresses.
"""
import os
import secrets
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("navigator.vault")

KEY_LENGTH = 32  # AES-256
DEFAULT_REDIS_URL = "redis://localhost:6379"
DEFAULT_CREDENTIAL_TTL = 1800


def load_session_secret() -> bytes:
    """Load the credential encryption key from SESSION_SECRET.

    The value must be hex-encoded and decode to exactly 32 bytes.

    Returns:
        Raw 32-byte key.

    Raises:
        RuntimeError: If SESSION_SECRET is not set.
        ValueError: If the value is not hex or not 32 bytes long.
    """
    raw = os.environ.get("SESSION_SECRET")
    if not raw:
        raise RuntimeError(
            "Missing SESSION_SECRET environment variable. "
            "Set SESSION_SECRET=<hex-encoded-32-byte-key>"
        )
    try:
        key = bytes.fromhex(raw.strip())
    except ValueError as err:
        raise ValueError("SESSION_SECRET must be hex-encoded") from err
    if len(key) != KEY_LENGTH:
        raise ValueError(
            f"SESSION_SECRET must decode to exactly {KEY_LENGTH} bytes, "
            f"got {len(key)}"
        )
    logger.debug("Loaded session secret (%d bytes)", len(key))
    return key


def generate_session_secret() -> str:
    """Generate a random 32-byte key and return it hex-encoded.

    This is a utility for operators provisioning SESSION_SECRET.
    """
    return secrets.token_hex(KEY_LENGTH)


class VaultConfig(BaseModel):
    """Validated credential store configuration."""

    session_secret: bytes
    redis_url: str = Field(default=DEFAULT_REDIS_URL)
    credential_ttl: int = Field(default=DEFAULT_CREDENTIAL_TTL, ge=1)
    redis_timeout: float = Field(default=5.0, gt=0)
    key_prefix: str = Field(default="")

    @field_validator("session_secret")
    @classmethod
    def validate_secret(cls, v: bytes) -> bytes:
        """Only AES-256 keys are accepted."""
        if len(v) != KEY_LENGTH:
            raise ValueError(
                f"session_secret must be {KEY_LENGTH} bytes, got {len(v)}"
            )
        return v

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError(f"Unsupported redis url scheme: {v.split(':', 1)[0]}")
        return v

    def __repr__(self) -> str:
        return (
            f"VaultConfig(redis_url={self.redis_url!r}, "
            f"credential_ttl={self.credential_ttl}, secret=<redacted>)"
        )

    __str__ = __repr__

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Raises:
            RuntimeError: If SESSION_SECRET is missing.
            ValueError: If any value is malformed.
        """
        return cls(
            session_secret=load_session_secret(),
            redis_url=os.environ.get("REDIS_URL", DEFAULT_REDIS_URL),
            credential_ttl=int(
                os.environ.get("CREDENTIAL_TTL", DEFAULT_CREDENTIAL_TTL)
            ),
            redis_timeout=float(os.environ.get("REDIS_TIMEOUT", 5.0)),
        )
