"""
CredentialStore — Encrypted, expiring credentials bound to a session id.

Provides the public API for the credential vault:
- ``store(session_id, credential, ttl_seconds)`` — encrypt and persist with TTL
- ``resolve(session_id)`` — read and decrypt, ``None`` if absent or unreadable
- ``purge(session_id)`` — delete ahead of TTL expiry

Security Note:
    Never log plaintext or ciphertext values. Only log session ids and
    operations. Records that fail authentication are discarded (fail closed).
"""
import logging
from typing import Any

from cryptography.exceptions import InvalidTag
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from ..exceptions import StoreError
from .config import VaultConfig
from .crypto import EncryptedRecord, encrypt_credential, decrypt_credential

logger = logging.getLogger("navigator.vault")


def create_redis(config: VaultConfig) -> Any:
    """Build an asyncio Redis client with bounded socket timeouts."""
    return aioredis.from_url(
        config.redis_url,
        socket_timeout=config.redis_timeout,
        socket_connect_timeout=config.redis_timeout,
    )


class CredentialStore:
    """Credential vault backed by Redis.

    Each session id maps to exactly one sealed record; writes overwrite and
    set the expiry atomically (``SET ... EX``). Reads never refresh the TTL.
    Single-key atomicity of the backend is the only synchronization needed.
    """

    def __init__(self, config: VaultConfig, redis: Any = None):
        self._key = config.session_secret
        self._ttl = config.credential_ttl
        self._prefix = config.key_prefix
        self._redis = redis if redis is not None else create_redis(config)

    @property
    def default_ttl(self) -> int:
        return self._ttl

    def _redis_key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def store(
        self,
        session_id: str,
        credential: str,
        ttl_seconds: int | None = None,
    ) -> None:
        """Encrypt and persist a credential, replacing any previous record.

        Args:
            session_id: Session the credential belongs to.
            credential: Plaintext credential.
            ttl_seconds: Record lifetime, defaults to the configured TTL.

        Raises:
            ValueError: If ttl_seconds is not positive.
            StoreError: If the record could not be written.
        """
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        if ttl < 1:
            raise ValueError(f"ttl_seconds must be positive, got {ttl}")
        record = encrypt_credential(credential, self._key)
        try:
            await self._redis.set(
                self._redis_key(session_id), record.dumps(), ex=ttl,
            )
        except (RedisError, OSError) as err:
            raise StoreError(
                f"Unable to store credential for session {session_id}: {err}"
            ) from err
        logger.debug("Vault store: session=%s ttl=%d", session_id, ttl)

    async def resolve(self, session_id: str) -> str | None:
        """Return the decrypted credential for a session.

        Returns:
            The credential, or None if the record is absent, expired,
            malformed or fails authentication.

        Raises:
            StoreError: If the backend could not be read.
        """
        try:
            payload = await self._redis.get(self._redis_key(session_id))
        except (RedisError, OSError) as err:
            raise StoreError(
                f"Unable to read credential for session {session_id}: {err}"
            ) from err
        if payload is None:
            return None
        try:
            record = EncryptedRecord.loads(payload)
            return decrypt_credential(record, self._key)
        except (InvalidTag, ValueError, TypeError) as err:
            # error type only; messages may echo record contents
            logger.warning(
                "Discarding unreadable credential record for session=%s (%s)",
                session_id, type(err).__name__,
            )
            return None

    async def purge(self, session_id: str) -> None:
        """Delete the credential for a session. Deleting nothing is fine.

        Raises:
            StoreError: If the backend could not be reached.
        """
        try:
            await self._redis.delete(self._redis_key(session_id))
        except (RedisError, OSError) as err:
            raise StoreError(
                f"Unable to purge credential for session {session_id}: {err}"
            ) from err
        logger.debug("Vault purge: session=%s", session_id)

    async def ping(self) -> bool:
        """Check backend reachability without raising."""
        try:
            return bool(await self._redis.ping())
        except (RedisError, OSError) as err:
            logger.warning("Credential store ping failed: %s", err)
            return False

    async def close(self) -> None:
        """Release the backend connection pool."""
        await self._redis.aclose()
