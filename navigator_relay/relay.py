"""
Relay — binds connection lifecycle to the credential vault.

    connect(credential)  -> registry.open() + store.store()
    resolve(session_id)  -> store.resolve()
    disconnect(session)  -> registry.close() + store.purge(), both always tried

Security Note:
    Credentials are passed straight into the vault and never logged.
"""
import logging
from typing import Any

from .exceptions import MissingCredential, StoreError
from .registry import ConnectionHandle, ConnectionRegistry
from .vault import CredentialStore

logger = logging.getLogger("navigator.relay")


class Relay:
    """Connection/credential orchestration shared by all connection tasks."""

    def __init__(self, registry: ConnectionRegistry, store: CredentialStore):
        self.registry = registry
        self.store = store

    async def connect(self, credential: str | None) -> tuple[str, ConnectionHandle]:
        """Register a new connection and persist its credential.

        The credential is stored as given; it is only validated by the
        third-party API on first use.

        Raises:
            MissingCredential: If no credential was supplied. No session id
                is minted in that case.
            StoreError: If the credential could not be persisted. The
                connection is unregistered before the error propagates.
        """
        if not credential or not credential.strip():
            raise MissingCredential("Missing Authorization Header")
        session_id, handle = await self.registry.open()
        try:
            await self.store.store(session_id, credential)
        except StoreError:
            await self.registry.close(session_id)
            logger.error(
                "Aborting connection setup for session=%s: credential store unavailable",
                session_id,
            )
            raise
        logger.info("Session connected: %s", session_id)
        return session_id, handle

    async def route(self, session_id: str, message: Any) -> None:
        """Forward an inbound message; raises SessionNotFound if unknown."""
        await self.registry.route(session_id, message)

    async def resolve(self, session_id: str | None) -> str | None:
        """Credential for the session, or None if there is none.

        Raises:
            StoreError: If the credential store is unreachable.
        """
        if not session_id:
            return None
        return await self.store.resolve(session_id)

    async def disconnect(self, session_id: str) -> None:
        """Tear down a session.

        The credential is purged even if unregistering fails or the
        calling task is cancelled part way through.
        """
        try:
            await self.registry.close(session_id)
        except Exception as err:
            logger.error("Failed to unregister session=%s: %s", session_id, err)
        finally:
            try:
                await self.store.purge(session_id)
            except StoreError as err:
                logger.error(
                    "Failed to purge credential for session=%s: %s", session_id, err,
                )
        logger.info("Session disconnected: %s", session_id)
