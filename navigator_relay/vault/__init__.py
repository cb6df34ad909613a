"""Credential Vault — Encrypted API keys bound to streaming sessions.

Security Note (Threat Model):
    The session secret and decrypted credentials live in process memory.
    Redis is treated as untrusted shared storage: it only ever sees
    AES-GCM sealed records, which expire by TTL and are purged on
    disconnect.
"""

from .credential_store import CredentialStore, create_redis
from .crypto import EncryptedRecord, encrypt_credential, decrypt_credential
from .config import VaultConfig, load_session_secret, generate_session_secret

__all__ = [
    "CredentialStore",
    "create_redis",
    "EncryptedRecord",
    "encrypt_credential",
    "decrypt_credential",
    "VaultConfig",
    "load_session_secret",
    "generate_session_secret",
]
