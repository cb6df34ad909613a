"""
Vault Crypto Core — Credential encryption/decryption and record serialization.

Credentials are sealed with AES-256-GCM under the process-wide session secret:
    credential → AESGCM(secret, iv) → (iv, data, tag)

The record is persisted as a self-describing JSON object:
    {"iv": "<hex>", "data": "<hex>", "tag": "<hex>"}

Security Note:
    Never log plaintext or ciphertext values.
    IVs are random 128-bit, generated fresh on every encryption.
"""
import os
import logging
from typing import Any

import orjson
from pydantic import BaseModel, field_serializer, field_validator
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger("navigator.vault")

IV_SIZE = 16  # 128-bit IV, compatible with records written by Node's aes-256-gcm
TAG_SIZE = 16  # GCM authentication tag


class EncryptedRecord(BaseModel):
    """Sealed credential: initialization vector, ciphertext and GCM tag."""

    iv: bytes
    data: bytes
    tag: bytes

    model_config = {"frozen": True}

    @field_validator("iv", "data", "tag", mode="before")
    @classmethod
    def decode_hex(cls, v: Any) -> bytes:
        """Accept hex strings as they appear in the persisted payload."""
        if isinstance(v, str):
            return bytes.fromhex(v)
        return v

    @field_validator("iv")
    @classmethod
    def validate_iv(cls, v: bytes) -> bytes:
        if len(v) != IV_SIZE:
            raise ValueError(f"iv must be {IV_SIZE} bytes, got {len(v)}")
        return v

    @field_validator("tag")
    @classmethod
    def validate_tag(cls, v: bytes) -> bytes:
        if len(v) != TAG_SIZE:
            raise ValueError(f"tag must be {TAG_SIZE} bytes, got {len(v)}")
        return v

    @field_serializer("iv", "data", "tag")
    def encode_hex(self, v: bytes) -> str:
        return v.hex()

    def dumps(self) -> bytes:
        """Serialize to the persisted JSON payload."""
        return orjson.dumps(self.model_dump())

    @classmethod
    def loads(cls, payload: bytes | str) -> "EncryptedRecord":
        """Parse a persisted JSON payload.

        Raises:
            ValueError: If the payload is not JSON or a field is malformed.
        """
        parsed = orjson.loads(payload)
        if not isinstance(parsed, dict):
            raise ValueError("credential record must be a JSON object")
        return cls.model_validate(parsed)


def encrypt_credential(credential: str, key: bytes) -> EncryptedRecord:
    """Encrypt a credential under the session secret.

    Args:
        credential: Plaintext credential (UTF-8 text).
        key: Raw 32-byte AES key.

    Returns:
        EncryptedRecord with a freshly generated IV.
    """
    iv = os.urandom(IV_SIZE)
    sealed = AESGCM(key).encrypt(iv, credential.encode("utf-8"), None)
    return EncryptedRecord(iv=iv, data=sealed[:-TAG_SIZE], tag=sealed[-TAG_SIZE:])


def decrypt_credential(record: EncryptedRecord, key: bytes) -> str:
    """Decrypt and authenticate a sealed credential.

    Args:
        record: Sealed credential.
        key: Raw 32-byte AES key.

    Returns:
        Plaintext credential.

    Raises:
        cryptography.exceptions.InvalidTag: If the record was tampered with
            or sealed under another key.
        UnicodeDecodeError: If the plaintext is not valid UTF-8.
    """
    plaintext = AESGCM(key).decrypt(record.iv, record.data + record.tag, None)
    return plaintext.decode("utf-8")
