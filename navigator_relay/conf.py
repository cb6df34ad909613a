"""
Relay Configuration — HTTP, API and logging settings.

Environment variables:
    HOST, PORT               listen address (default 0.0.0.0:3000)
    INDEXMENOW_API_URL       IndexMeNow API base url
    API_TIMEOUT              API call timeout in seconds
    SSE_HEARTBEAT            seconds between SSE keep-alive comments
    LOG_LEVEL                logging level name

Vault settings (SESSION_SECRET, REDIS_URL, ...) live in ``vault.config``.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

from .vault.config import VaultConfig

SERVER_NAME = "IndexMeNow MCP Server"
MCP_SERVER_NAME = "IndexMeNow MCP"
SSE_ENDPOINT = "/sse"
MESSAGES_ENDPOINT = "/messages"
HEALTH_ENDPOINT = "/health"
INDEXMENOW_API_URL = "https://tool.indexmenow.com/api/v1"
DEFAULT_PORT = 3000

# protocol revisions a client may negotiate besides the latest one
PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")


class RelayConfig(BaseModel):
    """Validated relay configuration."""

    vault: VaultConfig
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    api_base_url: str = Field(default=INDEXMENOW_API_URL)
    api_timeout: float = Field(default=30.0, gt=0)
    sse_heartbeat: float = Field(default=15.0, gt=0)
    log_level: str = Field(default="INFO")

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls) -> "RelayConfig":
        """Create RelayConfig from environment.

        Raises:
            RuntimeError: If SESSION_SECRET is missing.
            ValueError: If any value is malformed.
        """
        return cls(
            vault=VaultConfig.from_env(),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", DEFAULT_PORT)),
            api_base_url=os.environ.get("INDEXMENOW_API_URL", INDEXMENOW_API_URL),
            api_timeout=float(os.environ.get("API_TIMEOUT", 30.0)),
            sse_heartbeat=float(os.environ.get("SSE_HEARTBEAT", 15.0)),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
        )
