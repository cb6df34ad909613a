"""Navigator Relay.

MCP relay over SSE with session-scoped encrypted credentials.
"""
from .version import __version__
from .exceptions import (
    RelayError,
    MissingCredential,
    SessionNotFound,
    ConnectionClosed,
    StoreError,
    ToolNotFound,
    ApiError,
)
from .registry import ConnectionHandle, ConnectionRegistry
from .relay import Relay

__all__ = [
    "__version__",
    "RelayError",
    "MissingCredential",
    "SessionNotFound",
    "ConnectionClosed",
    "StoreError",
    "ToolNotFound",
    "ApiError",
    "ConnectionHandle",
    "ConnectionRegistry",
    "Relay",
]
