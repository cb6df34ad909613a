"""
MCP dispatcher — JSON-RPC handling for messages arriving on a session.

Supported methods: ``initialize``, ``ping``, ``tools/list``, ``tools/call``.
Notifications are accepted silently. Replies are plain dicts ready to be
written to the session's SSE stream.
"""
import logging
from typing import Any

from pydantic import BaseModel, ValidationError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    LATEST_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    ErrorData,
    Implementation,
    InitializeResult,
    JSONRPCMessage,
    JSONRPCNotification,
    JSONRPCRequest,
    ListToolsResult,
    ServerCapabilities,
    ToolsCapability,
)

from .conf import MCP_SERVER_NAME, PROTOCOL_VERSIONS
from .exceptions import ToolNotFound
from .tools import ToolCatalog
from .version import __version__

logger = logging.getLogger("navigator.relay")

JSONRPC_VERSION = "2.0"
SUPPORTED_PROTOCOL_VERSIONS = frozenset((*PROTOCOL_VERSIONS, LATEST_PROTOCOL_VERSION))


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(by_alias=True, mode="json", exclude_none=True)


def _result(request_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": _dump(ErrorData(code=code, message=message)),
    }


class McpDispatcher:
    """Routes JSON-RPC requests to protocol handlers and the tool catalog."""

    def __init__(self, catalog: ToolCatalog, server_name: str = MCP_SERVER_NAME):
        self._catalog = catalog
        self._server_name = server_name

    async def handle(self, message: Any, session_id: str) -> dict[str, Any] | None:
        """Process one inbound message.

        Returns:
            The JSON-RPC reply, or None for notifications and responses.
        """
        try:
            parsed = JSONRPCMessage.model_validate(message).root
        except ValidationError:
            request_id = message.get("id") if isinstance(message, dict) else None
            return _error(request_id, INVALID_REQUEST, "Invalid request")

        if isinstance(parsed, JSONRPCNotification):
            logger.debug("Notification %s on session=%s", parsed.method, session_id)
            return None
        if not isinstance(parsed, JSONRPCRequest):
            # responses to server-initiated requests; none are ever sent
            return None

        try:
            return await self._dispatch(parsed, session_id)
        except Exception:
            logger.exception(
                "Unhandled error processing %s on session=%s", parsed.method, session_id,
            )
            return _error(parsed.id, INTERNAL_ERROR, "Internal error")

    async def _dispatch(self, request: JSONRPCRequest, session_id: str) -> dict[str, Any]:
        params = request.params or {}
        method = request.method

        if method == "initialize":
            return _result(request.id, self._initialize(params))
        if method == "ping":
            return _result(request.id, {})
        if method == "tools/list":
            return _result(
                request.id, _dump(ListToolsResult(tools=self._catalog.list_tools())),
            )
        if method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str):
                return _error(request.id, INVALID_PARAMS, "Missing tool name")
            try:
                result = await self._catalog.call(
                    name, params.get("arguments"), session_id,
                )
            except ToolNotFound as err:
                return _error(request.id, INVALID_PARAMS, str(err))
            except ValidationError as err:
                return _error(
                    request.id,
                    INVALID_PARAMS,
                    f"Invalid arguments for tool {name}: {err}",
                )
            return _result(request.id, _dump(result))
        return _error(request.id, METHOD_NOT_FOUND, f"Method not found: {method}")

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = (
            requested if requested in SUPPORTED_PROTOCOL_VERSIONS
            else LATEST_PROTOCOL_VERSION
        )
        result = InitializeResult(
            protocolVersion=version,
            capabilities=ServerCapabilities(tools=ToolsCapability(listChanged=False)),
            serverInfo=Implementation(name=self._server_name, version=__version__),
        )
        return _dump(result)
