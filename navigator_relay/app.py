"""
aiohttp application — SSE transport for the relay.

    GET  /sse                      open a session (Authorization: Bearer <key>)
    POST /messages?sessionId=<id>  deliver a JSON-RPC message to a session
    GET  /health                   liveness

Each ``/sse`` request is the task serving one connection: it registers the
session, streams JSON-RPC replies as ``message`` events and tears the
session down when the client goes away.
"""
import asyncio
import logging

import orjson
from aiohttp import web

from .client import IndexMeNowClient
from .conf import (
    HEALTH_ENDPOINT,
    MESSAGES_ENDPOINT,
    SERVER_NAME,
    SSE_ENDPOINT,
    RelayConfig,
)
from .exceptions import MissingCredential, SessionNotFound, StoreError
from .protocol import McpDispatcher
from .registry import ConnectionHandle, ConnectionRegistry
from .relay import Relay
from .tools import ToolCatalog
from .vault import CredentialStore
from .version import __version__

logger = logging.getLogger("navigator.relay")

CONFIG_KEY = web.AppKey("config", RelayConfig)
RELAY_KEY = web.AppKey("relay", Relay)
DISPATCHER_KEY = web.AppKey("dispatcher", McpDispatcher)
CLIENT_KEY = web.AppKey("client", IndexMeNowClient)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def bearer_token(request: web.Request) -> str | None:
    """Extract the bearer token from the Authorization header."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


def _dumps(obj) -> str:
    return orjson.dumps(obj).decode("utf-8")


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

@web.middleware
async def cors_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        return web.Response(status=200)
    return await handler(request)


async def _add_cors_headers(request: web.Request, response: web.StreamResponse) -> None:
    response.headers.update(CORS_HEADERS)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def _send_event(response: web.StreamResponse, event: str, data: str) -> None:
    await response.write(f"event: {event}\ndata: {data}\n\n".encode("utf-8"))


async def _serve_session(
    app: web.Application,
    response: web.StreamResponse,
    session_id: str,
    handle: ConnectionHandle,
) -> None:
    """Dispatch inbound messages until the handle closes or the client leaves."""
    dispatcher = app[DISPATCHER_KEY]
    heartbeat = app[CONFIG_KEY].sse_heartbeat
    while True:
        try:
            message = await asyncio.wait_for(handle.receive(), timeout=heartbeat)
        except asyncio.TimeoutError:
            # a write to a dead client raises, ending the session
            await response.write(b": ping\n\n")
            continue
        if message is None:
            return
        reply = await dispatcher.handle(message, session_id)
        if reply is not None:
            await _send_event(response, "message", _dumps(reply))


async def sse_handler(request: web.Request) -> web.StreamResponse:
    relay = request.app[RELAY_KEY]
    try:
        session_id, handle = await relay.connect(bearer_token(request))
    except MissingCredential:
        return web.Response(status=400, text="Missing Authorization Header")
    except StoreError as err:
        logger.error("Error setting up SSE connection: %s", err)
        return web.Response(status=500, text="Internal Server Error")

    response = web.StreamResponse(status=200, headers=SSE_HEADERS)
    try:
        await response.prepare(request)
        await _send_event(
            response, "endpoint", f"{MESSAGES_ENDPOINT}?sessionId={session_id}",
        )
        await _serve_session(request.app, response, session_id, handle)
    except ConnectionResetError:
        logger.debug("Client disconnected: session=%s", session_id)
    finally:
        await relay.disconnect(session_id)
    return response


async def messages_handler(request: web.Request) -> web.Response:
    session_id = request.query.get("sessionId")
    if not session_id:
        return web.Response(status=400, text="Invalid sessionId")
    relay = request.app[RELAY_KEY]
    if session_id not in relay.registry:
        return web.Response(status=400, text="No transport found for sessionId")

    try:
        message = orjson.loads(await request.read())
    except orjson.JSONDecodeError:
        return web.Response(status=400, text="Invalid JSON body")

    try:
        await relay.route(session_id, message)
    except SessionNotFound:
        return web.Response(status=400, text="No transport found for sessionId")
    except Exception:
        logger.exception("handlePostMessage error for session=%s", session_id)
        return web.Response(status=500, text="Internal server error")
    return web.Response(status=202, text="Accepted")


async def health_handler(request: web.Request) -> web.Response:
    relay = request.app[RELAY_KEY]
    store_ok = await relay.store.ping()
    return web.json_response(
        {
            "status": "ok",
            "server": SERVER_NAME,
            "version": __version__,
            "store": "ok" if store_ok else "unavailable",
            "connections": len(relay.registry),
        },
        dumps=_dumps,
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

async def _on_shutdown(app: web.Application) -> None:
    # wakes every /sse task so it can purge its credential
    await app[RELAY_KEY].registry.close_all()


async def _on_cleanup(app: web.Application) -> None:
    await app[CLIENT_KEY].close()
    await app[RELAY_KEY].store.close()


def create_app(
    config: RelayConfig,
    store: CredentialStore | None = None,
    client: IndexMeNowClient | None = None,
    registry: ConnectionRegistry | None = None,
) -> web.Application:
    """Build the relay application.

    Collaborators are created from ``config`` unless injected.
    """
    relay = Relay(
        registry if registry is not None else ConnectionRegistry(),
        store if store is not None else CredentialStore(config.vault),
    )
    if client is None:
        client = IndexMeNowClient(config.api_base_url, config.api_timeout)
    dispatcher = McpDispatcher(ToolCatalog(relay.resolve, client))

    app = web.Application(middlewares=[cors_middleware])
    app[CONFIG_KEY] = config
    app[RELAY_KEY] = relay
    app[DISPATCHER_KEY] = dispatcher
    app[CLIENT_KEY] = client
    app.on_response_prepare.append(_add_cors_headers)
    app.on_shutdown.append(_on_shutdown)
    app.on_cleanup.append(_on_cleanup)
    app.router.add_get(SSE_ENDPOINT, sse_handler)
    app.router.add_post(MESSAGES_ENDPOINT, messages_handler)
    app.router.add_get(HEALTH_ENDPOINT, health_handler)
    return app
