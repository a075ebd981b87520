"""Session registry for the Streamable HTTP transport.

Each MCP session is bound to one ``StreamableHTTPServerTransport`` and one
MCP server task for its whole lifetime. Session lifecycle:

* **absent -> active**: a POST without ``mcp-session-id`` whose body is an
  ``initialize`` request. A fresh id is allocated and the transport is
  created, registered and connected under the registry lock.
* **active**: requests carrying a known id are routed to its transport.
  When the client drops a POST that carries ``tools/call`` requests before
  the response is complete, those requests are cancelled in the session.
* **active -> closed**: DELETE on the session, the server task ending, or
  registry shutdown. The id is forgotten; requests bearing it are rejected
  like any other unknown id.

Any other request is rejected with a JSON-RPC ``-32000`` error before it
reaches the MCP server.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from mcp.server import Server
from mcp.server.streamable_http import (
    MCP_PROTOCOL_VERSION_HEADER,
    MCP_SESSION_ID_HEADER,
    StreamableHTTPServerTransport,
)
from starlette.types import Message, Receive, Scope, Send

from ask_on_slack.core.domain.errors import ProtocolError

logger = structlog.get_logger(__name__)

TransportFactory = Callable[[str], StreamableHTTPServerTransport]


def _json_messages(body: bytes) -> list[Any]:
    try:
        payload = json.loads(body or b"null")
    except ValueError:
        return []
    return payload if isinstance(payload, list) else [payload]


def is_initialize_request(body: bytes) -> bool:
    """Return True if ``body`` is (or, for a batch, contains) ``initialize``."""
    return any(
        isinstance(message, dict) and message.get("method") == "initialize"
        for message in _json_messages(body)
    )


def tool_call_ids(body: bytes) -> list[str | int]:
    """Request ids of the ``tools/call`` requests in ``body``."""
    return [
        message["id"]
        for message in _json_messages(body)
        if isinstance(message, dict)
        and message.get("method") == "tools/call"
        and message.get("id") is not None
    ]


def json_rpc_error(code: int, message: str, *, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "jsonrpc": "2.0",
            "error": {"code": code, "message": message},
            "id": None,
        },
    )


async def _disconnected() -> Message:
    return {"type": "http.disconnect"}


def _replay_body(body: bytes, receive: Receive) -> Receive:
    """Hand an already-read request body to the next ASGI consumer."""
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


async def _discard(message: Message) -> None:
    return None


class _ResponseTracker:
    def __init__(self, send: Send) -> None:
        self._send = send
        self.started = False
        self.completed = False

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.started = True
        elif message["type"] == "http.response.body" and not message.get("more_body"):
            self.completed = True
        await self._send(message)


@dataclass
class McpSession:
    """One live MCP session."""

    session_id: str
    transport: StreamableHTTPServerTransport
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    task: asyncio.Task[None] | None = None


class SessionRegistry:
    """ASGI endpoint that binds requests to per-session MCP transports.

    Args:
        server_factory: Builds the MCP server run for each new session.
        json_response: Answer POSTs with plain JSON instead of SSE.
        transport_factory: Builds the transport for a session id.
    """

    def __init__(
        self,
        server_factory: Callable[[], Server],
        *,
        json_response: bool = False,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._server_factory = server_factory
        self._transport_factory = transport_factory or (
            lambda session_id: StreamableHTTPServerTransport(
                mcp_session_id=session_id,
                is_json_response_enabled=json_response,
            )
        )
        self._sessions: dict[str, McpSession] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> McpSession | None:
        return self._sessions.get(session_id)

    # ------------------------------------------------------------------
    # ASGI entry point
    # ------------------------------------------------------------------

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        tracker = _ResponseTracker(send)
        try:
            if session_id is not None:
                session = self._sessions.get(session_id)
                if session is None:
                    raise ProtocolError(details={"session_id": session_id})
                if request.method == "POST":
                    body = await request.body()
                    await self._handle_post(session, scope, body, receive, tracker)
                    return
                await session.transport.handle_request(scope, receive, tracker)
                if request.method == "DELETE":
                    await self._shutdown(session, reason="terminated")
                return

            body = await request.body() if request.method == "POST" else b""
            if not is_initialize_request(body):
                raise ProtocolError(details={"method": request.method})
            session = await self.open_session()
            await session.transport.handle_request(
                scope, _replay_body(body, receive), tracker
            )
        except ProtocolError as exc:
            logger.warning(
                "session.rejected",
                http_method=request.method,
                session_id=session_id,
                reason=exc.message,
            )
            response = json_rpc_error(
                exc.rpc_code, exc.message, status_code=exc.status_code
            )
            await response(scope, receive, send)
        except Exception as exc:
            logger.exception(
                "session.request_failed", session_id=session_id, error=str(exc)
            )
            if not tracker.started:
                response = json_rpc_error(-32603, "Internal server error", status_code=500)
                await response(scope, receive, send)

    async def _handle_post(
        self,
        session: McpSession,
        scope: Scope,
        body: bytes,
        receive: Receive,
        tracker: _ResponseTracker,
    ) -> None:
        """Serve a POST; cancel its tool calls if the client goes away first."""
        request_ids = tool_call_ids(body)
        if not request_ids:
            await session.transport.handle_request(
                scope, _replay_body(body, receive), tracker
            )
            return

        # Only the watcher reads the client's receive channel; the transport
        # sees the body and then the disconnect the watcher observed.
        gone = asyncio.Event()

        async def watch_disconnect() -> None:
            while (await receive())["type"] != "http.disconnect":
                pass
            gone.set()

        async def wait_disconnect() -> Message:
            await gone.wait()
            return {"type": "http.disconnect"}

        watcher = asyncio.create_task(watch_disconnect())
        handler = asyncio.create_task(
            session.transport.handle_request(
                scope, _replay_body(body, wait_disconnect), tracker
            )
        )
        try:
            await asyncio.wait({handler, watcher}, return_when=asyncio.FIRST_COMPLETED)
            if gone.is_set() and not tracker.completed:
                logger.info(
                    "session.client_disconnected",
                    session_id=session.session_id,
                    request_ids=request_ids,
                )
                for request_id in request_ids:
                    await self._cancel_request(session, scope, request_id)
                handler.cancel()
                await asyncio.gather(handler, return_exceptions=True)
                return
            await handler
        finally:
            for task in (watcher, handler):
                if not task.done():
                    task.cancel()
            await asyncio.gather(watcher, handler, return_exceptions=True)

    async def _cancel_request(
        self, session: McpSession, scope: Scope, request_id: str | int
    ) -> None:
        """Feed ``notifications/cancelled`` for ``request_id`` into the session."""
        body = json.dumps(
            {
                "jsonrpc": "2.0",
                "method": "notifications/cancelled",
                "params": {"requestId": request_id, "reason": "client disconnected"},
            }
        ).encode()
        headers = [
            (b"content-type", b"application/json"),
            (b"accept", b"application/json, text/event-stream"),
            (MCP_SESSION_ID_HEADER.encode(), session.session_id.encode()),
        ]
        version = Request(scope).headers.get(MCP_PROTOCOL_VERSION_HEADER)
        if version:
            headers.append((MCP_PROTOCOL_VERSION_HEADER.encode(), version.encode()))
        cancel_scope = {**scope, "method": "POST", "headers": headers}
        try:
            await session.transport.handle_request(
                cancel_scope, _replay_body(body, _disconnected), _discard
            )
        except Exception as exc:
            logger.error(
                "session.cancel_failed",
                session_id=session.session_id,
                request_id=request_id,
                error=str(exc),
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open_session(self) -> McpSession:
        """Allocate an id, bind a transport and start its MCP server."""
        async with self._lock:
            session_id = self._new_session_id()
            session = McpSession(
                session_id=session_id,
                transport=self._transport_factory(session_id),
            )
            self._sessions[session_id] = session
            ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            session.task = asyncio.create_task(
                self._run_session(session, ready), name=f"mcp-session-{session_id}"
            )
            try:
                await ready
            except BaseException:
                self._discard(session_id, reason="start_failed")
                raise
        logger.info("session.initialized", session_id=session_id)
        return session

    async def close(self, session_id: str) -> bool:
        """Close a session by id. Returns False if it was not live."""
        session = self._sessions.get(session_id)
        if session is None:
            return False
        await self._shutdown(session, reason="closed")
        return True

    async def close_all(self) -> None:
        """Close every live session (server shutdown)."""
        for session in list(self._sessions.values()):
            try:
                logger.info("session.closing", session_id=session.session_id)
                await self._shutdown(session, reason="shutdown")
            except Exception as exc:
                logger.error(
                    "session.close_failed", session_id=session.session_id, error=str(exc)
                )

    def _new_session_id(self) -> str:
        while True:
            session_id = uuid4().hex
            if session_id not in self._sessions:
                return session_id

    def _discard(self, session_id: str, *, reason: str) -> None:
        if self._sessions.pop(session_id, None) is not None:
            logger.info("session.removed", session_id=session_id, reason=reason)

    async def _shutdown(self, session: McpSession, *, reason: str) -> None:
        self._discard(session.session_id, reason=reason)
        if not session.transport.is_terminated:
            await session.transport.terminate()
        task = session.task
        if task is not None and not task.done():
            # Cancels in-flight tool calls so their poll loops stop.
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def _run_session(self, session: McpSession, ready: asyncio.Future[None]) -> None:
        server = self._server_factory()
        try:
            async with session.transport.connect() as (read_stream, write_stream):
                ready.set_result(None)
                await server.run(
                    read_stream, write_stream, server.create_initialization_options()
                )
        except Exception as exc:
            if not ready.done():
                ready.set_exception(exc)
            else:
                logger.exception(
                    "session.crashed", session_id=session.session_id, error=str(exc)
                )
        finally:
            if not ready.done():
                ready.cancel()
            self._discard(session.session_id, reason="transport_closed")
