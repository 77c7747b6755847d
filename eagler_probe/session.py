"""One probe connection lifecycle as an explicit state machine.

    CONNECTING -> AWAITING_RESPONSE -> {COMPLETING, FAILED, TIMED_OUT} -> CLOSED

The I/O task only translates socket activity into events; every state
change goes through `handle_message`, `handle_error`, `handle_close` or the
timeout callback. Only the first terminal transition has any effect.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .assembler import Decision, DecisionKind, ResponseAssembler, now_ms
from .cache import ResultCache
from .errors import (
    PrematureCloseError,
    ProbeError,
    ProbeTimeoutError,
    TransportError,
)
from .models.snapshot import ServerSnapshot

logger = logging.getLogger(__name__)

REQUEST_TOKEN = "Accept: MOTD"
DEFAULT_TIMEOUT_S = 5.0
# Close code reported when the connection dropped without a close frame.
ABNORMAL_CLOSE = 1006

Connector = Callable[[str], Awaitable[Any]]

# Strong references to I/O tasks still closing their connection after the
# caller already has its outcome.
_background_tasks: set[asyncio.Task] = set()


async def websocket_connect(target: str) -> Any:
    # The session enforces its own overall deadline.
    return await websockets.connect(target, open_timeout=None, ping_interval=None)


class SessionState(enum.Enum):
    CONNECTING = "connecting"
    AWAITING_RESPONSE = "awaiting_response"
    COMPLETING = "completing"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CLOSED = "closed"


_TERMINAL = frozenset(
    {
        SessionState.COMPLETING,
        SessionState.FAILED,
        SessionState.TIMED_OUT,
        SessionState.CLOSED,
    }
)


def _close_details(exc: ConnectionClosed) -> tuple[int, str]:
    if exc.rcvd is None:
        return ABNORMAL_CLOSE, ""
    return exc.rcvd.code, exc.rcvd.reason


class ProbeSession:
    """Runs a single status probe against `target` (already normalized)."""

    def __init__(
        self,
        target: str,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        fetch_icon: bool = True,
        cache: ResultCache | None = None,
        connect: Connector = websocket_connect,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        self.target = target
        self.timeout_s = timeout_s
        self.fetch_icon = fetch_icon
        self.state = SessionState.CONNECTING
        # Terminal state reached before the connection was released.
        self.outcome: SessionState | None = None
        self._cache = cache
        self._connect = connect
        self._assembler = ResponseAssembler(fetch_icon=fetch_icon, clock_ms=clock_ms)
        self._ws: Any = None
        self._timer: asyncio.TimerHandle | None = None
        self._io_task: asyncio.Task | None = None
        self._done = asyncio.Event()
        self._result: ServerSnapshot | None = None
        self._error: ProbeError | None = None

    @property
    def terminal(self) -> bool:
        return self.state in _TERMINAL

    async def run(self) -> ServerSnapshot:
        """Connect, request status and wait for exactly one outcome."""
        if self._io_task is not None:
            raise RuntimeError("ProbeSession.run() may only be called once")
        loop = asyncio.get_running_loop()
        logger.debug("Connecting to %s", self.target)
        self._timer = loop.call_later(self.timeout_s, self.handle_timeout)
        self._io_task = loop.create_task(self._drive())
        _background_tasks.add(self._io_task)
        self._io_task.add_done_callback(_background_tasks.discard)

        await self._done.wait()
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result

    async def wait_closed(self) -> None:
        """Wait until the connection has been released."""
        task = self._io_task
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    # Events

    def handle_open(self) -> None:
        if self.terminal:
            return
        logger.debug("Connection established")
        self.state = SessionState.AWAITING_RESPONSE

    def handle_message(self, message: str | bytes) -> Decision | None:
        if self.terminal:
            logger.debug("Ignoring message on finished session for %s", self.target)
            return None
        if isinstance(message, str):
            decision = self._assembler.on_metadata(message)
        else:
            logger.debug("Received %d bytes", len(message))
            decision = self._assembler.on_binary(message)

        if decision.kind is DecisionKind.COMPLETE:
            assert decision.snapshot is not None
            self._complete(decision.snapshot)
        elif decision.kind is DecisionKind.FATAL:
            assert decision.error is not None
            self._fail(decision.error)
        return decision

    def handle_error(self, exc: BaseException) -> None:
        if self.terminal:
            return
        logger.debug("WebSocket error for %s: %r", self.target, exc)
        err = TransportError(str(exc) or type(exc).__name__)
        err.__cause__ = exc
        self._fail(err)

    def handle_close(self, code: int | None, reason: str = "") -> None:
        logger.debug(
            "Connection closed: Code %s%s", code, f", Reason: {reason}" if reason else ""
        )
        if self.terminal:
            return
        # Metadata without the icon still makes a usable result.
        snapshot = self._assembler.partial()
        if snapshot is not None:
            self._complete(snapshot)
        else:
            self._fail(PrematureCloseError(code, reason))

    def handle_timeout(self) -> None:
        if self.terminal:
            return
        logger.debug("Probe of %s timed out after %ss", self.target, self.timeout_s)
        self.state = self.outcome = SessionState.TIMED_OUT
        self._resolve(error=ProbeTimeoutError(self.timeout_s))
        if self._io_task is not None and not self._io_task.done():
            self._io_task.cancel()

    # Transitions

    def _complete(self, snapshot: ServerSnapshot) -> None:
        self.state = self.outcome = SessionState.COMPLETING
        if self._cache is not None:
            self._cache.put(self.target, snapshot)
        self._resolve(result=snapshot)

    def _fail(self, error: ProbeError) -> None:
        self.state = self.outcome = SessionState.FAILED
        self._resolve(error=error)

    def _resolve(
        self, result: ServerSnapshot | None = None, error: ProbeError | None = None
    ) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._result = result
        self._error = error
        self._done.set()

    # I/O

    async def _drive(self) -> None:
        forced = False
        try:
            try:
                self._ws = await self._connect(self.target)
            except (OSError, WebSocketException, asyncio.TimeoutError) as e:
                self.handle_error(e)
                return

            self.handle_open()
            logger.debug("Sending request: %s", REQUEST_TOKEN)
            await self._ws.send(REQUEST_TOKEN)
            self._assembler.mark_sent()

            while self.state is SessionState.AWAITING_RESPONSE:
                message = await self._ws.recv()
                self.handle_message(message)
        except asyncio.CancelledError:
            forced = True
            raise
        except ConnectionClosed as e:
            self.handle_close(*_close_details(e))
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            self.handle_error(e)
        except Exception as e:
            logger.exception("Unexpected error probing %s", self.target)
            self.handle_error(e)
        finally:
            await self._release(force=forced)

    async def _release(self, force: bool = False) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                transport = getattr(ws, "transport", None)
                if force and transport is not None:
                    transport.abort()
                else:
                    await ws.close()
            except Exception as e:
                logger.debug("Error closing connection to %s: %s", self.target, e)
        if self.terminal:
            self.state = SessionState.CLOSED
