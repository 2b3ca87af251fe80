"""
One streaming attempt against the proxy's WebSocket endpoint.

The session opens a channel, sends a single start message, feeds every
inbound message through ``frames.interpret`` and resolves exactly once with
the assembled text.  Four things can end it: a terminate frame, a clean
close, a channel error or the deadline.  Whichever comes first wins; the
``resolved`` flag turns every later trigger into a no-op.

A clean close counts as success even with no tokens.  Errors and the
deadline are failures (``TransportError``) even if partial text arrived;
the caller decides what to do with ``session.text``.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from typing import Any, Awaitable, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosedOK

from . import config
from .errors import TransportError
from .frames import Ignore, Terminate, Token, interpret
from .utils import clip

log = logging.getLogger(__name__)

TokenCallback = Callable[[str], Any]
Connector = Callable[[str], Awaitable[Any]]


class SessionState(enum.Enum):
    IDLE = "idle"
    OPENING = "opening"
    STREAMING = "streaming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


async def _websocket_connect(endpoint: str):
    return await websockets.connect(endpoint)


class StreamSession:
    def __init__(
        self,
        endpoint: str,
        start_payload: Any,
        on_token: TokenCallback,
        deadline: float = None,
        connect: Optional[Connector] = None,
    ):
        self.endpoint = endpoint
        self.start_payload = start_payload
        self.on_token = on_token
        self.deadline = config.STREAM_TIMEOUT_S if deadline is None else deadline
        self.text = ""
        self.resolved = False
        self.state = SessionState.IDLE
        self.error: Optional[TransportError] = None
        self._connect = connect or _websocket_connect
        self._future: Optional[asyncio.Future] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._reader: Optional[asyncio.Task] = None
        self._channel = None
        self._channel_closed = False

    # ── lifecycle ──
    async def open(self) -> str:
        """Run the attempt; returns the full text or raises TransportError.

        Returns only after the channel is closed.
        """
        future = self.start()
        try:
            return await future
        finally:
            await self.shutdown()

    def start(self) -> asyncio.Future:
        if self.state is not SessionState.IDLE:
            raise RuntimeError("A stream session can only be opened once")
        loop = asyncio.get_running_loop()
        self._future = loop.create_future()
        self._timer = loop.call_later(self.deadline, self.on_deadline)
        self.state = SessionState.OPENING
        self._reader = loop.create_task(self._pump())
        return self._future

    async def shutdown(self) -> None:
        self._cancel_timer()
        await self._close_channel()
        reader = self._reader
        if reader is not None:
            if not reader.done():
                reader.cancel()
            await asyncio.gather(reader, return_exceptions=True)

    async def _pump(self) -> None:
        try:
            channel = await self._connect(self.endpoint)
        except Exception as exc:
            self.on_error(exc)
            return
        self._channel = channel
        try:
            if self.resolved:
                return
            self.state = SessionState.STREAMING
            await channel.send(json.dumps({"type": "start", "payload": self.start_payload}))
            async for raw in channel:
                self.on_message(raw)
                if self.resolved:
                    break
            else:
                self.on_close()
        except ConnectionClosedOK:
            self.on_close()
        except Exception as exc:
            self.on_error(exc)
        finally:
            await self._close_channel()

    async def _close_channel(self) -> None:
        if self._channel is None or self._channel_closed:
            return
        self._channel_closed = True
        try:
            await self._channel.close()
        except Exception as exc:
            log.debug("Ignoring error while closing stream channel: %s", exc)

    # ── events ──
    def on_message(self, raw: Any) -> None:
        if self.resolved:
            return
        frame = interpret(raw)
        if isinstance(frame, Token):
            self._deliver(frame.text)
            if frame.terminal:
                self._succeed()
        elif isinstance(frame, Terminate):
            self._succeed()
        elif isinstance(frame, Ignore):
            log.debug("Ignoring unrecognised frame: %s", clip(str(raw)))
        else:
            raise TypeError(f"Unhandled frame type: {frame!r}")

    def on_close(self) -> None:
        self._succeed()

    def on_error(self, exc: BaseException) -> None:
        error = TransportError(f"WebSocket error: {exc}")
        error.__cause__ = exc
        self._fail(error)

    def on_deadline(self) -> None:
        if self._fail(TransportError(f"Streaming timeout after {self.deadline:g}s")):
            if self._reader is not None and not self._reader.done():
                self._reader.cancel()

    def _deliver(self, increment: str) -> None:
        if not increment:
            return
        self.text += increment
        try:
            self.on_token(increment)
        except Exception:
            log.exception("Token callback failed; continuing the stream")

    # ── resolution ──
    def _succeed(self) -> bool:
        if self.resolved:
            return False
        self.resolved = True
        self.state = SessionState.SUCCEEDED
        self._cancel_timer()
        if self._future is not None and not self._future.done():
            self._future.set_result(self.text)
        log.debug("Stream resolved with %d chars", len(self.text))
        return True

    def _fail(self, error: TransportError) -> bool:
        if self.resolved:
            return False
        self.resolved = True
        self.state = SessionState.FAILED
        self.error = error
        self._cancel_timer()
        if self._future is not None and not self._future.done():
            self._future.set_exception(error)
        log.warning("Stream failed after %d chars: %s", len(self.text), error)
        return True

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
