"""
One chat turn: stream the answer, fall back to a blocking call on failure.

The turn always ends with exactly one assistant message, shown once and
appended to the transcript once:

* the streamed text, when the stream resolves successfully (even empty);
* otherwise the blocking reply, after the partial stream bubble is removed;
* otherwise ``APOLOGY``.

The stream channel is closed before the fallback starts, so a turn never
has two attempts in flight.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from . import config, llm_client
from .errors import TransportError
from .storage import LocalStore
from .stream_session import Connector, StreamSession

log = logging.getLogger(__name__)

APOLOGY = "Sorry, I'm having trouble connecting. Please verify the API key and network."

Completer = Callable[[str, List[Dict[str, Any]], str], Awaitable[str]]


class StreamBubble(Protocol):
    def append(self, token: str) -> None: ...

    def finalize(self, text: str) -> None: ...

    def discard(self) -> None: ...


class ChatSurface(Protocol):
    def show_typing(self) -> None: ...

    def hide_typing(self) -> None: ...

    def open_stream(self) -> StreamBubble: ...

    def add_message(self, text: str, is_user: bool = False) -> None: ...


class Transcript:
    """Ordered ``{text, isUser}`` messages, saved in full after every change."""

    def __init__(self, messages: Optional[List[Dict[str, Any]]] = None, store: Optional[LocalStore] = None):
        self.messages: List[Dict[str, Any]] = list(messages or [])
        self.store = store

    def add(self, text: str, is_user: bool) -> None:
        self.messages.append({"text": text, "isUser": is_user})
        if self.store is not None:
            self.store.save_chat_history(self.messages)

    def history(self) -> List[Dict[str, Any]]:
        return [dict(m) for m in self.messages]

    def clear(self) -> None:
        self.messages = []
        if self.store is not None:
            self.store.clear_chat_history()

    def __len__(self) -> int:
        return len(self.messages)


def start_payload(prompt: str, history: List[Dict[str, Any]], system_prompt: str, model: str) -> Dict[str, Any]:
    return {
        "prompt": prompt,
        "systemPrompt": system_prompt,
        "history": [
            {"role": "user" if m.get("isUser") else "model", "text": m.get("text", "")}
            for m in history
        ],
        "model": model,
        "stream": True,
    }


class ChatTurn:
    def __init__(
        self,
        surface: ChatSurface,
        transcript: Transcript,
        stream_url: str = None,
        complete: Completer = None,
        deadline: float = None,
        connect: Optional[Connector] = None,
        model: str = None,
    ):
        self.surface = surface
        self.transcript = transcript
        self.stream_url = stream_url or config.get_stream_url()
        self.complete = complete or llm_client.complete
        self.deadline = config.STREAM_TIMEOUT_S if deadline is None else deadline
        self.connect = connect
        self.model = model or config.get_model_for_provider("proxy")
        self.session: Optional[StreamSession] = None
        self._bubble: Optional[StreamBubble] = None

    async def run(self, user_text: str, prompt: str = None, system_prompt: str = "") -> str:
        """Record ``user_text``, answer ``prompt`` (defaults to the text), return the reply."""
        prompt = prompt if prompt is not None else user_text
        history = self.transcript.history()
        self.transcript.add(user_text, True)
        self.surface.add_message(user_text, True)
        self.surface.show_typing()

        try:
            reply = await self._answer(prompt, history, system_prompt)
        except Exception:
            log.exception("Chat turn failed")
            self._drop_bubble()
            self.surface.hide_typing()
            reply = APOLOGY
            self.surface.add_message(reply, False)

        self.transcript.add(reply, False)
        return reply

    async def _answer(self, prompt: str, history: List[Dict[str, Any]], system_prompt: str) -> str:
        try:
            self._bubble = self.surface.open_stream()
            self.session = StreamSession(
                self.stream_url,
                start_payload(prompt, history, system_prompt, self.model),
                self._bubble.append,
                deadline=self.deadline,
                connect=self.connect,
            )
            text = await self.session.open()
        except TransportError as exc:
            log.warning("Streaming failed, falling back to HTTP: %s", exc)
            self._drop_bubble()
            return await self._fallback(prompt, history, system_prompt)

        self._bubble.finalize(text)
        self._bubble = None
        self.surface.hide_typing()
        return text

    async def _fallback(self, prompt: str, history: List[Dict[str, Any]], system_prompt: str) -> str:
        self.surface.show_typing()
        try:
            reply = await self.complete(prompt, history, system_prompt)
        except Exception as exc:
            log.error("Fallback completion failed: %s", exc)
            reply = APOLOGY
        finally:
            self.surface.hide_typing()
        self.surface.add_message(reply, False)
        return reply

    def _drop_bubble(self) -> None:
        if self._bubble is not None:
            bubble, self._bubble = self._bubble, None
            bubble.discard()
