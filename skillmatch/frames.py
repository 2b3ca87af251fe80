"""
Classification of inbound streaming frames.

The proxy's framing is not fixed, so ``interpret`` accepts every shape it has
been seen to send and maps each message onto exactly one of three frames:

* ``{"choices": [{"delta": {"content": "..."}, "finish_reason": ...}]}``
* ``{"event": "token", "token": "..."}``
* ``{"text": "..."}``
* ``{"event": "end"}``
* raw text, with ``[DONE]`` or an empty payload meaning end of stream

``interpret`` never raises; anything it cannot place becomes a literal token
(undecodable text) or ``Ignore`` (a decodable but unknown object).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class Token:
    text: str
    # the stream ends right after this token is delivered
    terminal: bool = False


@dataclass(frozen=True)
class Terminate:
    pass


@dataclass(frozen=True)
class Ignore:
    pass


Frame = Union[Token, Terminate, Ignore]


def _as_text(raw: Any) -> str:
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw).decode("utf-8", errors="replace")
    if raw is None:
        return ""
    return raw if isinstance(raw, str) else str(raw)


def _decode(text: str) -> dict | None:
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def _from_choices(choices: list) -> Frame:
    if not choices or not isinstance(choices[0], dict):
        return Ignore()
    first = choices[0]
    delta = first.get("delta")
    if not isinstance(delta, dict):
        delta = {}
    content = delta.get("content") or delta.get("text") or ""
    if not isinstance(content, str):
        content = ""
    finished = bool(first.get("finish_reason"))
    if content:
        return Token(content, terminal=finished)
    return Terminate() if finished else Ignore()


def interpret(raw: Any) -> Frame:
    text = _as_text(raw)
    obj = _decode(text)

    if obj is None:
        if text == "" or text.strip() == DONE_SENTINEL:
            return Terminate()
        return Token(text)

    choices = obj.get("choices")
    if isinstance(choices, list):
        return _from_choices(choices)

    if obj.get("event") == "token" and isinstance(obj.get("token"), str):
        return Token(obj["token"])

    if isinstance(obj.get("text"), str):
        return Token(obj["text"])

    if obj.get("event") == "end":
        return Terminate()

    return Ignore()
