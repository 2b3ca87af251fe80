import asyncio
import json

from skillmatch.chat import APOLOGY, ChatTurn, Transcript, start_payload
from skillmatch.errors import CompletionError
from skillmatch.storage import LocalStore

from conftest import FakeChannel, connector


class FakeBubble:
    def __init__(self):
        self.tokens = []
        self.final = None
        self.discarded = False

    def append(self, token):
        self.tokens.append(token)

    def finalize(self, text):
        self.final = text

    def discard(self):
        self.discarded = True


class FakeSurface:
    def __init__(self):
        self.events = []
        self.messages = []
        self.bubbles = []

    def show_typing(self):
        self.events.append("typing")

    def hide_typing(self):
        self.events.append("idle")

    def open_stream(self):
        bubble = FakeBubble()
        self.bubbles.append(bubble)
        self.events.append("stream")
        return bubble

    def add_message(self, text, is_user=False):
        self.messages.append((text, is_user))
        self.events.append("user" if is_user else "assistant")


def _completer(replies, channel=None):
    calls = []

    async def complete(prompt, history, system_prompt):
        calls.append({
            "prompt": prompt,
            "history": history,
            "system_prompt": system_prompt,
            "channel_closed": channel.closed if channel else None,
        })
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    complete.calls = calls
    return complete


def _turn(surface, transcript, channel, complete, deadline=5):
    return ChatTurn(
        surface,
        transcript,
        stream_url="ws://proxy.test",
        complete=complete,
        deadline=deadline,
        connect=connector(channel),
        model="gemini-test",
    )


def _assistant_messages(transcript):
    return [m for m in transcript.messages if not m["isUser"]]


def test_streamed_reply_is_finalized_once():
    surface, transcript = FakeSurface(), Transcript()
    channel = FakeChannel(["Hi", " there"])
    complete = _completer([])

    reply = asyncio.run(_turn(surface, transcript, channel, complete).run("hello"))

    assert reply == "Hi there"
    bubble = surface.bubbles[0]
    assert bubble.tokens == ["Hi", " there"]
    assert bubble.final == "Hi there"
    assert not bubble.discarded
    assert complete.calls == []
    assert transcript.messages == [
        {"text": "hello", "isUser": True},
        {"text": "Hi there", "isUser": False},
    ]
    assert surface.messages == [("hello", True)]


def test_empty_stream_is_a_successful_empty_reply():
    surface, transcript = FakeSurface(), Transcript()
    reply = asyncio.run(_turn(surface, transcript, FakeChannel([]), _completer([])).run("hi"))
    assert reply == ""
    assert _assistant_messages(transcript) == [{"text": "", "isUser": False}]


def test_stream_failure_falls_back_with_one_assistant_message():
    surface, transcript = FakeSurface(), Transcript()
    channel = FakeChannel(["partial", ConnectionResetError("dropped")])
    complete = _completer(["fallback answer"], channel)

    reply = asyncio.run(_turn(surface, transcript, channel, complete).run("hello"))

    assert reply == "fallback answer"
    assert surface.bubbles[0].discarded
    assert surface.bubbles[0].final is None
    assert surface.messages == [("hello", True), ("fallback answer", False)]
    assert _assistant_messages(transcript) == [{"text": "fallback answer", "isUser": False}]
    assert complete.calls[0]["channel_closed"] is True


def test_deadline_falls_back():
    surface, transcript = FakeSurface(), Transcript()
    channel = FakeChannel(["slow"], hang=True)
    complete = _completer(["late but fine"], channel)

    reply = asyncio.run(_turn(surface, transcript, channel, complete, deadline=0.05).run("hello"))

    assert reply == "late but fine"
    assert len(complete.calls) == 1
    assert len(_assistant_messages(transcript)) == 1


def test_both_paths_failing_show_the_apology():
    surface, transcript = FakeSurface(), Transcript()
    channel = FakeChannel([OSError("no route")])
    complete = _completer([CompletionError("Gemini proxy error: 500", status=500)])

    reply = asyncio.run(_turn(surface, transcript, channel, complete).run("hello"))

    assert reply == APOLOGY
    assert surface.messages[-1] == (APOLOGY, False)
    assert _assistant_messages(transcript) == [{"text": APOLOGY, "isUser": False}]
    assert surface.events[-1] == "assistant"
    assert "idle" in surface.events


def test_stream_and_fallback_see_the_same_history():
    earlier = [{"text": "hi", "isUser": True}, {"text": "hello!", "isUser": False}]
    surface, transcript = FakeSurface(), Transcript(earlier)
    channel = FakeChannel([ConnectionResetError("dropped")])
    complete = _completer(["ok"], channel)

    asyncio.run(
        _turn(surface, transcript, channel, complete).run("and now?", "and now? [ctx]", "SYSTEM")
    )

    sent = json.loads(channel.sent[0])["payload"]
    call = complete.calls[0]
    assert call["history"] == earlier
    assert sent["history"] == [{"role": "user", "text": "hi"}, {"role": "model", "text": "hello!"}]
    assert sent["prompt"] == call["prompt"] == "and now? [ctx]"
    assert sent["systemPrompt"] == call["system_prompt"] == "SYSTEM"
    assert transcript.messages[2] == {"text": "and now?", "isUser": True}


def test_start_payload_shape():
    payload = start_payload("p", [{"text": "q", "isUser": True}], "sys", "m")
    assert payload == {
        "prompt": "p",
        "systemPrompt": "sys",
        "history": [{"role": "user", "text": "q"}],
        "model": "m",
        "stream": True,
    }


def test_transcript_is_saved_after_every_message(tmp_path):
    store = LocalStore(tmp_path)
    transcript = Transcript(store=store)
    transcript.add("one", True)
    transcript.add("two", False)
    assert store.load_chat_history() == [
        {"text": "one", "isUser": True},
        {"text": "two", "isUser": False},
    ]
    transcript.clear()
    assert store.load_chat_history() == []
    assert len(transcript) == 0


def test_refused_connection_falls_back_with_one_assistant_message():
    async def refuse(endpoint):
        raise OSError("connection refused")

    surface, transcript = FakeSurface(), Transcript()
    complete = _completer(["blocking answer"])
    turn = ChatTurn(surface, transcript, stream_url="ws://proxy.test", complete=complete,
                    deadline=5, connect=refuse, model="gemini-test")

    reply = asyncio.run(turn.run("hello"))

    assert reply == "blocking answer"
    assert surface.bubbles[0].discarded
    assert surface.messages == [("hello", True), ("blocking answer", False)]
    assert _assistant_messages(transcript) == [{"text": "blocking answer", "isUser": False}]
