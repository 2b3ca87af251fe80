import asyncio

import pytest

from skillmatch import llm_client


class FakeLLM(llm_client.LLMClient):
    """Scripted completion client; an Exception in ``replies`` is raised."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    async def complete(self, prompt, history=None, system_prompt=""):
        self.calls.append({"prompt": prompt, "history": history, "system_prompt": system_prompt})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeChannel:
    """Stand-in for a websocket: yields scripted messages, records sends."""

    def __init__(self, script=(), hang=False):
        self.script = list(script)
        self.hang = hang
        self.sent = []
        self.closed = False

    async def send(self, data):
        self.sent.append(data)

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self._messages()

    async def _messages(self):
        for item in self.script:
            await asyncio.sleep(0)
            if isinstance(item, BaseException):
                raise item
            yield item
        if self.hang:
            await asyncio.Event().wait()


def connector(channel):
    async def connect(endpoint):
        connect.endpoints.append(endpoint)
        return channel

    connect.endpoints = []
    return connect


@pytest.fixture
def fake_llm():
    fake = FakeLLM()
    llm_client.set_llm_client(fake)
    yield fake
    llm_client.set_llm_client(None)
