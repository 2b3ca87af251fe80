import json

import pytest

from skillmatch.frames import Ignore, Terminate, Token, interpret


def _choices(content=None, finish=None):
    delta = {} if content is None else {"content": content}
    return json.dumps({"choices": [{"delta": delta, "finish_reason": finish}]})


def test_choices_delta_is_a_token():
    assert interpret(_choices("Hel")) == Token("Hel")


def test_choices_delta_with_finish_is_terminal_token():
    assert interpret(_choices("end", "stop")) == Token("end", terminal=True)


def test_choices_finish_without_content_terminates():
    assert interpret(_choices(None, "stop")) == Terminate()


def test_choices_without_content_or_finish_is_ignored():
    assert interpret(_choices()) == Ignore()
    assert interpret(json.dumps({"choices": []})) == Ignore()


def test_event_token_and_text_shapes():
    assert interpret(json.dumps({"event": "token", "token": "ab"})) == Token("ab")
    assert interpret(json.dumps({"text": "cd"})) == Token("cd")


def test_event_end_terminates():
    assert interpret(json.dumps({"event": "end"})) == Terminate()


@pytest.mark.parametrize("raw", ["[DONE]", "  [DONE]\n", "", b"[DONE]", None])
def test_end_of_stream_markers(raw):
    assert interpret(raw) == Terminate()


def test_unknown_object_is_ignored():
    assert interpret(json.dumps({"status": "ping"})) == Ignore()


def test_raw_text_is_a_literal_token():
    assert interpret("Hello there") == Token("Hello there")
    assert interpret("{not json") == Token("{not json")


def test_whitespace_only_payload_is_a_literal_token():
    assert interpret("   ") == Token("   ")


def test_json_scalar_is_a_literal_token():
    assert interpret("42") == Token("42")
    assert interpret('"hi"') == Token('"hi"')


def test_bytes_are_decoded():
    assert interpret('{"text": "café"}'.encode("utf-8")) == Token("café")
    assert interpret(b"\xff raw") == Token("\ufffd raw")
