"""Tests for the platform event websocket handler."""

import json

import pytest
from pydantic import ValidationError

from sparknova.connections import handle_platform_connection, parse_platform_event
from sparknova.events import FOCUS_INPUT_EVENT, listen


class FakeConnection:
    remote_address = ("127.0.0.1", 50000)

    def __init__(self, messages):
        self.messages = messages

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for message in self.messages:
            yield message


class TestParse:

    def test_plain(self):
        event = parse_platform_event('{"event": "spark_focus_input"}')
        assert event.event == "spark_focus_input"
        assert event.payload is None

    def test_double_encoded(self):
        inner = json.dumps({"event": "resize", "payload": {"width": 1}})
        event = parse_platform_event(json.dumps(inner))
        assert event.payload == {"width": 1}

    def test_missing_event(self):
        with pytest.raises(ValidationError):
            parse_platform_event('{"payload": 1}')


class TestHandler:

    @pytest.mark.asyncio
    async def test_dispatches_and_skips_bad_messages(self, caplog):
        calls = []
        listen(FOCUS_INPUT_EVENT, lambda: calls.append("focus"))
        listen("resize", lambda payload: calls.append(payload))
        connection = FakeConnection([
            "not json",
            '{"payload": 1}',
            json.dumps({"event": FOCUS_INPUT_EVENT}).encode(),
            json.dumps({"event": "resize", "payload": [800, 80]}),
        ])

        await handle_platform_connection(connection)

        assert calls == ["focus", [800, 80]]
        assert "Malformed JSON" in caplog.text
