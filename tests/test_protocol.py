"""Tests for chatrelay.protocol -- the JSON frame codec."""

import json

import pytest

from chatrelay.errors import ProtocolDecodeError
from chatrelay.protocol import SessionMessage, decode_message, encode_message
from chatrelay.ws_constants import CLIENT_MESSAGE_TYPES, SERVER_MESSAGE_TYPES


class TestEncode:

    def test_encode_always_includes_content(self):
        assert json.loads(encode_message("thinking_done")) == {"type": "thinking_done", "content": ""}

    def test_encode_preserves_unicode_and_whitespace(self):
        frame = encode_message("stream", "héllo 👋 ")
        assert json.loads(frame)["content"] == "héllo 👋 "

    def test_encode_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            encode_message("bogus", "x")


class TestDecode:

    def test_decode_valid_frame(self):
        msg = decode_message('{"type": "chat", "content": "hi"}')
        assert msg == SessionMessage(type="chat", content="hi")

    def test_missing_content_defaults_to_empty(self):
        assert decode_message('{"type": "thinking_done"}').content == ""

    def test_bytes_frame_accepted(self):
        assert decode_message(b'{"type": "done", "content": "ok"}').content == "ok"

    @pytest.mark.parametrize("raw", [
        "not json{{",
        "[1, 2]",
        '{"content": "no type"}',
        '{"type": "mystery", "content": "x"}',
        '{"type": "chat", "content": 42}',
    ])
    def test_malformed_frames_raise_decode_error(self, raw):
        with pytest.raises(ProtocolDecodeError):
            decode_message(raw)

    def test_allowed_restricts_direction(self):
        frame = '{"type": "stream", "content": "x"}'
        assert decode_message(frame, allowed=SERVER_MESSAGE_TYPES).type == "stream"
        with pytest.raises(ProtocolDecodeError, match="Unexpected message type"):
            decode_message(frame, allowed=CLIENT_MESSAGE_TYPES)
