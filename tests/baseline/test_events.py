"""Tests for posagent.engine.events — SSE framing and event parsing."""
import pytest

from posagent.engine.events import Connected, PosOrder, SSEFramer, UnknownEvent, parseEvent


class TestSSEFramer:
    def test_complete_frames(self):
        framer = SSEFramer()
        found = framer.feed(b'data: {"type":"connected"}\n\ndata: {"a":1}\n\n')
        assert found == ['{"type":"connected"}', '{"a":1}']
        assert framer.buffer == b""

    def test_partial_line_is_buffered(self):
        framer = SSEFramer()
        assert framer.feed(b'data: {"type":"pos_') == []
        assert framer.feed(b'order"}\n') == ['{"type":"pos_order"}']

    def test_non_data_lines_are_dropped(self):
        framer = SSEFramer()
        chunk = b": heartbeat\nevent: ping\nid: 7\nretry: 1000\ndata: x\n"
        assert framer.feed(chunk) == ["x"]

    def test_crlf_and_whitespace_are_trimmed(self):
        framer = SSEFramer()
        assert framer.feed(b"data:   {}  \r\n") == ["{}"]

    def test_multibyte_character_split_across_chunks(self):
        framer = SSEFramer()
        encoded = 'data: {"name":"₹"}\n'.encode()
        cut = encoded.index("₹".encode()) + 1
        assert framer.feed(encoded[:cut]) == []
        assert framer.feed(encoded[cut:]) == ['{"name":"₹"}']

    def test_reset_discards_partial(self):
        framer = SSEFramer()
        framer.feed(b"data: half")
        framer.reset()
        assert framer.feed(b"\n") == []


class TestParseEvent:
    def test_connected(self):
        assert parseEvent('{"type":"connected","theaterId":"TH1"}') == Connected(
            {"type": "connected", "theaterId": "TH1"}
        )

    def test_pos_order(self):
        event = parseEvent('{"type":"pos_order","orderId":"O1","event":"paid"}')
        assert isinstance(event, PosOrder)
        assert (event.orderId, event.event) == ("O1", "paid")

    def test_pos_order_missing_fields(self):
        event = parseEvent('{"type":"pos_order"}')
        assert (event.orderId, event.event) == ("", "")

    def test_unknown_type(self):
        assert parseEvent('{"type":"ping"}') == UnknownEvent(type="ping", payload={"type": "ping"})

    def test_non_object_payload(self):
        assert parseEvent("[1, 2]") == UnknownEvent(type=None, payload=[1, 2])

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError):
            parseEvent("{not json")
