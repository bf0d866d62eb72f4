"""Unit tests for the i3bar protocol writer."""

import io
import json
from unittest.mock import Mock

import pytest

from lebar.models import RenderedItem
from lebar.protocol import ProtocolWriter


class RecordingStream:
    """Stream that remembers every individual write."""

    def __init__(self):
        self.writes = []
        self.flushes = 0

    def write(self, data):
        self.writes.append(data)

    def flush(self):
        self.flushes += 1


class TestHeader:
    """Test protocol header output."""

    def test_first_two_writes(self):
        stream = RecordingStream()
        ProtocolWriter(stream).write_header(click_events=True)

        assert len(stream.writes) == 2
        header_line, bracket_line = stream.writes
        assert header_line.endswith("\n") and header_line.count("\n") == 1
        assert json.loads(header_line) == {"version": 1, "click_events": True}
        assert bracket_line == "[\n"

    def test_signals_included_when_set(self):
        stream = io.StringIO()
        ProtocolWriter(stream).write_header(click_events=False, stop_signal=10, cont_signal=12)
        header = json.loads(stream.getvalue().splitlines()[0])

        assert header == {"version": 1, "stop_signal": 10, "cont_signal": 12, "click_events": False}

    def test_header_only_once(self):
        writer = ProtocolWriter(io.StringIO())
        writer.write_header(click_events=False)
        with pytest.raises(RuntimeError):
            writer.write_header(click_events=False)

    def test_flushes(self):
        stream = RecordingStream()
        ProtocolWriter(stream).write_header(click_events=False)
        assert stream.flushes == 2


class TestSnapshots:
    """Test streaming snapshot framing."""

    def test_snapshot_before_header(self):
        with pytest.raises(RuntimeError):
            ProtocolWriter(io.StringIO()).write_snapshot([])

    def test_comma_framing(self):
        stream = RecordingStream()
        writer = ProtocolWriter(stream)
        writer.write_header(click_events=False)
        for i in range(3):
            writer.write_snapshot([RenderedItem(name="n", full_text=str(i))])

        first, second, third = stream.writes[2:]
        assert first.startswith("[")
        assert second.startswith(",[") and not second.startswith(",,")
        assert third.startswith(",[")
        assert writer.snapshots_written == 3
        assert all("]" not in w for w in stream.writes[:2])

    def test_stream_is_valid_json_when_closed(self):
        """Appending ']' to the stream body must yield the list of snapshots."""
        stream = io.StringIO()
        writer = ProtocolWriter(stream)
        writer.write_header(click_events=False)
        writer.write_snapshot([RenderedItem(name="a", full_text="1")])
        writer.write_snapshot([RenderedItem(name="a", full_text="2"), RenderedItem(name="b", full_text="3")])

        header, body = stream.getvalue().split("\n", 1)
        assert not body.rstrip().endswith("]]")
        snapshots = json.loads(body + "]")
        assert [[item["full_text"] for item in s] for s in snapshots] == [["1"], ["2", "3"]]

    def test_unicode_not_escaped(self):
        stream = io.StringIO()
        writer = ProtocolWriter(stream)
        writer.write_header(click_events=False)
        writer.write_snapshot([RenderedItem(name="bat", full_text="󰁹 95%")])

        assert "󰁹 95%" in stream.getvalue()

    def test_item_fields(self):
        stream = io.StringIO()
        writer = ProtocolWriter(stream)
        writer.write_header(click_events=False)
        writer.write_snapshot([RenderedItem(name="x", full_text="y", color="#fff")])

        item = json.loads(stream.getvalue().split("\n", 2)[2])[0]
        assert item == {
            "name": "x",
            "full_text": "y",
            "color": "#fff",
            "separator": True,
            "separator_block_width": 9,
        }

    def test_write_error_propagates(self):
        stream = Mock()
        writer = ProtocolWriter(stream)
        writer.write_header(click_events=False)
        stream.write.side_effect = BrokenPipeError()

        with pytest.raises(BrokenPipeError):
            writer.write_snapshot([])
