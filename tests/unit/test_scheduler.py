"""Unit tests for the block scheduler."""

import io
import logging
import threading
import time
from unittest.mock import Mock

import pytest

from lebar.config import parse_config
from lebar.errors import ExecutionFailedError, ExecutionTimeoutError
from lebar.formatter import FormatEngine
from lebar.protocol import ProtocolWriter
from lebar.runner import ProcessRunner
from lebar.scheduler import BlockScheduler, SchedulerState


def make_scheduler(blocks, runner=None, tick=1.0):
    config = parse_config({"blocks": blocks})
    stream = io.StringIO()
    writer = ProtocolWriter(stream)
    writer.write_header(config.click_events)
    scheduler = BlockScheduler(
        config,
        runner or ProcessRunner(),
        FormatEngine(config),
        writer,
        tick=tick,
    )
    return scheduler, writer, stream


class TestRunTick:
    """Test a single scheduling tick."""

    def test_renders_in_declaration_order(self):
        scheduler, writer, _ = make_scheduler([
            {"name": "first", "command": "echo 1"},
            {"name": "second", "interpreter": "sh -c", "script": "echo 2"},
            {"name": "third", "command": "echo 3", "output": {"full_text": "#{{ Text }}"}},
        ])
        snapshot = scheduler.run_tick()

        assert [item.name for item in snapshot] == ["first", "second", "third"]
        assert [item.full_text for item in snapshot] == ["1", "2", "#3"]
        assert writer.snapshots_written == 1

    def test_failing_block_suppresses_snapshot(self, caplog):
        """A single failing block means no snapshot at all and one error log."""
        scheduler, writer, stream = make_scheduler([
            {"name": "A", "command": "echo ok"},
            {"name": "B", "interpreter": "sh -c", "script": "exit 1"},
        ])
        header = stream.getvalue()

        with caplog.at_level(logging.ERROR, logger="lebar"):
            assert scheduler.run_tick() is None

        assert writer.snapshots_written == 0
        assert stream.getvalue() == header
        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert len(errors) == 1
        assert "B" in errors[0].getMessage()

    def test_failure_stops_remaining_blocks(self, mock_runner):
        mock_runner.run.side_effect = ExecutionTimeoutError("slow")
        scheduler, _, _ = make_scheduler(
            [{"name": "A", "command": "x"}, {"name": "B", "command": "y"}],
            runner=mock_runner,
        )

        assert scheduler.run_tick() is None
        assert mock_runner.run.call_count == 1

    def test_format_error_suppresses_snapshot(self, mock_runner):
        mock_runner.run.return_value = "x"
        scheduler, writer, _ = make_scheduler(
            [{"name": "A", "command": "x", "output": {"full_text": "{{ undefined_name }}"}}],
            runner=mock_runner,
        )

        assert scheduler.run_tick() is None
        assert writer.snapshots_written == 0

    def test_next_tick_recovers(self, mock_runner):
        """The next tick is the implicit retry."""
        mock_runner.run.side_effect = [ExecutionFailedError("boom"), "fine"]
        scheduler, writer, _ = make_scheduler([{"name": "A", "command": "x"}], runner=mock_runner)

        assert scheduler.run_tick() is None
        assert scheduler.run_tick()[0].full_text == "fine"
        assert writer.snapshots_written == 1

    def test_block_timeout_passed_to_runner(self, mock_runner):
        mock_runner.run.return_value = "v"
        scheduler, _, _ = make_scheduler([{"name": "A", "command": "x"}], runner=mock_runner)
        scheduler.block_timeout = 2.5
        scheduler.run_tick()

        assert mock_runner.run.call_args.kwargs["timeout"] == 2.5

    def test_empty_config_emits_empty_snapshot(self):
        scheduler, writer, stream = make_scheduler([])
        assert scheduler.run_tick() == []
        assert stream.getvalue().endswith("[\n[]")


class TestRunLoop:
    """Test the tick loop, pause and stop."""

    def test_invalid_tick(self):
        with pytest.raises(ValueError):
            make_scheduler([], tick=0)

    def test_stop_ends_loop(self, mock_runner):
        mock_runner.run.return_value = "v"
        scheduler, writer, _ = make_scheduler([{"name": "A", "command": "x"}], runner=mock_runner, tick=0.01)

        thread = threading.Thread(target=scheduler.run)
        thread.start()
        deadline = time.monotonic() + 5
        while writer.snapshots_written < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        scheduler.stop()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert writer.snapshots_written >= 3
        assert scheduler.state == SchedulerState.STOPPED

    def test_stop_before_run_runs_no_tick(self, mock_runner):
        scheduler, writer, _ = make_scheduler([{"name": "A", "command": "x"}], runner=mock_runner)
        scheduler.stop()
        scheduler.run()

        assert writer.snapshots_written == 0
        assert scheduler.state == SchedulerState.STOPPED

    def test_paused_scheduler_skips_ticks(self, mock_runner):
        scheduler, writer, _ = make_scheduler([{"name": "A", "command": "x"}], runner=mock_runner, tick=0.01)
        scheduler.pause()
        assert scheduler.paused

        thread = threading.Thread(target=scheduler.run)
        thread.start()
        time.sleep(0.1)
        assert writer.snapshots_written == 0

        scheduler.resume()
        deadline = time.monotonic() + 5
        while writer.snapshots_written == 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        scheduler.stop()
        thread.join(timeout=5)

        assert writer.snapshots_written >= 1

    def test_unexpected_error_is_fatal(self):
        runner = Mock(spec=ProcessRunner)
        runner.run.side_effect = RuntimeError("bug")
        scheduler, _, _ = make_scheduler([{"name": "A", "command": "x"}], runner=runner)

        with pytest.raises(RuntimeError):
            scheduler.run()
        assert scheduler.state == SchedulerState.STOPPED
