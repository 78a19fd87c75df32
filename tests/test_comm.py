#!/usr/bin/env python3
"""
Tests for the comm channel mailbox
"""

import shutil
import time
from unittest.mock import MagicMock, patch

import pytest

from htakiosk.src.singleton.comm import CommChannel, parse_commands, send_command, COMMAND_FOCUS
from htakiosk.src.singleton.errors import CommIOError

INSTANCE_ID = "1" * 64


@pytest.fixture
def channel(qapp, work_dir):
    channel = CommChannel(work_dir)
    yield channel
    channel.stop_all()


class TestParseCommands:

    def test_splits_and_skips_blank_lines(self):
        assert parse_commands("focus\n\nreload\n  \nfocus\n") == ["focus", "reload", "focus"]

    def test_empty_body(self):
        assert parse_commands("") == []


class TestSend:

    def test_creates_record(self, work_dir):
        send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)

        assert work_dir.comm_path(INSTANCE_ID).read_text() == "focus\n"

    def test_appends(self, work_dir):
        send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)
        send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)

        assert work_dir.comm_path(INSTANCE_ID).read_text() == "focus\nfocus\n"

    def test_failure_raises_comm_error(self, work_dir):
        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(CommIOError):
                send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)


class TestWatch:

    def test_watch_without_record(self, channel, work_dir):
        handler = MagicMock()

        channel.watch(INSTANCE_ID, handler)

        handler.assert_not_called()
        assert channel.is_watching(INSTANCE_ID)
        assert str(work_dir.comms_dir) in channel._watcher.directories()

    def test_pending_record_drained_on_watch(self, channel, work_dir):
        send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)
        handler = MagicMock()

        channel.watch(INSTANCE_ID, handler)

        handler.assert_called_once_with(COMMAND_FOCUS)
        assert not work_dir.comm_path(INSTANCE_ID).exists()

    def test_drain_dispatches_in_file_order(self, channel, work_dir):
        received = []
        channel.watch(INSTANCE_ID, received.append)
        for command in ["focus", "noop", "focus"]:
            channel.send(INSTANCE_ID, command)

        assert channel.drain(INSTANCE_ID) == ["focus", "noop", "focus"]
        assert received == ["focus", "noop", "focus"]
        assert not work_dir.comm_path(INSTANCE_ID).exists()

    def test_drain_twice_does_not_repeat(self, channel):
        handler = MagicMock()
        channel.watch(INSTANCE_ID, handler)
        channel.send(INSTANCE_ID, COMMAND_FOCUS)

        channel.drain(INSTANCE_ID)
        channel.drain(INSTANCE_ID)

        handler.assert_called_once_with(COMMAND_FOCUS)

    def test_directory_event_drains_and_rearms(self, channel, work_dir):
        handler = MagicMock()
        channel.watch(INSTANCE_ID, handler)

        channel.send(INSTANCE_ID, COMMAND_FOCUS)
        channel._on_path_changed(str(work_dir.comms_dir))
        channel.send(INSTANCE_ID, COMMAND_FOCUS)
        channel._on_path_changed(str(work_dir.comm_path(INSTANCE_ID)))

        assert handler.call_count == 2
        assert str(work_dir.comms_dir) in channel._watcher.directories()

    def test_unrelated_event_ignored(self, channel, work_dir, tmp_path):
        handler = MagicMock()
        channel.watch(INSTANCE_ID, handler)
        channel.send(INSTANCE_ID, COMMAND_FOCUS)

        channel._on_path_changed(str(tmp_path / "elsewhere"))

        handler.assert_not_called()
        assert work_dir.comm_path(INSTANCE_ID).exists()

    def test_handler_error_does_not_escape(self, channel, work_dir):
        handler = MagicMock(side_effect=RuntimeError("window gone"))
        channel.watch(INSTANCE_ID, handler)
        channel.send(INSTANCE_ID, COMMAND_FOCUS)

        channel._on_path_changed(str(work_dir.comms_dir))

        handler.assert_called_once_with(COMMAND_FOCUS)
        assert not work_dir.comm_path(INSTANCE_ID).exists()

    def test_removed_directory_is_recreated(self, channel, work_dir):
        channel.watch(INSTANCE_ID, MagicMock())
        work_dir.comms_dir.rmdir()

        channel._on_path_changed(str(work_dir.comms_dir))

        assert work_dir.comms_dir.is_dir()
        assert str(work_dir.comms_dir) in channel._watcher.directories()

    def test_watch_fails_when_directory_cannot_be_created(self, channel, work_dir):
        with patch.object(type(work_dir), "ensure_comms_dir", side_effect=OSError("read-only")):
            with pytest.raises(CommIOError):
                channel.watch(INSTANCE_ID, MagicMock())


def process_events_until(qapp, condition, timeout=5.0):
    """Spin the Qt event loop until ``condition()`` holds or time runs out"""
    deadline = time.monotonic() + timeout
    while not condition() and time.monotonic() < deadline:
        qapp.processEvents()
        time.sleep(0.01)
    return condition()


class TestWatcherEvents:
    """Commands delivered through real filesystem notifications"""

    def test_create_then_modify_events(self, qapp, channel, work_dir):
        handler = MagicMock()
        channel.watch(INSTANCE_ID, handler)

        send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)
        assert process_events_until(qapp, lambda: handler.call_count == 1)
        assert not work_dir.comm_path(INSTANCE_ID).exists()

        send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)
        assert process_events_until(qapp, lambda: handler.call_count == 2)
        assert not work_dir.comm_path(INSTANCE_ID).exists()

        handler.assert_called_with(COMMAND_FOCUS)

    def test_watch_survives_directory_removal(self, qapp, channel, work_dir):
        handler = MagicMock()
        channel.watch(INSTANCE_ID, handler)

        shutil.rmtree(work_dir.comms_dir)
        assert process_events_until(qapp, work_dir.comms_dir.is_dir)

        send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)
        assert process_events_until(qapp, lambda: handler.call_count == 1)
        assert not work_dir.comm_path(INSTANCE_ID).exists()


class TestStop:

    def test_stop_removes_record(self, channel, work_dir):
        channel.watch(INSTANCE_ID, MagicMock())
        send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)

        channel.stop(INSTANCE_ID)

        assert not channel.is_watching(INSTANCE_ID)
        assert not work_dir.comm_path(INSTANCE_ID).exists()
        assert channel._watcher.directories() == []

    def test_stop_twice(self, channel, work_dir):
        channel.watch(INSTANCE_ID, MagicMock())

        channel.stop(INSTANCE_ID)
        channel.stop(INSTANCE_ID)

        assert list(work_dir.comms_dir.iterdir()) == []

    def test_stopped_channel_ignores_commands(self, channel, work_dir):
        handler = MagicMock()
        channel.watch(INSTANCE_ID, handler)
        channel.stop(INSTANCE_ID)
        send_command(work_dir, INSTANCE_ID, COMMAND_FOCUS)

        channel._on_path_changed(str(work_dir.comms_dir))

        handler.assert_not_called()
