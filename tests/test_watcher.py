"""Tests for the export-directory watcher."""

from __future__ import annotations

import tempfile
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pipeline.watcher import EXPORT_EXTENSIONS, LogFileHandler, LogWatcher


def _make_event(path: str, is_directory: bool = False, dest_path: str | None = None) -> MagicMock:
    event = MagicMock()
    event.is_directory = is_directory
    event.src_path = path
    event.dest_path = dest_path
    return event


class TestLogFileHandlerDebounce:
    """Repeated events for one export within the window trigger the callback once."""

    def test_debounce_suppresses_duplicate(self):
        cb = MagicMock()
        handler = LogFileHandler(callback=cb, debounce_seconds=5.0)

        event = _make_event("/exports/ops_20240304.csv")
        handler.on_created(event)
        handler.on_modified(event)

        cb.assert_called_once_with("/exports/ops_20240304.csv")

    def test_debounce_is_per_path(self):
        cb = MagicMock()
        handler = LogFileHandler(callback=cb, debounce_seconds=5.0)

        handler.on_created(_make_event("/exports/a.csv"))
        handler.on_created(_make_event("/exports/b.csv"))

        assert cb.call_count == 2

    def test_debounce_allows_after_window(self):
        cb = MagicMock()
        handler = LogFileHandler(callback=cb, debounce_seconds=0.1)

        event = _make_event("/exports/ops.csv")
        handler.on_created(event)
        time.sleep(0.15)
        handler.on_modified(event)

        assert cb.call_count == 2


class TestLogFileHandlerExtensionFilter:
    """Only NMS export formats trigger the callback."""

    @pytest.mark.parametrize("name", ["ops.csv", "ops.json", "syslog.log", "export.txt", "OPS.CSV"])
    def test_export_extensions_trigger(self, name):
        cb = MagicMock()
        handler = LogFileHandler(callback=cb, debounce_seconds=0)

        handler.on_created(_make_event(f"/exports/{name}"))
        cb.assert_called_once_with(f"/exports/{name}")

    def test_py_extension_does_not_trigger(self):
        cb = MagicMock()
        handler = LogFileHandler(callback=cb, debounce_seconds=0)

        handler.on_created(_make_event("/exports/script.py"))
        cb.assert_not_called()

    def test_directory_event_does_not_trigger(self):
        cb = MagicMock()
        handler = LogFileHandler(callback=cb, debounce_seconds=0)

        handler.on_created(_make_event("/exports/archive.csv", is_directory=True))
        cb.assert_not_called()

    def test_custom_extensions(self):
        cb = MagicMock()
        handler = LogFileHandler(callback=cb, debounce_seconds=0, extensions=[".CSV"])

        handler.on_created(_make_event("/exports/ops.csv"))
        handler.on_created(_make_event("/exports/ops.json"))
        cb.assert_called_once_with("/exports/ops.csv")

    def test_default_extensions(self):
        assert EXPORT_EXTENSIONS == {".csv", ".json", ".log", ".txt"}


class TestLogFileHandlerMoves:
    def test_rename_into_place_uses_destination(self):
        cb = MagicMock()
        handler = LogFileHandler(callback=cb, debounce_seconds=0)

        handler.on_moved(_make_event("/exports/.ops.csv.tmp", dest_path="/exports/ops.csv"))
        cb.assert_called_once_with("/exports/ops.csv")

    def test_rename_to_other_extension_ignored(self):
        cb = MagicMock()
        handler = LogFileHandler(callback=cb, debounce_seconds=0)

        handler.on_moved(_make_event("/exports/ops.csv", dest_path="/exports/ops.csv.bak"))
        cb.assert_not_called()


class TestLogWatcherStartStop:
    """LogWatcher should start and stop cleanly."""

    def test_start_and_stop(self):
        tmp_dir = tempfile.mkdtemp()
        watcher = LogWatcher(watch_dir=tmp_dir, callback=MagicMock())

        assert not watcher.is_running

        watcher.start()
        assert watcher.is_running

        watcher.stop()
        assert not watcher.is_running

    def test_double_start_is_idempotent(self):
        tmp_dir = tempfile.mkdtemp()
        watcher = LogWatcher(watch_dir=tmp_dir, callback=MagicMock())

        watcher.start()
        watcher.start()
        assert watcher.is_running

        watcher.stop()
        assert not watcher.is_running

    def test_stop_when_not_started(self):
        watcher = LogWatcher(watch_dir=tempfile.mkdtemp(), callback=MagicMock())

        watcher.stop()
        assert not watcher.is_running

    def test_watcher_detects_new_export(self):
        tmp_dir = tempfile.mkdtemp()
        cb = MagicMock()
        watcher = LogWatcher(watch_dir=tmp_dir, callback=cb, debounce_seconds=0)

        watcher.start()
        try:
            time.sleep(0.3)

            export = Path(tmp_dir) / "ops_export.csv"
            export.write_text('LST-PORT,Minor,alice,04/03/2024 09:00:00,NM,10.0.0.1,Dev,Successful,""\n')

            time.sleep(1.0)

            assert cb.call_count >= 1
            called_path = cb.call_args_list[0][0][0]
            assert called_path.endswith("ops_export.csv")
        finally:
            watcher.stop()
