"""Export-directory watcher: re-runs analysis when NMS log exports land or change."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Iterable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

EXPORT_EXTENSIONS = frozenset({".csv", ".json", ".log", ".txt"})


class LogFileHandler(FileSystemEventHandler):
    """Forwards created, modified or renamed-in export files to a callback, debounced per path."""

    def __init__(
        self,
        callback: Callable[[str], None],
        debounce_seconds: float = 5.0,
        extensions: Iterable[str] = EXPORT_EXTENSIONS,
    ) -> None:
        super().__init__()
        self.callback = callback
        self.debounce_seconds = debounce_seconds
        self.extensions = frozenset(ext.lower() for ext in extensions)
        self._last_seen: dict[str, float] = {}

    def _should_process(self, path: str) -> bool:
        if Path(path).suffix.lower() not in self.extensions:
            return False
        now = time.monotonic()
        last = self._last_seen.get(path)
        if last is not None and now - last < self.debounce_seconds:
            return False
        self._last_seen[path] = now
        return True

    def _dispatch(self, event: FileSystemEvent, path: str) -> None:
        if event.is_directory or not self._should_process(path):
            return
        logger.info("Export changed: %s", path)
        self.callback(path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch(event, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Exporters commonly write a temp file and rename it into place.
        self._dispatch(event, event.dest_path)


class LogWatcher:
    """Observes one export directory (non-recursive) for log files."""

    def __init__(
        self,
        watch_dir: str,
        callback: Callable[[str], None],
        debounce_seconds: float = 5.0,
        extensions: Iterable[str] = EXPORT_EXTENSIONS,
    ) -> None:
        self.watch_dir = watch_dir
        self.callback = callback
        self.debounce_seconds = debounce_seconds
        self.extensions = extensions
        self._observer: Observer | None = None

    def start(self) -> None:
        if self._observer is not None:
            return
        handler = LogFileHandler(self.callback, self.debounce_seconds, self.extensions)
        self._observer = Observer()
        self._observer.schedule(handler, self.watch_dir, recursive=False)
        self._observer.start()
        logger.info("Watching %s for log exports", self.watch_dir)

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
            logger.info("Stopped watching %s", self.watch_dir)

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()
