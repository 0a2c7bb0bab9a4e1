"""Watches the guides directory and reports settled guide changes."""

import fnmatch
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers.polling import PollingObserver

from guidecheck.core.constants import DEFAULT_DEBOUNCE_MS, DEFAULT_GUIDE_PATTERN
from guidecheck.core.exceptions import WatcherError

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    """What happened to a guide file."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass
class ChangeEvent:
    """A guide change delivered once its debounce window has passed."""

    type: ChangeType
    path: Path
    timestamp: datetime


class DebouncedHandler(FileSystemEventHandler):
    """
    Collapses bursts of events for one guide into a single callback.

    Editors often write a file several times per save, so each path gets a
    timer that restarts on every event; only the last event is delivered.
    Renames are reported as a deletion of the old path and a creation of the
    new one.
    """

    def __init__(
        self,
        callback: Callable[[ChangeEvent], None],
        pattern: str = DEFAULT_GUIDE_PATTERN,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    ) -> None:
        super().__init__()
        self._callback = callback
        self._name_glob = Path(pattern).name
        self._delay = debounce_ms / 1000.0
        self._latest: dict[Path, ChangeEvent] = {}
        self._timers: dict[Path, threading.Timer] = {}
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._timers)

    def is_guide(self, path: Path) -> bool:
        return fnmatch.fnmatch(path.name, self._name_glob)

    def on_created(self, event: FileSystemEvent) -> None:
        self._queue(event, ChangeType.CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._queue(event, ChangeType.MODIFIED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._queue(event, ChangeType.DELETED)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._schedule(Path(str(event.src_path)), ChangeType.DELETED)
        self._schedule(Path(str(event.dest_path)), ChangeType.CREATED)

    def cancel_pending(self) -> None:
        """Drop every change that has not been delivered yet."""
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
            self._latest.clear()
        for timer in timers:
            timer.cancel()

    def _queue(self, event: FileSystemEvent, change_type: ChangeType) -> None:
        if event.is_directory:
            return
        self._schedule(Path(str(event.src_path)), change_type)

    def _schedule(self, path: Path, change_type: ChangeType) -> None:
        if not self.is_guide(path):
            return

        timer = threading.Timer(self._delay, self._deliver, args=(path,))
        timer.daemon = True
        with self._lock:
            previous = self._timers.pop(path, None)
            self._latest[path] = ChangeEvent(change_type, path, datetime.now())
            self._timers[path] = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def _deliver(self, path: Path) -> None:
        with self._lock:
            if self._timers.get(path) is not threading.current_thread():
                return
            del self._timers[path]
            change = self._latest.pop(path)

        try:
            self._callback(change)
        except Exception:
            logger.exception("Change callback failed for %s", path)


class GuideWatcher:
    """Runs a polling observer over the guides root."""

    def __init__(
        self,
        root: Path,
        on_change: Callable[[ChangeEvent], None],
        pattern: str = DEFAULT_GUIDE_PATTERN,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    ) -> None:
        self._root = root
        self._on_change = on_change
        self._pattern = pattern
        self._debounce_ms = debounce_ms
        self._observer: PollingObserver | None = None
        self._handler: DebouncedHandler | None = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """Begin watching; raises WatcherError if the root is unusable."""
        if self._observer is not None:
            return
        if not self._root.is_dir():
            raise WatcherError(
                f"Guides directory does not exist: {self._root}",
                details={"path": str(self._root)},
            )

        handler = DebouncedHandler(self._on_change, self._pattern, self._debounce_ms)
        observer = PollingObserver(timeout=1.0)
        observer.schedule(handler, str(self._root), recursive=True)
        try:
            observer.start()
        except OSError as e:
            raise WatcherError(
                f"Failed to start file watcher: {e}",
                details={"path": str(self._root)},
            ) from e

        self._handler = handler
        self._observer = observer
        logger.info("Watching %s for %s changes", self._root, self._pattern)

    def stop(self) -> None:
        observer, handler = self._observer, self._handler
        self._observer = self._handler = None
        if handler is not None:
            handler.cancel_pending()
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)

    def get_stats(self) -> dict[str, int | bool | str]:
        return {
            "running": self.is_running,
            "root": str(self._root),
            "pattern": self._pattern,
            "debounce_ms": self._debounce_ms,
            "pending_events": self._handler.pending_count if self._handler else 0,
        }
