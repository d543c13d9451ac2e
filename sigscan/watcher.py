"""Change notifications and the single-threaded loop that applies them."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .logging import get_logger, log_exception
from .models import ProjectSnapshot
from .scanner import ProjectScanner


class ChangeKind(str, Enum):
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"
    ERROR = "error"


@dataclass(frozen=True)
class ChangeEvent:
    """One filesystem notification; `reason` is only set for errors."""

    kind: ChangeKind
    path: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def added(cls, path: str) -> "ChangeEvent":
        return cls(ChangeKind.ADDED, path=path)

    @classmethod
    def changed(cls, path: str) -> "ChangeEvent":
        return cls(ChangeKind.CHANGED, path=path)

    @classmethod
    def removed(cls, path: str) -> "ChangeEvent":
        return cls(ChangeKind.REMOVED, path=path)

    @classmethod
    def error(cls, reason: str) -> "ChangeEvent":
        return cls(ChangeKind.ERROR, reason=reason)


class PollingWatcher:
    """Produces change events by comparing source file mtimes between polls."""

    def __init__(self, scanner: ProjectScanner, snapshot: ProjectSnapshot) -> None:
        self._scanner = scanner
        self._snapshot = snapshot
        self._mtimes: Dict[str, int] = {}
        self.logger = get_logger("watcher")

    def prime(self) -> None:
        """Record the current state without emitting events."""
        self._mtimes = self._current()

    def poll(self) -> List[ChangeEvent]:
        try:
            current = self._current()
        except OSError as exc:
            return [ChangeEvent.error(f"Polling failed: {exc}")]

        events: List[ChangeEvent] = []
        for path, mtime in current.items():
            previous = self._mtimes.get(path)
            if previous is None:
                events.append(ChangeEvent.added(path))
            elif previous != mtime:
                events.append(ChangeEvent.changed(path))
        for path in self._mtimes:
            if path not in current:
                events.append(ChangeEvent.removed(path))
        self._mtimes = current
        return events

    def run(
        self,
        sink: Callable[[ChangeEvent], None],
        stop: threading.Event,
        interval: float,
    ) -> None:
        """Poll until `stop` is set, handing each event to `sink`."""
        self.logger.info("Watching for changes every %.1fs", interval)
        while not stop.wait(interval):
            for event in self.poll():
                sink(event)

    def _current(self) -> Dict[str, int]:
        mtimes: Dict[str, int] = {}
        for path in self._scanner.iter_source_files(self._snapshot):
            try:
                mtimes[str(path)] = path.stat().st_mtime_ns
            except FileNotFoundError:
                continue
        return mtimes


class UpdateLoop:
    """Feeds events to `handler` from one worker thread, strictly one at a time."""

    def __init__(self, handler: Callable[[ChangeEvent], object]) -> None:
        self._handler = handler
        self._queue: "queue.Queue[Optional[ChangeEvent]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self.logger = get_logger("watcher")

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="sigscan-updates", daemon=True)
        self._thread.start()

    def submit(self, event: ChangeEvent) -> None:
        self._queue.put(event)

    def wait_idle(self) -> None:
        """Block until every submitted event has been processed."""
        self._queue.join()

    def stop(self, timeout: float | None = None) -> None:
        if self._thread is None:
            return
        self._queue.put(None)
        self._thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is None:
                    return
                self._handler(event)
            except Exception as exc:  # pragma: no cover - handler failure
                log_exception(self.logger, f"Failed to process {event}", exc)
            finally:
                self._queue.task_done()


__all__ = ["ChangeEvent", "ChangeKind", "PollingWatcher", "UpdateLoop"]
