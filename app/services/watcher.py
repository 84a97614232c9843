"""Content-file change notifications.

The cache only needs a "something changed, reload now" callback.  Anything
implementing :class:`ChangeNotifier` can provide it; :class:`WatchdogNotifier`
does so with a watchdog :class:`~watchdog.observers.Observer`.

Watchdog delivers events on its own thread.  Each relevant event is handed to
the event loop with ``call_soon_threadsafe`` and (re)arms a ``call_later``
timer, so an editor's burst of writes produces a single callback once the
file has been quiet for ``debounce_seconds``.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

OnChange = Callable[[], None]

# Event types that can change what a reader of the file would see
_RELEVANT_EVENTS = {"modified", "created", "moved"}


class ChangeNotifier(Protocol):
    def start(self, on_change: OnChange) -> bool:
        """Begin delivering change callbacks; return False when unavailable."""
        ...

    def stop(self) -> None: ...


def _as_str(path) -> str:
    return path.decode() if isinstance(path, bytes) else str(path)


class _ContentFileHandler(FileSystemEventHandler):
    """Forwards events that touch one specific file."""

    def __init__(self, path: Path, notify: Callable[[], None]) -> None:
        super().__init__()
        self._path = path
        self._notify = notify

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _RELEVANT_EVENTS:
            return
        # Editors often save by writing a temp file and renaming it over the target
        targets = {event.src_path, getattr(event, "dest_path", "")}
        if any(t and Path(_as_str(t)).resolve() == self._path for t in targets):
            self._notify()


class WatchdogNotifier:
    """Debounced change notifications for a single file."""

    def __init__(self, path: Path, debounce_seconds: float = 0.2) -> None:
        self.path = Path(path).resolve()
        self.debounce_seconds = debounce_seconds
        self._observer: Optional[Observer] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._on_change: Optional[OnChange] = None

    def start(self, on_change: OnChange) -> bool:
        """Start watching; must be called from the event loop that receives callbacks."""
        self._loop = asyncio.get_running_loop()
        self._on_change = on_change

        directory = self.path.parent
        if not directory.is_dir():
            logger.warning("Cannot watch %s: directory %s does not exist", self.path, directory)
            return False

        observer = Observer()
        try:
            observer.schedule(_ContentFileHandler(self.path, self.notify), str(directory))
            observer.start()
        except OSError as exc:
            logger.warning("File watching unavailable for %s: %s", self.path, exc)
            return False

        self._observer = observer
        logger.info("Watching %s for changes", self.path)
        return True

    def stop(self) -> None:
        # An _arm_timer already queued by the observer thread must become a no-op
        self._on_change = None
        self._loop = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
            logger.info("Stopped watching %s", self.path)

    def notify(self) -> None:
        """Record a change; safe to call from any thread."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._arm_timer)

    def _arm_timer(self) -> None:
        if self._on_change is None or self._loop is None:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self.debounce_seconds, self._fire)

    def _fire(self) -> None:
        self._timer = None
        if self._on_change is not None:
            self._on_change()
