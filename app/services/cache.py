"""In-process cache for the validated homepage content.

One :class:`ContentCache` is created per process (see ``app.main``) and owns
the only parsed copy of the content file.

Load coalescing
---------------
At most one load runs at a time.  The running load is a single
:class:`asyncio.Task`; every ``get()`` or ``reload()`` issued while it runs
awaits that same task, so N concurrent callers cause exactly one read of the
content file and all observe the same snapshot or the same error.  Callers
await through :func:`asyncio.shield`: a caller that gives up (request
timeout, client disconnect) never cancels the shared load.

Failures
--------
A failed load leaves the previous snapshot in place.  The error reaches the
callers of that load only; later ``get()`` calls keep serving the old data.
"""

import asyncio
import datetime as dt
import json
import logging
import time
from enum import Enum
from typing import Callable, NamedTuple, Optional

from app.errors import AppError, parse_error, source_read_error
from app.models.content import HomepageContent
from app.models.response import CacheMetrics
from app.services.normalizer import normalize
from app.services.source import ContentSource
from app.services.watcher import ChangeNotifier

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class Snapshot(NamedTuple):
    data: Optional[HomepageContent]
    loaded_at: float  # epoch seconds, 0 when never loaded


_EMPTY = Snapshot(data=None, loaded_at=0.0)


class ContentCache:
    """Single-flight cache around a :class:`ContentSource`.

    Args:
        source:      Where the raw JSON is read from.
        ttl_seconds: Age after which ``get()`` refreshes the snapshot.
                     ``None`` keeps it until the next explicit reload.
        clock:       Wall-clock used for ``loaded_at`` and TTL checks.
    """

    def __init__(
        self,
        source: ContentSource,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._ttl = ttl_seconds
        self._clock = clock
        self._snapshot = _EMPTY
        self._state = CacheState.IDLE
        self._inflight: Optional["asyncio.Task[Snapshot]"] = None
        self._metrics = CacheMetrics()
        self._notifier: Optional[ChangeNotifier] = None

    # ── lifecycle ────────────────────────────────────────────────────────────

    async def init(self, notifier: Optional[ChangeNotifier] = None) -> None:
        """Load the content eagerly and subscribe to change notifications.

        A failed first load is logged, not raised: the next ``get()`` retries.
        """
        if notifier is not None:
            if notifier.start(self._on_source_change):
                self._notifier = notifier
            else:
                logger.warning(
                    "Change notifications unavailable – content refreshes only on "
                    "lazy loads and explicit reloads"
                )
        try:
            await self.reload()
        except AppError as exc:
            logger.warning("Starting without homepage content: %s", exc.message)

    async def shutdown(self) -> None:
        """Stop the change notifier and wait for a running load to settle."""
        if self._notifier is not None:
            self._notifier.stop()
            self._notifier = None
        if self._inflight is not None:
            await asyncio.wait([self._inflight])

    # ── public API ───────────────────────────────────────────────────────────

    @property
    def state(self) -> CacheState:
        if self._inflight is not None:
            return CacheState.LOADING
        return self._state

    @property
    def snapshot(self) -> Snapshot:
        """Current snapshot, without triggering a load or touching the metrics."""
        return self._snapshot

    async def get(self) -> Snapshot:
        """Return the current snapshot, loading it first if needed.

        Raises:
            AppError: when no snapshot exists yet and the load fails.
        """
        snapshot = self._snapshot
        if snapshot.data is not None and not self._is_stale(snapshot):
            self._metrics.hits += 1
            return snapshot

        self._metrics.misses += 1
        if snapshot.data is None:
            return await self._join(self._start_load())

        try:
            return await self._join(self._start_load())
        except AppError as exc:
            logger.warning("Refresh failed, serving stale content: %s", exc.message)
            return self._snapshot

    async def reload(self) -> Snapshot:
        """Load the content now, or join the load already in progress.

        Raises:
            AppError: kind ``"source_read"`` or ``"parse"`` when the load fails.
        """
        return await self._join(self._start_load())

    def get_metrics(self) -> CacheMetrics:
        return self._metrics.model_copy()

    # ── internals ────────────────────────────────────────────────────────────

    def _is_stale(self, snapshot: Snapshot) -> bool:
        if self._ttl is None:
            return False
        return self._clock() - snapshot.loaded_at >= self._ttl

    def _start_load(self) -> "asyncio.Task[Snapshot]":
        if self._inflight is None:
            task = asyncio.get_running_loop().create_task(self._load())
            task.add_done_callback(self._on_load_done)
            self._inflight = task
        return self._inflight

    async def _join(self, task: "asyncio.Task[Snapshot]") -> Snapshot:
        return await asyncio.shield(task)

    def _on_load_done(self, task: "asyncio.Task[Snapshot]") -> None:
        if self._inflight is task:
            self._inflight = None
        # Retrieve the error so an unawaited failed load does not warn at GC;
        # it has already been logged by _load.
        if not task.cancelled():
            task.exception()

    def _on_source_change(self) -> None:
        logger.info("Content file changed – reloading")
        self._start_load()

    async def _load(self) -> Snapshot:
        started = time.perf_counter()
        self._metrics.loads += 1
        try:
            try:
                raw = await self._source.read_text()
            except OSError as exc:
                raise source_read_error(f"Could not read content: {exc}") from exc
            try:
                parsed = json.loads(raw)
            except ValueError as exc:
                raise parse_error(f"Content is not valid JSON: {exc}") from exc
            content, diagnostics = normalize(parsed)
        except AppError as exc:
            self._state = CacheState.FAILED
            logger.error("Homepage content load failed: %s", exc.message)
            raise
        finally:
            self._metrics.last_load_ms = round((time.perf_counter() - started) * 1000, 3)
            self._metrics.last_load_at = dt.datetime.now(dt.timezone.utc).isoformat()

        for diagnostic in diagnostics:
            logger.warning("Content validation: %s – %s", diagnostic.path, diagnostic.message)

        self._snapshot = Snapshot(data=content, loaded_at=self._clock())
        self._state = CacheState.READY
        logger.info(
            "Homepage content loaded",
            extra={"formations": len(content.formations), "warnings": len(diagnostics)},
        )
        return self._snapshot
