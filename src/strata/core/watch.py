"""Periodic reloading of watched facets.

A watch re-fetches the raw content behind a facet on a fixed period. When
the content changed it is parsed again and swapped into the facet. A failed
fetch or parse is logged (and passed to an optional error callback) and
leaves the previous content in place.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from typing import Any, Callable, Mapping, Optional, Protocol

from .facet import WatchedFacet
from .source import Source

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = 5.0

ErrorHandler = Callable[[Exception], None]


class Cancellable(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Runs an action every ``period`` seconds until cancelled."""

    def schedule(self, action: Callable[[], Any], period: float) -> Cancellable:
        ...


class PeriodicTask:
    """Daemon thread running ``action`` every ``period`` seconds."""

    def __init__(self, action: Callable[[], Any], period: float, name: Optional[str] = None):
        self._action = action
        self._period = period
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self._period):
            self._action()

    def cancel(self) -> None:
        self._stopped.set()

    @property
    def cancelled(self) -> bool:
        return self._stopped.is_set()


class ThreadScheduler:
    """Scheduler giving every task its own daemon thread."""

    def schedule(self, action: Callable[[], Any], period: float) -> PeriodicTask:
        task = PeriodicTask(action, period, name=f"strata-watch-{id(action):x}")
        task.start()
        return task


default_scheduler = ThreadScheduler()


def digest_of(content: Any) -> Optional[str]:
    """Fingerprint of fetched content, None if it cannot be fingerprinted."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    if isinstance(content, bytes):
        return hashlib.sha256(content).hexdigest()
    if isinstance(content, Mapping):
        return hashlib.sha256(repr(sorted(content.items())).encode("utf-8")).hexdigest()
    return None


class Watch:
    """Binds a watched facet to a poll loop.

    Args:
        facet: Facet whose content is replaced.
        fetch: Returns the raw content of the origin.
        build: Turns raw content into a source.
        period: Seconds between two polls.
        scheduler: Scheduler running the poll loop.
        on_error: Called with the exception of a failed poll.
        digest: Fingerprint of the content currently held by ``facet``.
    """

    def __init__(
        self,
        facet: WatchedFacet,
        fetch: Callable[[], Any],
        build: Callable[[Any], Source],
        period: float = DEFAULT_PERIOD,
        scheduler: Optional[Scheduler] = None,
        on_error: Optional[ErrorHandler] = None,
        digest: Optional[str] = None,
    ):
        self.facet = facet
        self.period = period
        self._fetch = fetch
        self._build = build
        self._scheduler = scheduler or default_scheduler
        self._on_error = on_error
        self._digest = digest
        self._task: Optional[Cancellable] = None
        self._cancelled = False

    def start(self) -> Watch:
        self._task = self._scheduler.schedule(self.poll, self.period)
        return self

    def poll(self) -> bool:
        """Run one poll iteration.

        Returns:
            True if the facet content was replaced.
        """
        if self._cancelled:
            return False
        try:
            content = self._fetch()
            digest = digest_of(content)
            if digest is not None and digest == self._digest:
                return False
            source = self._build(content)
        except Exception as e:
            logger.warning("failed to reload facet %r: %s", self.facet.name, e)
            if self._on_error is not None:
                self._on_error(e)
            return False
        self.facet.replace(source)
        self._digest = digest
        return True

    def cancel(self) -> None:
        """Stop future polls."""
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def watched_facet(
    fetch: Callable[[], Any],
    build: Callable[[Any], Source],
    period: float = DEFAULT_PERIOD,
    scheduler: Optional[Scheduler] = None,
    on_error: Optional[ErrorHandler] = None,
    name: Optional[str] = None,
) -> WatchedFacet:
    """Load a facet and start watching its origin.

    The initial fetch and build run on the calling thread and their errors
    propagate; only later polls are fail-safe.
    """
    content = fetch()
    facet = WatchedFacet(build(content), name)
    watch = Watch(facet, fetch, build, period, scheduler, on_error, digest_of(content))
    facet.bind(watch)
    watch.start()
    return facet
