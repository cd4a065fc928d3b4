"""Facets: the layers a config is built from."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Optional

from .source import Source

logger = logging.getLogger(__name__)


def default_name(source: Source) -> str:
    info = source.info
    for key in ("file", "url", "resource", "repo"):
        if key in info:
            return info[key]
    return info.get("type", "source")


class Facet:
    """An immutable layer holding one source.

    Attributes:
        name: Name used to address the facet, e.g. in ``remove_source``.
        loaded_at: When the current content was loaded.
    """

    watched = False

    def __init__(self, source: Source, name: Optional[str] = None):
        self._source = source
        self._name = name or default_name(source)
        self.loaded_at = datetime.now()

    @property
    def name(self) -> str:
        return self._name

    @property
    def current(self) -> Source:
        return self._source

    def cancel(self) -> None:
        """Stop reloading this facet. Plain facets never reload."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


class WatchedFacet(Facet):
    """Facet whose source is replaced in place when its origin changes.

    The slot is swapped under a lock; readers read the reference once per
    query so they see either the old or the new source in full.
    """

    watched = True

    def __init__(self, source: Source, name: Optional[str] = None):
        super().__init__(source, name)
        self._lock = threading.Lock()
        self._watch = None

    def replace(self, source: Source) -> Source:
        """Install ``source`` and return the previous one."""
        with self._lock:
            previous, self._source = self._source, source
            self.loaded_at = datetime.now()
        logger.debug("replaced content of facet %r", self.name)
        return previous

    def compare_and_set(self, expected: Source, source: Source) -> bool:
        """Install ``source`` only if ``expected`` is still current."""
        with self._lock:
            if self._source is not expected:
                return False
            self._source = source
            self.loaded_at = datetime.now()
        logger.debug("replaced content of facet %r", self.name)
        return True

    def bind(self, watch) -> None:
        self._watch = watch

    @property
    def watch(self):
        return self._watch

    def cancel(self) -> None:
        if self._watch is not None:
            self._watch.cancel()
