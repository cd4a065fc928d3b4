"""Layered configuration.

A config is a set of declared items plus a stack of facets. Loading a source
never changes a config: it returns a child config holding one more facet.
Reading a path merges the facets, newest first, with :func:`merge`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import (
    ItemReadException,
    PathNotFoundException,
    UnknownPathsException,
    WrongTypeException,
)
from .facet import Facet
from .filters import iter_hierarchical
from .item import REQUIRED, Item, Spec
from .merge import merge_all
from .path import Path, is_prefix, name, to_path
from .source import Source, TreeSource
from .types import Feature, ProvenanceRecord

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class _Layer:
    """Immutable link of the facet chain."""

    __slots__ = ("facet", "below")

    def __init__(self, facet: Facet, below: Optional[_Layer]):
        self.facet = facet
        self.below = below


def read_value(source: Source, type: Any = None) -> Any:
    """Read ``source`` as a Python ``type``.

    ``str``, ``bool``, ``int`` and ``float`` map to the matching accessor,
    ``list`` and ``dict`` unwrap the container, ``None`` and ``Any`` unwrap
    whatever the source holds. Any other type is called with the text (or
    unwrapped value) of the source.
    """
    if type is None or type is Any:
        return source.to_value()
    if type is Source:
        return source
    if type is str:
        return source.to_text()
    if type is bool:
        return source.to_boolean()
    if type is int:
        return source.to_long()
    if type is float:
        return source.to_double()
    if type is list:
        return [child.to_value() for child in source.to_list()]
    if type is dict:
        return {key: child.to_value() for key, child in source.to_map().items()}
    if source.is_text():
        return type(source.to_text())
    return type(source.to_value())


class Config:
    """Configuration built from a stack of facets.

    Args:
        specs: Specs or items declaring the expected values.
        features: Initial feature switches.
    """

    def __init__(
        self,
        specs: Iterable[Union[Spec, Item]] = (),
        features: Optional[Mapping[Feature, bool]] = None,
    ):
        self._items: Dict[Path, Item] = {}
        self._features: Dict[Feature, bool] = dict(features or {})
        self._top: Optional[_Layer] = None
        for spec in specs:
            self.add_spec(spec)

    def _derive(self, top: Optional[_Layer]) -> Config:
        child = Config.__new__(Config)
        child._items = dict(self._items)
        child._features = dict(self._features)
        child._top = top
        return child

    # schema and features

    def add_spec(self, spec: Union[Spec, Item]) -> None:
        """Declare the items of ``spec`` on this config.

        Children created afterwards inherit them; existing children do not.
        """
        items = [spec] if isinstance(spec, Item) else list(spec)
        for item in items:
            self._items[item.path] = item

    @property
    def items(self) -> List[Item]:
        return list(self._items.values())

    def enable(self, feature: Feature) -> Config:
        self._features[feature] = True
        return self

    def disable(self, feature: Feature) -> Config:
        self._features[feature] = False
        return self

    def is_enabled(self, feature: Feature) -> bool:
        return self._features.get(feature, feature.default)

    # layering

    @property
    def facets(self) -> Tuple[Facet, ...]:
        """Facets from the oldest to the newest."""
        facets: List[Facet] = []
        layer = self._top
        while layer is not None:
            facets.append(layer.facet)
            layer = layer.below
        return tuple(reversed(facets))

    @property
    def facet(self) -> Optional[Facet]:
        """The newest facet, None for a root config."""
        return self._top.facet if self._top is not None else None

    @property
    def parent(self) -> Optional[Config]:
        """The config this one was derived from, None for a root config."""
        if self._top is None:
            return None
        return self._derive(self._top.below)

    def with_source(self, source: Source, name: Optional[str] = None) -> Config:
        """Return a child config with ``source`` on top of this one's facets."""
        return self.with_facet(Facet(source, name))

    def with_facet(self, facet: Facet) -> Config:
        """Return a child config with ``facet`` on top of this one's facets.

        Raises:
            UnknownPathsException: If unknown paths are rejected and the
                facet holds paths no declared item covers.
        """
        self._check_unknown_paths(facet.current)
        logger.debug("pushing facet %r", facet.name)
        return self._derive(_Layer(facet, self._top))

    def remove_source(self, name: str) -> Config:
        """Return a config without the facets named ``name``."""
        remaining = [facet for facet in self.facets if facet.name != name]
        top: Optional[_Layer] = None
        for facet in remaining:
            top = _Layer(facet, top)
        return self._derive(top)

    def _check_unknown_paths(self, source: Source) -> None:
        enabled = source.is_enabled(Feature.FAIL_ON_UNKNOWN_PATH)
        if enabled is None:
            enabled = self.is_enabled(Feature.FAIL_ON_UNKNOWN_PATH)
        if not enabled or not self._items:
            return
        root = source.get_or_none(())
        if root is None or not root.is_map():
            return
        unknown = [
            key
            for key, _ in iter_hierarchical(root.to_value())
            if not self._covered(to_path(key))
        ]
        if unknown:
            raise UnknownPathsException(source, unknown)

    def _covered(self, path: Path) -> bool:
        return any(is_prefix(item, path) or is_prefix(path, item) for item in self._items)

    # reading

    def _snapshot(self) -> List[Source]:
        """Current sources of every facet, newest first."""
        sources: List[Source] = []
        layer = self._top
        while layer is not None:
            root = layer.facet.current.get_or_none(())
            if root is not None:
                sources.append(root)
            layer = layer.below
        return sources

    @property
    def source(self) -> Source:
        """Merged view of every facet, as of now."""
        merged = merge_all(self._snapshot())
        if merged is None:
            return TreeSource({}, {"type": "empty"})
        return merged

    def contains(self, path: Union[str, Path, Item]) -> bool:
        if isinstance(path, Item):
            path = path.path
        return self.source.contains(path)

    def __contains__(self, path: Union[str, Path, Item]) -> bool:
        return self.contains(path)

    def get(
        self,
        key: Union[str, Path, Item],
        type: Any = _UNSET,
        default: Any = _UNSET,
    ) -> Any:
        """Read a value.

        Args:
            key: Dotted path, path tuple or declared item.
            type: Python type to read the value as; defaults to the declared
                item's type.
            default: Value returned when the path is absent; defaults to the
                declared item's default.

        Raises:
            PathNotFoundException: If the path is absent and there is no
                default.
            WrongTypeException: If the value cannot be read as ``type``.
            ItemReadException: Wraps either of the above when ``key`` is a
                declared item.
        """
        item = key if isinstance(key, Item) else self._items.get(to_path(key))
        path = item.path if item is not None else to_path(key)
        if item is not None:
            if type is _UNSET:
                type = item.type
            if default is _UNSET and item.default is not REQUIRED:
                default = item.default
        if type is _UNSET:
            type = None

        merged = self.source
        try:
            node = merged.get_or_none(path)
            if node is None:
                if default is not _UNSET:
                    return default
                raise PathNotFoundException(name(path), merged.description)
            return read_value(node, type)
        except (PathNotFoundException, WrongTypeException) as e:
            if item is None:
                raise
            raise ItemReadException(item, e) from e

    def __getitem__(self, key: Union[str, Path, Item]) -> Any:
        return self.get(key)

    def values(self) -> Dict[str, Any]:
        """Merged configuration as nested plain data."""
        return self.source.to_value()

    def flatten(self) -> Dict[str, Any]:
        """Merged configuration keyed by dotted path."""
        return dict(iter_hierarchical(self.values()))

    def provenance(self, path: Union[str, Path, Item]) -> Optional[ProvenanceRecord]:
        """Describe the newest facet supplying the value at ``path``."""
        if isinstance(path, Item):
            path = path.path
        path = to_path(path)
        if not self.source.contains(path):
            return None
        layer = self._top
        while layer is not None:
            facet = layer.facet
            if facet.current.contains(path):
                return ProvenanceRecord(
                    path=name(path),
                    facet=facet.name,
                    info=dict(facet.current.info),
                    timestamp_loaded=facet.loaded_at,
                )
            layer = layer.below
        return None

    # loaders, watches and writers

    @property
    def from_(self):
        """Loaders returning child configs of this one."""
        from .loader import DefaultLoaders

        return DefaultLoaders(self)

    def reload(self) -> None:
        """Poll every watched facet once, on the calling thread."""
        for facet in self.facets:
            watch = getattr(facet, "watch", None)
            if watch is not None:
                watch.poll()

    def cancel_watches(self) -> None:
        """Stop reloading every watched facet of this config."""
        for facet in self.facets:
            facet.cancel()

    def writer(self, extension: str):
        """Writer dumping the merged configuration in the format of ``extension``."""
        from .writer import Writer

        return Writer.of(self, extension)

    def __repr__(self) -> str:
        names = ", ".join(facet.name for facet in self.facets)
        return f"Config(facets=[{names}])"
