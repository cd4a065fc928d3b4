"""Source tree model shared by every configuration format.

A source is an immutable node holding one of four kinds of value: null, a
scalar (text, boolean, integer or float), a list of sources or a map from
string keys to sources. Providers build trees from parsed data; configs read
values out of them by path.

Every node carries provenance metadata (``info``) describing where it came
from. The metadata is only used to build error messages.
"""

from __future__ import annotations

import datetime
import logging
import sys
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ParseException, PathNotFoundException, WrongTypeException
from .path import Path, PathLike, name, to_path
from .types import Feature, describe, features_with

logger = logging.getLogger(__name__)

INT_RANGE = (-(2**31), 2**31)
LONG_RANGE = (-(2**63), 2**63)

_TRUE = "true"
_FALSE = "false"


def _in_range(value: int, bounds: Tuple[int, int]) -> bool:
    return bounds[0] <= value < bounds[1]


class Source:
    """Polymorphic configuration node.

    Subclasses implement :meth:`get_or_none`, the kind predicates and the
    kind accessors. Everything else (path lookup, scoping, prefixing,
    feature gating and unwrapping) is shared.
    """

    def __init__(
        self,
        info: Optional[Mapping[str, str]] = None,
        features: Optional[Mapping[Feature, bool]] = None,
    ):
        self._info = MappingProxyType(dict(info or {}))
        self._features = MappingProxyType(dict(features or {}))

    @property
    def info(self) -> Mapping[str, str]:
        """Provenance metadata of this node."""
        return self._info

    @property
    def features(self) -> Mapping[Feature, bool]:
        """Feature flags attached with :meth:`enabled` or :meth:`disabled`."""
        return self._features

    @property
    def description(self) -> str:
        return describe(self.info)

    @property
    def kind_name(self) -> str:
        """Human readable name of the kind held by this node."""
        if self.is_null():
            return "Null"
        if self.is_map():
            return "Map"
        if self.is_list():
            return "List"
        if self.is_text():
            return "Text"
        if self.is_boolean():
            return "Boolean"
        if self.is_int():
            return "Int"
        if self.is_long():
            return "Long"
        if self.is_double():
            return "Double"
        return "Unknown"

    # path access

    def get_or_none(self, path: PathLike) -> Optional[Source]:
        raise NotImplementedError

    def contains(self, path: PathLike) -> bool:
        return self.get_or_none(path) is not None

    def get(self, path: PathLike) -> Source:
        """Return the node at ``path``.

        Raises:
            PathNotFoundException: If no node exists at ``path``.
        """
        source = self.get_or_none(path)
        if source is None:
            raise PathNotFoundException(name(to_path(path)), self.description)
        return source

    def __contains__(self, path: PathLike) -> bool:
        return self.contains(path)

    def __getitem__(self, path: PathLike) -> Source:
        return self.scoped(path)

    # kind predicates

    def is_null(self) -> bool:
        return False

    def is_list(self) -> bool:
        return False

    def is_map(self) -> bool:
        return False

    def is_text(self) -> bool:
        return False

    def is_boolean(self) -> bool:
        return False

    def is_long(self) -> bool:
        return False

    def is_int(self) -> bool:
        return False

    def is_double(self) -> bool:
        return False

    # kind accessors

    def _wrong_type(self, expected: str) -> WrongTypeException:
        return WrongTypeException(self, self.kind_name, expected)

    def to_list(self) -> List[Source]:
        raise self._wrong_type("List")

    def to_map(self) -> Dict[str, Source]:
        raise self._wrong_type("Map")

    def to_text(self) -> str:
        raise self._wrong_type("Text")

    def to_boolean(self) -> bool:
        raise self._wrong_type("Boolean")

    def to_long(self) -> int:
        raise self._wrong_type("Long")

    def to_int(self) -> int:
        raise self._wrong_type("Int")

    def to_double(self) -> float:
        raise self._wrong_type("Double")

    def to_value(self) -> Any:
        """Unwrap this node into plain Python data."""
        if self.is_null():
            return None
        if self.is_map():
            return {key: child.to_value() for key, child in self.to_map().items()}
        if self.is_text():
            return self.to_text()
        if self.is_boolean():
            return self.to_boolean()
        if self.is_long():
            return self.to_long()
        if self.is_double():
            return self.to_double()
        if self.is_list():
            return [child.to_value() for child in self.to_list()]
        raise self._wrong_type("Value")

    # derived sources

    def with_prefix(self, prefix: PathLike) -> Source:
        """Return a view where ``prefix.rest`` resolves ``rest`` in this source."""
        prefix = to_path(prefix)
        if not prefix:
            return self
        return PrefixedSource(self, prefix)

    def scoped(self, path: PathLike) -> Source:
        """Return the subtree rooted at ``path``.

        Resolution is lazy: a missing path only fails once the scoped source
        is queried.
        """
        path = to_path(path)
        if not path:
            return FeaturedSource(self, {})
        return ScopedSource(self, path)

    def enabled(self, feature: Feature) -> Source:
        return FeaturedSource(self, features_with(self.features, feature, True))

    def disabled(self, feature: Feature) -> Source:
        return FeaturedSource(self, features_with(self.features, feature, False))

    def is_enabled(self, feature: Feature, default: Optional[bool] = None) -> Optional[bool]:
        return self.features.get(feature, default)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.kind_name}, {self.description})"


class TreeSource(Source):
    """Source over already parsed Python data.

    Args:
        value: ``None``, ``str``, ``bool``, ``int``, ``float``, a list or a
            mapping of those.
        context: Provenance metadata of the tree this node belongs to.
        trail: Optional ``(key, description)`` entry locating this node
            inside its parent.
        features: Feature flags.
    """

    def __init__(
        self,
        value: Any,
        context: Optional[Mapping[str, str]] = None,
        trail: Optional[Tuple[str, str]] = None,
        features: Optional[Mapping[Feature, bool]] = None,
    ):
        self._context = dict(context or {})
        info = dict(self._context)
        if trail is not None:
            info[trail[0]] = trail[1]
        super().__init__(info, features)
        # children share the already normalised tree of their root
        self._value = value if trail is not None else self._normalize(value)

    def _normalize(self, value: Any) -> Any:
        if value is None or isinstance(value, (str, bool, int, float)):
            return value
        if isinstance(value, (datetime.date, datetime.time)):
            return value.isoformat()
        if isinstance(value, Mapping):
            # YAML allows non-string keys
            return {str(key): self._normalize(child) for key, child in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._normalize(child) for child in value]
        raise ParseException(
            f"value {value!r} with type {type(value).__name__} is not supported"
            f" in source {describe(self._context)}"
        )

    def _child(self, value: Any, trail_key: str) -> TreeSource:
        return self.__class__(
            value,
            context=self._context,
            trail=(trail_key, self.description),
            features=self.features,
        )

    def get_or_none(self, path: PathLike) -> Optional[Source]:
        node: Source = self
        for segment in to_path(path):
            if not node.is_map():
                return None
            child = node._value.get(segment, _MISSING)  # type: ignore[attr-defined]
            if child is _MISSING:
                return None
            node = node._child(child, "inMap")  # type: ignore[attr-defined]
        return node

    def is_null(self) -> bool:
        return self._value is None

    def is_list(self) -> bool:
        return isinstance(self._value, list)

    def is_map(self) -> bool:
        return isinstance(self._value, dict)

    def is_text(self) -> bool:
        return isinstance(self._value, str)

    def is_boolean(self) -> bool:
        return isinstance(self._value, bool)

    def _is_integral(self) -> bool:
        return isinstance(self._value, int) and not isinstance(self._value, bool)

    def is_int(self) -> bool:
        return self._is_integral() and _in_range(self._value, INT_RANGE)

    def is_long(self) -> bool:
        return self._is_integral() and _in_range(self._value, LONG_RANGE)

    def is_double(self) -> bool:
        if self._is_integral():
            return -sys.float_info.max <= self._value <= sys.float_info.max
        return isinstance(self._value, float)

    @property
    def kind_name(self) -> str:
        if self._is_integral() and not self.is_long():
            return "BigInteger"
        return super().kind_name

    def to_list(self) -> List[Source]:
        if not self.is_list():
            raise self._wrong_type("List")
        return [self._child(value, "inList") for value in self._value]

    def to_map(self) -> Dict[str, Source]:
        if not self.is_map():
            raise self._wrong_type("Map")
        return {key: self._child(value, "inMap") for key, value in self._value.items()}

    def to_text(self) -> str:
        if not self.is_text():
            raise self._wrong_type("Text")
        return self._value

    def to_boolean(self) -> bool:
        if not self.is_boolean():
            raise self._wrong_type("Boolean")
        return self._value

    def to_int(self) -> int:
        if not self.is_int():
            raise self._wrong_type("Int")
        return self._value

    def to_long(self) -> int:
        if not self.is_long():
            raise self._wrong_type("Long")
        return self._value

    def to_double(self) -> float:
        if not self.is_double():
            raise self._wrong_type("Double")
        return float(self._value)

    def to_value(self) -> Any:
        if isinstance(self._value, dict):
            return {key: child.to_value() for key, child in self.to_map().items()}
        if isinstance(self._value, list):
            return [child.to_value() for child in self.to_list()]
        return self._value


class FlatSource(TreeSource):
    """Tree source whose text leaves are read leniently.

    Flat formats (properties, environment variables, key/value stores) only
    carry text, so a text leaf also answers as a boolean, a number, or a
    comma separated list when its content parses as one.
    """

    def _parsed_int(self) -> Optional[int]:
        if not isinstance(self._value, str):
            return None
        try:
            return int(self._value.strip())
        except ValueError:
            return None

    def _parsed_float(self) -> Optional[float]:
        if not isinstance(self._value, str):
            return None
        try:
            return float(self._value.strip())
        except ValueError:
            return None

    def is_list(self) -> bool:
        return super().is_list() or self.is_text()

    def is_boolean(self) -> bool:
        if self.is_text():
            return self._value.strip().lower() in (_TRUE, _FALSE)
        return super().is_boolean()

    def is_int(self) -> bool:
        parsed = self._parsed_int()
        if parsed is not None:
            return _in_range(parsed, INT_RANGE)
        return super().is_int()

    def is_long(self) -> bool:
        parsed = self._parsed_int()
        if parsed is not None:
            return _in_range(parsed, LONG_RANGE)
        return super().is_long()

    def is_double(self) -> bool:
        return self._parsed_float() is not None or super().is_double()

    @property
    def kind_name(self) -> str:
        if self.is_text():
            return "Text"
        return super().kind_name

    def to_list(self) -> List[Source]:
        if self.is_text():
            items = [item.strip() for item in self._value.split(",")]
            return [self._child(item, "inList") for item in items if item]
        return super().to_list()

    def to_boolean(self) -> bool:
        if self.is_text():
            if not self.is_boolean():
                raise self._wrong_type("Boolean")
            return self._value.strip().lower() == _TRUE
        return super().to_boolean()

    def to_int(self) -> int:
        if self.is_text():
            if not self.is_int():
                raise self._wrong_type("Int")
            return self._parsed_int()  # type: ignore[return-value]
        return super().to_int()

    def to_long(self) -> int:
        if self.is_text():
            if not self.is_long():
                raise self._wrong_type("Long")
            return self._parsed_int()  # type: ignore[return-value]
        return super().to_long()

    def to_double(self) -> float:
        if self.is_text():
            parsed = self._parsed_float()
            if parsed is None:
                raise self._wrong_type("Double")
            return parsed
        return super().to_double()


class PrefixedSource(Source):
    """Map view placing ``source`` under a chain of synthetic keys."""

    def __init__(self, source: Source, prefix: Path):
        super().__init__(source.info, source.features)
        self._source = source
        self._prefix = prefix

    @property
    def prefix(self) -> Path:
        return self._prefix

    def get_or_none(self, path: PathLike) -> Optional[Source]:
        path = to_path(path)
        size = len(self._prefix)
        if len(path) >= size:
            if path[:size] != self._prefix:
                return None
            return self._source.get_or_none(path[size:])
        if self._prefix[: len(path)] != path or self._missing():
            return None
        return self._source.with_prefix(self._prefix[len(path):])

    def _missing(self) -> bool:
        # a scope that does not resolve leaves nothing to nest
        return self._source.get_or_none(()) is None

    def is_map(self) -> bool:
        return True

    def to_map(self) -> Dict[str, Source]:
        if self._missing():
            return {}
        return {self._prefix[0]: self._source.with_prefix(self._prefix[1:])}


class _DelegatingSource(Source):
    """Source forwarding every query to a resolved target."""

    def _target(self) -> Source:
        raise NotImplementedError

    @property
    def info(self) -> Mapping[str, str]:
        return self._target().info

    @property
    def kind_name(self) -> str:
        return self._target().kind_name

    def get_or_none(self, path: PathLike) -> Optional[Source]:
        return self._target().get_or_none(path)

    def is_null(self) -> bool:
        return self._target().is_null()

    def is_list(self) -> bool:
        return self._target().is_list()

    def is_map(self) -> bool:
        return self._target().is_map()

    def is_text(self) -> bool:
        return self._target().is_text()

    def is_boolean(self) -> bool:
        return self._target().is_boolean()

    def is_long(self) -> bool:
        return self._target().is_long()

    def is_int(self) -> bool:
        return self._target().is_int()

    def is_double(self) -> bool:
        return self._target().is_double()

    def to_list(self) -> List[Source]:
        return self._target().to_list()

    def to_map(self) -> Dict[str, Source]:
        return self._target().to_map()

    def to_text(self) -> str:
        return self._target().to_text()

    def to_boolean(self) -> bool:
        return self._target().to_boolean()

    def to_long(self) -> int:
        return self._target().to_long()

    def to_int(self) -> int:
        return self._target().to_int()

    def to_double(self) -> float:
        return self._target().to_double()

    def to_value(self) -> Any:
        return self._target().to_value()


class ScopedSource(_DelegatingSource):
    """Lazily resolved subtree of another source."""

    def __init__(self, source: Source, path: Path):
        super().__init__(source.info, source.features)
        self._source = source
        self._path = path

    @property
    def info(self) -> Mapping[str, str]:
        # falls back to the parent's info so a missing scope can still be described
        target = self._source.get_or_none(self._path)
        return target.info if target is not None else self._source.info

    @property
    def description(self) -> str:
        return f"{self._source.description} scoped in '{name(self._path)}'"

    def _target(self) -> Source:
        return self._source.get(self._path)

    def get_or_none(self, path: PathLike) -> Optional[Source]:
        target = self._source.get_or_none(self._path)
        if target is None:
            return None
        return target.get_or_none(path)


class FeaturedSource(_DelegatingSource):
    """View of another source with a different set of feature flags."""

    def __init__(self, source: Source, features: Mapping[Feature, bool]):
        super().__init__(source.info, {**source.features, **features})
        self._source = source

    def _target(self) -> Source:
        return self._source


class _Missing:
    __slots__ = ()


_MISSING = _Missing()


def tree_from_flat(mapping: Mapping[str, Any], separator: str = ".") -> Dict[str, Any]:
    """Build nested data from a mapping with separated keys.

    A key that is both a leaf and a branch keeps the branch.
    """
    tree: Dict[str, Any] = {}
    for key, value in mapping.items():
        segments = str(key).split(separator)
        if any(segment == "" for segment in segments):
            logger.debug("skipping key with empty segment: %r", key)
            continue
        node = tree
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                if child is not None:
                    logger.debug("key %r shadows leaf %r", key, segment)
                child = node[segment] = {}
            node = child
        leaf = segments[-1]
        if isinstance(node.get(leaf), dict):
            logger.debug("dropping %r, it is also a branch", key)
            continue
        node[leaf] = value
    return tree
