"""Filtering of configuration paths."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Pattern, Tuple

from .source import Source, TreeSource, tree_from_flat


@dataclass(frozen=True)
class Filter:
    """Filter keeping a subset of the leaf paths of a source.

    Attributes:
        include_regex: Regular expression a dotted leaf path must match.
        hierarchical_spec: Nested mapping naming the branches to keep.
        depth: Maximum depth for hierarchical flattening.
    """

    include_regex: Optional[Pattern[str]] = None
    hierarchical_spec: Optional[Dict[str, Any]] = None
    depth: Optional[int] = None

    @staticmethod
    def from_dict(d: Optional[Dict[str, Any]]) -> Optional["Filter"]:
        """Create a Filter from a manifest mapping.

        Args:
            d: Mapping with the filter options.

        Returns:
            Filter instance or None if d is None/empty.
        """
        if not d:
            return None
        regex = d.get("include_regex")
        compiled: Optional[Pattern[str]] = (
            re.compile(regex) if isinstance(regex, str) else None
        )
        return Filter(
            include_regex=compiled,
            hierarchical_spec=d.get("hierarchical_spec"),
            depth=d.get("depth"),
        )

    def apply(self, source: Source) -> Source:
        """Return a source holding only the leaves this filter keeps.

        The result is materialised: later changes behind ``source`` are not
        reflected.
        """
        data = source.to_value()
        if not isinstance(data, dict):
            return source
        flattened = filter_hierarchical(data, self.hierarchical_spec, self.depth)
        kept = {k: v for k, v in flattened.items() if should_include_key(k, self)}
        cls = type(source) if isinstance(source, TreeSource) else TreeSource
        return cls(tree_from_flat(kept), context=source.info, features=source.features)

    def __call__(self, source: Source) -> Source:
        return self.apply(source)


def should_include_key(flat_key: str, flt: Optional[Filter]) -> bool:
    """Check if a key should be included based on filter.

    Args:
        flat_key: Dotted configuration path.
        flt: Filter to apply (None means include all).

    Returns:
        True if key should be included, False otherwise.
    """
    if flt is None:
        return True
    if flt.include_regex and not flt.include_regex.search(flat_key):
        return False
    return True


def iter_hierarchical(
    data: Dict[str, Any],
    parent: str = "",
    depth: Optional[int] = None,
) -> Iterator[Tuple[str, Any]]:
    """Flatten nested dictionaries using dot-notation.

    Lists and scalars are emitted as-is. Empty maps are emitted as leaves so
    that flattening does not lose them.

    Args:
        data: Dictionary to flatten.
        parent: Parent key prefix for recursion.
        depth: Maximum depth to flatten (None for unlimited).

    Yields:
        Tuples of (flattened_key, value).
    """
    if depth is not None and depth < 0:
        return

    for key, value in data.items():
        full_key = key if not parent else f"{parent}.{key}"
        if isinstance(value, dict) and value and (depth is None or depth > 0):
            next_depth = None if depth is None else depth - 1
            yield from iter_hierarchical(value, full_key, next_depth)
        else:
            yield full_key, value


def filter_hierarchical(
    data: Dict[str, Any],
    spec: Optional[Dict[str, Any]],
    depth: Optional[int],
) -> Dict[str, Any]:
    """Flatten ``data`` keeping only the branches ``spec`` names.

    Args:
        data: Dictionary to filter.
        spec: Nested mapping whose ``True`` leaves mark kept branches.
        depth: Maximum depth for flattening.

    Returns:
        Filtered and flattened dictionary.
    """
    if spec is None:
        return {k: v for k, v in iter_hierarchical(data, depth=depth)}

    def include_path(path: str) -> bool:
        node = spec
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return False
            node = node[part]
            if node is True:
                return True
        return node is True

    flattened = {k: v for k, v in iter_hierarchical(data, depth=depth)}
    return {k: v for k, v in flattened.items() if include_path(k)}


def scalar_text(value: Any) -> str:
    """Render a leaf value the way flat formats store it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ",".join(scalar_text(item) for item in value)
    return str(value)


def flatten_to_text(data: Dict[str, Any]) -> Dict[str, str]:
    """Flatten nested data to dotted keys and text values.

    Empty maps have no flat rendering and are dropped.
    """
    return {
        key: scalar_text(value)
        for key, value in iter_hierarchical(data)
        if not isinstance(value, dict)
    }
