"""Merging logic for layered configuration sources."""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from .path import PathLike, to_path
from .source import Source


class MergedSource(Source):
    """Lazy deep merge of two map sources.

    Keys present in both maps are merged recursively; keys present in only
    one are taken as they are. Any other combination never reaches this
    class, see :func:`merge`.
    """

    def __init__(self, primary: Source, fallback: Source):
        super().__init__(primary.info, {**fallback.features, **primary.features})
        self.primary = primary
        self.fallback = fallback

    def get_or_none(self, path: PathLike) -> Optional[Source]:
        path = to_path(path)
        if not path:
            return self
        head, rest = path[:1], path[1:]
        primary = self.primary.get_or_none(head)
        fallback = self.fallback.get_or_none(head)
        if primary is None and fallback is None:
            return None
        if primary is None:
            node = fallback
        elif fallback is None:
            node = primary
        else:
            node = merge(primary, fallback)
        return node.get_or_none(rest)

    def is_map(self) -> bool:
        return True

    def to_map(self) -> Dict[str, Source]:
        primary = self.primary.to_map()
        fallback = self.fallback.to_map()
        result: Dict[str, Source] = {}
        for key, value in primary.items():
            if key in fallback:
                result[key] = merge(value, fallback[key])
            else:
                result[key] = value
        for key, value in fallback.items():
            if key not in result:
                result[key] = value
        return result


def merge(primary: Source, fallback: Source) -> Source:
    """Combine two sources, ``primary`` taking precedence.

    Maps merge deep. Lists, scalars, nulls and mismatched kinds are not
    merged: ``primary`` wins outright.

    Args:
        primary: Source whose values win.
        fallback: Source consulted for keys ``primary`` does not define.

    Returns:
        The merged source.
    """
    if primary.is_map() and fallback.is_map():
        return MergedSource(primary, fallback)
    return primary


def merge_all(sources: Iterable[Source]) -> Optional[Source]:
    """Fold :func:`merge` over ``sources``, first one having highest priority.

    Returns:
        The merged source, or None if ``sources`` is empty.
    """
    result: Optional[Source] = None
    for source in reversed(list(sources)):
        result = source if result is None else merge(source, result)
    return result
