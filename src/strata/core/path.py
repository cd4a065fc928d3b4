"""Dotted path addressing used by sources and configs."""

from __future__ import annotations

from typing import Tuple, Union

from .errors import InvalidPathException

Path = Tuple[str, ...]
PathLike = Union[str, Path, list]

SEPARATOR = "."


def parse(text: str) -> Path:
    """Split a dotted name into a path.

    Args:
        text: Dotted name such as ``"server.host"``. The empty string is the
            root path.

    Returns:
        Tuple of path segments.

    Raises:
        InvalidPathException: If the name contains an empty segment.
    """
    if text == "":
        return ()
    segments = tuple(text.split(SEPARATOR))
    if any(segment == "" for segment in segments):
        raise InvalidPathException(text)
    return segments


def name(path: PathLike) -> str:
    """Join a path back into its dotted name."""
    return SEPARATOR.join(to_path(path))


def to_path(path: PathLike) -> Path:
    """Normalise a dotted name or a sequence of segments to a path."""
    if isinstance(path, str):
        return parse(path)
    segments = tuple(path)
    for segment in segments:
        if not isinstance(segment, str) or segment == "" or SEPARATOR in segment:
            raise InvalidPathException(repr(segments))
    return segments


def join(*paths: PathLike) -> Path:
    """Concatenate paths."""
    result: Path = ()
    for path in paths:
        result += to_path(path)
    return result


def is_prefix(prefix: PathLike, path: PathLike) -> bool:
    prefix, path = to_path(prefix), to_path(path)
    return path[: len(prefix)] == prefix
