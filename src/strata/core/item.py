"""Declared configuration items."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterator, List

from .path import Path, PathLike, join, name, to_path


class _Required:
    __slots__ = ()

    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED: Any = _Required()


@dataclass(frozen=True)
class Item:
    """An expected configuration value.

    Attributes:
        path: Location of the value.
        type: Python type the value is read as (None reads plain data).
        default: Value used when no layer defines the path, or REQUIRED.
        description: Free text shown in error messages.
    """

    path: Path
    type: Any = None
    default: Any = REQUIRED
    description: str = ""

    @property
    def name(self) -> str:
        return name(self.path)

    @property
    def required(self) -> bool:
        return self.default is REQUIRED


class Spec:
    """Ordered set of items sharing a path prefix.

    Example:
        >>> server = Spec("server")
        >>> host = server.optional("host", "0.0.0.0", str)
        >>> port = server.required("port", int)
        >>> port.name
        'server.port'
    """

    def __init__(self, prefix: PathLike = ""):
        self.prefix = to_path(prefix)
        self.items: List[Item] = []

    def _add(self, item: Item) -> Item:
        self.items.append(item)
        return item

    def required(self, name: PathLike, type: Any = None, description: str = "") -> Item:
        return self._add(Item(join(self.prefix, name), type, REQUIRED, description))

    def optional(
        self, name: PathLike, default: Any, type: Any = None, description: str = ""
    ) -> Item:
        return self._add(Item(join(self.prefix, name), type, default, description))

    def with_prefix(self, prefix: PathLike) -> Spec:
        """Return a copy of this spec nested under ``prefix``."""
        spec = Spec(join(prefix, self.prefix))
        spec.items = [replace(item, path=join(prefix, item.path)) for item in self.items]
        return spec

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)
