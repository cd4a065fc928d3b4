"""TOML sources, read and written with tomlkit."""

from __future__ import annotations

from typing import Any, Dict, Mapping

import tomlkit
from tomlkit.exceptions import TOMLKitError

from ..core.provider import Provider


def _prepare(value: Any) -> Any:
    """Drop nulls, which TOML lacks, and put tables after plain keys."""
    if isinstance(value, Mapping):
        entries = [(k, _prepare(v)) for k, v in value.items() if v is not None]
        entries.sort(key=lambda entry: isinstance(entry[1], dict))
        return dict(entries)
    if isinstance(value, list):
        return [_prepare(v) for v in value if v is not None]
    return value


class TomlProvider(Provider):
    type = "toml"
    parse_errors = (TOMLKitError, ValueError)

    def parse(self, text: str) -> Dict[str, Any]:
        return tomlkit.parse(text).unwrap()

    def dump(self, data: Mapping[str, Any]) -> str:
        return tomlkit.dumps(_prepare(data))
