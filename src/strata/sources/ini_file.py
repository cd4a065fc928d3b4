"""INI sources.

``[server]`` followed by ``port = 8080`` is read as ``server.port``. Keys of
the ``DEFAULT`` section sit at the root and, as with configparser, are
inherited by every section. Values are text that coerces on demand.
"""

from __future__ import annotations

import configparser
import io
from typing import Any, Dict, Mapping

from ..core.filters import flatten_to_text, scalar_text
from ..core.provider import Provider
from ..core.source import tree_from_flat


def _parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None)
    # keep keys case-sensitive
    parser.optionxform = str  # type: ignore[assignment]
    return parser


class IniProvider(Provider):
    type = "ini"
    parse_errors = (configparser.Error,)
    flat = True

    def parse(self, text: str) -> Dict[str, Any]:
        parser = _parser()
        parser.read_string(text)
        flat: Dict[str, Any] = dict(parser.defaults())
        for section in parser.sections():
            for key, value in parser.items(section):
                flat[f"{section}.{key}"] = value
        return tree_from_flat(flat)

    def dump(self, data: Mapping[str, Any]) -> str:
        parser = _parser()
        for key, value in data.items():
            if isinstance(value, Mapping):
                parser[key] = flatten_to_text(dict(value))
            else:
                parser[configparser.DEFAULTSECT][key] = scalar_text(value)
        out = io.StringIO()
        parser.write(out)
        return out.getvalue()
