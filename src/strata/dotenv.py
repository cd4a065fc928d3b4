"""Parsing and writing of .env files.

Unlike python-dotenv, nothing here touches ``os.environ``: parsed values are
returned as a mapping and only read from the environment for ``$VAR``
expansion.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Dict, Iterable, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

_LINE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_.]*)\s*=\s*(.*)$")
_BRACED = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")
_SIMPLE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")


class DotEnv:
    """Parsed content of one .env file.

    Args:
        text: Content of the file.
        environ: Variables visible to ``${VAR}`` expansion, defaults to
            ``os.environ``. Values defined earlier in the file take
            precedence over it.
    """

    def __init__(self, text: str, environ: Optional[Mapping[str, str]] = None):
        self._environ = os.environ if environ is None else environ
        self._values: Dict[str, str] = {}
        for line_num, line in enumerate(text.splitlines(), 1):
            parsed = self._parse_line(line)
            if parsed is None:
                if line.strip() and not line.strip().startswith("#"):
                    logger.debug("ignoring malformed .env line %d: %r", line_num, line)
                continue
            key, value = parsed
            self._values[key] = value

    def _parse_line(self, line: str) -> Optional[Tuple[str, str]]:
        """Parse a single line.

        Returns:
            Tuple of (key, value) or None if the line should be ignored.
        """
        line = line.strip()
        if not line or line.startswith("#"):
            return None

        match = _LINE.match(line)
        if not match:
            return None
        key, value = match.groups()

        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = (
                value[1:-1]
                .replace('\\"', '"')
                .replace("\\n", "\n")
                .replace("\\r", "\r")
                .replace("\\t", "\t")
            )
            return key, self._expand_variables(value)
        if len(value) >= 2 and value.startswith("'") and value.endswith("'"):
            # single quotes are literal
            return key, value[1:-1]

        # inline comment on an unquoted value
        value = re.split(r"\s+#", value, maxsplit=1)[0].rstrip()
        return key, self._expand_variables(value)

    def _lookup(self, match: "re.Match[str]") -> str:
        var_name = match.group(1)
        return self._values.get(var_name, self._environ.get(var_name, ""))

    def _expand_variables(self, value: str) -> str:
        """Expand ``${VAR}`` and ``$VAR``."""
        value = _BRACED.sub(self._lookup, value)
        return _SIMPLE.sub(self._lookup, value)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)

    def values(self) -> Dict[str, str]:
        return self._values.copy()


def format_value(value: str, quote_mode: str = "auto") -> str:
    """Render a value for a .env file.

    Args:
        value: Value to write.
        quote_mode: How to quote the value ("auto", "always", "never").
    """
    needs_quotes = quote_mode == "always" or (
        quote_mode == "auto"
        and (
            value == ""
            or any(c in value for c in " \n\r\t#$\"'")
        )
    )
    if not needs_quotes:
        return value
    escaped = (
        value.replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    if "$" in escaped:
        if "'" not in value and "\n" not in value:
            return f"'{value}'"
        logger.warning("value with '$' cannot be written literally, it will be expanded")
    return f'"{escaped}"'


def dump_dotenv(values: Iterable[Tuple[str, str]], quote_mode: str = "auto") -> str:
    return "".join(f"{key}={format_value(value, quote_mode)}\n" for key, value in values)
