"""Sources backed by environment variables.

:class:`DotEnvProvider` reads ``.env`` files, using each key as a dotted
path. :class:`EnvProvider` reads the process environment, where
``SERVER_PORT`` is read as ``server.port``.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping, Optional

from ..core.filters import flatten_to_text
from ..core.provider import Provider
from ..core.source import FlatSource, Source, tree_from_flat
from ..dotenv import DotEnv, dump_dotenv

logger = logging.getLogger(__name__)


class DotEnvProvider(Provider):
    type = "env"
    flat = True

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self.environ = environ

    def parse(self, text: str) -> Dict[str, Any]:
        return tree_from_flat(DotEnv(text, self.environ).values())

    def dump(self, data: Mapping[str, Any]) -> str:
        return dump_dotenv(flatten_to_text(dict(data)).items())


def env_key_to_path(key: str) -> str:
    return key.lower().replace("_", ".")


class EnvProvider:
    """Provider for the process environment."""

    type = "system-environment"

    def from_env(
        self,
        prefix: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> Source:
        """Snapshot the environment into a flat source.

        Args:
            prefix: Only keep variables starting with ``prefix``; it is
                stripped along with the separating underscore.
            environ: Variables to read, defaults to ``os.environ``.
        """
        environ = os.environ if environ is None else environ
        flat: Dict[str, str] = {}
        stem = (prefix or "").rstrip("_")
        for key, value in environ.items():
            if stem:
                # APP matches APP_X but not APPLE_X
                if not key.startswith(stem + "_"):
                    continue
                key = key[len(stem) :].lstrip("_")
            path = env_key_to_path(key)
            if not path:
                continue
            flat[path] = value
        logger.debug("read %d environment variables", len(flat))
        return FlatSource(tree_from_flat(flat), context={"type": self.type})
