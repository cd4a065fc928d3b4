"""Serializing a config back to one of the supported formats."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Union

from . import provider as registry
from .provider import Provider

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


class Writer:
    """Writes the merged values of a config with one provider.

    The values written are read when a ``to_*`` method is called, so a
    writer kept around follows reloads of watched facets.
    """

    def __init__(self, config: Config, provider: Provider):
        self.config = config
        self.provider = provider

    @classmethod
    def of(cls, config: Config, extension: str) -> Writer:
        """Writer for the format registered against ``extension``.

        Raises:
            UnsupportedExtensionException: If nothing is registered.
        """
        return cls(config, registry.of(extension))

    def to_text(self) -> str:
        return self.provider.dump(self.config.values())

    def to_bytes(self) -> bytes:
        return self.to_text().encode(self.provider.encoding)

    def to_writer(self, writer: IO[str]) -> None:
        writer.write(self.to_text())

    def to_stream(self, stream: IO[bytes]) -> None:
        stream.write(self.to_bytes())

    def to_file(self, file: Union[str, Path], overwrite: bool = True) -> None:
        """Write to ``file``.

        Raises:
            FileExistsError: If the file exists and ``overwrite`` is False.
        """
        path = Path(file)
        if path.exists() and not overwrite:
            raise FileExistsError(f"'{file}' already exists")
        path.write_bytes(self.to_bytes())
        logger.debug("wrote %s config to '%s'", self.provider.type, file)


def to_redis(config: Config, uri: str, prefix: str = "", client: Any = None) -> None:
    """Store the merged values of ``config`` as flat keys in Redis."""
    from ..sources.redis_kv import RedisProvider

    RedisProvider().save(config.values(), uri, prefix, client)
    logger.debug("wrote config to redis '%s'", uri)
