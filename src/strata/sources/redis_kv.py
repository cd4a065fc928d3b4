"""Sources backed by a Redis key-value store.

Every string key under a prefix is read with one ``SCAN`` pass and one
``MGET``; ``app:server.port`` under prefix ``app:`` is read as
``server.port``. Values are text that coerces on demand.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import redis

from ..core.errors import SourceNotFoundException
from ..core.filters import flatten_to_text
from ..core.source import FlatSource, Source, tree_from_flat

logger = logging.getLogger(__name__)


class RedisProvider:
    """Provider reading and writing keys of a Redis database."""

    type = "redis"

    @staticmethod
    def client_for(uri: str) -> redis.Redis:
        return redis.Redis.from_url(uri, decode_responses=True)

    def fetch(self, uri: str, prefix: str = "", client: Optional[redis.Redis] = None) -> Dict[str, str]:
        """Read every key under ``prefix``, with the prefix removed.

        Raises:
            SourceNotFoundException: If the server cannot be reached.
        """
        client = client or self.client_for(uri)
        try:
            keys = sorted(client.scan_iter(match=f"{prefix}*"))
            values = client.mget(keys) if keys else []
        except redis.RedisError as e:
            raise SourceNotFoundException(f"cannot read from redis '{uri}': {e}") from e
        kv: Dict[str, str] = {}
        for key, value in zip(keys, values):
            # keys deleted between SCAN and MGET come back as None
            if value is None:
                continue
            kv[key[len(prefix) :]] = value
        return kv

    def from_redis(self, uri: str, prefix: str = "", client: Optional[redis.Redis] = None) -> Source:
        kv = self.fetch(uri, prefix, client)
        logger.debug("read %d keys from redis '%s'", len(kv), uri)
        info = {"type": self.type, "url": uri}
        if prefix:
            info["prefix"] = prefix
        return FlatSource(tree_from_flat(kv), context=info)

    def save(
        self,
        data: Mapping[str, Any],
        uri: str,
        prefix: str = "",
        client: Optional[redis.Redis] = None,
    ) -> None:
        """Write ``data`` as flat keys under ``prefix`` in one pipeline."""
        client = client or self.client_for(uri)
        pipe = client.pipeline()
        for key, value in flatten_to_text(dict(data)).items():
            pipe.set(f"{prefix}{key}", value)
        pipe.execute()
