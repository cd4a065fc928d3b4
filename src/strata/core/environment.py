"""Named environments: ordered source lists turned into configs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union
from urllib.parse import urlparse

from .config import Config
from .config_loader import ConfigLoader
from .errors import SourceNotFoundException
from .filters import Filter
from .loader import DefaultLoaders
from .source import Source
from .watch import Scheduler

logger = logging.getLogger(__name__)

URL_SCHEMES = {"http", "https", "file"}


@dataclass
class RegisteredSource:
    """A source declared on an environment, loaded by :meth:`Environment.get_config`.

    Attributes:
        path_or_uri: File path or URI; None when ``source`` is given.
        prefix: Path the source is nested under. For ``redis://`` URIs this
            is the key prefix instead.
        scope: Subtree of the source to keep.
        watch: Reload period in seconds, None to load once.
        optional: Skip the source when it does not exist.
        filter: Filter applied to the loaded source.
        name: Facet name.
        format: Extension to parse with instead of the one of the path.
        source: A ready-made source.
    """

    path_or_uri: Optional[Union[str, Path]] = None
    prefix: Optional[str] = None
    scope: Optional[str] = None
    watch: Optional[float] = None
    optional: bool = False
    filter: Optional[Filter] = None
    name: Optional[str] = None
    format: Optional[str] = None
    source: Optional[Source] = None

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        if self.path_or_uri is not None:
            return str(self.path_or_uri)
        return self.source.description if self.source is not None else "source"


class Environment:
    """Environment for managing configuration sources."""

    def __init__(
        self,
        name: str,
        sources: Optional[List[Union[str, Path]]] = None,
        config_path: Optional[Union[str, Path]] = None,
    ):
        """Initialize an Environment.

        Args:
            name: Name of the environment (e.g., "production", "development").
            sources: Optional list of sources to register after the ones of
                strata.yaml, so they take precedence.
            config_path: Optional path to strata.yaml. If not provided,
                searches the current directory and its parents.
        """
        self.name = name
        self._registered: List[RegisteredSource] = []
        self._config_loader = ConfigLoader(config_path)

        self._load_from_config_file()

        if sources:
            self.register_sources(*sources)

    def _load_from_config_file(self) -> None:
        """Register the sources strata.yaml declares for this environment.

        Malformed entries are skipped with a warning.
        """
        for source_config in self._config_loader.get_sources(self.name):
            try:
                parsed = self._config_loader.parse_source(source_config)
            except (ValueError, TypeError) as e:
                logger.warning("skipping source %r of environment %r: %s", source_config, self.name, e)
                continue
            self.register_source(parsed.pop("path_or_uri"), **parsed)

    def register_sources(self, *paths_or_uris: Union[str, Path]) -> None:
        """Register multiple sources at once."""
        for item in paths_or_uris:
            self.register_source(item)

    def register_source(
        self,
        path_or_uri: Union[str, Path],
        *,
        prefix: Optional[str] = None,
        scope: Optional[str] = None,
        watch: Optional[float] = None,
        optional: bool = False,
        filter: Optional[Filter] = None,
        name: Optional[str] = None,
        format: Optional[str] = None,
    ) -> None:
        """Register a single source; later sources take precedence.

        Args:
            path_or_uri: Path to a file, or an ``http(s)://``, ``file:``,
                ``redis://`` or ``env:`` URI.
            prefix: Path to nest the source under.
            scope: Subtree of the source to keep.
            watch: Reload period in seconds.
            optional: Skip the source when it does not exist.
            filter: Filter to apply when loading the source.
            name: Facet name of the source.
            format: Extension to parse the source with.
        """
        self._registered.append(
            RegisteredSource(
                path_or_uri=path_or_uri,
                prefix=prefix,
                scope=scope,
                watch=watch,
                optional=optional,
                filter=filter,
                name=name,
                format=format,
            )
        )

    def add_source(self, source: Source, name: Optional[str] = None) -> None:
        """Register a ready-made source instance."""
        self._registered.append(RegisteredSource(source=source, name=name))

    @property
    def sources(self) -> List[RegisteredSource]:
        return list(self._registered)

    def get_config(
        self,
        base: Optional[Config] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> Config:
        """Build a config layering every registered source in order.

        Args:
            base: Config to layer onto, e.g. one with declared items. A new
                one with the manifest's features is used if omitted.
            scheduler: Scheduler for watched sources.

        Raises:
            SourceNotFoundException: If a non-optional source does not exist.
            ParseException: If a source is malformed.
        """
        config = base if base is not None else Config(
            features=self._config_loader.get_features(self.name)
        )
        for registered in self._registered:
            config = self._load(config, registered, scheduler)
        return config

    def _load(
        self,
        config: Config,
        registered: RegisteredSource,
        scheduler: Optional[Scheduler],
    ) -> Config:
        if registered.source is not None:
            return config.with_source(registered.source, registered.name)

        target = str(registered.path_or_uri)
        scheme = urlparse(target).scheme
        is_redis = scheme in {"redis", "rediss", "unix"}

        loaders = config.from_
        if registered.name:
            loaders = loaders.named(registered.name)
        if registered.filter is not None:
            loaders = loaders.mapped(registered.filter)
        if registered.scope:
            loaders = loaders.scoped(registered.scope)
        if registered.prefix and not is_redis:
            loaders = loaders.prefixed(registered.prefix)

        try:
            return self._dispatch(loaders, target, scheme, is_redis, registered, scheduler)
        except SourceNotFoundException as e:
            if not registered.optional:
                raise
            logger.warning("skipping optional source %s: %s", registered.label, e)
            return config

    def _dispatch(
        self,
        loaders: DefaultLoaders,
        target: str,
        scheme: str,
        is_redis: bool,
        registered: RegisteredSource,
        scheduler: Optional[Scheduler],
    ) -> Config:
        watch_kwargs = {"delay": registered.watch, "scheduler": scheduler}
        if is_redis:
            return loaders.redis(target, prefix=registered.prefix or "")
        if scheme == "env":
            return loaders.env(prefix=urlparse(target).path or None)
        if scheme in URL_SCHEMES:
            if registered.format:
                loader = loaders.dispatch_extension(registered.format, target)
                if registered.watch:
                    return loader.watch_url(target, **watch_kwargs)
                return loader.url(target)
            if registered.watch:
                return loaders.watch_url(target, **watch_kwargs)
            return loaders.url(target)

        load: Callable[..., Config]
        if registered.format:
            loader = loaders.dispatch_extension(registered.format, target)
            load = loader.watch_file if registered.watch else loader.file
        else:
            load = loaders.watch_file if registered.watch else loaders.file
        if registered.watch:
            return load(target, **watch_kwargs)
        return load(target, optional=registered.optional)

    @property
    def config_file_path(self) -> Optional[Path]:
        """Path to the loaded strata.yaml, None if there is none."""
        return self._config_loader.config_path
