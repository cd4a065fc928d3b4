"""Loaders: the ``config.from_`` façade.

Every loader method reads one source and returns a child config with that
source layered on top. The parent config is never modified.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Callable, Mapping, Optional, Union
from urllib.parse import urlparse

import httpx

from . import provider as registry
from .errors import SourceNotFoundException
from .facet import Facet
from .path import PathLike, to_path
from .provider import Provider
from .remote import DEFAULT_BRANCH, checkout_git, fetch_url
from .source import FlatSource, Source, TreeSource, tree_from_flat
from .types import Feature
from .watch import DEFAULT_PERIOD, ErrorHandler, Scheduler, watched_facet

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)

Transform = Callable[[Source], Source]


def _read_file(file: Union[str, Path]) -> bytes:
    try:
        return Path(file).read_bytes()
    except FileNotFoundError as e:
        raise SourceNotFoundException(f"cannot find file '{file}'") from e


def _compose(first: Optional[Transform], second: Transform) -> Transform:
    if first is None:
        return second
    return lambda source: second(first(source))


class Loader:
    """Loads sources of one format into child configs.

    Args:
        config: Config the loaded sources are layered onto.
        provider: Provider parsing the format.
        name: Name of the facets pushed, derived from the source if omitted.
    """

    def __init__(self, config: Config, provider: Provider, name: Optional[str] = None):
        self.config = config
        self.provider = provider
        self.name = name

    def _push(self, source: Source) -> Config:
        return self.config.with_source(source, self.name)

    def reader(self, reader: IO[str], info: Optional[Mapping[str, str]] = None) -> Config:
        return self._push(self.provider.from_reader(reader, info))

    def input_stream(self, stream: IO[bytes], info: Optional[Mapping[str, str]] = None) -> Config:
        return self._push(self.provider.from_input_stream(stream, info))

    def bytes(
        self,
        data: bytes,
        offset: int = 0,
        length: Optional[int] = None,
        info: Optional[Mapping[str, str]] = None,
    ) -> Config:
        return self._push(self.provider.from_bytes(data, offset, length, info))

    def string(self, content: str) -> Config:
        return self._push(self.provider.from_string(content))

    def file(self, file: Union[str, Path], optional: Optional[bool] = None) -> Config:
        """Load a file.

        Args:
            file: Path of the file.
            optional: Return the config unchanged when the file is missing.
                Defaults to the OPTIONAL_SOURCE_BY_DEFAULT feature.

        Raises:
            SourceNotFoundException: If the file is missing and not optional.
        """
        if optional is None:
            optional = self.config.is_enabled(Feature.OPTIONAL_SOURCE_BY_DEFAULT)
        try:
            source = self.provider.from_file(file)
        except SourceNotFoundException:
            if not optional:
                raise
            logger.info("skipping missing optional file '%s'", file)
            return self.config
        return self._push(source)

    def url(self, url: str, client: Optional[httpx.Client] = None) -> Config:
        return self._push(self.provider.from_url(url, client))

    def resource(self, resource: str, package: str) -> Config:
        return self._push(self.provider.from_resource(resource, package))

    def git(
        self,
        repo: str,
        file: str,
        dir: Optional[Union[str, Path]] = None,
        branch: str = DEFAULT_BRANCH,
    ) -> Config:
        return self._push(self.provider.from_git(repo, file, dir, branch))

    def _watch(
        self,
        fetch: Callable[[], Any],
        info: Mapping[str, str],
        delay: float,
        scheduler: Optional[Scheduler],
        on_error: Optional[ErrorHandler],
    ) -> Config:
        facet = watched_facet(
            fetch,
            lambda content: self.provider.load(content, info),
            period=delay,
            scheduler=scheduler,
            on_error=on_error,
            name=self.name,
        )
        return self.config.with_facet(facet)

    def watch_file(
        self,
        file: Union[str, Path],
        delay: float = DEFAULT_PERIOD,
        scheduler: Optional[Scheduler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> Config:
        """Load a file and reload it every ``delay`` seconds when it changes."""
        return self._watch(
            lambda: _read_file(file), {"file": str(file)}, delay, scheduler, on_error
        )

    def watch_url(
        self,
        url: str,
        delay: float = DEFAULT_PERIOD,
        scheduler: Optional[Scheduler] = None,
        on_error: Optional[ErrorHandler] = None,
        client: Optional[httpx.Client] = None,
    ) -> Config:
        """Load a URL and reload it every ``delay`` seconds when it changes."""
        return self._watch(
            lambda: fetch_url(url, client), {"url": url}, delay, scheduler, on_error
        )

    def watch_git(
        self,
        repo: str,
        file: str,
        dir: Optional[Union[str, Path]] = None,
        branch: str = DEFAULT_BRANCH,
        delay: float = DEFAULT_PERIOD,
        scheduler: Optional[Scheduler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> Config:
        """Load a file from git and pull it again every ``delay`` seconds."""
        checkout = checkout_git(repo, dir, branch)

        def fetch() -> bytes:
            checkout_git(repo, checkout, branch)
            return _read_file(checkout / file)

        info = {"repo": repo, "file": file, "dir": str(checkout), "branch": branch}
        return self._watch(fetch, info, delay, scheduler, on_error)


class MapLoader:
    """Loads in-memory mappings."""

    def __init__(
        self,
        config: Config,
        transform: Optional[Transform] = None,
        name: Optional[str] = None,
    ):
        self.config = config
        self.transform = transform
        self.name = name

    def _push(self, source: Source) -> Config:
        if self.transform is not None:
            source = self.transform(source)
        return self.config.with_source(source, self.name)

    def hierarchical(self, data: Mapping[str, Any]) -> Config:
        """Load nested data as it is."""
        return self._push(TreeSource(dict(data), {"type": "map"}))

    def kv(self, data: Mapping[str, Any]) -> Config:
        """Load a mapping whose keys are dotted paths."""
        return self._push(TreeSource(tree_from_flat(data), {"type": "map"}))

    def flat(self, data: Mapping[str, str]) -> Config:
        """Load a mapping of dotted paths to text, coercing leaves on demand."""
        return self._push(FlatSource(tree_from_flat(data), {"type": "map"}))


class DefaultLoaders:
    """Loaders for every built-in format, bound to one config.

    Example:
        >>> config = Config().from_.yaml.file("app.yaml").from_.env()
    """

    def __init__(
        self,
        config: Config,
        transform: Optional[Transform] = None,
        name: Optional[str] = None,
    ):
        self.config = config
        self.transform = transform
        self.name = name
        self.map = MapLoader(config, transform, name)

    def _provider(self, provider: Provider) -> Provider:
        if self.transform is None:
            return provider
        return provider.map(self.transform)

    def _loader(self, extension: str) -> Loader:
        return Loader(self.config, self._provider(registry.of(extension)), self.name)

    def _push(self, source: Source) -> Config:
        if self.transform is not None:
            source = self.transform(source)
        return self.config.with_source(source, self.name)

    @property
    def json(self) -> Loader:
        return self._loader("json")

    @property
    def yaml(self) -> Loader:
        return self._loader("yaml")

    @property
    def toml(self) -> Loader:
        return self._loader("toml")

    @property
    def ini(self) -> Loader:
        return self._loader("ini")

    @property
    def properties(self) -> Loader:
        return self._loader("properties")

    @property
    def xml(self) -> Loader:
        return self._loader("xml")

    @property
    def dotenv(self) -> Loader:
        return self._loader("env")

    def env(self, prefix: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> Config:
        """Load process environment variables.

        ``APP_SERVER_PORT`` is read as ``app.server.port``. With ``prefix``
        only variables starting with it are kept, and the prefix is removed.
        """
        from ..sources.env_file import EnvProvider

        return self._push(EnvProvider().from_env(prefix, environ))

    def redis(self, uri: str, prefix: str = "", client: Any = None) -> Config:
        """Load every key under ``prefix`` from a Redis database."""
        from ..sources.redis_kv import RedisProvider

        return self._push(RedisProvider().from_redis(uri, prefix, client))

    # derived loaders

    def mapped(self, transform: Transform) -> DefaultLoaders:
        """Loaders post-processing every source with ``transform``."""
        return DefaultLoaders(self.config, _compose(self.transform, transform), self.name)

    def named(self, name: str) -> DefaultLoaders:
        """Loaders naming the facet they push ``name``."""
        return DefaultLoaders(self.config, self.transform, name)

    def prefixed(self, prefix: PathLike) -> DefaultLoaders:
        """Loaders nesting every source under ``prefix``."""
        prefix = to_path(prefix)
        return self.mapped(lambda source: source.with_prefix(prefix))

    def scoped(self, path: PathLike) -> DefaultLoaders:
        """Loaders keeping only the subtree at ``path`` of every source."""
        path = to_path(path)
        return self.mapped(lambda source: source.scoped(path))

    def enabled(self, feature: Feature) -> DefaultLoaders:
        return self.mapped(lambda source: source.enabled(feature))

    def disabled(self, feature: Feature) -> DefaultLoaders:
        return self.mapped(lambda source: source.disabled(feature))

    # extension dispatch

    def dispatch_extension(self, extension: str, source: str = "") -> Loader:
        """Loader for the format registered against ``extension``.

        Raises:
            UnsupportedExtensionException: If nothing is registered.
        """
        return Loader(self.config, self._provider(registry.of(extension, source)), self.name)

    def _dispatch_path(self, path: str) -> Loader:
        name = Path(path).name
        if name.startswith(".") and "." not in name[1:]:
            # dotfiles such as ".env"
            extension = name[1:]
        else:
            extension = Path(path).suffix
        return self.dispatch_extension(extension, path)

    def _dispatch_url(self, url: str) -> Loader:
        return self._dispatch_path(urlparse(url).path)

    def file(self, file: Union[str, Path], optional: Optional[bool] = None) -> Config:
        return self._dispatch_path(str(file)).file(file, optional)

    def watch_file(self, file: Union[str, Path], **kwargs: Any) -> Config:
        return self._dispatch_path(str(file)).watch_file(file, **kwargs)

    def url(self, url: str, client: Optional[httpx.Client] = None) -> Config:
        return self._dispatch_url(url).url(url, client)

    def watch_url(self, url: str, **kwargs: Any) -> Config:
        return self._dispatch_url(url).watch_url(url, **kwargs)

    def git(self, repo: str, file: str, **kwargs: Any) -> Config:
        return self._dispatch_path(file).git(repo, file, **kwargs)

    def watch_git(self, repo: str, file: str, **kwargs: Any) -> Config:
        return self._dispatch_path(file).watch_git(repo, file, **kwargs)

    def facet(self, facet: Facet) -> Config:
        """Layer an already built facet."""
        return self.config.with_facet(facet)
