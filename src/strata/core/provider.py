"""Providers turn raw input into source trees.

A provider only knows how to parse one format into plain Python data; the
entry points shared here take care of reading the input and tagging the
resulting source with its origin.

Providers are also registered against file extensions in a process-wide
registry. The registry is global state: mutations are visible to every
thread and are never rolled back, so confine them to startup (or clean up
after yourself in tests).
"""

from __future__ import annotations

import logging
import threading
from importlib import resources
from pathlib import Path
from typing import IO, Any, Callable, Dict, Mapping, Optional, Tuple, Type, Union

import httpx

from .errors import ParseException, SourceNotFoundException, UnsupportedExtensionException
from .remote import DEFAULT_BRANCH, checkout_git, fetch_url
from .source import FlatSource, Source, TreeSource
from .types import describe

logger = logging.getLogger(__name__)

Transform = Callable[[Source], Source]

CONTENT_MARKER_LIMIT = 50


def content_marker(content: str) -> str:
    """Truncated rendering of literal content used as provenance."""
    if len(content) > CONTENT_MARKER_LIMIT:
        content = content[:CONTENT_MARKER_LIMIT] + "..."
    return f'"\n{content}\n"'



def _stream_info(stream: Any, info: Optional[Mapping[str, str]]) -> Dict[str, str]:
    if info is not None:
        return dict(info)
    name = getattr(stream, "name", None)
    return {"stream": name} if isinstance(name, str) else {}

class Provider:
    """Base class for format providers.

    Subclasses set :attr:`type` and :attr:`parse_errors` and implement
    :meth:`parse`; formats that can be written back also implement
    :meth:`dump`.
    """

    type: str = "unknown"
    encoding: str = "utf-8"
    # exceptions raised by parse() for malformed content
    parse_errors: Tuple[Type[BaseException], ...] = (ValueError,)
    # whether text leaves coerce on demand
    flat: bool = False

    def parse(self, text: str) -> Any:
        """Parse text into plain Python data."""
        raise NotImplementedError

    def dump(self, data: Mapping[str, Any]) -> str:
        """Serialize plain Python data back to text."""
        raise NotImplementedError(f"{self.type} sources cannot be written")

    def source_of(self, data: Any, info: Optional[Mapping[str, str]] = None) -> Source:
        """Wrap parsed data into a root source."""
        context = {"type": self.type, **(info or {})}
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ParseException(
                f"source {describe(context)} must hold a mapping at its root,"
                f" got {type(data).__name__}"
            )
        cls = FlatSource if self.flat else TreeSource
        return cls(data, context=context)

    def load(self, content: Union[str, bytes], info: Optional[Mapping[str, str]] = None) -> Source:
        """Parse raw content into a root source.

        Args:
            content: Text, or bytes decoded with :attr:`encoding`.
            info: Provenance metadata describing where the content came from.

        Raises:
            ParseException: If the content is malformed.
        """
        info = dict(info or {})
        try:
            if isinstance(content, bytes):
                content = content.decode(self.encoding)
            data = self.parse(content)
        except UnicodeDecodeError as e:
            raise ParseException(f"cannot decode source {describe(info)}: {e}") from e
        except self.parse_errors as e:
            raise ParseException(
                f"cannot parse {self.type} source {describe(info)}: {e}"
            ) from e
        return self.source_of(data, info)

    def from_string(self, content: str) -> Source:
        return self.load(content, {"content": content_marker(content)})

    def from_reader(self, reader: IO[str], info: Optional[Mapping[str, str]] = None) -> Source:
        """Create a source from a text stream.

        Args:
            reader: Stream to read to the end.
            info: Provenance metadata; defaults to the stream's ``name``
                when it has one, as open files do.
        """
        return self.load(reader.read(), _stream_info(reader, info))

    def from_input_stream(self, stream: IO[bytes], info: Optional[Mapping[str, str]] = None) -> Source:
        return self.load(stream.read(), _stream_info(stream, info))

    def from_bytes(
        self,
        data: bytes,
        offset: int = 0,
        length: Optional[int] = None,
        info: Optional[Mapping[str, str]] = None,
    ) -> Source:
        end = len(data) if length is None else offset + length
        return self.load(bytes(data[offset:end]), info)

    def from_file(self, file: Union[str, Path]) -> Source:
        """Create a source from a file.

        Raises:
            SourceNotFoundException: If the file does not exist.
        """
        path = Path(file)
        try:
            content = path.read_bytes()
        except FileNotFoundError as e:
            raise SourceNotFoundException(f"cannot find file '{file}'") from e
        return self.load(content, {"file": str(file)})

    def from_url(self, url: str, client: Optional[httpx.Client] = None) -> Source:
        """Create a source from a URL (``file:``, ``http:`` or ``https:``)."""
        return self.load(fetch_url(str(url), client), {"url": str(url)})

    def from_resource(self, resource: str, package: str) -> Source:
        """Create a source from a resource bundled in ``package``.

        Raises:
            SourceNotFoundException: If the package or resource does not exist.
        """
        try:
            content = resources.files(package).joinpath(resource).read_bytes()
        except (ModuleNotFoundError, FileNotFoundError, IsADirectoryError) as e:
            raise SourceNotFoundException(
                f"cannot find resource '{resource}' in package '{package}'"
            ) from e
        return self.load(content, {"resource": resource})

    def from_git(
        self,
        repo: str,
        file: str,
        dir: Optional[Union[str, Path]] = None,
        branch: str = DEFAULT_BRANCH,
    ) -> Source:
        """Create a source from a file in a git repository.

        Args:
            repo: Remote repository location.
            file: Path of the file inside the repository.
            dir: Local checkout directory; a temporary one is used if omitted.
            branch: Branch to read from.
        """
        checkout = checkout_git(repo, dir, branch)
        path = checkout / file
        try:
            content = path.read_bytes()
        except FileNotFoundError as e:
            raise SourceNotFoundException(f"cannot find '{file}' in repository '{repo}'") from e
        info = {"repo": repo, "file": file, "dir": str(checkout), "branch": branch}
        return self.load(content, info)

    def map(self, transform: Transform) -> Provider:
        """Return a provider whose sources are post-processed by ``transform``."""
        return MappedProvider(self, transform)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class MappedProvider(Provider):
    """Provider applying a transformation to every source it creates."""

    def __init__(self, provider: Provider, transform: Transform):
        self.provider = provider
        self.transform = transform
        self.type = provider.type
        self.encoding = provider.encoding

    def parse(self, text: str) -> Any:
        return self.provider.parse(text)

    def dump(self, data: Mapping[str, Any]) -> str:
        return self.provider.dump(data)

    def load(self, content: Union[str, bytes], info: Optional[Mapping[str, str]] = None) -> Source:
        return self.transform(self.provider.load(content, info))

    def __repr__(self) -> str:
        return f"MappedProvider({self.provider!r})"


_registry: Dict[str, Provider] = {}
_registry_lock = threading.Lock()
_seeded = False


def _normalize_extension(extension: str) -> str:
    return extension.lower().lstrip(".")


def _ensure_seeded() -> None:
    global _seeded
    if _seeded:
        return
    # Lazy import to avoid an import cycle with the format providers
    from ..sources import builtin_providers

    with _registry_lock:
        if _seeded:
            return
        for extension, provider in builtin_providers().items():
            _registry.setdefault(extension, provider)
        _seeded = True


def register_extension(extension: str, provider: Provider) -> None:
    """Register ``provider`` for files with ``extension``."""
    _ensure_seeded()
    extension = _normalize_extension(extension)
    with _registry_lock:
        _registry[extension] = provider
    logger.debug("registered %r for extension %r", provider, extension)


def unregister_extension(extension: str) -> Optional[Provider]:
    """Remove the provider registered for ``extension``, returning it."""
    _ensure_seeded()
    extension = _normalize_extension(extension)
    with _registry_lock:
        provider = _registry.pop(extension, None)
    logger.debug("unregistered extension %r", extension)
    return provider


def lookup(extension: str) -> Optional[Provider]:
    """Return the provider registered for ``extension``, if any."""
    _ensure_seeded()
    with _registry_lock:
        return _registry.get(_normalize_extension(extension))


def of(extension: str, source: str = "") -> Provider:
    """Return the provider registered for ``extension``.

    Raises:
        UnsupportedExtensionException: If no provider is registered.
    """
    provider = lookup(extension)
    if provider is None:
        raise UnsupportedExtensionException(source or extension)
    return provider


def registered_extensions() -> Dict[str, Provider]:
    _ensure_seeded()
    with _registry_lock:
        return dict(_registry)
