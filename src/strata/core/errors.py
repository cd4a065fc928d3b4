"""Exception hierarchy shared by sources, providers and configs."""

from __future__ import annotations

from typing import Any, Iterable


class ConfigException(Exception):
    """Base class for every error raised by strata."""


class InvalidPathException(ConfigException, ValueError):
    """A dotted name contains an empty segment."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"'{path}' is not a valid path")


class PathNotFoundException(ConfigException, KeyError):
    """The requested path is absent at read time."""

    def __init__(self, path: str, description: str = ""):
        self.path = path
        self.description = description
        message = f"cannot find path '{path}'"
        if description:
            message += f" in source {description}"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return self.args[0]


class WrongTypeException(ConfigException, TypeError):
    """A source was read as a kind it does not hold.

    Attributes:
        source: The offending source.
        actual: Description of the kind the source holds.
        expected: Description of the kind that was requested.
    """

    def __init__(self, source: Any, actual: str, expected: str):
        self.source = source
        self.actual = actual
        self.expected = expected
        description = getattr(source, "description", repr(source))
        super().__init__(
            f"source {description} has type {actual} rather than {expected}"
        )


class ParseException(ConfigException):
    """Raw input could not be parsed."""


class SourceNotFoundException(ConfigException):
    """A file, resource or URL does not exist."""


class UnsupportedExtensionException(ConfigException):
    """No provider is registered for an extension."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(
            f"cannot detect supported extension for '{source}',"
            " register a provider for its extension first"
        )


class InvalidRemoteRepoException(ConfigException):
    """A local checkout belongs to another remote repository."""

    def __init__(self, repo: str, dir: str):
        self.repo = repo
        self.dir = dir
        super().__init__(f"'{dir}' is not a checkout of '{repo}'")


class UnknownPathsException(ConfigException):
    """A loaded source contains paths no declared item covers."""

    def __init__(self, source: Any, paths: Iterable[str]):
        self.source = source
        self.paths = sorted(paths)
        description = getattr(source, "description", repr(source))
        super().__init__(
            f"source {description} contains unknown paths: {', '.join(self.paths)}"
        )


class ItemReadException(ConfigException):
    """Reading a declared item failed.

    Wraps the underlying :class:`PathNotFoundException` or
    :class:`WrongTypeException` and names the item.
    """

    def __init__(self, item: Any, cause: ConfigException):
        self.item = item
        self.cause = cause
        message = f"cannot read item '{item.name}'"
        if getattr(item, "description", ""):
            message += f" ({item.description})"
        super().__init__(f"{message}: {cause}")
