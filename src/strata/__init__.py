"""Strata - layered configuration library.

Compose configuration from files, URLs, git repositories, Redis and the
environment into one config, with typed reads, provenance tracking and
hot reloading of watched sources.
"""

from .core import (
    Config,
    ConfigException,
    Environment,
    Feature,
    Filter,
    Item,
    ItemReadException,
    ParseException,
    PathNotFoundException,
    Provider,
    Source,
    SourceNotFoundException,
    Spec,
    UnsupportedExtensionException,
    WrongTypeException,
    register_extension,
    unregister_extension,
)

__all__ = [
    "Config",
    "ConfigException",
    "Environment",
    "Feature",
    "Filter",
    "Item",
    "ItemReadException",
    "ParseException",
    "PathNotFoundException",
    "Provider",
    "Source",
    "SourceNotFoundException",
    "Spec",
    "UnsupportedExtensionException",
    "WrongTypeException",
    "register_extension",
    "unregister_extension",
]
