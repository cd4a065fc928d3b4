from .config import Config
from .environment import Environment, RegisteredSource
from .errors import (
    ConfigException,
    InvalidPathException,
    InvalidRemoteRepoException,
    ItemReadException,
    ParseException,
    PathNotFoundException,
    SourceNotFoundException,
    UnknownPathsException,
    UnsupportedExtensionException,
    WrongTypeException,
)
from .facet import Facet, WatchedFacet
from .filters import Filter
from .item import REQUIRED, Item, Spec
from .loader import DefaultLoaders, Loader, MapLoader
from .merge import merge, merge_all
from .provider import Provider, register_extension, unregister_extension
from .source import FlatSource, Source, TreeSource
from .types import Feature, ProvenanceRecord
from .writer import Writer

__all__ = [
    "Config",
    "ConfigException",
    "DefaultLoaders",
    "Environment",
    "Facet",
    "Feature",
    "Filter",
    "FlatSource",
    "InvalidPathException",
    "InvalidRemoteRepoException",
    "Item",
    "ItemReadException",
    "Loader",
    "MapLoader",
    "ParseException",
    "PathNotFoundException",
    "ProvenanceRecord",
    "Provider",
    "REQUIRED",
    "RegisteredSource",
    "Source",
    "SourceNotFoundException",
    "Spec",
    "TreeSource",
    "UnknownPathsException",
    "UnsupportedExtensionException",
    "WatchedFacet",
    "Writer",
    "WrongTypeException",
    "merge",
    "merge_all",
    "register_extension",
    "unregister_extension",
]
