"""Type definitions for the strata configuration system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Mapping


class Feature(Enum):
    """Switches that change how configs treat loaded sources.

    The value of each member is its default state.
    """

    # reject sources with paths no declared item covers
    FAIL_ON_UNKNOWN_PATH = False
    # missing files are skipped instead of failing the load
    OPTIONAL_SOURCE_BY_DEFAULT = False

    @property
    def default(self) -> bool:
        return self.value


@dataclass(frozen=True)
class ProvenanceRecord:
    """Record tracking which layer supplied a configuration value.

    Attributes:
        path: Dotted path of the value.
        facet: Name of the facet the value came from.
        info: Provenance metadata of the source behind that facet.
        timestamp_loaded: When that facet's current content was loaded.
    """

    path: str
    facet: str
    info: Mapping[str, str] = field(default_factory=dict)
    timestamp_loaded: datetime = field(default_factory=datetime.now)

    @property
    def source_id(self) -> str:
        for key in ("file", "url", "resource", "repo"):
            if key in self.info:
                return self.info[key]
        return self.facet


def describe(info: Mapping[str, str]) -> str:
    """Render provenance metadata for error messages."""
    return "[" + ", ".join(f"{key}: {value}" for key, value in info.items()) + "]"


def features_with(features: Mapping[Feature, bool], feature: Feature, enabled: bool) -> Dict[Feature, bool]:
    result = dict(features)
    result[feature] = enabled
    return result
