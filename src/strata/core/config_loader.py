"""Loader for strata.yaml manifests."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ParseException
from .filters import Filter
from .types import Feature
from .watch import DEFAULT_PERIOD

logger = logging.getLogger(__name__)

MANIFEST_NAME = "strata.yaml"


class ConfigLoader:
    """Handles loading and parsing of strata.yaml manifests."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize the manifest loader.

        Args:
            config_path: Path to the manifest. If None, looks in the current
                directory and its parents.
        """
        self.config_path = self._find_config_file(config_path)
        self._config: Optional[Dict[str, Any]] = None

    def _find_config_file(
        self, config_path: Optional[Union[str, Path]] = None
    ) -> Optional[Path]:
        """Find the manifest.

        Args:
            config_path: Explicit path to the manifest, or None to search.

        Returns:
            Path to the manifest if found, None otherwise.
        """
        if config_path is not None:
            path = Path(config_path)
            if path.exists():
                return path
            logger.warning("manifest '%s' does not exist", path)
            return None

        current = Path.cwd()
        for directory in (current, *current.parents):
            candidate = directory / MANIFEST_NAME
            if candidate.exists():
                return candidate
        return None

    def load(self) -> Dict[str, Any]:
        """Load the manifest.

        Returns:
            Parsed manifest, or an empty dict if there is none.

        Raises:
            ParseException: If the manifest is not valid YAML.
        """
        if self.config_path is None:
            return {}

        if self._config is not None:
            return self._config

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ParseException(f"invalid manifest at {self.config_path}: {e}") from e
        except OSError as e:
            logger.warning("could not read manifest at %s: %s", self.config_path, e)
            return {}
        if not isinstance(data, dict):
            raise ParseException(f"manifest at {self.config_path} must be a mapping")
        self._config = data
        return self._config

    def get_environment_config(
        self, environment_name: str
    ) -> Optional[Dict[str, Any]]:
        """Get the section of an environment, None if it is not declared."""
        environments = self.load().get("environments") or {}
        return environments.get(environment_name)

    def environment_names(self) -> List[str]:
        return list((self.load().get("environments") or {}).keys())

    def get_sources(self, environment_name: str) -> List[Dict[str, Any]]:
        """Get the source entries of an environment."""
        env_config = self.get_environment_config(environment_name)
        if env_config is None:
            return []
        return env_config.get("sources") or []

    def get_features(self, environment_name: str) -> Dict[Feature, bool]:
        """Get the feature switches of an environment.

        Raises:
            ValueError: If a feature name is unknown.
        """
        env_config = self.get_environment_config(environment_name) or {}
        features: Dict[Feature, bool] = {}
        for key, value in (env_config.get("features") or {}).items():
            try:
                feature = Feature[str(key).upper()]
            except KeyError:
                raise ValueError(f"unknown feature '{key}'") from None
            features[feature] = bool(value)
        return features

    def parse_source(self, source_config: Dict[str, Any]) -> Dict[str, Any]:
        """Parse a source entry into keyword arguments of ``register_source``.

        Args:
            source_config: Raw source entry from YAML.

        Returns:
            Dictionary with parsed source components.

        Raises:
            ValueError: If the entry names neither a path nor a URI.
        """
        result: Dict[str, Any] = {}

        if "path" in source_config:
            result["path_or_uri"] = Path(source_config["path"])
        elif "uri" in source_config:
            result["path_or_uri"] = str(source_config["uri"])
        else:
            raise ValueError("Source must have either 'path' or 'uri'")

        filter_config = source_config.get("filter")
        if filter_config:
            result["filter"] = Filter.from_dict(filter_config)

        watch = source_config.get("watch")
        if watch is True:
            result["watch"] = DEFAULT_PERIOD
        elif watch:
            result["watch"] = float(watch)

        for key in ("prefix", "scope", "name", "format"):
            if key in source_config:
                result[key] = str(source_config[key])
        if "optional" in source_config:
            result["optional"] = bool(source_config["optional"])

        return result
