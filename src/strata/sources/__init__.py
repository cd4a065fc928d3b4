"""Built-in format providers.

Each module implements one format; :func:`builtin_providers` lists the
extensions they are registered against.
"""

from __future__ import annotations

from typing import Dict

from ..core.provider import Provider


def builtin_providers() -> Dict[str, Provider]:
    """Providers registered by default, keyed by extension."""
    from .env_file import DotEnvProvider
    from .ini_file import IniProvider
    from .json_file import JsonProvider
    from .properties import PropertiesProvider
    from .toml_file import TomlProvider
    from .xml_file import XmlProvider
    from .yaml_file import YamlProvider

    yaml_provider = YamlProvider()
    return {
        "json": JsonProvider(),
        "yaml": yaml_provider,
        "yml": yaml_provider,
        "toml": TomlProvider(),
        "ini": IniProvider(),
        "properties": PropertiesProvider(),
        "xml": XmlProvider(),
        "env": DotEnvProvider(),
    }


__all__ = ["builtin_providers"]
