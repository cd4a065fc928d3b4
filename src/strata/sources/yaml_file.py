from __future__ import annotations

from typing import Any, Mapping

import yaml

from ..core.provider import Provider


class YamlProvider(Provider):
    type = "yaml"
    parse_errors = (yaml.YAMLError,)

    def parse(self, text: str) -> Any:
        return yaml.safe_load(text)

    def dump(self, data: Mapping[str, Any]) -> str:
        return yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True)
