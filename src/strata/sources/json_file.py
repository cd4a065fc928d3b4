from __future__ import annotations

import json
from typing import Any, Mapping

from ..core.provider import Provider


class JsonProvider(Provider):
    type = "json"

    def parse(self, text: str) -> Any:
        # JSONDecodeError is a ValueError
        return json.loads(text)

    def dump(self, data: Mapping[str, Any]) -> str:
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"
