"""XML sources in the Hadoop ``<configuration>`` layout.

::

    <configuration>
      <property>
        <name>server.port</name>
        <value>8080</value>
      </property>
    </configuration>

Values are text that coerces on demand.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any, Dict, Mapping

from ..core.filters import flatten_to_text
from ..core.provider import Provider
from ..core.source import tree_from_flat

ROOT_TAG = "configuration"


class XmlProvider(Provider):
    type = "xml"
    parse_errors = (ET.ParseError, ValueError)
    flat = True

    def parse(self, text: str) -> Dict[str, Any]:
        root = ET.fromstring(text)
        if root.tag != ROOT_TAG:
            raise ValueError(f"expected <{ROOT_TAG}> root element, got <{root.tag}>")
        flat: Dict[str, str] = {}
        for prop in root.iter("property"):
            name = prop.findtext("name")
            if name is None:
                raise ValueError("<property> without <name>")
            flat[name.strip()] = prop.findtext("value") or ""
        return tree_from_flat(flat)

    def dump(self, data: Mapping[str, Any]) -> str:
        root = ET.Element(ROOT_TAG)
        for key, value in flatten_to_text(dict(data)).items():
            prop = ET.SubElement(root, "property")
            ET.SubElement(prop, "name").text = key
            ET.SubElement(prop, "value").text = value
        ET.indent(root)
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode") + "\n"
