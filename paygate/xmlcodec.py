"""Flat XML documents exchanged with the provider's v2 endpoints."""

import xml.etree.ElementTree as ET
from typing import Any, Mapping, Union

from .errors import DecodeError

ROOT_TAG = "xml"


def generate_xml(params: Mapping[str, Any]) -> str:
    """Serialize parameters as ``<xml><name>value</name>...</xml>``."""
    root = ET.Element(ROOT_TAG)
    for name in sorted(params):
        value = params[name]
        if value is None:
            continue
        child = ET.SubElement(root, name)
        child.text = value if isinstance(value, str) else str(value)
    return ET.tostring(root, encoding="unicode")


def parse_xml(body: Union[bytes, str]) -> dict[str, str]:
    """
    Parse a flat provider XML document into a dictionary.

    Element text is returned verbatim; an empty element maps to ``""``.

    Raises:
        DecodeError: If the body is empty or not well-formed XML
    """
    if not body or not body.strip():
        raise DecodeError("empty XML response body")
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise DecodeError(f"malformed XML response: {e}") from e
    return {child.tag: child.text or "" for child in root}
