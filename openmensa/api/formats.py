"""
Response shaping: json, xml and msgpack bodies plus X-OM-* headers.

The format is chosen by the path suffix (`/users.json`, `/users.xml`,
`/users.msgpack`). Anything else is answered with 406.
"""

from __future__ import annotations

import json
import re
from typing import Any
from xml.etree import ElementTree

import msgpack
from fastapi import Response

from openmensa.core.errors import UnsupportedFormat

MEDIA_TYPES: dict[str, str] = {
    "json": "application/json",
    "xml": "application/xml",
    "msgpack": "application/msgpack",
}

DEFAULT_FORMAT = "json"


def negotiate(fmt: str | None) -> str:
    """Validate a requested format. Raises UnsupportedFormat."""
    if fmt not in MEDIA_TYPES:
        raise UnsupportedFormat(fmt)
    return fmt


# =============================================================================
# Encoders
# =============================================================================


def _singular(tag: str) -> str:
    if tag.endswith("ies"):
        return tag[:-3] + "y"
    if tag.endswith("s") and len(tag) > 1:
        return tag[:-1]
    return "item"


def _xml_tag(key: str) -> str:
    tag = re.sub(r"[^A-Za-z0-9_\-.]", "-", str(key))
    return tag if tag and not tag[0].isdigit() else f"_{tag}"


def _fill(element: ElementTree.Element, value: Any) -> None:
    if value is None:
        element.set("nil", "true")
    elif isinstance(value, bool):
        element.set("type", "boolean")
        element.text = "true" if value else "false"
    elif isinstance(value, dict):
        for key, child in value.items():
            _fill(ElementTree.SubElement(element, _xml_tag(key)), child)
    elif isinstance(value, (list, tuple)):
        element.set("type", "array")
        for child in value:
            _fill(ElementTree.SubElement(element, _singular(element.tag)), child)
    else:
        if isinstance(value, (int, float)):
            element.set("type", "integer" if isinstance(value, int) else "float")
        element.text = str(value)


def to_xml(data: Any, root: str = "response") -> bytes:
    element = ElementTree.Element(_xml_tag(root))
    _fill(element, data)
    return ElementTree.tostring(element, encoding="utf-8", xml_declaration=True)


def encode(data: Any, fmt: str, root: str = "response") -> bytes:
    if fmt == "json":
        return json.dumps(data, ensure_ascii=False).encode("utf-8")
    if fmt == "xml":
        return to_xml(data, root)
    if fmt == "msgpack":
        return msgpack.packb(data, use_bin_type=True)
    raise UnsupportedFormat(fmt)


# =============================================================================
# Headers
# =============================================================================


def header_name(key: str) -> str:
    """
    Name of a custom header.

    The key is camelized, stripped of anything but letters and gets a hyphen
    before every uppercase letter: "api_version" -> "X-OM-Api-Version".
    """
    camel = "".join(part[:1].upper() + part[1:] for part in re.split(r"[_\s]+", str(key)))
    letters = re.sub(r"[^A-Za-z]+", "", camel)
    return "X-OM" + re.sub(r"([A-Z])", r"-\1", letters)


def custom_headers(response: Response, **options: Any) -> Response:
    for key, value in options.items():
        response.headers[header_name(key)] = str(value)
    return response


def render(
    data: Any,
    fmt: str,
    status_code: int = 200,
    root: str = "response",
    headers: dict[str, Any] | None = None,
) -> Response:
    """Encode `data` in `fmt` and attach custom headers."""
    response = Response(
        content=encode(data, fmt, root),
        status_code=status_code,
        media_type=MEDIA_TYPES[fmt],
    )
    return custom_headers(response, **(headers or {}))
