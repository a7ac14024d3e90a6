"""Escaping for untrusted content embedded in SVG/HTML and JSON."""

from __future__ import annotations

import html
import json
import re


# Characters XML 1.0 does not allow at all, even escaped.
_XML_INVALID = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def content_text(content: bytes) -> str:
    """Decode stored bytes for display. Undecodable bytes become U+FFFD."""
    return content.decode("utf-8", errors="replace")


def escape_html(text: str) -> str:
    """Escape text for element bodies and attribute values in SVG/HTML."""
    return html.escape(_XML_INVALID.sub("\ufffd", text), quote=True)


def escape_json(text: str) -> str:
    """Escape text for the inside of a JSON string literal (no quotes).

    For callers that splice content into JSON they assemble themselves;
    build_document goes through json.dumps and does not need it.
    """
    return json.dumps(text)[1:-1]
