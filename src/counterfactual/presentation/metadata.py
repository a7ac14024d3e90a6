"""Token metadata — a self-describing document per identifier.

The document is readable before and after reveal. While unrevealed,
`content` is null, `revealed` is false and the image shows the policy's
placeholder text in a distinct style, so an unrevealed record is never
confused with an empty revealed payload.
"""

from __future__ import annotations

import base64
import json
from typing import Any, Optional

from counterfactual.models.record import Record
from counterfactual.policy.resolver import PresentationPolicy
from counterfactual.presentation.escape import content_text, escape_html


SVG_SIZE = 400
_LINE_HEIGHT = 18
_MAX_LINES = 18


def render_svg(
    record: Record,
    content: Optional[bytes],
    policy: PresentationPolicy,
) -> str:
    """Render the record as an SVG card. All user text is escaped."""
    if content is None:
        body = (
            f'<text x="20" y="{SVG_SIZE // 2}" class="placeholder">'
            f"{escape_html(policy.unrevealed_placeholder)}</text>"
        )
    else:
        lines = content_text(content).splitlines() or [""]
        hidden = 0
        if len(lines) > _MAX_LINES:
            # Last visible row is given over to the marker.
            hidden = len(lines) - (_MAX_LINES - 1)
            lines = lines[:_MAX_LINES - 1]
        spans = []
        for i, line in enumerate(lines):
            spans.append(
                f'<tspan x="20" dy="{_LINE_HEIGHT if i else 0}">{escape_html(line)}</tspan>'
            )
        if hidden:
            spans.append(
                f'<tspan x="20" dy="{_LINE_HEIGHT}" class="truncated">'
                f"\u2026 ({hidden} more line{'' if hidden == 1 else 's'})</tspan>"
            )
        body = f'<text x="20" y="40" class="content">{"".join(spans)}</text>'

    footer = escape_html(f"{policy.name_prefix} #{record.identifier}")
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {SVG_SIZE} {SVG_SIZE}">'
        "<style>"
        ".content{font:14px monospace;fill:#111;white-space:pre}"
        ".placeholder{font:italic 14px monospace;fill:#888}"
        ".truncated{font:italic 12px monospace;fill:#888}"
        ".footer{font:11px monospace;fill:#555}"
        "</style>"
        f'<rect width="{SVG_SIZE}" height="{SVG_SIZE}" fill="#fafafa"/>'
        f"{body}"
        f'<text x="20" y="{SVG_SIZE - 20}" class="footer">{footer}</text>'
        "</svg>"
    )


def build_document(
    record: Record,
    content: Optional[bytes],
    policy: PresentationPolicy,
) -> dict[str, Any]:
    """Assemble the metadata document for *record*.

    *content* must be None exactly when the record is unrevealed.
    """
    if record.revealed != (content is not None):
        raise ValueError(
            f"Record {record.identifier} revealed={record.revealed} "
            f"but content {'missing' if content is None else 'given'}"
        )

    svg = render_svg(record, content, policy)
    image = "data:image/svg+xml;base64," + base64.b64encode(svg.encode("utf-8")).decode("ascii")

    attributes: list[dict[str, Any]] = [
        {"trait_type": "Creator", "value": record.creator},
        {"trait_type": "Revealed", "value": "Yes" if record.revealed else "No"},
        {"trait_type": "Committed", "display_type": "date",
         "value": int(record.commit_time.timestamp())},
    ]

    document: dict[str, Any] = {
        "name": f"{policy.name_prefix} #{record.identifier}",
        "description": policy.description,
        "content": content_text(content) if content is not None else None,
        "revealed": record.revealed,
        "creator": record.creator,
        "commitment": record.commitment_hex,
        "commit_time": record.commit_time.isoformat(),
        "image": image,
        "attributes": attributes,
    }
    if record.revealed:
        document["content_location"] = record.content_location
        attributes.append({"trait_type": "Length", "value": len(content)})
    return document


def token_uri(
    record: Record,
    content: Optional[bytes],
    policy: PresentationPolicy,
) -> str:
    """The metadata document as a base64 JSON data URI."""
    document = build_document(record, content, policy)
    encoded = json.dumps(document, sort_keys=True, ensure_ascii=True).encode("ascii")
    return "data:application/json;base64," + base64.b64encode(encoded).decode("ascii")
