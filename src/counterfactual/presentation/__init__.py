"""Presentation layer — metadata documents and SVG rendering."""

from counterfactual.presentation.escape import content_text, escape_html, escape_json
from counterfactual.presentation.metadata import build_document, render_svg, token_uri

__all__ = [
    "build_document",
    "content_text",
    "escape_html",
    "escape_json",
    "render_svg",
    "token_uri",
]
