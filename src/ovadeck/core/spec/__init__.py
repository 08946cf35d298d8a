"""
ovadeck.core.spec — Parsers for the text mini-languages embedded in unit resources.

    parse_visual_spec(text, *, fallback_title, fallback_lines) -> VisualSpec
    parse_infographic_spec(text, *, fallback_topic) -> InfographicSpec
    parse_mermaid(code) -> MermaidGraph | None
    order_mermaid_nodes(graph, limit=5) -> list[MermaidNode]
"""
from ovadeck.core.spec.infographic_spec import InfographicSpec, parse_infographic_spec
from ovadeck.core.spec.mermaid import Direction, MermaidGraph, MermaidNode, order_mermaid_nodes, parse_mermaid
from ovadeck.core.spec.visual_spec import Layout, Popup, SpecItem, VisualMode, VisualSpec, parse_visual_spec

__all__ = [
    "Direction",
    "InfographicSpec",
    "Layout",
    "MermaidGraph",
    "MermaidNode",
    "Popup",
    "SpecItem",
    "VisualMode",
    "VisualSpec",
    "order_mermaid_nodes",
    "parse_infographic_spec",
    "parse_mermaid",
    "parse_visual_spec",
]
