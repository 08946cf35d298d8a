"""
layouts.py — Draw strategies for the main canvas area of a unit slide.

    render_layout(kind, canvas, area, ctx)

`LayoutKind` is closed; `_RENDERERS` is the only dispatch point. Each strategy
stays inside `area` and receives already-parsed structures; text limits are
enforced by `SlideCanvas`.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from pptx.enum.shapes import MSO_AUTO_SHAPE_TYPE
from pptx.enum.text import PP_ALIGN

from ovadeck.core.render.canvas import BORDER, PANEL, SLATE_500, SLATE_700, SLATE_900, WHITE, Rect, SlideCanvas
from ovadeck.core.spec.infographic_spec import InfographicSpec
from ovadeck.core.spec.mermaid import Direction, MermaidGraph, order_mermaid_nodes
from ovadeck.core.spec.visual_spec import Layout, SpecItem, VisualMode, VisualSpec
from ovadeck.core.text.sanitize import LABEL_MAX, TITLE_MAX, clamp_lines, sanitize_text

CARD_GLYPHS = ("◆", "●", "▲", "■")

MAX_PROCESS_STEPS = 4
MAX_CARDS = 4
MAX_TIMELINE = 5
MAX_BULLETS = 6
MAX_COMPARISON = 3
MAX_ACTIVITY_ROWS = 5


class LayoutKind(str, Enum):
    PROCESS_STEPS = "process_steps"
    CARDS = "cards"
    TIMELINE = "timeline"
    BULLETS = "bullets"
    COMPARISON = "comparison"
    ACTIVITY = "activity"
    INFOGRAPHIC = "infographic"


@dataclass(frozen=True)
class LayoutContext:
    spec: VisualSpec
    infographic: InfographicSpec | None = None
    graph: MermaidGraph | None = None
    content_lines: tuple[str, ...] = ()
    interactivity_lines: tuple[str, ...] = ()

    @property
    def items(self) -> tuple[SpecItem, ...]:
        return self.spec.items


_SPEC_LAYOUT_KIND = {
    Layout.PROCESS_STEPS: LayoutKind.PROCESS_STEPS,
    Layout.CARDS: LayoutKind.CARDS,
    Layout.TIMELINE: LayoutKind.TIMELINE,
    Layout.BULLETS: LayoutKind.BULLETS,
}


def layout_kind_for(mode: VisualMode, spec: VisualSpec) -> LayoutKind:
    """Map a resolved visual mode to the strategy that draws the main area."""
    if mode is VisualMode.INFOGRAPHIC:
        return LayoutKind.INFOGRAPHIC
    if mode is VisualMode.COMPARISON and len(spec.items) >= 2:
        return LayoutKind.COMPARISON
    if mode is VisualMode.ACTIVITY:
        return LayoutKind.ACTIVITY
    if not spec.items:
        return LayoutKind.BULLETS
    return _SPEC_LAYOUT_KIND[spec.layout]


def _item_line(item: SpecItem) -> str:
    return f"{item.title}: {item.body}" if item.body else item.title


def _draw_card_text(canvas: SlideCanvas, rect: Rect, item: SpecItem, *, title_size: float = 15) -> None:
    title_h = min(0.45, rect.h * 0.45)
    canvas.text(Rect(rect.x, rect.y, rect.w, title_h), item.title, size=title_size, bold=True, color=SLATE_900, limit=TITLE_MAX)
    if item.body and rect.h - title_h > 0.2:
        canvas.text(Rect(rect.x, rect.y + title_h, rect.w, rect.h - title_h), item.body, size=12, color=SLATE_700)


def draw_process_steps(canvas: SlideCanvas, area: Rect, ctx: LayoutContext) -> None:
    items = ctx.items[:MAX_PROCESS_STEPS]
    if not items:
        draw_bullets(canvas, area, ctx)
        return
    gap = 0.22
    rows = area.rows(len(items), gap)
    d = min(0.5, rows[0].h * 0.7)
    cx = area.x + 0.1 + d / 2.0
    for i, (item, row) in enumerate(zip(items, rows)):
        card = Rect(area.x + d + 0.35, row.y, area.w - d - 0.35, row.h)
        canvas.panel(card, fill=WHITE, line=BORDER)
        canvas.dot(cx, row.cy, d, text=str(i + 1), size=14)
        if i + 1 < len(rows):
            canvas.connector(cx, row.cy + d / 2.0, cx, rows[i + 1].cy - d / 2.0, color=canvas.accent, width=2.0)
        text_box = card.inset(0.12, 0.06)
        label = item.label or f"Paso {i + 1}"
        canvas.text(Rect(text_box.right - 1.6, text_box.y, 1.6, 0.3), label, size=10, color=SLATE_500, align=PP_ALIGN.RIGHT, limit=LABEL_MAX)
        _draw_card_text(canvas, Rect(text_box.x, text_box.y, text_box.w - 1.6, text_box.h), item, title_size=14)


def draw_cards(canvas: SlideCanvas, area: Rect, ctx: LayoutContext) -> None:
    items = ctx.items[:MAX_CARDS]
    if not items:
        draw_bullets(canvas, area, ctx)
        return
    for i, (item, cell) in enumerate(zip(items, area.grid(len(items), columns=2, gap=0.25))):
        canvas.panel(cell, fill=WHITE, line=BORDER)
        canvas.panel(Rect(cell.x, cell.y, 0.09, cell.h), fill=canvas.accent, line=None, kind=MSO_AUTO_SHAPE_TYPE.RECTANGLE)
        canvas.text(Rect(cell.x + 0.2, cell.y + 0.1, 0.45, 0.45), CARD_GLYPHS[i % len(CARD_GLYPHS)], size=18, color=canvas.accent, limit=2)
        inner = Rect(cell.x + 0.7, cell.y + 0.1, cell.w - 0.85, cell.h - 0.2)
        if item.label:
            canvas.text(Rect(inner.x, inner.y, inner.w, 0.28), item.label, size=10, color=SLATE_500, limit=LABEL_MAX)
            inner = Rect(inner.x, inner.y + 0.28, inner.w, inner.h - 0.28)
        _draw_card_text(canvas, inner, item)


def draw_timeline(canvas: SlideCanvas, area: Rect, ctx: LayoutContext) -> None:
    items = ctx.items[:MAX_TIMELINE]
    if not items:
        draw_bullets(canvas, area, ctx)
        return
    rows = area.rows(len(items), 0.12)
    rule_x = area.x + 0.35
    canvas.connector(rule_x, rows[0].cy, rule_x, rows[-1].cy, color=canvas.accent, width=2.5)
    for i, (item, row) in enumerate(zip(items, rows)):
        canvas.dot(rule_x, row.cy, 0.26)
        label = item.label or str(i + 1)
        canvas.text(Rect(area.x + 0.65, row.y, 1.3, row.h), label, size=11, bold=True, color=canvas.accent, limit=LABEL_MAX)
        _draw_card_text(canvas, Rect(area.x + 2.0, row.y, area.w - 2.0, row.h), item, title_size=14)


def draw_bullets(canvas: SlideCanvas, area: Rect, ctx: LayoutContext) -> None:
    source: Sequence[str] = [_item_line(i) for i in ctx.items] or list(ctx.content_lines)
    lines = clamp_lines(source, MAX_BULLETS, empty="")
    lines = [f"• {s}" for s in lines[:MAX_BULLETS]] + lines[MAX_BULLETS:] or ["N/D"]
    canvas.panel(area, fill=PANEL, line=BORDER)
    canvas.text(area.inset(0.2, 0.15), lines, size=15, color=SLATE_700)


def draw_comparison(canvas: SlideCanvas, area: Rect, ctx: LayoutContext) -> None:
    items = ctx.items[:MAX_COMPARISON]
    if len(items) < 2:
        draw_cards(canvas, area, ctx)
        return
    for item, col in zip(items, area.cols(len(items), 0.25)):
        canvas.panel(col, fill=WHITE, line=BORDER)
        head = canvas.panel(Rect(col.x, col.y, col.w, 0.7), fill=canvas.accent, line=None)
        canvas.label(head, item.title, size=15, limit=TITLE_MAX)
        body = item.body or item.label
        if body:
            canvas.text(Rect(col.x + 0.1, col.y + 0.85, col.w - 0.2, col.h - 1.0), body, size=13, color=SLATE_700)


def draw_activity(canvas: SlideCanvas, area: Rect, ctx: LayoutContext) -> None:
    lines = [s for s in (sanitize_text(x) for x in ctx.interactivity_lines) if s]
    if not lines:
        lines = [_item_line(i) for i in ctx.items]
    if not lines:
        draw_bullets(canvas, area, ctx)
        return
    lines = lines[:MAX_ACTIVITY_ROWS]
    for i, (line, row) in enumerate(zip(lines, area.rows(len(lines), 0.14))):
        canvas.panel(row, fill=WHITE, line=BORDER)
        d = min(0.42, row.h * 0.75)
        canvas.dot(row.x + 0.15 + d / 2.0, row.cy, d, text=str(i + 1), size=12)
        canvas.text(Rect(row.x + d + 0.3, row.y, row.w - d - 0.4, row.h), line, size=13, color=SLATE_700)


def _inset_rects(area: Rect, direction: Direction) -> tuple[Rect, Rect]:
    """(main area, mermaid inset) for the infographic strategy."""
    if direction is Direction.TB:
        inset_w = min(2.3, area.w * 0.3)
        return Rect(area.x, area.y, area.w - inset_w - 0.2, area.h), Rect(area.right - inset_w, area.y, inset_w, area.h)
    inset_h = min(1.5, area.h * 0.3)
    return Rect(area.x, area.y, area.w, area.h - inset_h - 0.2), Rect(area.x, area.bottom - inset_h, area.w, inset_h)


def draw_mermaid_inset(canvas: SlideCanvas, inset: Rect, graph: MermaidGraph | None, raw_code: str = "") -> None:
    canvas.panel(inset, fill=PANEL, line=BORDER)
    if graph is None:
        # Zero-node diagrams are shown as source text.
        canvas.text(inset.inset(0.1), raw_code or "N/D", size=10, color=SLATE_500)
        return
    nodes = order_mermaid_nodes(graph)
    inner = inset.inset(0.15, 0.15)
    boxes = inner.rows(len(nodes), 0.22) if graph.direction is Direction.TB else inner.cols(len(nodes), 0.3)
    for i, (node, box) in enumerate(zip(nodes, boxes)):
        shape = canvas.panel(box, fill=WHITE, line=canvas.accent, line_width=1.25)
        canvas.label(shape, node.label, size=10, bold=False, color=SLATE_900, limit=LABEL_MAX)
        if i + 1 < len(boxes):
            nxt = boxes[i + 1]
            if graph.direction is Direction.TB:
                canvas.connector(box.cx, box.bottom, nxt.cx, nxt.y, color=canvas.accent)
            else:
                canvas.connector(box.right, box.cy, nxt.x, nxt.cy, color=canvas.accent)


def draw_infographic(canvas: SlideCanvas, area: Rect, ctx: LayoutContext) -> None:
    inner_kind = _SPEC_LAYOUT_KIND[ctx.spec.layout] if ctx.items else LayoutKind.BULLETS
    info = ctx.infographic
    if info is None or not info.requires_infographic:
        _RENDERERS[inner_kind](canvas, area, ctx)
        return
    direction = ctx.graph.direction if ctx.graph is not None else Direction.LR
    main, inset = _inset_rects(area, direction)
    _RENDERERS[inner_kind](canvas, main, ctx)
    draw_mermaid_inset(canvas, inset, ctx.graph, info.mermaid_code)


_RENDERERS: dict[LayoutKind, Callable[[SlideCanvas, Rect, LayoutContext], None]] = {
    LayoutKind.PROCESS_STEPS: draw_process_steps,
    LayoutKind.CARDS: draw_cards,
    LayoutKind.TIMELINE: draw_timeline,
    LayoutKind.BULLETS: draw_bullets,
    LayoutKind.COMPARISON: draw_comparison,
    LayoutKind.ACTIVITY: draw_activity,
    LayoutKind.INFOGRAPHIC: draw_infographic,
}


def render_layout(kind: LayoutKind, canvas: SlideCanvas, area: Rect, ctx: LayoutContext) -> None:
    _RENDERERS[kind](canvas, area, ctx)
