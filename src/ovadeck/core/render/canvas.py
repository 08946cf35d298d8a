from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_AUTO_SHAPE_TYPE, MSO_CONNECTOR
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.oxml.ns import qn
from pptx.oxml.xmlchemy import OxmlElement
from pptx.parts.image import Image as PptxImage
from pptx.util import Inches, Pt

from ovadeck.core.text.sanitize import BODY_MAX, sanitize_text, truncate

logger = logging.getLogger(__name__)

SLIDE_W_IN = 13.333
SLIDE_H_IN = 7.5

FONT = "Calibri"

ACCENT = "#0B7285"
SLATE_900 = "#0F172A"
SLATE_700 = "#334155"
SLATE_500 = "#64748B"
BORDER = "#CBD5E1"
PANEL = "#F8FAFC"
WHITE = "#FFFFFF"
MUTED = "#E2E8F0"


@dataclass(frozen=True)
class Rect:
    """Box in inches."""

    x: float
    y: float
    w: float
    h: float

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    @property
    def cx(self) -> float:
        return self.x + self.w / 2.0

    @property
    def cy(self) -> float:
        return self.y + self.h / 2.0

    def inset(self, dx: float, dy: float | None = None) -> "Rect":
        dy = dx if dy is None else dy
        return Rect(self.x + dx, self.y + dy, max(self.w - 2 * dx, 0.0), max(self.h - 2 * dy, 0.0))

    def rows(self, n: int, gap: float = 0.15) -> list["Rect"]:
        if n <= 0:
            return []
        h = (self.h - gap * (n - 1)) / n
        return [Rect(self.x, self.y + i * (h + gap), self.w, h) for i in range(n)]

    def cols(self, n: int, gap: float = 0.2) -> list["Rect"]:
        if n <= 0:
            return []
        w = (self.w - gap * (n - 1)) / n
        return [Rect(self.x + i * (w + gap), self.y, w, self.h) for i in range(n)]

    def grid(self, n: int, columns: int = 2, gap: float = 0.2) -> list["Rect"]:
        if n <= 0:
            return []
        rows = (n + columns - 1) // columns
        out: list[Rect] = []
        for r in self.rows(rows, gap):
            out.extend(r.cols(columns, gap))
        return out[:n]


def rgb_from_any(v: Any) -> RGBColor | None:
    """Parse RGB from '#RRGGBB' or 'RRGGBB' or [r,g,b]."""
    if v is None:
        return None
    if isinstance(v, RGBColor):
        return v
    if isinstance(v, (list, tuple)) and len(v) == 3:
        try:
            r, g, b = (int(v[0]), int(v[1]), int(v[2]))
        except (TypeError, ValueError):
            return None
        if 0 <= r <= 255 and 0 <= g <= 255 and 0 <= b <= 255:
            return RGBColor(r, g, b)
        return None
    if isinstance(v, str):
        s = v.strip().lstrip("#")
        if len(s) == 6:
            try:
                return RGBColor.from_string(s.upper())
            except ValueError:
                return None
    return None


def set_no_line(shape: Any) -> None:
    """Enforce <a:ln w="0"><a:noFill/></a:ln> so theme outlines never leak in."""
    spPr = shape._element.spPr
    st_el = shape._element.find(qn("p:style"))
    if st_el is not None:
        ln_ref = st_el.find(qn("a:lnRef"))
        if ln_ref is not None:
            ln_ref.set("idx", "0")
    ln = spPr.find(qn("a:ln"))
    if ln is None:
        ln = OxmlElement("a:ln")
        spPr.append(ln)
    ln.set("w", "0")
    for tag in ("a:noFill", "a:solidFill", "a:gradFill", "a:pattFill"):
        el = ln.find(qn(tag))
        if el is not None:
            ln.remove(el)
    ln.append(OxmlElement("a:noFill"))


def _kill_theme_effects(shape: Any) -> None:
    # Autoshapes inherit a drop shadow through effectRef idx="2".
    st_el = shape._element.find(qn("p:style"))
    if st_el is not None:
        eff_ref = st_el.find(qn("a:effectRef"))
        if eff_ref is not None:
            eff_ref.set("idx", "0")


class SlideCanvas:
    """Thin drawing surface over one python-pptx slide.

    Every string that reaches the slide goes through `truncate`, so callers can
    pass raw document text. `slide_for(n)` maps a planned slide number to the
    already-created slide object, which is what makes forward links possible.
    """

    def __init__(self, slide: Any, slide_for: Any = None, *, accent: str = ACCENT):
        self.slide = slide
        self.slide_for = slide_for
        self.accent = accent

    @property
    def shapes(self) -> Any:
        return self.slide.shapes

    def panel(
        self,
        rect: Rect,
        *,
        fill: str | None = PANEL,
        line: str | None = BORDER,
        kind: MSO_AUTO_SHAPE_TYPE = MSO_AUTO_SHAPE_TYPE.ROUNDED_RECTANGLE,
        line_width: float = 0.75,
    ) -> Any:
        shape = self.shapes.add_shape(kind, Inches(rect.x), Inches(rect.y), Inches(rect.w), Inches(rect.h))
        _kill_theme_effects(shape)
        rgb = rgb_from_any(fill)
        if rgb is None:
            shape.fill.background()
        else:
            shape.fill.solid()
            shape.fill.fore_color.rgb = rgb
        line_rgb = rgb_from_any(line)
        if line_rgb is None:
            set_no_line(shape)
        else:
            shape.line.color.rgb = line_rgb
            shape.line.width = Pt(line_width)
        if kind == MSO_AUTO_SHAPE_TYPE.ROUNDED_RECTANGLE:
            shape.adjustments[0] = 0.08
        return shape

    def _fill_frame(
        self,
        tf: Any,
        lines: Sequence[str],
        *,
        size: float,
        bold: bool,
        color: str,
        align: PP_ALIGN | None,
        anchor: MSO_ANCHOR,
    ) -> None:
        tf.word_wrap = True
        tf.vertical_anchor = anchor
        tf.margin_left = tf.margin_right = Inches(0.08)
        tf.margin_top = tf.margin_bottom = Inches(0.04)
        rgb = rgb_from_any(color)
        for i, line in enumerate(lines):
            p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
            if align is not None:
                p.alignment = align
            run = p.add_run()
            run.text = line
            font = run.font
            font.name = FONT
            font.size = Pt(size)
            font.bold = bold
            if rgb is not None:
                font.color.rgb = rgb

    def text(
        self,
        rect: Rect,
        text: str | Sequence[str],
        *,
        size: float = 14,
        bold: bool = False,
        color: str = SLATE_700,
        align: PP_ALIGN | None = None,
        anchor: MSO_ANCHOR = MSO_ANCHOR.TOP,
        limit: int = BODY_MAX,
    ) -> Any:
        lines = [text] if isinstance(text, str) else list(text)
        lines = [truncate(s, limit) for s in lines if sanitize_text(s)] or [""]
        box = self.shapes.add_textbox(Inches(rect.x), Inches(rect.y), Inches(rect.w), Inches(rect.h))
        self._fill_frame(box.text_frame, lines, size=size, bold=bold, color=color, align=align, anchor=anchor)
        return box

    def label(
        self,
        shape: Any,
        text: str,
        *,
        size: float = 14,
        bold: bool = True,
        color: str = WHITE,
        align: PP_ALIGN = PP_ALIGN.CENTER,
        limit: int = BODY_MAX,
    ) -> Any:
        """Write centered text inside an autoshape."""
        self._fill_frame(
            shape.text_frame,
            [truncate(text, limit)],
            size=size,
            bold=bold,
            color=color,
            align=align,
            anchor=MSO_ANCHOR.MIDDLE,
        )
        return shape

    def dot(self, cx: float, cy: float, d: float, *, fill: str | None = None, text: str = "", size: float = 12) -> Any:
        shape = self.panel(
            Rect(cx - d / 2.0, cy - d / 2.0, d, d),
            fill=fill or self.accent,
            line=None,
            kind=MSO_AUTO_SHAPE_TYPE.OVAL,
        )
        if text:
            self.label(shape, text, size=size, limit=4)
        return shape

    def connector(self, x1: float, y1: float, x2: float, y2: float, *, color: str = BORDER, width: float = 1.5) -> Any:
        c = self.shapes.add_connector(MSO_CONNECTOR.STRAIGHT, Inches(x1), Inches(y1), Inches(x2), Inches(y2))
        rgb = rgb_from_any(color)
        if rgb is not None:
            c.line.color.rgb = rgb
        c.line.width = Pt(width)
        return c

    def button(self, rect: Rect, text: str, target: int | None, *, fill: str | None = None, color: str = WHITE, size: float = 13) -> Any:
        shape = self.panel(rect, fill=fill or self.accent, line=None)
        self.label(shape, text, size=size, color=color, limit=46)
        if target is not None:
            self.link(shape, target)
        return shape

    def link(self, shape: Any, slide_no: int) -> None:
        if self.slide_for is None:
            raise RuntimeError("canvas has no slide lookup for hyperlinks")
        shape.click_action.target_slide = self.slide_for(slide_no)

    def picture(self, path: Path, rect: Rect) -> Any | None:
        """Add an image fitted inside `rect` (contain: aspect kept, centered)."""
        try:
            im = PptxImage.from_file(str(path))
            iw, ih = float(im.size[0]), float(im.size[1])
            if iw <= 0 or ih <= 0:
                raise ValueError("invalid image px size")
            scale = min(rect.w / iw, rect.h / ih)
            w, h = iw * scale, ih * scale
            return self.shapes.add_picture(
                str(path),
                Inches(rect.x + (rect.w - w) / 2.0),
                Inches(rect.y + (rect.h - h) / 2.0),
                width=Inches(w),
                height=Inches(h),
            )
        except Exception as e:
            # Unsupported formats (webp, unknown ".img") end up as a text placeholder.
            logger.debug("picture %s not placed: %s", path, e)
            return None
