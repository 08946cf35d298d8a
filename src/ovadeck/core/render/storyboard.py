"""
storyboard.py — Course document -> navigable .pptx storyboard.

Phases (in this order, never interleaved):
  1. prepare   parse per-unit visual/infographic specs and resolve visual modes
  2. plan      number every slide and its hyperlinks (SlidePlan)
  3. resolve   look up visuals concurrently, results kept by unit index
  4. create    add plan.total blank slides so any slide can be a link target
  5. draw      cover, menu, units and popups, in document order
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Iterator, Mapping

from pptx import Presentation
from pptx.enum.shapes import MSO_AUTO_SHAPE_TYPE
from pptx.enum.text import PP_ALIGN
from pptx.util import Inches

from ovadeck.core.assets.providers import provider_from_settings
from ovadeck.core.assets.resolver import AssetResolver, ResolvedVisual
from ovadeck.core.config import Settings, load_settings
from ovadeck.core.document.model import CourseDocument, CourseUnit, ResourceKind
from ovadeck.core.plan.slide_plan import SlidePlan, build_slide_plan
from ovadeck.core.plan.visual_mode import resolve_visual_mode
from ovadeck.core.render.canvas import (
    ACCENT,
    BORDER,
    MUTED,
    PANEL,
    SLATE_500,
    SLATE_700,
    SLATE_900,
    SLIDE_H_IN,
    SLIDE_W_IN,
    WHITE,
    Rect,
    SlideCanvas,
)
from ovadeck.core.render.layouts import LayoutContext, LayoutKind, layout_kind_for, render_layout
from ovadeck.core.render.notes import cover_notes, menu_notes, popup_notes, unit_notes
from ovadeck.core.spec.infographic_spec import InfographicSpec, parse_infographic_spec
from ovadeck.core.spec.mermaid import MermaidGraph, parse_mermaid
from ovadeck.core.spec.visual_spec import VisualMode, VisualSpec, parse_visual_spec, popup_for_button
from ovadeck.core.text.sanitize import POPUP_BODY_MAX, TITLE_MAX

logger = logging.getLogger(__name__)

BLANK_LAYOUT = 6

HEADER = Rect(0.0, 0.0, SLIDE_W_IN, 0.85)
SUBTITLE = Rect(0.6, 0.95, 8.3, 0.42)
MAIN = Rect(0.6, 1.45, 8.3, 5.05)
VISUAL = Rect(9.1, 1.1, 3.63, 2.6)
BUTTONS_TOP = 3.9
BUTTON_H = 0.5
BUTTON_GAP = 0.12
NAV = Rect(0.6, 6.72, 12.13, 0.5)


@dataclass(frozen=True)
class UnitBundle:
    index: int
    unit: CourseUnit
    visual_spec: VisualSpec
    infographic: InfographicSpec | None
    graph: MermaidGraph | None
    mode: VisualMode
    layout: LayoutKind

    @property
    def accent(self) -> str:
        if self.infographic is not None and self.infographic.palette:
            return self.infographic.palette[0]
        return ACCENT

    def visual_query(self) -> str:
        return self.unit.special(ResourceKind.IMAGE_QUERY) or self.unit.title

    def topic(self) -> str:
        if self.infographic is not None and self.infographic.topic:
            return self.infographic.topic
        return self.unit.title


@dataclass(frozen=True)
class UnitVisuals:
    image: ResolvedVisual | None = None
    icon: ResolvedVisual | None = None


def prepare_units(document: CourseDocument, settings: Settings) -> Iterator[UnitBundle]:
    for i, unit in enumerate(document.units):
        spec = parse_visual_spec(
            unit.special(ResourceKind.VISUAL_SPEC),
            fallback_title=unit.title,
            fallback_lines=unit.content_outline,
        )
        info_text = unit.special(ResourceKind.INFOGRAPHIC)
        info = parse_infographic_spec(info_text, fallback_topic=unit.title) if info_text else None
        graph = parse_mermaid(info.mermaid_code) if info is not None else None
        mode = resolve_visual_mode(spec, info, unit, activity_threshold=settings.activity_text_threshold)
        yield UnitBundle(
            index=i,
            unit=unit,
            visual_spec=spec,
            infographic=info,
            graph=graph,
            mode=mode,
            layout=layout_kind_for(mode, spec),
        )


def _resolve_one(resolver: AssetResolver, namespace: str, bundle: UnitBundle) -> UnitVisuals:
    try:
        image = resolver.resolve(namespace, bundle.visual_query(), topic=bundle.topic(), prefer_horizontal=True)
        icon = None
        icon_query = bundle.unit.special(ResourceKind.ICON_QUERY)
        if icon_query:
            icon = resolver.resolve(namespace, icon_query, prefer_horizontal=False, icon=True)
        return UnitVisuals(image=image, icon=icon)
    except Exception as e:
        logger.warning("visual lookup failed for %s: %s", bundle.unit.unit_id, e)
        return UnitVisuals()


def resolve_visuals(
    bundles: list[UnitBundle], resolver: AssetResolver, namespace: str, *, workers: int
) -> list[UnitVisuals]:
    """One entry per unit, in document order regardless of completion order."""
    results: list[UnitVisuals] = [UnitVisuals()] * len(bundles)
    if not bundles:
        return results
    with ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="ovadeck-assets") as pool:
        futures = {pool.submit(_resolve_one, resolver, namespace, b): b.index for b in bundles}
        for fut, idx in futures.items():
            results[idx] = fut.result()
    return results


class StoryboardAssembler:
    def __init__(self, document: CourseDocument, *, resolver: AssetResolver, settings: Settings):
        self.document = document
        self.resolver = resolver
        self.settings = settings
        self.bundles = list(prepare_units(document, settings))
        self.plan: SlidePlan = build_slide_plan(
            [len(b.visual_spec.popups) for b in self.bundles],
            [b.unit.unit_id for b in self.bundles],
        )
        self._slides: list[Any] = []

    def _slide(self, slide_no: int) -> Any:
        return self._slides[slide_no - 1]

    def _canvas(self, slide_no: int, accent: str = ACCENT) -> SlideCanvas:
        return SlideCanvas(self._slide(slide_no), self._slide, accent=accent)

    def build(self) -> bytes:
        visuals = resolve_visuals(
            self.bundles, self.resolver, self.document.title, workers=self.settings.asset_workers
        )

        prs = Presentation()
        prs.slide_width = Inches(SLIDE_W_IN)
        prs.slide_height = Inches(SLIDE_H_IN)
        layout = prs.slide_layouts[BLANK_LAYOUT]
        self._slides = [prs.slides.add_slide(layout) for _ in range(self.plan.total)]
        logger.debug("storyboard: %d slides planned for %d units", self.plan.total, len(self.bundles))

        self._draw_cover()
        self._draw_menu()
        for b in self.bundles:
            self._draw_unit(b, visuals[b.index])
            for j in range(len(b.visual_spec.popups)):
                self._draw_popup(b, j)

        buf = BytesIO()
        prs.save(buf)
        return buf.getvalue()

    # --- slides -----------------------------------------------------------

    def _header(self, canvas: SlideCanvas, title: str, tag: str = "") -> None:
        canvas.panel(HEADER, fill=canvas.accent, line=None, kind=MSO_AUTO_SHAPE_TYPE.RECTANGLE)
        canvas.text(Rect(0.6, 0.12, 10.2, 0.62), title, size=24, bold=True, color=WHITE, limit=TITLE_MAX)
        if tag:
            canvas.text(Rect(10.9, 0.22, 1.83, 0.42), tag, size=12, color=WHITE, align=PP_ALIGN.RIGHT, limit=24)

    def _draw_cover(self) -> None:
        slide_no = self.plan.cover
        canvas = self._canvas(slide_no)
        p = self.document.project
        canvas.panel(Rect(0.0, 0.0, SLIDE_W_IN, SLIDE_H_IN), fill=PANEL, line=None, kind=MSO_AUTO_SHAPE_TYPE.RECTANGLE)
        canvas.panel(Rect(0.0, 0.0, 0.35, SLIDE_H_IN), fill=canvas.accent, line=None, kind=MSO_AUTO_SHAPE_TYPE.RECTANGLE)
        canvas.text(Rect(1.0, 1.2, 7.0, 0.4), "Storyboard OVA", size=14, bold=True, color=canvas.accent)
        canvas.text(Rect(1.0, 1.7, 11.0, 1.6), p.title, size=40, bold=True, color=SLATE_900, limit=TITLE_MAX * 2)
        meta = [s for s in (p.audience, p.level, f"{p.duration_hours:g} h" if p.duration_hours else "", p.modality) if s]
        if meta:
            canvas.text(Rect(1.0, 3.4, 11.0, 0.5), " · ".join(meta), size=16, color=SLATE_700)
        canvas.button(Rect(1.0, 4.5, 2.6, 0.7), "Iniciar", self.plan.menu, size=18)
        self._slide(slide_no).notes_slide.notes_text_frame.text = cover_notes(self.document)

    def _draw_menu(self) -> None:
        slide_no = self.plan.menu
        canvas = self._canvas(slide_no)
        self._header(canvas, "Contenido")
        canvas.text(SUBTITLE, "Haz clic en cada botón para acceder a la información", size=15, color=SLATE_500)
        area = Rect(0.6, 1.6, 12.13, 4.9)
        n = len(self.bundles)
        if n:
            rows = (n + 1) // 2
            cell_h = min(0.75, (area.h - 0.2 * (rows - 1)) / rows)
            grid_area = Rect(area.x, area.y, area.w, rows * cell_h + 0.2 * (rows - 1))
            for b, cell in zip(self.bundles, grid_area.grid(n, columns=2, gap=0.2)):
                canvas.button(cell, b.unit.display_name(), self.plan.unit_slide(b.index), fill=canvas.accent, size=14)
        else:
            canvas.text(area, "Sin pantallas en el documento.", size=15, color=SLATE_500)
        self._slide(slide_no).notes_slide.notes_text_frame.text = menu_notes(self.document)

    def _visual_panel(self, canvas: SlideCanvas, b: UnitBundle, v: UnitVisuals) -> None:
        canvas.panel(VISUAL, fill=PANEL, line=BORDER)
        placed = canvas.picture(v.image.asset_path, VISUAL.inset(0.08)) if v.image is not None else None
        if placed is None:
            canvas.text(VISUAL.inset(0.2), ["Imagen sugerida:", b.visual_query()], size=12, color=SLATE_500)
        if v.icon is not None:
            canvas.picture(v.icon.asset_path, Rect(12.0, 0.12, 0.6, 0.6))

    def _buttons(self, canvas: SlideCanvas, b: UnitBundle) -> list[str]:
        """Draw the side buttons; returns labels that have no popup to open."""
        unlinked: list[str] = []
        y = BUTTONS_TOP
        for i, label in enumerate(b.visual_spec.buttons):
            rect = Rect(VISUAL.x, y, VISUAL.w, BUTTON_H)
            j = popup_for_button(b.visual_spec, i)
            if j is None:
                canvas.button(rect, label, None, fill=MUTED, color=SLATE_500)
                unlinked.append(label)
            else:
                canvas.button(rect, label, self.plan.popup_slide(b.index, j))
            y += BUTTON_H + BUTTON_GAP
        return unlinked

    def _nav(self, canvas: SlideCanvas, unit_index: int) -> None:
        menu, prev_, next_ = NAV.cols(3, 0.3)
        canvas.button(menu, "Menú", self.plan.menu, fill=SLATE_700)
        canvas.button(prev_, "Anterior", self.plan.previous_target(unit_index), fill=SLATE_700)
        canvas.button(next_, "Siguiente", self.plan.next_target(unit_index), fill=SLATE_700)

    def _draw_unit(self, b: UnitBundle, v: UnitVisuals) -> None:
        slide_no = self.plan.unit_slide(b.index)
        canvas = self._canvas(slide_no, accent=b.accent)
        unit = b.unit
        tag = f"{unit.unit_id} · {unit.duration_minutes} min" if unit.duration_minutes else unit.unit_id
        self._header(canvas, unit.title, tag)
        if unit.purpose:
            canvas.text(SUBTITLE, unit.purpose, size=13, color=SLATE_500)

        ctx = LayoutContext(
            spec=b.visual_spec,
            infographic=b.infographic,
            graph=b.graph,
            content_lines=unit.content_outline,
            interactivity_lines=tuple(unit.interactivity_lines()),
        )
        render_layout(b.layout, canvas, MAIN, ctx)
        self._visual_panel(canvas, b, v)
        unlinked = self._buttons(canvas, b)
        self._nav(canvas, b.index)

        self._slide(slide_no).notes_slide.notes_text_frame.text = unit_notes(
            self.document,
            unit,
            mode=b.mode.value,
            layout=b.layout.value,
            visual_attribution=v.image.attribution_lines if v.image is not None else (),
            icon_attribution=v.icon.attribution_lines if v.icon is not None else (),
            visual_query=b.visual_query(),
            unlinked_buttons=unlinked,
            derived_items=b.visual_spec.items_from_fallback and bool(b.visual_spec.items),
        )

    def _draw_popup(self, b: UnitBundle, popup_index: int) -> None:
        slide_no = self.plan.popup_slide(b.index, popup_index)
        popup = b.visual_spec.popups[popup_index]
        unit_slide = self.plan.unit_slide(b.index)
        canvas = self._canvas(slide_no, accent=b.accent)

        canvas.panel(Rect(0.0, 0.0, SLIDE_W_IN, SLIDE_H_IN), fill=SLATE_500, line=None, kind=MSO_AUTO_SHAPE_TYPE.RECTANGLE)
        modal = Rect(2.2, 1.1, 8.93, 5.0)
        canvas.panel(modal, fill=WHITE, line=BORDER)
        canvas.panel(Rect(modal.x, modal.y, modal.w, 0.75), fill=canvas.accent, line=None, kind=MSO_AUTO_SHAPE_TYPE.RECTANGLE)
        canvas.text(Rect(modal.x + 0.3, modal.y + 0.12, modal.w - 1.3, 0.5), popup.title, size=20, bold=True, color=WHITE, limit=TITLE_MAX)
        canvas.button(Rect(modal.right - 0.75, modal.y + 0.14, 0.5, 0.48), "X", unit_slide, fill=SLATE_900, size=14)
        canvas.text(
            Rect(modal.x + 0.4, modal.y + 1.0, modal.w - 0.8, 2.9),
            popup.body or popup.title,
            size=16,
            color=SLATE_700,
            limit=POPUP_BODY_MAX,
        )
        back, menu = Rect(modal.x + 0.4, modal.bottom - 0.85, modal.w - 0.8, 0.55).cols(2, 0.3)
        canvas.button(back, "Volver a la pantalla", unit_slide)
        canvas.button(menu, "Menú", self.plan.menu, fill=SLATE_700)
        canvas.text(Rect(modal.x, modal.bottom + 0.15, modal.w, 0.4), b.unit.display_name(), size=11, color=WHITE, limit=TITLE_MAX)

        self._slide(slide_no).notes_slide.notes_text_frame.text = popup_notes(b.unit, popup, popup_index)


def coerce_document(document: CourseDocument | Mapping[str, Any]) -> CourseDocument:
    if isinstance(document, CourseDocument):
        return document
    return CourseDocument.from_dict(document)


def build_storyboard(
    document: CourseDocument | Mapping[str, Any],
    *,
    resolver: AssetResolver | None = None,
    settings: Settings | None = None,
) -> bytes:
    """Render the whole storyboard and return the .pptx bytes."""
    doc = coerce_document(document)
    settings = settings or load_settings()
    if resolver is None:
        resolver = AssetResolver(provider_from_settings(settings), settings.assets_dir_for)
    return StoryboardAssembler(doc, resolver=resolver, settings=settings).build()


def render_storyboard(
    document: CourseDocument | Mapping[str, Any],
    out_path: Path,
    *,
    resolver: AssetResolver | None = None,
    settings: Settings | None = None,
) -> Path:
    out_path = Path(out_path)
    data = build_storyboard(document, resolver=resolver, settings=settings)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    return out_path
