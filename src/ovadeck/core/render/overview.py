"""
overview.py — Course document -> linear production overview deck.

Slides, in order, with no hyperlinks and no visual lookups:
  cover       course summary and instructional-model notes
  outcomes    one line per learning outcome
  units       one slide per unit, more when content_outline is long
  alignment   score and issues per outcome
  production  LMS, accessibility and risk notes
"""
from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Any, Mapping, Sequence

from pptx import Presentation
from pptx.enum.shapes import MSO_AUTO_SHAPE_TYPE
from pptx.util import Inches

from ovadeck.core.document.model import Activity, Assessment, CourseDocument, CourseUnit
from ovadeck.core.render.canvas import (
    ACCENT,
    BORDER,
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
from ovadeck.core.render.storyboard import BLANK_LAYOUT, HEADER, coerce_document
from ovadeck.core.text.sanitize import TITLE_MAX, clamp_lines

logger = logging.getLogger(__name__)

CONTENT_CHUNK = 10
MAX_ACTIVITIES = 8
MAX_ASSESSMENTS = 6
MAX_RESOURCES = 6

COVER_SUBTITLE = "Guion técnico instruccional: salida estructurada"
COVER_FOOTER = "Exportable para producción/LMS. Recursos con placeholders; no se incluyen links inventados."


def chunked(items: Sequence[str], size: int) -> list[tuple[str, ...]]:
    """Consecutive slices of `size`; an empty input still yields one empty chunk."""
    out = [tuple(items[i:i + size]) for i in range(0, len(items), size)]
    return out or [()]


def activity_line(a: Activity) -> str:
    meta = ", ".join(s for s in (a.modality, f"{a.estimated_minutes} min" if a.estimated_minutes else "") if s)
    return f"{a.type} ({meta}): {a.description}" if meta else f"{a.type}: {a.description}"


def assessment_line(a: Assessment) -> str:
    line = f"{a.type}: {a.description} | Evidencia: {a.evidence or 'N/D'}"
    if a.rubric and a.rubric[0].criterion:
        line += f" | Rúbrica: {a.rubric[0].criterion}"
    return line


def course_summary(document: CourseDocument) -> list[str]:
    p = document.project
    return [
        f"Audiencia: {p.audience or 'N/D'}",
        f"Nivel: {p.level or 'N/D'}",
        f"Duración: {p.duration_hours:g} horas" if p.duration_hours else "Duración: N/D",
        f"Modalidad: {p.modality or 'N/D'}",
        f"Modelo: {document.instructional_model.approach or 'N/D'}",
    ]


def overview_slide_count(document: CourseDocument) -> int:
    return 4 + sum(len(chunked(u.content_outline, CONTENT_CHUNK)) for u in document.units)


class OverviewAssembler:
    def __init__(self, document: CourseDocument):
        self.document = document
        self._prs: Any = None

    def build(self) -> bytes:
        prs = Presentation()
        prs.slide_width = Inches(SLIDE_W_IN)
        prs.slide_height = Inches(SLIDE_H_IN)
        self._prs = prs

        self._draw_cover()
        self._draw_outcomes()
        for unit in self.document.units:
            self._draw_unit(unit)
        self._draw_alignment()
        self._draw_production_notes()
        logger.debug("overview: %d slides for %d units", len(prs.slides), len(self.document.units))

        buf = BytesIO()
        prs.save(buf)
        return buf.getvalue()

    def _canvas(self) -> SlideCanvas:
        return SlideCanvas(self._prs.slides.add_slide(self._prs.slide_layouts[BLANK_LAYOUT]))

    def _header(self, canvas: SlideCanvas, title: str, subtitle: str = "") -> None:
        canvas.panel(HEADER, fill=ACCENT, line=None, kind=MSO_AUTO_SHAPE_TYPE.RECTANGLE)
        canvas.text(Rect(0.6, 0.06, 12.2, 0.48), title, size=22, bold=True, color=WHITE, limit=TITLE_MAX * 2)
        if subtitle:
            canvas.text(Rect(0.6, 0.5, 12.2, 0.3), subtitle, size=12, color=WHITE)

    def _panel(self, canvas: SlideCanvas, rect: Rect, title: str, lines: Sequence[str]) -> None:
        canvas.panel(rect, fill=PANEL, line=BORDER)
        canvas.text(Rect(rect.x + 0.25, rect.y + 0.1, rect.w - 0.5, 0.3), title, size=12, bold=True, color=SLATE_900)
        canvas.text(Rect(rect.x + 0.25, rect.y + 0.42, rect.w - 0.5, max(rect.h - 0.5, 0.3)), lines, size=11, color=SLATE_700)

    def _draw_cover(self) -> None:
        canvas = self._canvas()
        self._header(canvas, self.document.title, COVER_SUBTITLE)
        self._panel(canvas, Rect(0.8, 1.4, 5.9, 4.4), "Resumen del curso", clamp_lines(course_summary(self.document)))
        self._panel(canvas, Rect(7.0, 1.4, 5.5, 4.4), "Notas ADDIE", clamp_lines([self.document.instructional_model.notes]))
        canvas.text(Rect(0.8, 6.2, 11.9, 0.4), COVER_FOOTER, size=10, color=SLATE_500)

    def _draw_outcomes(self) -> None:
        outcomes = self.document.learning_outcomes
        canvas = self._canvas()
        self._header(canvas, "Resultados de aprendizaje (Bloom)", f"{len(outcomes)} outcomes")
        lines = [f"{o.id} ({o.bloom_level or 'N/D'}): {o.statement}" for o in outcomes]
        self._panel(canvas, Rect(0.8, 1.25, 11.75, 5.9), "Outcomes", clamp_lines(lines))

    def _draw_unit(self, unit: CourseUnit) -> None:
        chunks = chunked(unit.content_outline, CONTENT_CHUNK)
        subtitle = f"Duración: {unit.duration_minutes} min | Outcomes: {', '.join(unit.outcomes) or 'N/D'}"
        for i, part in enumerate(chunks):
            canvas = self._canvas()
            suffix = f" (Guion {i + 1}/{len(chunks)})" if len(chunks) > 1 else ""
            self._header(canvas, unit.display_name() + suffix, subtitle)
            self._panel(canvas, Rect(0.8, 1.15, 11.75, 1.15), "Propósito", clamp_lines([unit.purpose]))
            self._panel(canvas, Rect(0.8, 2.45, 6.0, 4.65), "Guion / contenidos (editable)", clamp_lines(part))
            self._panel(
                canvas,
                Rect(7.0, 2.45, 5.55, 1.75),
                "Actividades (interacción)",
                clamp_lines([activity_line(a) for a in unit.activities], MAX_ACTIVITIES),
            )
            self._panel(
                canvas,
                Rect(7.0, 4.35, 5.55, 1.75),
                "Evaluación",
                clamp_lines([assessment_line(a) for a in unit.assessments], MAX_ASSESSMENTS),
            )
            self._panel(
                canvas,
                Rect(7.0, 6.25, 5.55, 0.85),
                "Recursos (placeholders)",
                clamp_lines([r.label() for r in unit.generic_resources()], MAX_RESOURCES),
            )

    def _draw_alignment(self) -> None:
        canvas = self._canvas()
        self._header(canvas, "Matriz de alineación (resumen)", "Objetivo ↔ Actividad ↔ Evaluación")
        lines = []
        for row in self.document.alignment_matrix:
            line = f"{row.outcome_id}: {row.score:g}/100"
            if row.issues:
                line += f" | Issues: {'; '.join(row.issues)}"
            lines.append(line)
        self._panel(canvas, Rect(0.8, 1.25, 11.75, 5.9), "Alineación por outcome", clamp_lines(lines))

    def _draw_production_notes(self) -> None:
        notes = self.document.production_notes
        canvas = self._canvas()
        self._header(canvas, "Notas de producción", "Para implementación en LMS + accesibilidad")
        self._panel(canvas, Rect(0.8, 1.25, 5.75, 2.8), "Para LMS", clamp_lines(notes.for_lms, 12))
        self._panel(canvas, Rect(6.9, 1.25, 5.65, 2.8), "Accesibilidad", clamp_lines(notes.accessibility, 12))
        self._panel(canvas, Rect(0.8, 4.25, 11.75, 2.9), "Riesgos / preguntas", clamp_lines(notes.risks, 14))


def build_overview(document: CourseDocument | Mapping[str, Any]) -> bytes:
    """Render the linear overview deck and return the .pptx bytes."""
    return OverviewAssembler(coerce_document(document)).build()


def render_overview(document: CourseDocument | Mapping[str, Any], out_path: Path) -> Path:
    out_path = Path(out_path)
    data = build_overview(document)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(data)
    return out_path
