from __future__ import annotations

from typing import Iterable

from ovadeck.core.document.model import CourseUnit
from ovadeck.core.spec.infographic_spec import InfographicSpec
from ovadeck.core.spec.visual_spec import Layout, VisualMode, VisualSpec
from ovadeck.core.text.sanitize import fold

# Named, overridable via Settings.activity_text_threshold.
ACTIVITY_TEXT_THRESHOLD = 700

STEP_VOCABULARY = ("paso", "proceso", "etapa", "fases", "secuencia", "timeline")
CONTRAST_VOCABULARY = ("versus", "vs.", "compar", "diferencia", "ventajas", "desventajas")


def visible_text(unit: CourseUnit, spec: VisualSpec) -> str:
    """Everything the learner would read on the unit slide, joined by newlines."""
    parts: list[str] = [unit.title]
    parts.extend(unit.content_outline)
    for item in spec.items:
        parts.append(item.title)
        if item.body:
            parts.append(item.body)
    return "\n".join(p for p in parts if p)


def _mentions(text: str, vocabulary: Iterable[str]) -> bool:
    return any(word in text for word in vocabulary)


def resolve_visual_mode(
    spec: VisualSpec,
    infographic: InfographicSpec | None,
    unit: CourseUnit,
    *,
    activity_threshold: int = ACTIVITY_TEXT_THRESHOLD,
) -> VisualMode:
    if spec.visual_mode is not VisualMode.AUTO:
        return spec.visual_mode

    text = visible_text(unit, spec)
    folded = fold(text)

    if (infographic is not None and infographic.requires_infographic) or spec.layout is Layout.TIMELINE:
        return VisualMode.INFOGRAPHIC
    if _mentions(folded, STEP_VOCABULARY):
        return VisualMode.INFOGRAPHIC
    if _mentions(folded, CONTRAST_VOCABULARY) or spec.layout is Layout.CARDS:
        return VisualMode.COMPARISON
    if len(text) > activity_threshold:
        return VisualMode.ACTIVITY
    return VisualMode.IMAGE_SUPPORT
