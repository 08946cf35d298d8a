"""Speaker-notes text: the untruncated record of each slide."""
from __future__ import annotations

from typing import Iterable, Sequence

from ovadeck.core.document.model import CourseDocument, CourseUnit, ResourceKind
from ovadeck.core.spec.visual_spec import Popup
from ovadeck.core.text.sanitize import sanitize_multiline

MISSING = "(No provisto por IA. Regenera para completar.)"
NO_INTERACTIVITY = "Sin interactividad declarada (agrega instrucciones para estudiantes)."
NO_VISUAL = "Sin imagen resuelta: layout solo texto."
DERIVED_ITEMS = "Elementos visuales derivados del texto en pantalla (visual_spec sin items)."


def _bullets(lines: Iterable[str], empty: str = "N/D") -> list[str]:
    out = [f"- {sanitize_multiline(s)}" for s in lines if sanitize_multiline(s)]
    return out or [empty]


def _section(title: str, body: Sequence[str] | str) -> list[str]:
    lines = [body] if isinstance(body, str) else list(body)
    return ["", f"{title}:", *lines]


def unit_notes(
    document: CourseDocument,
    unit: CourseUnit,
    *,
    mode: str,
    layout: str,
    visual_attribution: Sequence[str] = (),
    icon_attribution: Sequence[str] = (),
    visual_query: str = "",
    unlinked_buttons: Sequence[str] = (),
    derived_items: bool = False,
) -> str:
    out = [
        f"Curso: {sanitize_multiline(document.title)}",
        f"Pantalla: {sanitize_multiline(unit.display_name())}",
        f"Duración estimada: {unit.duration_minutes} min" if unit.duration_minutes else "Duración estimada: N/D",
        f"Modo visual: {mode} | Layout: {layout}",
    ]
    if derived_items:
        out.append(DERIVED_ITEMS)
    if unit.purpose:
        out += _section("PROPÓSITO", sanitize_multiline(unit.purpose))
    if unit.outcomes:
        out += _section("RESULTADOS DE APRENDIZAJE", ", ".join(unit.outcomes))

    out += _section("TEXTO EN PANTALLA (completo)", _bullets(unit.content_outline))

    interactivity = unit.interactivity_lines()
    out += _section("INTERACTIVIDAD", _bullets(interactivity) if interactivity else [NO_INTERACTIVITY])

    out += _section("GUION DE AUDIO", sanitize_multiline(unit.special(ResourceKind.AUDIO_SCRIPT)) or MISSING)
    out += _section("NOTAS DE CONSTRUCCION", sanitize_multiline(unit.special(ResourceKind.BUILD_NOTES)) or MISSING)

    visual_spec = unit.special(ResourceKind.VISUAL_SPEC)
    if visual_spec:
        out += _section("ESPECIFICACION VISUAL (original)", sanitize_multiline(visual_spec))
    infographic = unit.special(ResourceKind.INFOGRAPHIC)
    if infographic:
        out += _section("INFOGRAFIA TECNICA (original)", sanitize_multiline(infographic))
    if unlinked_buttons:
        out += _section("BOTONES SIN CAPA", _bullets(unlinked_buttons))

    out += _section("RECURSOS / ASSETS (placeholders)", _bullets(r.label() for r in unit.generic_resources()))

    out += _section("ATRIBUCION VISUAL", _bullets(visual_attribution) if visual_attribution else [NO_VISUAL])
    if visual_query:
        out.append(f"Consulta: {sanitize_multiline(visual_query)}")
    if icon_attribution:
        out += _section("ATRIBUCION ICONO", _bullets(icon_attribution))
    return "\n".join(out)


def popup_notes(unit: CourseUnit, popup: Popup, index: int) -> str:
    return "\n".join(
        [
            f"Capa {index + 1} de {sanitize_multiline(unit.display_name())}",
            f"Botón: {popup.button}",
            f"Título: {popup.title}",
            "",
            popup.body or "N/D",
        ]
    )


def cover_notes(document: CourseDocument) -> str:
    p = document.project
    out = [
        f"Curso: {sanitize_multiline(p.title)}",
        f"Audiencia: {sanitize_multiline(p.audience) or 'N/D'}",
        f"Nivel: {sanitize_multiline(p.level) or 'N/D'}",
        f"Duración: {p.duration_hours:g} h" if p.duration_hours else "Duración: N/D",
        f"Modalidad: {sanitize_multiline(p.modality) or 'N/D'}",
    ]
    if document.learning_outcomes:
        out += _section(
            "RESULTADOS DE APRENDIZAJE",
            _bullets(f"{o.id}: {o.statement}" + (f" ({o.bloom_level})" if o.bloom_level else "") for o in document.learning_outcomes),
        )
    notes = document.production_notes
    if notes.accessibility:
        out += _section("ACCESIBILIDAD", _bullets(notes.accessibility))
    if notes.for_lms:
        out += _section("LMS", _bullets(notes.for_lms))
    return "\n".join(out)


def menu_notes(document: CourseDocument) -> str:
    return "\n".join(["Menú de contenido:", *_bullets(u.display_name() for u in document.units)])
