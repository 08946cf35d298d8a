"""Typed, immutable view of the upstream instructional-design document.

The upstream generator validates structure; this module only coerces field types
and tolerates missing or short text so that rendering is always possible.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ovadeck.core.text.sanitize import normalize_key


class DocumentError(ValueError):
    """Raised when the input is not a document object at all."""


class ResourceKind(str, Enum):
    AUDIO_SCRIPT = "guion_audio"
    BUILD_NOTES = "notas_construccion"
    IMAGE_QUERY = "imagen_query"
    ICON_QUERY = "icon_query"
    VISUAL_SPEC = "visual_spec"
    INFOGRAPHIC = "infografia_tecnica"


# Exact keys first, then looser aliases the generator is known to emit.
_KIND_PATTERNS: tuple[tuple[ResourceKind, re.Pattern[str]], ...] = (
    (ResourceKind.AUDIO_SCRIPT, re.compile(r"^guion_audio$|audio|narracion|locucion")),
    (ResourceKind.BUILD_NOTES, re.compile(r"^notas_construccion$|construccion|^build")),
    (ResourceKind.IMAGE_QUERY, re.compile(r"^(imagen|image)_query$")),
    (ResourceKind.ICON_QUERY, re.compile(r"^(icon|icono)_query$")),
    (ResourceKind.VISUAL_SPEC, re.compile(r"^visual_spec$|^especificacion_visual$")),
    (ResourceKind.INFOGRAPHIC, re.compile(r"^infografia_tecnica$|^infographic_spec$")),
)


def classify_resource_type(resource_type: str | None) -> ResourceKind | None:
    key = normalize_key(resource_type)
    if not key:
        return None
    for kind, pattern in _KIND_PATTERNS:
        if pattern.search(key):
            return kind
    return None


def _str(v: Any) -> str:
    if v is None:
        return ""
    return v if isinstance(v, str) else str(v)


def _int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _float(v: Any, default: float = 0.0) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def _dicts(v: Any) -> list[dict[str, Any]]:
    if not isinstance(v, list):
        return []
    return [x for x in v if isinstance(x, dict)]


def _strs(v: Any) -> tuple[str, ...]:
    if not isinstance(v, list):
        return ()
    return tuple(_str(x) for x in v if x is not None)


@dataclass(frozen=True)
class Activity:
    type: str
    description: str
    modality: str = ""
    estimated_minutes: int = 0

    def label(self) -> str:
        return f"{self.type}: {self.description}"


@dataclass(frozen=True)
class RubricCriterion:
    criterion: str
    levels: tuple[str, ...] = ()


@dataclass(frozen=True)
class Assessment:
    type: str
    description: str
    evidence: str = ""
    rubric: tuple[RubricCriterion, ...] = ()

    def label(self) -> str:
        return f"Check ({self.type}): {self.description} | Evidencia: {self.evidence}"


@dataclass(frozen=True)
class Resource:
    type: str
    title: str
    link: str = ""

    @property
    def kind(self) -> ResourceKind | None:
        return classify_resource_type(self.type)

    def label(self) -> str:
        link = self.link.strip()
        return f"{self.type}: {self.title}" + (f" ({link})" if link else "")


@dataclass(frozen=True)
class CourseUnit:
    unit_id: str
    title: str
    purpose: str = ""
    duration_minutes: int = 0
    outcomes: tuple[str, ...] = ()
    content_outline: tuple[str, ...] = ()
    activities: tuple[Activity, ...] = ()
    assessments: tuple[Assessment, ...] = ()
    resources: tuple[Resource, ...] = ()

    def special(self, kind: ResourceKind) -> str | None:
        """Text of the first resource of `kind` with a non-blank title."""
        for r in self.resources:
            if r.kind is kind and r.title.strip():
                return r.title.strip()
        return None

    def generic_resources(self) -> list[Resource]:
        return [r for r in self.resources if r.kind is None]

    def interactivity_lines(self) -> list[str]:
        lines = [a.label() for a in self.activities]
        lines.extend(a.label() for a in self.assessments)
        return lines

    def display_name(self) -> str:
        return f"{self.unit_id}. {self.title}" if self.unit_id else self.title

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> "CourseUnit":
        activities = tuple(
            Activity(
                type=_str(a.get("type")),
                description=_str(a.get("description")),
                modality=_str(a.get("modality")),
                estimated_minutes=_int(a.get("estimated_minutes")),
            )
            for a in _dicts(data.get("learning_activities"))
        )
        assessments = tuple(
            Assessment(
                type=_str(a.get("type")),
                description=_str(a.get("description")),
                evidence=_str(a.get("evidence")),
                rubric=tuple(
                    RubricCriterion(criterion=_str(r.get("criterion")), levels=_strs(r.get("levels")))
                    for r in _dicts(a.get("rubric"))
                ),
            )
            for a in _dicts(data.get("assessment"))
        )
        resources = tuple(
            Resource(
                type=_str(r.get("type")),
                title=_str(r.get("title")),
                link=_str(r.get("link_optional")),
            )
            for r in _dicts(data.get("resources"))
        )
        return cls(
            unit_id=_str(data.get("unit_id")) or f"U{index + 1}",
            title=_str(data.get("title")) or f"Pantalla {index + 1}",
            purpose=_str(data.get("purpose")),
            duration_minutes=_int(data.get("duration_minutes")),
            outcomes=_strs(data.get("outcomes")),
            content_outline=_strs(data.get("content_outline")),
            activities=activities,
            assessments=assessments,
            resources=resources,
        )


@dataclass(frozen=True)
class Project:
    title: str
    audience: str = ""
    level: str = ""
    duration_hours: float = 0.0
    modality: str = ""


@dataclass(frozen=True)
class InstructionalModel:
    approach: str = ""
    notes: str = ""


@dataclass(frozen=True)
class LearningOutcome:
    id: str
    statement: str
    bloom_level: str = ""


@dataclass(frozen=True)
class AlignmentRow:
    outcome_id: str
    activities: tuple[str, ...] = ()
    assessments: tuple[str, ...] = ()
    score: float = 0.0
    issues: tuple[str, ...] = ()
    fix_suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProductionNotes:
    for_lms: tuple[str, ...] = ()
    accessibility: tuple[str, ...] = ()
    risks: tuple[str, ...] = ()


@dataclass(frozen=True)
class CourseDocument:
    project: Project
    units: tuple[CourseUnit, ...]
    learning_outcomes: tuple[LearningOutcome, ...] = ()
    alignment_matrix: tuple[AlignmentRow, ...] = ()
    production_notes: ProductionNotes = field(default_factory=ProductionNotes)
    instructional_model: InstructionalModel = field(default_factory=InstructionalModel)

    @property
    def title(self) -> str:
        return self.project.title

    @classmethod
    def from_dict(cls, data: Any) -> "CourseDocument":
        if not isinstance(data, dict):
            raise DocumentError("document must be a JSON object")
        units_raw = data.get("course_structure")
        if not isinstance(units_raw, list):
            raise DocumentError("document.course_structure must be an array")

        project_raw = data.get("project") if isinstance(data.get("project"), dict) else {}
        project = Project(
            title=_str(project_raw.get("title")) or "Curso",
            audience=_str(project_raw.get("audience")),
            level=_str(project_raw.get("level")),
            duration_hours=_float(project_raw.get("duration_hours")),
            modality=_str(project_raw.get("modality")),
        )
        units = tuple(
            CourseUnit.from_dict(u, i) for i, u in enumerate(x for x in units_raw if isinstance(x, dict))
        )
        outcomes = tuple(
            LearningOutcome(
                id=_str(o.get("id")),
                statement=_str(o.get("statement")),
                bloom_level=_str(o.get("bloom_level")),
            )
            for o in _dicts(data.get("learning_outcomes"))
        )
        matrix = tuple(
            AlignmentRow(
                outcome_id=_str(r.get("outcome_id")),
                activities=_strs(r.get("activities")),
                assessments=_strs(r.get("assessments")),
                score=_float(r.get("alignment_score_0_100")),
                issues=_strs(r.get("issues")),
                fix_suggestions=_strs(r.get("fix_suggestions")),
            )
            for r in _dicts(data.get("alignment_matrix"))
        )
        model_raw = data.get("instructional_model") if isinstance(data.get("instructional_model"), dict) else {}
        model = InstructionalModel(approach=_str(model_raw.get("approach")), notes=_str(model_raw.get("notes")))
        notes_raw = data.get("production_notes") if isinstance(data.get("production_notes"), dict) else {}
        notes = ProductionNotes(
            for_lms=_strs(notes_raw.get("for_lms")),
            accessibility=_strs(notes_raw.get("accessibility")),
            risks=_strs(notes_raw.get("risks")),
        )
        return cls(
            project=project,
            units=units,
            learning_outcomes=outcomes,
            alignment_matrix=matrix,
            production_notes=notes,
            instructional_model=model,
        )
