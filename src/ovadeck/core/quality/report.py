"""
report.py — Instructional quality checklist for a course document.

Checks (ids are stable, labels are shown to authors):
  duration_consistency   sum of unit minutes vs expected hours * 60, drift <= tolerance
  cognitive_load         no unit longer than the cognitive-load cutoff
  alignment_<LO>         each outcome appears in a unit and has matrix activities + assessments
  matrix_score           average alignment score >= 75

Overall score = rounded mean of item scores (ok 100, warning 70, error 35).
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ovadeck.core.config import DEFAULT_COGNITIVE_LOAD_MINUTES, DEFAULT_DURATION_DRIFT_TOLERANCE, Settings
from ovadeck.core.document.model import CourseDocument

MATRIX_SCORE_THRESHOLD = 75.0


class Status(str, Enum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


STATUS_SCORE = {Status.OK: 100, Status.WARNING: 70, Status.ERROR: 35}


@dataclass(frozen=True)
class ChecklistItem:
    id: str
    label: str
    status: Status
    detail: str


@dataclass
class QualityReport:
    overall_score: int = 0
    items: list[ChecklistItem] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    fix_suggestions: list[str] = field(default_factory=list)

    def add(self, item: ChecklistItem, fix: str | None = None) -> None:
        self.items.append(item)
        if item.status is not Status.OK:
            self.issues.append(item.detail)
            if fix:
                self.fix_suggestions.append(fix)

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "items": [
                {"id": i.id, "label": i.label, "status": i.status.value, "detail": i.detail} for i in self.items
            ],
            "issues": list(self.issues),
            "fix_suggestions": list(self.fix_suggestions),
        }


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def evaluate_quality(
    document: CourseDocument,
    expected_hours: float | None = None,
    settings: Settings | None = None,
) -> QualityReport:
    tolerance = settings.duration_drift_tolerance if settings else DEFAULT_DURATION_DRIFT_TOLERANCE
    max_minutes = settings.cognitive_load_minutes if settings else DEFAULT_COGNITIVE_LOAD_MINUTES
    hours = document.project.duration_hours if expected_hours is None else expected_hours

    report = QualityReport()

    total = sum(u.duration_minutes for u in document.units)
    expected = hours * 60
    drift = abs(total - expected) / max(expected, 1)
    if drift <= tolerance:
        report.add(
            ChecklistItem(
                "duration_consistency",
                "Consistencia de tiempo total",
                Status.OK,
                f"La duración acumulada ({total} min) está alineada al objetivo ({expected:g} min).",
            )
        )
    else:
        report.add(
            ChecklistItem(
                "duration_consistency",
                "Consistencia de tiempo total",
                Status.WARNING,
                f"La duración acumulada ({total} min) se desvía más del {tolerance:.0%} "
                f"frente al objetivo ({expected:g} min).",
            ),
            "Reasigna minutos por unidad para mantener la carga total prevista.",
        )

    overloaded = [u.unit_id for u in document.units if u.duration_minutes > max_minutes]
    if not overloaded:
        report.add(ChecklistItem("cognitive_load", "Carga cognitiva", Status.OK, "No hay unidades con duración excesiva."))
    else:
        report.add(
            ChecklistItem(
                "cognitive_load",
                "Carga cognitiva",
                Status.WARNING,
                f"Se detectaron unidades con más de {max_minutes} minutos: {', '.join(overloaded)}.",
            ),
            "Divide unidades extensas en sesiones más cortas o agrega pausas de práctica.",
        )

    rows = {r.outcome_id: r for r in document.alignment_matrix}
    for outcome in document.learning_outcomes:
        oid = outcome.id
        row = rows.get(oid)
        missing: list[str] = []
        if not any(oid in u.outcomes for u in document.units):
            missing.append("unidad")
        if row is None or not row.activities:
            missing.append("actividad")
        if row is None or not row.assessments:
            missing.append("evaluación")
        if not missing:
            report.add(
                ChecklistItem(f"alignment_{oid}", f"Alineación de {oid}", Status.OK, f"{oid} aparece en unidad, actividad y evaluación.")
            )
        else:
            report.add(
                ChecklistItem(
                    f"alignment_{oid}",
                    f"Alineación de {oid}",
                    Status.ERROR,
                    f"{oid} no está cubierto en: {', '.join(missing)}.",
                ),
                f"Ajusta la matriz de alineación para que {oid} tenga trazabilidad completa.",
            )

    score = _mean([r.score for r in document.alignment_matrix])
    if score >= MATRIX_SCORE_THRESHOLD:
        report.add(ChecklistItem("matrix_score", "Puntaje de alineación", Status.OK, f"Promedio de la matriz: {score:.1f}/100."))
    else:
        report.add(
            ChecklistItem(
                "matrix_score",
                "Puntaje de alineación",
                Status.WARNING,
                f"Promedio de la matriz por debajo del umbral recomendado: {score:.1f}/100.",
            ),
            "Fortalece la relación objetivo-actividad-evaluación en los outcomes con menor puntaje.",
        )

    report.overall_score = int(math.floor(_mean([STATUS_SCORE[i.status] for i in report.items]) + 0.5))
    return report
