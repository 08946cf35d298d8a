"""Instructional quality checklist.

    from ovadeck.core.quality import evaluate_quality
"""

from __future__ import annotations

from .report import ChecklistItem, QualityReport, Status, evaluate_quality

__all__ = [
    "ChecklistItem",
    "QualityReport",
    "Status",
    "evaluate_quality",
]
