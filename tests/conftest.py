from __future__ import annotations

import base64
import copy
from pathlib import Path
from typing import Any

import pytest

from ovadeck.core.assets.providers import FetchedAsset, SearchResult
from ovadeck.core.config import Settings

# 1x1 transparent PNG
PNG_1X1 = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

U1_VISUAL_SPEC = """layout: process_steps
visual_mode: infographic
items:
- Paso 1 | Escuchar | Escucha activa antes de responder
- Paso 2 | Preguntar | Preguntas abiertas para explorar
- Paso 3 | Acordar | Acuerdos concretos y medibles
buttons: Ver ejemplo, Tip"""

U2_VISUAL_SPEC = """tipo_visual: auto
layout: timeline
elementos:
- Semana 1 | Diagnóstico | Mapa del equipo
- Semana 2 | Plan | Objetivos compartidos
capas:
- Glosario | Términos clave | Feedback, feedforward y escucha activa"""

U2_INFOGRAPHIC = """tema: Ciclo de retroalimentación
requiere_infografia: sí
estructura_datos:
- Observar
- Preguntar
- Acordar
paleta_colores:
- #0b7285
- #F59F00
estilo_iconografia: lineal

```mermaid
flowchart LR
  obs["Observar"] --> pre["Preguntar"] --> acu["Acordar"]
```"""


SAMPLE_DOCUMENT: dict[str, Any] = {
    "project": {
        "title": "Curso de liderazgo",
        "audience": "Mandos medios",
        "level": "Intermedio",
        "duration_hours": 3,
        "modality": "Virtual autoguiado",
    },
    "instructional_model": {"approach": "ADDIE", "notes": "Análisis breve y prototipo rápido."},
    "learning_outcomes": [
        {"id": "LO1", "statement": "Aplicar la escucha activa en conversaciones de seguimiento", "bloom_level": "Aplicar"},
        {"id": "LO2", "statement": "Diseñar un plan de retroalimentación para su equipo", "bloom_level": "Crear"},
    ],
    "course_structure": [
        {
            "unit_id": "U1",
            "title": "Conversaciones efectivas",
            "purpose": "Practicar una conversación de seguimiento estructurada.",
            "duration_minutes": 60,
            "outcomes": ["LO1"],
            "content_outline": ["Escucha activa", "Preguntas abiertas", "Acuerdos"],
            "learning_activities": [
                {"type": "Simulación", "description": "Role-play de una conversación difícil", "modality": "Virtual", "estimated_minutes": 20}
            ],
            "assessment": [
                {
                    "type": "Formativa",
                    "description": "Autoevaluación con lista de cotejo",
                    "evidence": "Lista completada",
                    "rubric": [{"criterion": "Escucha", "levels": ["Inicial", "Logrado"]}],
                }
            ],
            "resources": [
                {"type": "visual_spec", "title": U1_VISUAL_SPEC, "link_optional": ""},
                {"type": "imagen_query", "title": "equipo conversando en oficina", "link_optional": ""},
                {"type": "guion_audio", "title": "Bienvenido. En esta pantalla veremos tres pasos.", "link_optional": ""},
                {"type": "Notas de construcción", "title": "Botones con animación de entrada.", "link_optional": ""},
                {"type": "Lectura", "title": "Guía de conversaciones", "link_optional": "https://example.org/guia"},
            ],
        },
        {
            "unit_id": "U2",
            "title": "Plan de retroalimentación",
            "purpose": "Construir un ciclo de retroalimentación semanal.",
            "duration_minutes": 60,
            "outcomes": ["LO2"],
            "content_outline": ["Diagnóstico del equipo", "Plan de seguimiento"],
            "learning_activities": [
                {"type": "Taller", "description": "Diseña tu plan", "modality": "Virtual", "estimated_minutes": 30}
            ],
            "assessment": [
                {
                    "type": "Sumativa",
                    "description": "Entrega del plan",
                    "evidence": "Documento del plan",
                    "rubric": [{"criterion": "Claridad", "levels": ["Bajo", "Alto"]}],
                }
            ],
            "resources": [
                {"type": "Visual Spec", "title": U2_VISUAL_SPEC, "link_optional": ""},
                {"type": "infografia_tecnica", "title": U2_INFOGRAPHIC, "link_optional": ""},
            ],
        },
        {
            "unit_id": "U3",
            "title": "Cierre y compromiso",
            "purpose": "Definir un compromiso personal.",
            "duration_minutes": 60,
            "outcomes": ["LO1", "LO2"],
            "content_outline": ["Resumen de ideas clave", "Compromiso personal"],
            "learning_activities": [
                {"type": "Reflexión", "description": "Escribe tu compromiso", "modality": "Virtual", "estimated_minutes": 15}
            ],
            "assessment": [
                {
                    "type": "Formativa",
                    "description": "Foro de compromisos",
                    "evidence": "Publicación en el foro",
                    "rubric": [{"criterion": "Concreción", "levels": ["Vago", "Concreto"]}],
                }
            ],
            "resources": [{"type": "Video", "title": "Mensaje de cierre", "link_optional": ""}],
        },
    ],
    "alignment_matrix": [
        {
            "outcome_id": "LO1",
            "activities": ["Role-play"],
            "assessments": ["Lista de cotejo"],
            "alignment_score_0_100": 80,
            "issues": [],
            "fix_suggestions": [],
        },
        {
            "outcome_id": "LO2",
            "activities": ["Taller"],
            "assessments": ["Entrega del plan"],
            "alignment_score_0_100": 90,
            "issues": [],
            "fix_suggestions": [],
        },
    ],
    "production_notes": {
        "for_lms": ["Publicar como SCORM 1.2"],
        "accessibility": ["Subtítulos en todos los audios"],
        "risks": [],
    },
}


@pytest.fixture()
def course_doc() -> dict[str, Any]:
    return copy.deepcopy(SAMPLE_DOCUMENT)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(assets_dir=tmp_path / "assets", offline=True, asset_workers=4)


class FakeProvider:
    """In-memory SearchProvider; records every call."""

    name = "fake"

    def __init__(self, *, hits: dict[str, SearchResult] | None = None, default: SearchResult | None = None, error: Exception | None = None):
        self.hits = hits or {}
        self.default = default
        self.error = error
        self.search_calls: list[str] = []
        self.fetch_calls: list[str] = []

    def search(self, query: str, prefer_horizontal: bool = True) -> SearchResult | None:
        self.search_calls.append(query)
        if self.error is not None:
            raise self.error
        return self.hits.get(query, self.default)

    def fetch(self, url: str) -> FetchedAsset:
        self.fetch_calls.append(url)
        if self.error is not None:
            raise self.error
        return FetchedAsset(content=PNG_1X1, content_type="image/png")


@pytest.fixture()
def sample_result() -> SearchResult:
    return SearchResult(
        image_url="https://images.example.org/equipo.png",
        title="Equipo en reunión",
        page_url="https://example.org/equipo",
        author="Ana Pérez",
        license="by",
        license_url="https://creativecommons.org/licenses/by/4.0/",
        source="wikimedia",
    )


@pytest.fixture()
def fake_provider_cls() -> type[FakeProvider]:
    return FakeProvider
