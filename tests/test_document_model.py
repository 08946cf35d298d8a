import pytest

from ovadeck.core.document.model import CourseDocument, CourseUnit, DocumentError, ResourceKind, classify_resource_type


class TestClassifyResourceType:
    @pytest.mark.parametrize(
        "raw, kind",
        [
            ("guion_audio", ResourceKind.AUDIO_SCRIPT),
            ("Guión de audio", ResourceKind.AUDIO_SCRIPT),
            ("Notas de construcción", ResourceKind.BUILD_NOTES),
            ("build notes", ResourceKind.BUILD_NOTES),
            ("Imagen Query", ResourceKind.IMAGE_QUERY),
            ("icono_query", ResourceKind.ICON_QUERY),
            ("Visual Spec", ResourceKind.VISUAL_SPEC),
            ("Especificación visual", ResourceKind.VISUAL_SPEC),
            ("Infografía técnica", ResourceKind.INFOGRAPHIC),
        ],
    )
    def test_known_kinds(self, raw, kind):
        assert classify_resource_type(raw) is kind

    def test_generic(self):
        assert classify_resource_type("Lectura") is None
        assert classify_resource_type("") is None
        assert classify_resource_type(None) is None


class TestCourseUnit:
    def test_defaults_for_missing_fields(self):
        unit = CourseUnit.from_dict({}, 2)
        assert unit.unit_id == "U3"
        assert unit.title == "Pantalla 3"
        assert unit.duration_minutes == 0
        assert unit.resources == ()

    def test_numeric_coercion(self):
        assert CourseUnit.from_dict({"duration_minutes": "45"}).duration_minutes == 45
        assert CourseUnit.from_dict({"duration_minutes": "mucho"}).duration_minutes == 0

    def test_special_skips_blank_titles(self):
        unit = CourseUnit.from_dict(
            {
                "resources": [
                    {"type": "guion_audio", "title": "   "},
                    {"type": "guion_audio", "title": "Hola"},
                    {"type": "Lectura", "title": "Guía"},
                ]
            }
        )
        assert unit.special(ResourceKind.AUDIO_SCRIPT) == "Hola"
        assert unit.special(ResourceKind.BUILD_NOTES) is None
        assert [r.title for r in unit.generic_resources()] == ["Guía"]

    def test_interactivity_lines(self, course_doc):
        unit = CourseUnit.from_dict(course_doc["course_structure"][0])
        assert unit.interactivity_lines() == [
            "Simulación: Role-play de una conversación difícil",
            "Check (Formativa): Autoevaluación con lista de cotejo | Evidencia: Lista completada",
        ]
        assert unit.assessments[0].rubric[0].levels == ("Inicial", "Logrado")


class TestCourseDocument:
    def test_sample(self, course_doc):
        doc = CourseDocument.from_dict(course_doc)
        assert doc.title == "Curso de liderazgo"
        assert [u.unit_id for u in doc.units] == ["U1", "U2", "U3"]
        assert doc.alignment_matrix[1].score == 90.0
        assert doc.production_notes.for_lms == ("Publicar como SCORM 1.2",)
        assert doc.instructional_model.approach == "ADDIE"
        assert doc.instructional_model.notes == "Análisis breve y prototipo rápido."

    def test_minimal(self):
        doc = CourseDocument.from_dict({"course_structure": [{"title": "Solo"}, "basura"]})
        assert doc.title == "Curso"
        assert [u.display_name() for u in doc.units] == ["U1. Solo"]
        assert doc.learning_outcomes == ()
        assert doc.instructional_model.notes == ""

    @pytest.mark.parametrize("data", [[], "texto", None, {"course_structure": "x"}, {}])
    def test_rejects_non_documents(self, data):
        with pytest.raises(DocumentError):
            CourseDocument.from_dict(data)
