from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

COURSE_SCHEMA_PATH = Path(__file__).resolve().parents[1] / "schemas" / "course.schema.json"


def load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@lru_cache(maxsize=4)
def _validator(schema_path: Path) -> Draft202012Validator:
    schema = load_json(schema_path)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def json_path(parts: Any) -> str:
    path = "$"
    for p in parts:
        path += f"[{p!r}]" if isinstance(p, str) else f"[{p}]"
    return path


def validate_document(data: Any, schema_path: Path = COURSE_SCHEMA_PATH) -> list[str]:
    """Human-readable `$[...]: message` lines; an empty list means the document conforms."""
    v = _validator(Path(schema_path))
    errors = sorted(v.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    out: list[str] = []
    for e in errors:
        line = f"{json_path(e.path)}: {e.message}"
        if e.context:
            # oneOf/anyOf details
            line += " (" + "; ".join(c.message for c in e.context[:3]) + ")"
        out.append(line)
    return out
