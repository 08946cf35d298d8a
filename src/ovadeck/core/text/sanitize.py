"""
sanitize.py — Text hygiene shared by every storyboard component.

- Control characters are replaced by spaces (PPTX XML rejects most of them).
- Visible canvas text is single-line, whitespace-collapsed and truncated with "…".
- Speaker notes keep line breaks but lose control characters.
- Keys and slugs are compared case- and accent-insensitively.
"""
from __future__ import annotations

import re
import unicodedata
from typing import Iterable

TITLE_MAX = 46
BODY_MAX = 120
POPUP_BODY_MAX = 240
LABEL_MAX = 18
SLUG_MAX = 18

ELLIPSIS = "…"

_CONTROL_RE = re.compile(r"[\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F]")
_WS_RE = re.compile(r"\s+")
_SLUG_RE = re.compile(r"[^a-z0-9]+")
_KEY_SEP_RE = re.compile(r"[\s\-]+")


def strip_accents(text: str) -> str:
    """Drop combining marks after NFKD decomposition ("Práctica" -> "Practica")."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def sanitize_text(text: str | None) -> str:
    """Single visible line: no control chars, no tabs/newlines, collapsed spaces."""
    if not text:
        return ""
    s = _CONTROL_RE.sub(" ", str(text))
    return _WS_RE.sub(" ", s).strip()


def sanitize_multiline(text: str | None) -> str:
    """Notes-safe text: control chars removed, line breaks kept, trailing spaces trimmed."""
    if not text:
        return ""
    s = str(text).replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    s = _CONTROL_RE.sub(" ", s)
    return "\n".join(line.rstrip() for line in s.split("\n")).strip()


def truncate(text: str | None, limit: int) -> str:
    """Sanitize then cut to at most `limit` characters, ending in "…" when cut."""
    s = sanitize_text(text)
    if limit <= 0:
        return ""
    if len(s) <= limit:
        return s
    if limit == 1:
        return ELLIPSIS
    return s[: limit - 1].rstrip() + ELLIPSIS


def clamp_lines(lines: Iterable[str], max_items: int | None = None, *, empty: str = "N/D") -> list[str]:
    """Clean a list of visible lines; overflow collapses into a "(+N más)" marker."""
    cleaned = [s for s in (sanitize_text(x) for x in lines) if s]
    if not cleaned:
        return [empty] if empty else []
    if max_items is not None and len(cleaned) > max_items:
        extra = len(cleaned) - max_items
        return cleaned[:max_items] + [f"(+{extra} más)"]
    return cleaned


def normalize_key(text: str | None) -> str:
    """Case/accent-insensitive key: "Visual Spec" and "visual_spec" compare equal."""
    if not text:
        return ""
    s = strip_accents(str(text)).lower().strip()
    return _KEY_SEP_RE.sub("_", s)


def fold(text: str | None) -> str:
    """Lowercase, accent-free text for vocabulary matching."""
    if not text:
        return ""
    return strip_accents(str(text)).lower()


def slugify(label: str | None, max_length: int = SLUG_MAX) -> str:
    """Identifier-safe slug; may be empty when the label has no ASCII alphanumerics."""
    s = _SLUG_RE.sub("_", fold(label))
    s = s.strip("_")
    if len(s) > max_length:
        s = s[:max_length].rstrip("_")
    return s


def safe_folder_name(name: str | None, max_length: int = 80) -> str:
    """Folder name for a course namespace; never escapes its parent directory."""
    s = sanitize_text(name).replace("/", "-").replace("\\", "-")
    s = re.sub(r'[:*?"<>|]', "-", s)
    s = re.sub(r"-+", "-", s).strip()
    if len(s) > max_length:
        s = s[:max_length].strip()
    if not s or s in (".", ".."):
        return "curso"
    return s
