"""
cache.py — Content-addressed on-disk asset cache.

Layout (one directory per course namespace):
  <dir>/<key><ext>         binary payload
  <dir>/<key>.meta.json    sidecar: provider, query, orientation, file_name,
                           source_url, attribution_lines, fetched_at

key = sha256("<provider>|<query>|<orientation>").hexdigest()[:16]

Both files are written through a temp file in the same directory and
`os.replace`d into place; the sidecar goes last, so a visible sidecar always
points at a complete binary.
"""
from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import orjson

logger = logging.getLogger(__name__)

KEY_LENGTH = 16


def orientation_of(prefer_horizontal: bool) -> str:
    return "horizontal" if prefer_horizontal else "vertical"


def cache_key(provider: str, query: str, orientation: str) -> str:
    raw = f"{provider}|{query}|{orientation}".encode("utf-8")
    return hashlib.sha256(raw).hexdigest()[:KEY_LENGTH]


@dataclass(frozen=True)
class CachedAsset:
    key: str
    path: Path
    provider: str
    query: str
    orientation: str
    source_url: str = ""
    attribution_lines: tuple[str, ...] = ()


def _atomic_write(path: Path, data: bytes) -> None:
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class AssetCache:
    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def meta_path(self, key: str) -> Path:
        return self.directory / f"{key}.meta.json"

    def get(self, key: str) -> CachedAsset | None:
        """Exact-key lookup; a corrupt or dangling sidecar counts as a miss."""
        meta_path = self.meta_path(key)
        if not meta_path.is_file():
            return None
        try:
            meta = orjson.loads(meta_path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            logger.debug("asset cache: unreadable sidecar %s (%s)", meta_path, e)
            return None
        if not isinstance(meta, dict):
            return None

        file_name = meta.get("file_name")
        if not isinstance(file_name, str) or not file_name or Path(file_name).name != file_name:
            return None
        path = self.directory / file_name
        if not path.is_file():
            return None

        lines = meta.get("attribution_lines")
        return CachedAsset(
            key=key,
            path=path,
            provider=str(meta.get("provider") or ""),
            query=str(meta.get("query") or ""),
            orientation=str(meta.get("orientation") or ""),
            source_url=str(meta.get("source_url") or ""),
            attribution_lines=tuple(str(x) for x in lines) if isinstance(lines, list) else (),
        )

    def put(
        self,
        key: str,
        *,
        content: bytes,
        ext: str,
        provider: str,
        query: str,
        orientation: str,
        source_url: str,
        attribution_lines: list[str],
        extra: dict[str, Any] | None = None,
    ) -> CachedAsset:
        self.directory.mkdir(parents=True, exist_ok=True)
        file_name = f"{key}{ext}"
        path = self.directory / file_name
        _atomic_write(path, content)

        meta: dict[str, Any] = {
            "provider": provider,
            "query": query,
            "orientation": orientation,
            "file_name": file_name,
            "source_url": source_url,
            "attribution_lines": list(attribution_lines),
            "fetched_at": datetime.now(timezone.utc).isoformat(),
        }
        if extra:
            meta.update(extra)
        _atomic_write(self.meta_path(key), orjson.dumps(meta, option=orjson.OPT_INDENT_2))

        return CachedAsset(
            key=key,
            path=path,
            provider=provider,
            query=query,
            orientation=orientation,
            source_url=source_url,
            attribution_lines=tuple(attribution_lines),
        )
