"""Environment-driven settings (a local `.env` is honoured)."""
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv

from ovadeck.core.text.sanitize import safe_folder_name

DEFAULT_ASSET_WORKERS = 6
DEFAULT_HTTP_TIMEOUT = 20.0
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_ACTIVITY_TEXT_THRESHOLD = 700
DEFAULT_COGNITIVE_LOAD_MINUTES = 180
DEFAULT_DURATION_DRIFT_TOLERANCE = 0.2

OPENVERSE_API_URL = "https://api.openverse.engineering/v1/images/"
FREEPIK_API_BASE_URL = "https://api.freepik.com"


def _env_bool(name: str, default: bool = False) -> bool:
    v = os.environ.get(name)
    if v is None or not v.strip():
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    assets_dir: Path
    course_root_dir: Path | None = None
    offline: bool = False
    asset_workers: int = DEFAULT_ASSET_WORKERS
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    freepik_api_key: str = ""
    freepik_base_url: str = FREEPIK_API_BASE_URL
    openverse_url: str = OPENVERSE_API_URL
    activity_text_threshold: int = DEFAULT_ACTIVITY_TEXT_THRESHOLD
    cognitive_load_minutes: int = DEFAULT_COGNITIVE_LOAD_MINUTES
    duration_drift_tolerance: float = DEFAULT_DURATION_DRIFT_TOLERANCE
    log_level: str = "WARNING"

    def assets_dir_for(self, course_name: str) -> Path:
        """Cache directory for one course namespace."""
        folder = safe_folder_name(course_name)
        if self.course_root_dir is not None:
            return self.course_root_dir / folder / "assets"
        return self.assets_dir / folder

    def with_overrides(self, **changes: object) -> "Settings":
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def load_settings(*, dotenv: bool = True) -> Settings:
    if dotenv:
        load_dotenv()

    assets = os.environ.get("OVADECK_ASSETS_DIR", "").strip()
    course_root = os.environ.get("LOCAL_COURSE_ROOT_DIR", "").strip()
    return Settings(
        assets_dir=Path(assets) if assets else Path(tempfile.gettempdir()) / "ovadeck" / "assets",
        course_root_dir=Path(course_root) if course_root else None,
        offline=_env_bool("OVADECK_OFFLINE"),
        asset_workers=max(1, _env_int("OVADECK_ASSET_WORKERS", DEFAULT_ASSET_WORKERS)),
        http_timeout=_env_float("OVADECK_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        freepik_api_key=os.environ.get("FREEPIK_API_KEY", "").strip(),
        freepik_base_url=os.environ.get("FREEPIK_API_BASE_URL", FREEPIK_API_BASE_URL).strip() or FREEPIK_API_BASE_URL,
        openverse_url=os.environ.get("OPENVERSE_API_URL", OPENVERSE_API_URL).strip() or OPENVERSE_API_URL,
        activity_text_threshold=_env_int("OVADECK_ACTIVITY_TEXT_THRESHOLD", DEFAULT_ACTIVITY_TEXT_THRESHOLD),
        cognitive_load_minutes=_env_int("OVADECK_COGNITIVE_LOAD_MINUTES", DEFAULT_COGNITIVE_LOAD_MINUTES),
        duration_drift_tolerance=_env_float("OVADECK_DURATION_DRIFT_TOLERANCE", DEFAULT_DURATION_DRIFT_TOLERANCE),
        log_level=os.environ.get("OVADECK_LOG_LEVEL", "WARNING").strip().upper() or "WARNING",
    )
