"""
providers.py — Image search capabilities used by the asset resolver.

A provider answers two questions:
  search(query, prefer_horizontal) -> SearchResult | None   best single candidate
  fetch(url)                       -> FetchedAsset          raw bytes + content type

Both are single bounded attempts (requests timeout tuple, no retry). Errors are
raised to the caller; the resolver decides what a failure means.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import requests

from ovadeck.core.config import Settings

logger = logging.getLogger(__name__)

USER_AGENT = "ovadeck/0.1 (+storyboard renderer)"


class ProviderError(RuntimeError):
    """Non-success answer from a search or fetch endpoint."""


@dataclass(frozen=True)
class SearchResult:
    image_url: str
    title: str = ""
    page_url: str = ""
    author: str = ""
    license: str = ""
    license_url: str = ""
    source: str = ""


@dataclass(frozen=True)
class FetchedAsset:
    content: bytes
    content_type: str = ""


class SearchProvider(Protocol):
    name: str

    def search(self, query: str, prefer_horizontal: bool = True) -> SearchResult | None: ...

    def fetch(self, url: str) -> FetchedAsset: ...


def extension_for(content_type: str | None) -> str:
    ct = (content_type or "").lower()
    if "image/png" in ct:
        return ".png"
    if "image/webp" in ct:
        return ".webp"
    if "image/jpeg" in ct or "image/jpg" in ct:
        return ".jpg"
    if "image/gif" in ct:
        return ".gif"
    return ".img"


def _s(v: Any) -> str:
    return v.strip() if isinstance(v, str) else ""


def _num(v: Any) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return 0.0


class _HttpProvider:
    name = "http"

    def __init__(self, *, session: requests.Session | None = None, timeout: float = 20.0, connect_timeout: float = 5.0):
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.timeout = (connect_timeout, timeout)

    def _get_json(self, url: str, *, params: dict[str, Any], headers: dict[str, str] | None = None) -> Any:
        r = self.session.get(url, params=params, headers={"Accept": "application/json", **(headers or {})}, timeout=self.timeout)
        if r.status_code != 200:
            raise ProviderError(f"{self.name} search HTTP {r.status_code}: {r.text[:200]}")
        return r.json()

    def fetch(self, url: str) -> FetchedAsset:
        r = self.session.get(url, timeout=self.timeout)
        if r.status_code != 200:
            raise ProviderError(f"{self.name} fetch HTTP {r.status_code} for {url}")
        if not r.content:
            raise ProviderError(f"{self.name} fetch returned an empty body for {url}")
        return FetchedAsset(content=r.content, content_type=r.headers.get("Content-Type", ""))


class OpenverseProvider(_HttpProvider):
    """Openverse image search (no API key)."""

    name = "openverse"

    def __init__(self, base_url: str, *, page_size: int = 25, **kw: Any):
        super().__init__(**kw)
        self.base_url = base_url
        self.page_size = page_size

    @staticmethod
    def score(result: dict[str, Any], prefer_horizontal: bool) -> float | None:
        if not _s(result.get("url")).startswith("http"):
            return None
        w, h = _num(result.get("width")), _num(result.get("height"))
        horizontal = w >= h if w > 0 and h > 0 else True
        lic = _s(result.get("license")).lower()
        provider = _s(result.get("provider")).lower()

        score = 0.0
        if prefer_horizontal and horizontal:
            score += 20
        if not prefer_horizontal and not horizontal:
            score += 10
        if w > 0 and h > 0:
            score += min(50, round(w * h / 200_000))
        if lic == "cc0":
            score += 30
        if "pdm" in lic:
            score += 25
        if "by" in lic:
            score += 10
        if "wikimedia" in provider:
            score += 5
        if "flickr" in provider:
            score += 2
        return score

    def search(self, query: str, prefer_horizontal: bool = True) -> SearchResult | None:
        term = query.strip()
        if not term:
            return None
        data = self._get_json(self.base_url, params={"q": term, "page_size": self.page_size})
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            return None

        ranked: list[tuple[float, int, dict[str, Any]]] = []
        for i, r in enumerate(results):
            if not isinstance(r, dict):
                continue
            sc = self.score(r, prefer_horizontal)
            if sc is not None:
                ranked.append((-sc, i, r))
        if not ranked:
            return None
        ranked.sort(key=lambda t: (t[0], t[1]))
        best = ranked[0][2]
        return SearchResult(
            image_url=_s(best.get("url")),
            title=_s(best.get("title")) or "Imagen",
            page_url=_s(best.get("foreign_landing_url")) or _s(best.get("detail_url")),
            author=_s(best.get("creator")),
            license=_s(best.get("license")),
            license_url=_s(best.get("license_url")),
            source=_s(best.get("provider")),
        )


class FreepikProvider(_HttpProvider):
    """Freepik resources search (requires `FREEPIK_API_KEY`)."""

    name = "freepik"

    def __init__(self, base_url: str, api_key: str, *, limit: int = 12, **kw: Any):
        super().__init__(**kw)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.limit = limit

    @staticmethod
    def score(resource: dict[str, Any], prefer_horizontal: bool) -> float:
        image = resource.get("image") if isinstance(resource.get("image"), dict) else {}
        source = image.get("source") if isinstance(image.get("source"), dict) else {}
        url = _s(source.get("url"))
        kind = _s(image.get("type")).lower()
        orientation = _s(image.get("orientation")).lower()

        score = 0.0
        if "img.freepik.com" in url:
            score += 50
        if kind == "photo":
            score += 30
        if kind in ("vector", "illustration"):
            score += 20
        if prefer_horizontal and orientation == "horizontal":
            score += 10
        if not prefer_horizontal and orientation == "vertical":
            score += 2
        if "freepik.com" in _s(resource.get("url")):
            score += 2
        return score

    @staticmethod
    def _image_url(resource: dict[str, Any]) -> str:
        image = resource.get("image")
        if not isinstance(image, dict) or not isinstance(image.get("source"), dict):
            return ""
        return _s(image["source"].get("url"))

    def search(self, query: str, prefer_horizontal: bool = True) -> SearchResult | None:
        term = query.strip()
        if not term or not self.api_key:
            return None
        data = self._get_json(
            f"{self.base_url}/v1/resources",
            params={"term": term, "limit": self.limit, "order": "relevance"},
            headers={"x-freepik-api-key": self.api_key},
        )
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return None

        ranked = [
            (-self.score(r, prefer_horizontal), i, r)
            for i, r in enumerate(items)
            if isinstance(r, dict) and self._image_url(r).startswith("http")
        ]
        if not ranked:
            return None
        ranked.sort(key=lambda t: (t[0], t[1]))
        best = ranked[0][2]

        license_url = ""
        for lic in best.get("licenses") or []:
            if isinstance(lic, dict) and _s(lic.get("url")):
                license_url = _s(lic.get("url"))
                break
        author = best.get("author") if isinstance(best.get("author"), dict) else {}
        return SearchResult(
            image_url=self._image_url(best),
            title=_s(best.get("title")) or "Imagen Freepik",
            page_url=_s(best.get("url")),
            author=_s(author.get("name")),
            license_url=license_url,
            source="freepik",
        )


def provider_from_settings(settings: Settings, *, session: requests.Session | None = None) -> SearchProvider | None:
    """Freepik when a key is configured, Openverse otherwise, nothing when offline."""
    if settings.offline:
        return None
    kw: dict[str, Any] = {"session": session, "timeout": settings.http_timeout, "connect_timeout": settings.connect_timeout}
    if settings.freepik_api_key:
        logger.debug("asset provider: freepik (%s)", settings.freepik_base_url)
        return FreepikProvider(settings.freepik_base_url, settings.freepik_api_key, **kw)
    logger.debug("asset provider: openverse (%s)", settings.openverse_url)
    return OpenverseProvider(settings.openverse_url, **kw)
