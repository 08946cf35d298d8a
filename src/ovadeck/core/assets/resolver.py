"""
resolver.py — Query -> cached image file, with fallbacks and in-run coalescing.

One AssetResolver belongs to one generation run: it owns the provider, the
namespace -> cache directory mapping and the in-flight map. Nothing here is
module-global, so concurrent runs stay isolated and tests inject fakes.

A failure at any stage (search, fetch, disk) is logged and means "no result for
this candidate"; `resolve` returns None when every candidate failed.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar

from ovadeck.core.assets.cache import AssetCache, cache_key, orientation_of
from ovadeck.core.assets.providers import SearchProvider, SearchResult, extension_for
from ovadeck.core.text.sanitize import sanitize_text

logger = logging.getLogger(__name__)

T = TypeVar("T")

STYLE_SUFFIX = "ilustración"
ICON_SUFFIX = "icono"
GENERIC_DESCRIPTOR = "concepto educativo"
DEFAULT_QUERY = "aprendizaje estudiantes"


@dataclass(frozen=True)
class ResolvedVisual:
    asset_path: Path
    attribution_lines: tuple[str, ...]
    query: str
    provider: str


def attribution_lines_for(result: SearchResult, provider: str) -> list[str]:
    lines = [
        f"Imagen: {result.title or 'N/D'}",
        f"Fuente: {result.page_url or result.image_url or 'N/D'}",
    ]
    if result.author:
        lines.append(f"Autor: {result.author}")
    if result.license:
        lines.append(f"Licencia: {result.license}")
    if result.license_url:
        lines.append(f"Licencia URL: {result.license_url}")
    lines.append(f"Proveedor: {result.source or provider}")
    return lines


def candidate_queries(query: str, topic: str = "", *, icon: bool = False) -> list[str]:
    """Ordered, de-duplicated search terms tried for one request."""
    q = sanitize_text(query)
    t = sanitize_text(topic)
    if icon:
        raw = [q, f"{q} {ICON_SUFFIX}" if q else ""]
    else:
        raw = [
            q,
            f"{q} {STYLE_SUFFIX}" if q else "",
            f"{t} {GENERIC_DESCRIPTOR}" if t else "",
            DEFAULT_QUERY,
        ]
    out: list[str] = []
    seen: set[str] = set()
    for c in raw:
        k = c.lower()
        if c and k not in seen:
            seen.add(k)
            out.append(c)
    return out


class AssetResolver:
    def __init__(
        self,
        provider: SearchProvider | None,
        cache_dir_for: Callable[[str], Path],
    ):
        self.provider = provider
        self.cache_dir_for = cache_dir_for
        self._lock = threading.Lock()
        self._inflight: dict[tuple[str, ...], Future] = {}
        self._caches: dict[str, AssetCache] = {}

    def _cache(self, namespace: str) -> AssetCache:
        with self._lock:
            c = self._caches.get(namespace)
            if c is None:
                c = AssetCache(self.cache_dir_for(namespace))
                self._caches[namespace] = c
            return c

    def _once(self, key: tuple[str, ...], fn: Callable[[], T | None]) -> T | None:
        """Run `fn` once per key for the lifetime of this resolver; other callers wait."""
        with self._lock:
            fut = self._inflight.get(key)
            owner = fut is None
            if owner:
                fut = Future()
                self._inflight[key] = fut
        if not owner:
            return fut.result()
        try:
            value = fn()
        except Exception as e:
            logger.debug("asset resolver: %s failed: %s", key, e)
            value = None
        fut.set_result(value)
        return value

    def resolve(
        self,
        namespace: str,
        query: str,
        *,
        topic: str = "",
        prefer_horizontal: bool = True,
        icon: bool = False,
    ) -> ResolvedVisual | None:
        provider = self.provider
        if provider is None:
            return None
        orientation = orientation_of(prefer_horizontal)
        key = ("request", namespace, sanitize_text(query), orientation, "icon" if icon else "image")
        return self._once(key, lambda: self._resolve_uncoalesced(provider, namespace, query, topic, orientation, icon))

    def _resolve_uncoalesced(
        self, provider: SearchProvider, namespace: str, query: str, topic: str, orientation: str, icon: bool
    ) -> ResolvedVisual | None:
        candidates = candidate_queries(query, topic, icon=icon)
        for candidate in candidates:
            found = self._once(
                ("candidate", namespace, candidate, orientation),
                lambda c=candidate: self._resolve_candidate(provider, namespace, c, orientation),
            )
            if found is not None:
                return found
        if candidates:
            logger.info("asset resolver: no visual for %r (%d candidates), using text-only layout", query, len(candidates))
        return None

    def _resolve_candidate(
        self, provider: SearchProvider, namespace: str, query: str, orientation: str
    ) -> ResolvedVisual | None:
        cache = self._cache(namespace)
        key = cache_key(provider.name, query, orientation)

        hit = cache.get(key)
        if hit is not None:
            logger.debug("asset cache hit %s for %r", key, query)
            return ResolvedVisual(hit.path, hit.attribution_lines, query, hit.provider or provider.name)

        try:
            result = provider.search(query, orientation == "horizontal")
        except Exception as e:
            logger.debug("asset search failed for %r via %s: %s", query, provider.name, e)
            return None
        if result is None or not result.image_url:
            logger.debug("asset search: no result for %r via %s", query, provider.name)
            return None

        try:
            fetched = provider.fetch(result.image_url)
        except Exception as e:
            logger.debug("asset fetch failed for %s: %s", result.image_url, e)
            return None

        lines = attribution_lines_for(result, provider.name)
        try:
            stored = cache.put(
                key,
                content=fetched.content,
                ext=extension_for(fetched.content_type),
                provider=provider.name,
                query=query,
                orientation=orientation,
                source_url=result.page_url or result.image_url,
                attribution_lines=lines,
                extra={"image_url": result.image_url},
            )
        except OSError as e:
            logger.debug("asset cache write failed for %s: %s", key, e)
            return None
        return ResolvedVisual(stored.path, stored.attribution_lines, query, provider.name)
