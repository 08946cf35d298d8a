"""
ovadeck.core.assets — External visual lookup with a content-addressed disk cache.

    AssetResolver(provider, cache_dir_for).resolve(namespace, query, *, topic, prefer_horizontal)
        -> ResolvedVisual | None
    provider_from_settings(settings) -> SearchProvider | None
"""
from ovadeck.core.assets.cache import AssetCache, cache_key
from ovadeck.core.assets.providers import (
    FetchedAsset,
    FreepikProvider,
    OpenverseProvider,
    ProviderError,
    SearchProvider,
    SearchResult,
    provider_from_settings,
)
from ovadeck.core.assets.resolver import AssetResolver, ResolvedVisual

__all__ = [
    "AssetCache",
    "AssetResolver",
    "FetchedAsset",
    "FreepikProvider",
    "OpenverseProvider",
    "ProviderError",
    "ResolvedVisual",
    "SearchProvider",
    "SearchResult",
    "cache_key",
    "provider_from_settings",
]
