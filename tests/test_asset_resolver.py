import re
import threading
from concurrent.futures import ThreadPoolExecutor

import orjson
import pytest

from ovadeck.core.assets.cache import AssetCache, cache_key
from ovadeck.core.assets.providers import (
    FreepikProvider,
    OpenverseProvider,
    ProviderError,
    extension_for,
    provider_from_settings,
)
from ovadeck.core.assets.resolver import DEFAULT_QUERY, AssetResolver, attribution_lines_for, candidate_queries
from ovadeck.core.config import Settings


def _resolver(provider, tmp_path):
    return AssetResolver(provider, lambda ns: tmp_path / ns)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b"", content_type="application/json"):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self.text = "" if payload is None else orjson.dumps(payload).decode()
        self.headers = {"Content-Type": content_type}

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        return self.responses.pop(0)


class TestResolverCaching:
    def test_repeat_request_hits_provider_once(self, tmp_path, fake_provider_cls, sample_result):
        provider = fake_provider_cls(default=sample_result)
        resolver = _resolver(provider, tmp_path)
        first = resolver.resolve("Curso", "equipo")
        second = resolver.resolve("Curso", "equipo")
        assert first is not None and second == first
        assert provider.search_calls == ["equipo"]
        assert len(provider.fetch_calls) == 1

    def test_fresh_resolver_reads_disk(self, tmp_path, fake_provider_cls, sample_result):
        _resolver(fake_provider_cls(default=sample_result), tmp_path).resolve("Curso", "equipo")

        provider = fake_provider_cls(default=sample_result)
        hit = _resolver(provider, tmp_path).resolve("Curso", "equipo")
        assert hit is not None
        assert hit.asset_path.is_file()
        assert provider.search_calls == []
        assert provider.fetch_calls == []

    def test_orientation_is_part_of_the_key(self, tmp_path, fake_provider_cls, sample_result):
        provider = fake_provider_cls(default=sample_result)
        resolver = _resolver(provider, tmp_path)
        resolver.resolve("Curso", "equipo", prefer_horizontal=True)
        resolver.resolve("Curso", "equipo", prefer_horizontal=False)
        assert provider.search_calls == ["equipo", "equipo"]

    def test_concurrent_requests_are_coalesced(self, tmp_path, fake_provider_cls, sample_result):
        gate = threading.Event()

        class SlowProvider(fake_provider_cls):
            def search(self, query, prefer_horizontal=True):
                gate.wait(timeout=5)
                return super().search(query, prefer_horizontal)

        provider = SlowProvider(default=sample_result)
        resolver = _resolver(provider, tmp_path)
        with ThreadPoolExecutor(max_workers=8) as pool:
            futures = [pool.submit(resolver.resolve, "Curso", "equipo") for _ in range(8)]
            gate.set()
            results = [f.result() for f in futures]
        assert provider.search_calls == ["equipo"]
        assert all(r == results[0] for r in results)

    def test_sidecar_contents(self, tmp_path, fake_provider_cls, sample_result):
        resolved = _resolver(fake_provider_cls(default=sample_result), tmp_path).resolve("Curso", "equipo")
        key = cache_key("fake", "equipo", "horizontal")
        assert resolved.asset_path == tmp_path / "Curso" / f"{key}.png"

        meta = orjson.loads((tmp_path / "Curso" / f"{key}.meta.json").read_bytes())
        assert meta["provider"] == "fake"
        assert meta["query"] == "equipo"
        assert meta["orientation"] == "horizontal"
        assert meta["file_name"] == f"{key}.png"
        assert meta["source_url"] == "https://example.org/equipo"
        assert meta["image_url"] == "https://images.example.org/equipo.png"
        assert meta["attribution_lines"] == list(resolved.attribution_lines)
        assert "fetched_at" in meta
        assert not list((tmp_path / "Curso").glob("*.tmp"))


class TestResolverFallbacks:
    def test_candidates_tried_in_order(self, tmp_path, fake_provider_cls, sample_result):
        provider = fake_provider_cls(hits={DEFAULT_QUERY: sample_result})
        resolved = _resolver(provider, tmp_path).resolve("Curso", "equipo", topic="Liderazgo")
        assert provider.search_calls == [
            "equipo",
            "equipo ilustración",
            "Liderazgo concepto educativo",
            DEFAULT_QUERY,
        ]
        assert resolved.query == DEFAULT_QUERY

    def test_shared_fallback_is_searched_once(self, tmp_path, fake_provider_cls, sample_result):
        provider = fake_provider_cls(hits={DEFAULT_QUERY: sample_result})
        resolver = _resolver(provider, tmp_path)
        assert resolver.resolve("Curso", "uno") is not None
        assert resolver.resolve("Curso", "dos") is not None
        assert provider.search_calls.count(DEFAULT_QUERY) == 1

    def test_all_candidates_fail(self, tmp_path, fake_provider_cls):
        provider = fake_provider_cls(error=ProviderError("HTTP 503"))
        assert _resolver(provider, tmp_path).resolve("Curso", "equipo", topic="Liderazgo") is None
        assert len(provider.search_calls) == 4

    def test_fetch_failure_moves_to_next_candidate(self, tmp_path, fake_provider_cls, sample_result):
        class FlakyFetch(fake_provider_cls):
            def fetch(self, url):
                self.fetch_calls.append(url)
                if len(self.fetch_calls) == 1:
                    raise ProviderError("timeout")
                return super().fetch(url)

        provider = FlakyFetch(default=sample_result)
        resolved = _resolver(provider, tmp_path).resolve("Curso", "equipo")
        assert resolved.query == "equipo ilustración"

    def test_request_keeps_the_provider_it_started_with(self, tmp_path, fake_provider_cls, sample_result):
        provider = fake_provider_cls(hits={"equipo ilustración": sample_result})
        resolver = _resolver(provider, tmp_path)
        search = provider.search

        def detach_then_search(query, prefer_horizontal=True):
            resolver.provider = None
            return search(query, prefer_horizontal)

        provider.search = detach_then_search
        resolved = resolver.resolve("Curso", "equipo")
        assert resolved is not None and resolved.provider == "fake"
        assert provider.search_calls == ["equipo", "equipo ilustración"]

    def test_no_provider(self, tmp_path):
        assert _resolver(None, tmp_path).resolve("Curso", "equipo") is None

    def test_candidate_queries(self):
        assert candidate_queries("lupa", icon=True) == ["lupa", "lupa icono"]
        assert candidate_queries("", "Tema") == ["Tema concepto educativo", DEFAULT_QUERY]
        assert candidate_queries("Aprendizaje Estudiantes") == [
            "Aprendizaje Estudiantes",
            "Aprendizaje Estudiantes ilustración",
        ]


class TestAssetCache:
    def test_key_shape(self):
        key = cache_key("openverse", "equipo", "horizontal")
        assert re.fullmatch(r"[0-9a-f]{16}", key)
        assert key != cache_key("openverse", "equipo", "vertical")

    def test_corrupt_sidecar_is_a_miss(self, tmp_path):
        cache = AssetCache(tmp_path)
        cache.meta_path("abc").write_bytes(b"{not json")
        assert cache.get("abc") is None

    def test_dangling_sidecar_is_a_miss(self, tmp_path):
        cache = AssetCache(tmp_path)
        cache.meta_path("abc").write_bytes(orjson.dumps({"file_name": "abc.png"}))
        assert cache.get("abc") is None

    def test_put_then_get(self, tmp_path):
        cache = AssetCache(tmp_path / "nuevo")
        cache.put(
            "abc",
            content=b"data",
            ext=".jpg",
            provider="openverse",
            query="q",
            orientation="vertical",
            source_url="https://x",
            attribution_lines=["Imagen: x"],
        )
        hit = cache.get("abc")
        assert hit.path.read_bytes() == b"data"
        assert hit.attribution_lines == ("Imagen: x",)
        assert hit.orientation == "vertical"


class TestAttribution:
    def test_lines(self, sample_result):
        assert attribution_lines_for(sample_result, "openverse") == [
            "Imagen: Equipo en reunión",
            "Fuente: https://example.org/equipo",
            "Autor: Ana Pérez",
            "Licencia: by",
            "Licencia URL: https://creativecommons.org/licenses/by/4.0/",
            "Proveedor: wikimedia",
        ]


class TestProviders:
    def test_openverse_picks_best_scored(self):
        payload = {
            "results": [
                {"url": "ftp://skip.me/a.jpg", "width": 4000, "height": 3000, "license": "cc0"},
                {"url": "https://a.org/a.jpg", "width": 800, "height": 600, "license": "by", "provider": "flickr"},
                {
                    "url": "https://b.org/b.jpg",
                    "width": 1600,
                    "height": 1200,
                    "license": "cc0",
                    "provider": "wikimedia",
                    "title": "Reunión",
                    "creator": "Luis",
                    "foreign_landing_url": "https://commons.wikimedia.org/b",
                },
            ]
        }
        session = FakeSession(FakeResponse(payload=payload))
        provider = OpenverseProvider("https://api.example.org/v1/images/", session=session)
        result = provider.search("equipo")
        assert result.image_url == "https://b.org/b.jpg"
        assert result.page_url == "https://commons.wikimedia.org/b"
        assert result.author == "Luis"
        assert session.calls[0]["params"]["q"] == "equipo"
        assert session.calls[0]["timeout"] == (5.0, 20.0)
        assert "User-Agent" in session.headers

    def test_openverse_scores(self):
        assert OpenverseProvider.score({"url": "data:x"}, True) is None
        assert OpenverseProvider.score({"url": "https://x", "width": 600, "height": 800}, False) == 10 + 2
        assert OpenverseProvider.score({"url": "https://x", "license": "pdm"}, True) == 20 + 25

    def test_openverse_http_error(self):
        session = FakeSession(FakeResponse(status_code=429, payload={"detail": "throttled"}))
        with pytest.raises(ProviderError):
            OpenverseProvider("https://api.example.org/v1/images/", session=session).search("equipo")

    def test_openverse_blank_query(self):
        session = FakeSession()
        assert OpenverseProvider("https://api.example.org/", session=session).search("  ") is None
        assert session.calls == []

    def test_freepik_search(self):
        payload = {
            "data": [
                {"title": "Roto", "image": {"source": {"url": "relative/a.jpg"}}},
                {
                    "title": "Equipo",
                    "url": "https://www.freepik.com/equipo",
                    "image": {
                        "type": "vector",
                        "orientation": "horizontal",
                        "source": {"url": "https://img.freepik.com/equipo.jpg"},
                    },
                    "licenses": [{"type": "freemium", "url": "https://www.freepik.com/license"}],
                    "author": {"name": "Studio"},
                },
            ]
        }
        session = FakeSession(FakeResponse(payload=payload))
        provider = FreepikProvider("https://api.example.org/", "secret", session=session)
        result = provider.search("equipo")
        assert result.image_url == "https://img.freepik.com/equipo.jpg"
        assert result.license_url == "https://www.freepik.com/license"
        assert result.author == "Studio"
        assert result.source == "freepik"
        call = session.calls[0]
        assert call["url"] == "https://api.example.org/v1/resources"
        assert call["headers"]["x-freepik-api-key"] == "secret"
        assert call["params"]["term"] == "equipo"

    def test_fetch(self):
        session = FakeSession(FakeResponse(content=b"\x89PNG", content_type="image/png"))
        fetched = OpenverseProvider("https://api.example.org/", session=session).fetch("https://b.org/b.png")
        assert fetched.content == b"\x89PNG"
        assert extension_for(fetched.content_type) == ".png"

    def test_fetch_empty_body(self):
        session = FakeSession(FakeResponse(content=b""))
        with pytest.raises(ProviderError):
            OpenverseProvider("https://api.example.org/", session=session).fetch("https://b.org/b.png")

    def test_extension_for(self):
        assert extension_for("image/jpeg; charset=binary") == ".jpg"
        assert extension_for("image/webp") == ".webp"
        assert extension_for(None) == ".img"

    def test_provider_from_settings(self, tmp_path):
        base = Settings(assets_dir=tmp_path)
        assert provider_from_settings(base.with_overrides(offline=True)) is None
        assert isinstance(provider_from_settings(base), OpenverseProvider)
        assert isinstance(provider_from_settings(base.with_overrides(freepik_api_key="k")), FreepikProvider)
