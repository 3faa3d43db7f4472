"""
Unit tests for CoverResolver

Covers:
- archive hit wins, fallback never queried
- archive non-OK / timeout -> fallback queried exactly once
- winner cached for 24h, failures cache nothing
"""
import httpx
import pytest

from musico.config import COVER_TTL_MS
from musico.covers import CoverResolver

ARCHIVE = "http://archive.test"
FALLBACK = "http://local.test"


class Recorder:
    def __init__(self, archive, fallback):
        self.archive = archive
        self.fallback = fallback
        self.archive_calls = 0
        self.fallback_calls = []

    def __call__(self, request):
        if request.url.host == "archive.test":
            self.archive_calls += 1
            return self.archive(request)
        self.fallback_calls.append(request.url.raw_path.decode())
        return self.fallback(request)


def _resolver(cache, recorder):
    return CoverResolver(cache=cache, archive_url=ARCHIVE, fallback_url=FALLBACK,
                         transport=httpx.MockTransport(recorder))


@pytest.mark.asyncio
async def test_archive_ok_skips_fallback(cache):
    rec = Recorder(lambda r: httpx.Response(200, content=b"jpg"),
                   lambda r: httpx.Response(200, json={"coverUrl": "http://other"}))

    url = await _resolver(cache, rec).resolve("rel-1", "Miles Davis", "Kind of Blue")

    assert url == f"{ARCHIVE}/release/rel-1/front"
    assert rec.fallback_calls == []
    assert cache.get("cover_rel-1") == url


@pytest.mark.asyncio
async def test_archive_not_found_queries_fallback_once(cache):
    rec = Recorder(lambda r: httpx.Response(404),
                   lambda r: httpx.Response(200, json={"coverUrl": "http://itunes/600x600bb.jpg"}))

    url = await _resolver(cache, rec).resolve("rel-2", "AC DC", "Back in Black")

    assert url == "http://itunes/600x600bb.jpg"
    assert rec.archive_calls == 1
    assert rec.fallback_calls == ["/api/cover/AC%20DC/Back%20in%20Black"]


@pytest.mark.asyncio
async def test_archive_timeout_treated_like_error(cache):
    def timeout(request):
        raise httpx.ReadTimeout("slow", request=request)

    rec = Recorder(timeout, lambda r: httpx.Response(200, json={"coverUrl": "http://fb"}))

    assert await _resolver(cache, rec).resolve("rel-3", "a", "b") == "http://fb"
    assert len(rec.fallback_calls) == 1


@pytest.mark.asyncio
async def test_both_fail_returns_none_and_caches_nothing(cache):
    rec = Recorder(lambda r: httpx.Response(500), lambda r: httpx.Response(404, json={"error": "No cover found"}))

    assert await _resolver(cache, rec).resolve("rel-4", "a", "b") is None
    assert cache.get("cover_rel-4") is None
    assert len(rec.fallback_calls) == 1


@pytest.mark.asyncio
async def test_fallback_without_cover_url_is_a_miss(cache):
    rec = Recorder(lambda r: httpx.Response(404), lambda r: httpx.Response(200, json={}))
    assert await _resolver(cache, rec).resolve("rel-5", "a", "b") is None


@pytest.mark.asyncio
async def test_cached_cover_skips_network(cache):
    cache.set("cover_rel-6", "http://cached.jpg", COVER_TTL_MS)
    rec = Recorder(lambda r: httpx.Response(200), lambda r: httpx.Response(200))

    assert await _resolver(cache, rec).resolve("rel-6", "a", "b") == "http://cached.jpg"
    assert rec.archive_calls == 0


@pytest.mark.asyncio
async def test_cover_cache_lasts_24_hours(cache, clock):
    rec = Recorder(lambda r: httpx.Response(200), lambda r: httpx.Response(404))
    await _resolver(cache, rec).resolve("rel-7", "a", "b")

    clock.advance(COVER_TTL_MS)
    assert cache.get("cover_rel-7") is not None
    clock.advance(1)
    assert cache.get("cover_rel-7") is None
