import asyncio

import pytest


def test_readiness_probes_once_and_remembers_result():
    from streamgate.core.media.cache import MediaSourceCache
    from streamgate.core.media.types import ReadinessState

    cache = MediaSourceCache()
    calls = []

    async def probe(base_url):
        calls.append(base_url)
        return True

    async def scenario():
        assert cache.readiness_state("b") is ReadinessState.UNKNOWN
        assert await cache.readiness("b", probe) is True
        assert await cache.readiness("b", probe) is True

    asyncio.run(scenario())
    assert calls == ["b"]
    assert cache.readiness_state("b") is ReadinessState.READY


def test_concurrent_callers_share_one_probe():
    from streamgate.core.media.cache import MediaSourceCache
    from streamgate.core.media.types import ReadinessState

    cache = MediaSourceCache()
    calls = []

    async def scenario():
        release = asyncio.Event()

        async def probe(base_url):
            calls.append(base_url)
            await release.wait()
            return False

        waiters = [asyncio.ensure_future(cache.readiness("b", probe)) for _ in range(10)]
        await asyncio.sleep(0)
        assert cache.readiness_state("b") is ReadinessState.PROBING
        assert cache.stats()["probing"] == 1
        release.set()
        return await asyncio.gather(*waiters)

    results = asyncio.run(scenario())
    assert results == [False] * 10
    assert calls == ["b"]
    assert cache.readiness_state("b") is ReadinessState.NOT_READY


def test_raising_probe_counts_as_not_ready():
    from streamgate.core.media.cache import MediaSourceCache
    from streamgate.core.media.types import ReadinessState

    cache = MediaSourceCache()

    async def probe(base_url):
        raise RuntimeError("boom")

    assert asyncio.run(cache.readiness("b", probe)) is False
    assert cache.readiness_state("b") is ReadinessState.NOT_READY


def test_cancelled_waiter_does_not_abort_shared_probe():
    from streamgate.core.media.cache import MediaSourceCache

    cache = MediaSourceCache()

    async def scenario():
        release = asyncio.Event()

        async def probe(base_url):
            await release.wait()
            return True

        first = asyncio.ensure_future(cache.readiness("b", probe))
        second = asyncio.ensure_future(cache.readiness("b", probe))
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first
        release.set()
        return await second

    assert asyncio.run(scenario()) is True


def test_first_remembered_source_wins():
    from streamgate.core.media.cache import MediaSourceCache
    from streamgate.core.media.types import SourceKind, VideoSource

    cache = MediaSourceCache()
    hls = VideoSource(kind=SourceKind.HLS, url="https://media.test/videos/a/hls/master.m3u8")
    mp4 = VideoSource(kind=SourceKind.MP4, url="http://proxy.test/stream?url=x")

    assert cache.remember_source("videos/a", hls) is hls
    assert cache.remember_source("videos/a", mp4) is hls
    assert cache.get_source("videos/a") is hls


def test_invalidate_drops_source_and_readiness():
    from streamgate.core.media.cache import MediaSourceCache
    from streamgate.core.media.types import ReadinessState, SourceKind, VideoSource

    cache = MediaSourceCache()

    async def probe(base_url):
        return False

    asyncio.run(cache.readiness("b", probe))
    cache.remember_source("a", VideoSource(kind=SourceKind.MP4, url="u"))
    assert cache.stats() == {"sources": 1, "readiness": 1, "probing": 0}

    cache.invalidate("a", "b")

    assert cache.get_source("a") is None
    assert cache.readiness_state("b") is ReadinessState.UNKNOWN
    assert cache.stats() == {"sources": 0, "readiness": 0, "probing": 0}
