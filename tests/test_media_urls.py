from urllib.parse import parse_qs, urlsplit

import pytest

ORIGIN = "https://media.test"


def test_asset_base_url_strips_mp4_original_suffix():
    from streamgate.core.media.urls import asset_base_url

    assert (
        asset_base_url("videos/abc/original/source.mp4", origin=ORIGIN)
        == "https://media.test/videos/abc"
    )


def test_asset_base_url_strips_manifest_and_trailing_slash():
    from streamgate.core.media.urls import asset_base_url

    assert asset_base_url("videos/abc/hls/master.m3u8", origin=ORIGIN) == f"{ORIGIN}/videos/abc"
    assert asset_base_url("/videos/abc/", origin=ORIGIN) == f"{ORIGIN}/videos/abc"


def test_asset_base_url_keeps_absolute_urls():
    from streamgate.core.media.urls import asset_base_url

    assert (
        asset_base_url("https://cdn.other/videos/x/original/source.webm", origin=ORIGIN, mp4_extension="webm")
        == "https://cdn.other/videos/x"
    )


def test_asset_base_url_rejects_empty_path():
    from streamgate.core.media.errors import OriginUrlError
    from streamgate.core.media.urls import asset_base_url

    with pytest.raises(OriginUrlError):
        asset_base_url("/original/source.mp4", origin=ORIGIN)


def test_canonical_urls():
    from streamgate.core.media.urls import hls_manifest_url, mp4_source_url

    base = f"{ORIGIN}/videos/abc"
    assert hls_manifest_url(base) == f"{base}/hls/master.m3u8"
    assert mp4_source_url(base) == f"{base}/original/source.mp4"


def test_belongs_to_origin_rejects_lookalike_hosts():
    from streamgate.core.media.urls import belongs_to_origin

    assert belongs_to_origin(f"{ORIGIN}/videos/abc/original/source.mp4", ORIGIN)
    assert belongs_to_origin("HTTPS://MEDIA.TEST/videos/x", ORIGIN)
    assert not belongs_to_origin("https://media.test.evil.example/videos/x", ORIGIN)
    assert not belongs_to_origin("http://media.test/videos/x", ORIGIN)
    assert not belongs_to_origin("ftp://media.test/videos/x", ORIGIN)
    assert not belongs_to_origin("not a url", ORIGIN)


def test_belongs_to_origin_honors_origin_path():
    from streamgate.core.media.urls import belongs_to_origin

    origin = "https://store.test/bucket"
    assert belongs_to_origin("https://store.test/bucket/videos/a", origin)
    assert not belongs_to_origin("https://store.test/bucket-other/videos/a", origin)


def test_matches_asset_namespace():
    from streamgate.core.media.urls import matches_asset_namespace

    assert matches_asset_namespace(f"{ORIGIN}/videos/a/hls/master.m3u8", origin=ORIGIN, path_prefix="/videos/")
    assert not matches_asset_namespace(f"{ORIGIN}/thumbnails/a.jpg", origin=ORIGIN, path_prefix="/videos/")
    assert not matches_asset_namespace("https://other.test/videos/a", origin=ORIGIN, path_prefix="/videos/")


def test_validate_origin_url():
    from streamgate.core.media.errors import OriginUrlError
    from streamgate.core.media.urls import validate_origin_url

    url = f"{ORIGIN}/videos/a/original/source.mp4"
    assert validate_origin_url(f"  {url} ", ORIGIN) == url
    with pytest.raises(OriginUrlError):
        validate_origin_url(None, ORIGIN)
    with pytest.raises(OriginUrlError):
        validate_origin_url("https://evil.test/videos/a", ORIGIN)


def test_build_stream_url_encodes_origin_url_once():
    from streamgate.core.media.urls import build_stream_url

    upstream = f"{ORIGIN}/videos/a/original/source.mp4?x=1&y=2"
    wrapped = build_stream_url(upstream, "http://proxy.test/")
    parsed = urlsplit(wrapped)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "http://proxy.test/stream"
    assert parse_qs(parsed.query) == {"url": [upstream]}
    assert build_stream_url(wrapped, "http://proxy.test") == wrapped


def test_is_hls_manifest():
    from streamgate.core.media.urls import is_hls_manifest

    assert is_hls_manifest("videos/a/hls/master.m3u8")
    assert is_hls_manifest(f"{ORIGIN}/videos/a/hls/master.m3u8?token=1")
    assert not is_hls_manifest("videos/a/hls/720p/index.m3u8")
