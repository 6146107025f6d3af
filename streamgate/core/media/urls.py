from __future__ import annotations

from urllib.parse import urlencode, urlsplit

from loguru import logger

from streamgate.config import (
    MEDIA_ASSET_PATH_PREFIX,
    MEDIA_MP4_EXTENSION,
    MEDIA_ORIGIN_URL,
    STREAM_PUBLIC_BASE_URL,
)
from .errors import OriginUrlError

HLS_MANIFEST_SUFFIX = "/hls/master.m3u8"
STREAM_ROUTE = "/stream"


def mp4_suffix(extension: str = MEDIA_MP4_EXTENSION) -> str:
    return f"/original/source.{extension}"


def is_hls_manifest(asset_path: str) -> bool:
    """
    Return whether an asset path already names the HLS master manifest.
    """
    return urlsplit(asset_path).path.endswith(HLS_MANIFEST_SUFFIX)


def _is_absolute(url: str) -> bool:
    parsed = urlsplit(url)
    return bool(parsed.scheme and parsed.netloc)


def to_origin_url(path_or_url: str, origin: str = MEDIA_ORIGIN_URL) -> str:
    """
    Return an absolute URL, joining relative asset paths onto the media origin.
    """
    if _is_absolute(path_or_url):
        return path_or_url
    return f"{origin.rstrip('/')}/{path_or_url.lstrip('/')}"


def asset_base_url(
    asset_path: str,
    *,
    origin: str = MEDIA_ORIGIN_URL,
    mp4_extension: str = MEDIA_MP4_EXTENSION,
) -> str:
    """
    Normalize an asset path to the absolute base directory of the asset.

    Strips a trailing HLS manifest or MP4-original suffix and any trailing
    slashes, then anchors relative paths on the media origin.

    Raises:
        OriginUrlError: If nothing is left once the suffix is removed.
    """
    cleaned = asset_path.strip()
    for suffix in (HLS_MANIFEST_SUFFIX, mp4_suffix(mp4_extension)):
        if cleaned.endswith(suffix):
            cleaned = cleaned[: -len(suffix)]
            break
    cleaned = cleaned.rstrip("/")
    if not cleaned:
        raise OriginUrlError("empty asset path")
    return to_origin_url(cleaned, origin)


def hls_manifest_url(base_url: str) -> str:
    return base_url.rstrip("/") + HLS_MANIFEST_SUFFIX


def mp4_source_url(base_url: str, mp4_extension: str = MEDIA_MP4_EXTENSION) -> str:
    return base_url.rstrip("/") + mp4_suffix(mp4_extension)


def belongs_to_origin(url: str, origin: str = MEDIA_ORIGIN_URL) -> bool:
    """
    Check that `url` targets the media origin.

    Scheme and host:port must match exactly and the path must sit under the
    origin's own path, so look-alike hosts such as `<origin>.evil.example`
    are rejected even though they share a string prefix.
    """
    try:
        parsed = urlsplit(url)
        expected = urlsplit(origin)
    except ValueError:
        return False
    if parsed.scheme.lower() not in ("http", "https"):
        return False
    if parsed.scheme.lower() != expected.scheme.lower():
        return False
    if parsed.netloc.lower() != expected.netloc.lower():
        return False
    origin_path = expected.path.rstrip("/")
    if not origin_path:
        return True
    return parsed.path == origin_path or parsed.path.startswith(origin_path + "/")


def matches_asset_namespace(
    url: str,
    *,
    origin: str = MEDIA_ORIGIN_URL,
    path_prefix: str = MEDIA_ASSET_PATH_PREFIX,
) -> bool:
    """
    Return whether `url` is on the media origin and inside the asset namespace.
    """
    if not belongs_to_origin(url, origin):
        return False
    return urlsplit(url).path.startswith(path_prefix)


def validate_origin_url(url: str | None, origin: str = MEDIA_ORIGIN_URL) -> str:
    """
    Validate a client-supplied origin URL for the stream proxy.

    Returns:
        str: The stripped URL.

    Raises:
        OriginUrlError: If the URL is missing, malformed, or not on the media origin.
    """
    candidate = (url or "").strip()
    if not candidate:
        raise OriginUrlError("Video URL parameter is required")
    if not belongs_to_origin(candidate, origin):
        logger.warning("Rejected out-of-namespace origin URL: {}", redact_url(candidate))
        raise OriginUrlError("Invalid video URL")
    return candidate


def build_stream_url(upstream_url: str, public_base: str = STREAM_PUBLIC_BASE_URL) -> str:
    """
    Wrap an origin URL into the public stream proxy form `<base>/stream?url=...`.
    """
    base = public_base.rstrip("/")
    if upstream_url.startswith(base + STREAM_ROUTE + "?"):
        return upstream_url
    return f"{base}{STREAM_ROUTE}?{urlencode({'url': upstream_url})}"


def redact_url(url: str) -> str:
    """
    Produce a redacted identifier for logging origin URLs.
    """
    try:
        parsed = urlsplit(url)
        host = parsed.netloc
        path = parsed.path or "/"
        return f"{host}:{hash(path) & 0xFFFF_FFFF:x}"
    except ValueError:
        return "<redacted>"
