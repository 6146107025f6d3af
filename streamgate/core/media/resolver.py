from __future__ import annotations

from typing import Optional

from loguru import logger

from streamgate.config import (
    MEDIA_MP4_EXTENSION,
    MEDIA_ORIGIN_URL,
    STREAM_PUBLIC_BASE_URL,
)
from .cache import MediaSourceCache, ProbeFn
from .errors import OriginUrlError
from .probe import HlsProbe
from .types import SourceKind, VideoSource
from .urls import (
    asset_base_url,
    belongs_to_origin,
    build_stream_url,
    hls_manifest_url,
    is_hls_manifest,
    mp4_source_url,
    redact_url,
    to_origin_url,
)


class SourceResolver:
    """
    Picks the playable representation (HLS ladder or MP4 original) of an asset.

    The cache is injected so each application (or test) owns its own state.
    Probe failures never escape `resolve`; they degrade to the MP4 fallback.
    """

    def __init__(
        self,
        cache: MediaSourceCache,
        probe: Optional[ProbeFn] = None,
        *,
        origin: str = MEDIA_ORIGIN_URL,
        public_base_url: str = STREAM_PUBLIC_BASE_URL,
        mp4_extension: str = MEDIA_MP4_EXTENSION,
    ) -> None:
        self.cache = cache
        self._probe = probe or HlsProbe(origin=origin)
        self._origin = origin.rstrip("/")
        self._public_base_url = public_base_url.rstrip("/")
        self._mp4_extension = mp4_extension

    def _mp4_source(self, base_url: str) -> VideoSource:
        url = mp4_source_url(base_url, self._mp4_extension)
        if belongs_to_origin(url, self._origin):
            url = build_stream_url(url, self._public_base_url)
        return VideoSource(kind=SourceKind.MP4, url=url)

    async def resolve(self, asset_path: str) -> VideoSource:
        """
        Resolve `asset_path` to a VideoSource.

        Parameters:
            asset_path (str): Asset base path or URL; may already name the HLS
                manifest or the MP4 original.

        Returns:
            VideoSource: `hls` with the direct manifest URL when the ladder
            probes ready, otherwise `mp4` (proxy-wrapped when on the origin).

        Raises:
            OriginUrlError: If `asset_path` is empty once normalized.
        """
        cached = self.cache.get_source(asset_path)
        if cached is not None:
            return cached

        if is_hls_manifest(asset_path):
            source = VideoSource(
                kind=SourceKind.HLS, url=to_origin_url(asset_path.strip(), self._origin)
            )
            logger.debug("Asset already references an HLS manifest: {}", redact_url(source.url))
            return self.cache.remember_source(asset_path, source)

        base_url = asset_base_url(
            asset_path, origin=self._origin, mp4_extension=self._mp4_extension
        )
        ready = await self.cache.readiness(base_url, self._probe)
        if ready:
            source = VideoSource(kind=SourceKind.HLS, url=hls_manifest_url(base_url))
        else:
            source = self._mp4_source(base_url)

        stored = self.cache.remember_source(asset_path, source)
        logger.success(
            "Resolved {} source for {}", stored.kind.value, redact_url(base_url)
        )
        return stored

    def invalidate(self, asset_path: str) -> None:
        """
        Forget the resolution of `asset_path` and the readiness of its base so
        the next `resolve` probes again.
        """
        base_url: Optional[str] = None
        if not is_hls_manifest(asset_path):
            try:
                base_url = asset_base_url(
                    asset_path, origin=self._origin, mp4_extension=self._mp4_extension
                )
            except OriginUrlError:
                base_url = None
        self.cache.invalidate(asset_path, base_url)
