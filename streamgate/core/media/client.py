from __future__ import annotations

from typing import AsyncIterator, Optional

import httpx
from loguru import logger

from streamgate.config import STREAM_CONNECT_TIMEOUT_SECONDS, STREAM_PUBLIC_BASE_URL
from .interceptor import AuthInterceptor
from .types import SourceKind, VideoSource
from .urls import build_stream_url, redact_url


class MediaClient:
    """
    Player-side fetcher for resolved sources.

    Direct HLS URLs go through an httpx client with the auth interceptor
    installed; MP4 sources are already proxy-wrapped and fetched as-is. If the
    interceptor cannot be installed, HLS URLs are routed via the stream proxy.
    """

    def __init__(
        self,
        interceptor: AuthInterceptor,
        *,
        client: Optional[httpx.AsyncClient] = None,
        public_base_url: str = STREAM_PUBLIC_BASE_URL,
    ) -> None:
        self.interceptor = interceptor
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=STREAM_CONNECT_TIMEOUT_SECONDS),
            follow_redirects=True,
        )
        self._public_base_url = public_base_url
        self.direct_playback = interceptor.install(self._client)

    def update_credential(self, api_key: Optional[str]) -> None:
        self.interceptor.set_credential(api_key)

    def url_for(self, source: VideoSource) -> str:
        if source.kind is SourceKind.HLS and not (
            self.direct_playback and self.interceptor.has_credential
        ):
            return build_stream_url(source.url, self._public_base_url)
        return source.url

    async def iter_bytes(
        self, source: VideoSource, *, range_header: Optional[str] = None
    ) -> AsyncIterator[bytes]:
        """
        Yield the body of `source`, optionally restricted to `range_header`.

        Raises:
            httpx.HTTPStatusError: If the server answers non-2xx.
        """
        url = self.url_for(source)
        headers = {"Range": range_header} if range_header else {}
        logger.info("Fetching {} source {}", source.kind.value, redact_url(url))
        async with self._client.stream("GET", url, headers=headers) as response:
            response.raise_for_status()
            async for chunk in response.aiter_bytes():
                yield chunk

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "MediaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
