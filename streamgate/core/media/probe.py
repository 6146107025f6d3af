from __future__ import annotations

from typing import Callable, Optional

import anyio
import httpx
from loguru import logger

from streamgate.config import (
    HLS_PROBE_TIMEOUT_SECONDS,
    MEDIA_API_KEY_HEADER,
    MEDIA_ORIGIN_URL,
)
from streamgate.utils.http_client import build_origin_client
from .auth import origin_auth_headers, strip_foreign_credential
from .errors import ConfigurationError
from .urls import belongs_to_origin, hls_manifest_url, redact_url

HLS_MAGIC = b"#EXTM3U"
PROBE_BYTES = 8
_READY_STATUSES = (200, 206)

ClientFactory = Callable[[float], httpx.AsyncClient]


class HlsProbe:
    """
    Checks whether an asset's HLS master manifest is actually playable.

    Ready means: a `Range: bytes=0-7` GET on `<base>/hls/master.m3u8` returned
    200 or 206 and the first bytes carry the playlist magic. Any other outcome,
    including timeouts and transport errors, is reported as not ready.
    """

    def __init__(
        self,
        *,
        timeout: float = HLS_PROBE_TIMEOUT_SECONDS,
        api_key: Optional[str] = None,
        header_name: str = MEDIA_API_KEY_HEADER,
        origin: str = MEDIA_ORIGIN_URL,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self._timeout = timeout
        self._api_key = api_key
        self._header_name = header_name
        self._origin = origin
        self._client_factory = client_factory or self._default_client

    def _default_client(self, timeout: float) -> httpx.AsyncClient:
        return build_origin_client(
            timeout=httpx.Timeout(timeout),
            request_hooks=[
                strip_foreign_credential(
                    origin=self._origin, header_name=self._header_name
                )
            ],
        )

    def _headers(self, manifest_url: str) -> dict[str, str]:
        headers = {"Range": f"bytes=0-{PROBE_BYTES - 1}"}
        # The credential only ever travels to the media origin.
        if belongs_to_origin(manifest_url, self._origin):
            headers.update(
                origin_auth_headers(self._api_key, header_name=self._header_name)
            )
        return headers

    async def _fetch_head_bytes(self, manifest_url: str) -> tuple[int, bytes]:
        async with self._client_factory(self._timeout) as client:
            async with client.stream(
                "GET", manifest_url, headers=self._headers(manifest_url)
            ) as response:
                if response.status_code not in _READY_STATUSES:
                    return response.status_code, b""
                buf = b""
                async for chunk in response.aiter_bytes():
                    buf += chunk
                    if len(buf) >= PROBE_BYTES:
                        break
                return response.status_code, buf[:PROBE_BYTES]

    async def is_hls_ready(self, base_url: str) -> bool:
        """
        Probe `<base_url>/hls/master.m3u8`; never raises.
        """
        manifest_url = hls_manifest_url(base_url)
        target = redact_url(manifest_url)
        try:
            with anyio.fail_after(self._timeout):
                status, head = await self._fetch_head_bytes(manifest_url)
        except TimeoutError:
            logger.debug("HLS probe timed out after {}s for {}", self._timeout, target)
            return False
        except ConfigurationError:
            return False
        except httpx.HTTPError as exc:
            logger.debug("HLS probe transport error for {}: {}", target, exc)
            return False

        if status not in _READY_STATUSES:
            logger.debug("HLS not ready for {} (status={})", target, status)
            return False
        if not head.startswith(HLS_MAGIC):
            logger.debug("HLS manifest malformed for {} (head={!r})", target, head)
            return False
        logger.debug("HLS ready for {}", target)
        return True

    async def __call__(self, base_url: str) -> bool:
        return await self.is_hls_ready(base_url)
