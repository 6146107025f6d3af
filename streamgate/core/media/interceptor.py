from __future__ import annotations

import threading
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

import httpx
from loguru import logger

from streamgate.config import (
    MEDIA_API_KEY_HEADER,
    MEDIA_ASSET_PATH_PREFIX,
    MEDIA_ORIGIN_URL,
)
from .types import OriginRequest
from .urls import matches_asset_namespace, redact_url

SET_API_KEY = "SET_API_KEY"


@runtime_checkable
class RequestTransform(Protocol):
    def transform(self, request: OriginRequest) -> OriginRequest: ...


class AuthInterceptor:
    """
    Attaches the shared origin credential to requests for media assets.

    Only requests on the media origin inside the asset namespace are touched;
    everything else passes through unchanged so the credential never reaches
    another host. The credential lives in memory only and is replaced by
    `SET_API_KEY` messages, the latest one winning.
    """

    def __init__(
        self,
        *,
        origin: str = MEDIA_ORIGIN_URL,
        path_prefix: str = MEDIA_ASSET_PATH_PREFIX,
        header_name: str = MEDIA_API_KEY_HEADER,
    ) -> None:
        self._origin = origin.rstrip("/")
        self._path_prefix = path_prefix
        self._header_name = header_name
        self._api_key: Optional[str] = None
        self._lock = threading.Lock()
        self._async_hook = self._build_async_hook()
        self._sync_hook = self._build_sync_hook()

    @property
    def has_credential(self) -> bool:
        with self._lock:
            return bool(self._api_key)

    def handle_message(self, message: Mapping[str, Any]) -> bool:
        """
        Apply a control message; returns True when it updated the credential.

        Parameters:
            message: `{"type": "SET_API_KEY", "apiKey": "<secret>"}`. Other
                message types are ignored. An empty key clears the credential.
        """
        if not message or message.get("type") != SET_API_KEY:
            return False
        api_key = message.get("apiKey") or None
        with self._lock:
            self._api_key = api_key
        logger.info("Interceptor API key updated")
        return True

    def set_credential(self, api_key: Optional[str]) -> None:
        self.handle_message({"type": SET_API_KEY, "apiKey": api_key})

    def matches(self, url: str) -> bool:
        return matches_asset_namespace(
            url, origin=self._origin, path_prefix=self._path_prefix
        )

    def transform(self, request: OriginRequest) -> OriginRequest:
        """
        Return `request` with the credential header attached when it targets
        the asset namespace, otherwise return it untouched.

        Method, URL and every other header (Range included) are preserved.
        """
        if not self.matches(request.url):
            return request
        with self._lock:
            api_key = self._api_key
        if not api_key:
            logger.debug("No API key yet; passing {} through", redact_url(request.url))
            return request
        return request.with_header(self._header_name, api_key)

    def _apply(self, request: httpx.Request) -> None:
        described = OriginRequest(
            method=request.method, url=str(request.url), headers=dict(request.headers)
        )
        transformed = self.transform(described)
        if transformed is described:
            # httpx copies custom headers onto cross-host redirects.
            with self._lock:
                api_key = self._api_key
            if (
                api_key
                and not self.matches(described.url)
                and request.headers.get(self._header_name) == api_key
            ):
                del request.headers[self._header_name]
            return
        value = transformed.header(self._header_name)
        if value is not None:
            request.headers[self._header_name] = value

    def _build_async_hook(self):
        async def hook(request: httpx.Request) -> None:
            self._apply(request)

        return hook

    def _build_sync_hook(self):
        def hook(request: httpx.Request) -> None:
            self._apply(request)

        return hook

    def install(self, client: Any) -> bool:
        """
        Register the transform as a request hook on an httpx client.

        Returns:
            bool: True when installed (or already installed). False when the
            target is not an httpx client; callers must then use the stream
            proxy instead of direct-to-origin requests.
        """
        if isinstance(client, httpx.AsyncClient):
            hook = self._async_hook
        elif isinstance(client, httpx.Client):
            hook = self._sync_hook
        else:
            logger.warning(
                "Request interception unsupported for {}; direct playback unavailable",
                type(client).__name__,
            )
            return False

        hooks = dict(client.event_hooks)
        if hook in hooks.get("request", []):
            return True
        hooks["request"] = [*hooks.get("request", []), hook]
        client.event_hooks = hooks
        logger.debug("Interceptor installed on {}", type(client).__name__)
        return True
