from __future__ import annotations

import httpx
from loguru import logger

from streamgate.config import MEDIA_API_KEY, MEDIA_API_KEY_HEADER, MEDIA_ORIGIN_URL
from .errors import ConfigurationError
from .urls import belongs_to_origin, redact_url


def require_api_key(api_key: str | None = None) -> str:
    """
    Return the shared origin credential.

    Parameters:
        api_key (str | None): Explicit override; falls back to MEDIA_API_KEY.

    Raises:
        ConfigurationError: If no credential is configured.
    """
    key = api_key if api_key is not None else MEDIA_API_KEY
    if not key:
        logger.error("MEDIA_API_KEY is unset; origin requests cannot be authenticated.")
        raise ConfigurationError("API key not configured")
    return key


def origin_auth_headers(
    api_key: str | None = None, *, header_name: str = MEDIA_API_KEY_HEADER
) -> dict[str, str]:
    """
    Build the credential header mapping for outbound origin requests.
    """
    return {header_name: require_api_key(api_key)}


def strip_foreign_credential(
    *, origin: str = MEDIA_ORIGIN_URL, header_name: str = MEDIA_API_KEY_HEADER
):
    """
    Build an httpx request hook that removes the credential header from any
    request leaving the media origin.

    httpx copies custom headers onto redirect hops (only `Authorization` is
    dropped across hosts), so an origin redirect would otherwise carry the
    secret to the redirect target.
    """

    async def hook(request: httpx.Request) -> None:
        if header_name in request.headers and not belongs_to_origin(
            str(request.url), origin
        ):
            del request.headers[header_name]
            logger.warning(
                "Dropped origin credential from request to {}", redact_url(str(request.url))
            )

    return hook
