from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from loguru import logger

from streamgate.config import MEDIA_ORIGIN_URL
from streamgate.core.media.errors import MediaGatewayError, OriginUrlError
from streamgate.core.media.proxy import (
    CORS_HEADERS,
    PREFLIGHT_HEADERS,
    ProxyStreamRequest,
    head_origin,
    open_origin,
    response_headers,
    response_status,
    streaming_body,
)
from streamgate.core.media.urls import redact_url, validate_origin_url


router = APIRouter()


def media_error_response(exc: MediaGatewayError) -> JSONResponse:
    """
    Render a gateway error as `{"error": ..., "details"?: ...}` with CORS headers.
    """
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(body, status_code=exc.status_code, headers=dict(CORS_HEADERS))


async def media_error_handler(request: Request, exc: MediaGatewayError) -> JSONResponse:
    logger.warning(
        "{} {} -> {} ({})", request.method, request.url.path, exc.status_code, exc.message
    )
    return media_error_response(exc)


async def _relay(request: Request, origin_url: str) -> Response:
    """
    Forward one client request to `origin_url` and relay the answer.
    """
    range_header: Optional[str] = request.headers.get("range")
    proxied = ProxyStreamRequest(origin_url=origin_url, range_header=range_header)
    logger.info(
        "Stream {} upstream={} range={}",
        request.method,
        redact_url(origin_url),
        range_header or "<none>",
    )

    if request.method == "HEAD":
        status, headers = await head_origin(proxied)
        return Response(content=b"", status_code=status, headers=headers)

    response, client = await open_origin(proxied)
    return StreamingResponse(
        streaming_body(response, client),
        status_code=response_status(response.status_code, bool(range_header)),
        headers=response_headers(response.headers),
    )


@router.options("/stream")
@router.options("/video/{path:path}")
async def stream_preflight(path: str = ""):
    """
    Answer CORS preflight for the streaming routes.
    """
    return Response(content=None, status_code=200, headers=dict(PREFLIGHT_HEADERS))


@router.api_route("/stream", methods=["GET", "HEAD"])
async def stream(request: Request):
    """
    Relay a byte-range request for an origin URL given as `?url=`.
    """
    origin_url = validate_origin_url(request.query_params.get("url"), MEDIA_ORIGIN_URL)
    return await _relay(request, origin_url)


@router.api_route("/video/{path:path}", methods=["GET", "HEAD"])
async def stream_path(request: Request, path: str):
    """
    Relay a byte-range request for `<origin>/<path>`.
    """
    clean = path.lstrip("/")
    if not clean or any(part == ".." for part in clean.split("/")):
        raise OriginUrlError("Path is required" if not clean else "Invalid video path")
    origin_url = f"{MEDIA_ORIGIN_URL}/{clean}"
    return await _relay(request, validate_origin_url(origin_url, MEDIA_ORIGIN_URL))
