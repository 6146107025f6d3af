from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request
from loguru import logger
from pydantic import BaseModel

from streamgate.core.media.resolver import SourceResolver
from streamgate.core.media.types import SourceKind


router = APIRouter()


class VideoSourceResponse(BaseModel):
    kind: SourceKind
    url: str


def get_resolver(request: Request) -> SourceResolver:
    resolver = getattr(request.app.state, "resolver", None)
    if resolver is None:
        raise HTTPException(status_code=503, detail="resolver not initialized")
    return resolver


@router.get("/resolve", response_model=VideoSourceResponse)
async def resolve_source(request: Request, path: str = ""):
    """
    Resolve an asset path to its playable source (HLS manifest or proxied MP4).
    """
    asset_path = path.strip()
    if not asset_path:
        raise HTTPException(status_code=400, detail="missing path")
    resolver = get_resolver(request)
    source = await resolver.resolve(asset_path)
    logger.info("Resolve {} -> {}", asset_path, source.kind.value)
    return VideoSourceResponse(kind=source.kind, url=source.url)


@router.delete("/resolve")
async def invalidate_source(request: Request, path: str = ""):
    """
    Drop the cached resolution (and readiness) for an asset path.
    """
    asset_path = path.strip()
    if not asset_path:
        raise HTTPException(status_code=400, detail="missing path")
    get_resolver(request).invalidate(asset_path)
    return {"status": "invalidated"}
