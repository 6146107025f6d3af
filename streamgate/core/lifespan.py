from __future__ import annotations

from contextlib import asynccontextmanager

from loguru import logger
from fastapi import FastAPI

from streamgate.config import (
    HLS_PROBE_TIMEOUT_SECONDS,
    MEDIA_API_KEY,
    MEDIA_ENV,
    MEDIA_ORIGIN_URL,
    STREAM_PUBLIC_BASE_URL,
)
from streamgate.core.media import MediaSourceCache, SourceResolver


def build_resolver() -> SourceResolver:
    """Create a resolver with its own process-lifetime cache."""
    return SourceResolver(MediaSourceCache())


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Application startup: env={MEDIA_ENV}, origin={MEDIA_ORIGIN_URL}, "
        f"public base={STREAM_PUBLIC_BASE_URL}, probe timeout={HLS_PROBE_TIMEOUT_SECONDS}s"
    )
    if not MEDIA_API_KEY:
        logger.warning(
            "MEDIA_API_KEY is not set: stream requests will fail with 500 and "
            "every asset will resolve to its MP4 original."
        )
    # Tests may pre-seed their own resolver.
    if getattr(app.state, "resolver", None) is None:
        app.state.resolver = build_resolver()
    try:
        yield
    finally:
        stats = app.state.resolver.cache.stats()
        logger.info(
            f"Application shutdown: {stats['sources']} resolved sources, "
            f"{stats['readiness']} readiness entries"
        )
