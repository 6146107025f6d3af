from __future__ import annotations

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware


def apply_cors_middleware(
    app: FastAPI,
    *,
    origins: list[str],
    allow_credentials: bool,
) -> None:
    """Apply app-wide CORSMiddleware from CORS_ORIGINS semantics.

    - No middleware if origins is empty (streaming routes still send their own headers).
    - Wildcard origins ("*") always disable credentials.
    """

    if not origins:
        return

    is_wildcard = "*" in origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if is_wildcard else origins,
        allow_credentials=False if is_wildcard else allow_credentials,
        allow_methods=["GET", "HEAD", "OPTIONS", "DELETE"],
        allow_headers=["Range", "Content-Range", "Content-Type"],
        expose_headers=["Content-Range", "Content-Length", "Accept-Ranges"],
    )
