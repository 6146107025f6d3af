from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional

import anyio
from loguru import logger

from streamgate.config import (
    MEDIA_API_KEY,
    STREAMGATE_HOST,
    STREAMGATE_PORT,
    STREAMGATE_RELOAD,
)


def run_server(app_obj):
    """Run the Uvicorn server with sensible defaults.

    - Enables reload by default in non-frozen (dev) runs
    - Disables reload for packaged/production runs
    - Allows override via STREAMGATE_RELOAD env/setting
    """
    import uvicorn

    is_frozen = getattr(sys, "frozen", False) or hasattr(sys, "_MEIPASS")
    reload_env = os.environ.get("STREAMGATE_RELOAD")
    if reload_env is not None:
        reload_flag = reload_env == "1" or reload_env.lower() == "true"
    else:
        reload_flag = STREAMGATE_RELOAD and not is_frozen

    if reload_flag:
        logger.info("Uvicorn reload enabled (development mode).")
        uvicorn.run(
            "streamgate.main:app",
            host=STREAMGATE_HOST,
            port=STREAMGATE_PORT,
            reload=True,
        )
    else:
        logger.info("Uvicorn reload disabled (packaged/production mode).")
        uvicorn.run(
            app_obj,
            host=STREAMGATE_HOST,
            port=STREAMGATE_PORT,
            reload=False,
        )


async def _resolve(asset_path: str) -> dict[str, str]:
    from streamgate.core.lifespan import build_resolver

    source = await build_resolver().resolve(asset_path)
    return source.as_dict()


async def _fetch(asset_path: str, range_header: Optional[str], output: Optional[str]) -> int:
    from streamgate.core.lifespan import build_resolver
    from streamgate.core.media import AuthInterceptor, MediaClient

    source = await build_resolver().resolve(asset_path)
    written = 0
    async with MediaClient(AuthInterceptor()) as media:
        # The local session holds the shared secret, as a browser session would
        # after receiving SET_API_KEY.
        media.update_credential(MEDIA_API_KEY or None)
        sink = open(output, "wb") if output else sys.stdout.buffer
        try:
            async for chunk in media.iter_bytes(source, range_header=range_header):
                sink.write(chunk)
                written += len(chunk)
        finally:
            if output:
                sink.close()
            else:
                sink.flush()
    logger.success(f"Fetched {written} bytes from {source.kind.value} source")
    return written


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streamgate",
        description="Media source resolver and range-preserving streaming proxy",
    )
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("serve", help="run the HTTP server (default)")

    p_resolve = sub.add_parser("resolve", help="print the playable source for an asset")
    p_resolve.add_argument("path", help="asset base path or URL")

    p_fetch = sub.add_parser("fetch", help="download an asset's playable source")
    p_fetch.add_argument("path", help="asset base path or URL")
    p_fetch.add_argument("--range", dest="range_header", default=None, help="e.g. bytes=0-1023")
    p_fetch.add_argument("-o", "--output", default=None, help="output file (default: stdout)")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    command = args.command or "serve"

    if command == "resolve":
        print(json.dumps(anyio.run(_resolve, args.path)))
        return 0
    if command == "fetch":
        anyio.run(_fetch, args.path, args.range_header, args.output)
        return 0

    from streamgate.main import app

    run_server(app)
    return 0
