from loguru import logger
from fastapi import FastAPI

from streamgate._version import __version__
from streamgate.api.resolve import router as resolve_router
from streamgate.api.stream import media_error_handler, router as stream_router
from streamgate.config import CORS_ALLOW_CREDENTIALS, CORS_ORIGINS
from streamgate.core.lifespan import lifespan
from streamgate.core.media.errors import MediaGatewayError
from streamgate.cors import apply_cors_middleware


app = FastAPI(title="streamgate", version=__version__, lifespan=lifespan)
app.include_router(resolve_router)  # source resolution
app.include_router(stream_router)  # range-preserving media proxy
app.add_exception_handler(MediaGatewayError, media_error_handler)
apply_cors_middleware(app, origins=CORS_ORIGINS, allow_credentials=CORS_ALLOW_CREDENTIALS)


# Healthcheck endpoint for CI/CD and monitoring
@app.get("/health")
async def healthcheck():
    return {"status": "ok"}


if __name__ == "__main__":
    from streamgate.cli import run_server

    logger.info("Starting streamgate FastAPI server...")
    run_server(app)
