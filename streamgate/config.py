import os
from dotenv import load_dotenv
from loguru import logger
from streamgate.utils.logger import config as configure_logger

# Load .env as early as possible so all downstream imports see the intended env
load_dotenv()

# Configure logger after env is loaded (LOG_LEVEL honored)
configure_logger()


def _as_bool(val: str | None, default: bool) -> bool:
    if val is None:
        return default
    v = val.strip().lower()
    return v in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        logger.warning(f"Invalid float value {val!r}; using {default}.")
        return default


# ---- Media origin ----
# Each deployment environment talks to its own object-store worker. The
# MEDIA_ORIGIN_URL override wins over the environment default.
_DEFAULT_ORIGINS: dict[str, str] = {
    "dev": "https://black-paper-83cf.hiffi.workers.dev",
    "beta": "https://prod.hiffi.workers.dev",
    "prod": "https://black-paper-83cf.hiffi.workers.dev",
}

MEDIA_ENV = os.getenv("MEDIA_ENV", "beta").strip().lower()
if MEDIA_ENV not in _DEFAULT_ORIGINS:
    logger.warning(f"Invalid MEDIA_ENV={MEDIA_ENV!r}; defaulting to 'beta'.")
    MEDIA_ENV = "beta"
logger.debug(f"MEDIA_ENV={MEDIA_ENV}")

MEDIA_ORIGIN_URL = (
    os.getenv("MEDIA_ORIGIN_URL", "").strip() or _DEFAULT_ORIGINS[MEDIA_ENV]
).rstrip("/")
logger.debug(f"MEDIA_ORIGIN_URL={MEDIA_ORIGIN_URL}")

# Shared secret for the origin. WORKERS_API_KEY is accepted for older deploys.
MEDIA_API_KEY = (
    os.getenv("MEDIA_API_KEY", "").strip() or os.getenv("WORKERS_API_KEY", "").strip()
)
MEDIA_API_KEY_HEADER = (
    os.getenv("MEDIA_API_KEY_HEADER", "x-api-key").strip() or "x-api-key"
)
logger.debug(
    f"MEDIA_API_KEY={'<set>' if MEDIA_API_KEY else '<none>'}, MEDIA_API_KEY_HEADER={MEDIA_API_KEY_HEADER}"
)

# Path namespace on the origin that holds media assets (used by the interceptor)
MEDIA_ASSET_PATH_PREFIX = os.getenv("MEDIA_ASSET_PATH_PREFIX", "/videos/").strip()
if not MEDIA_ASSET_PATH_PREFIX.startswith("/"):
    MEDIA_ASSET_PATH_PREFIX = "/" + MEDIA_ASSET_PATH_PREFIX
logger.debug(f"MEDIA_ASSET_PATH_PREFIX={MEDIA_ASSET_PATH_PREFIX}")

# Extension of progressive originals: <base>/original/source.<ext>
MEDIA_MP4_EXTENSION = (
    os.getenv("MEDIA_MP4_EXTENSION", "mp4").strip().lstrip(".").lower() or "mp4"
)
logger.debug(f"MEDIA_MP4_EXTENSION={MEDIA_MP4_EXTENSION}")

# ---- Server ----
STREAMGATE_RELOAD = _as_bool(os.getenv("STREAMGATE_RELOAD", None), False)
STREAMGATE_HOST = os.getenv("STREAMGATE_HOST", "0.0.0.0").strip() or "0.0.0.0"
STREAMGATE_PORT = int(os.getenv("STREAMGATE_PORT", "8000") or 8000)

# Public base used when wrapping origin URLs into /stream?url=... links
STREAM_PUBLIC_BASE_URL = (
    os.getenv("STREAM_PUBLIC_BASE_URL", "").strip()
    or f"http://localhost:{STREAMGATE_PORT}"
).rstrip("/")
logger.debug(f"STREAM_PUBLIC_BASE_URL={STREAM_PUBLIC_BASE_URL}")

# ---- HLS readiness probe ----
# Hard upper bound for the whole probe exchange (connect + first bytes).
HLS_PROBE_TIMEOUT_SECONDS = max(
    0.05, _as_float(os.getenv("HLS_PROBE_TIMEOUT_SECONDS"), 0.8)
)
logger.debug(f"HLS_PROBE_TIMEOUT_SECONDS={HLS_PROBE_TIMEOUT_SECONDS}")

# ---- Streaming proxy ----
STREAM_CONNECT_TIMEOUT_SECONDS = _as_float(
    os.getenv("STREAM_CONNECT_TIMEOUT_SECONDS"), 10.0
)
STREAM_READ_TIMEOUT_SECONDS = _as_float(os.getenv("STREAM_READ_TIMEOUT_SECONDS"), 60.0)
STREAM_CACHE_CONTROL = os.getenv("STREAM_CACHE_CONTROL", "public, max-age=3600").strip()
logger.debug(
    f"STREAM_CONNECT_TIMEOUT_SECONDS={STREAM_CONNECT_TIMEOUT_SECONDS}, STREAM_READ_TIMEOUT_SECONDS={STREAM_READ_TIMEOUT_SECONDS}, STREAM_CACHE_CONTROL={STREAM_CACHE_CONTROL!r}"
)

# ---- CORS (app-wide; /stream and /video always send their own headers) ----
CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()
]
CORS_ALLOW_CREDENTIALS = _as_bool(os.getenv("CORS_ALLOW_CREDENTIALS", None), False)
logger.debug(
    f"CORS_ORIGINS={CORS_ORIGINS}, CORS_ALLOW_CREDENTIALS={CORS_ALLOW_CREDENTIALS}"
)
