from .types import OriginRequest, ReadinessState, SourceKind, VideoSource
from .errors import (
    ConfigurationError,
    MediaGatewayError,
    OriginError,
    OriginTransportError,
    OriginUrlError,
)
from .urls import build_stream_url, validate_origin_url
from .cache import MediaSourceCache
from .probe import HlsProbe
from .resolver import SourceResolver
from .interceptor import AuthInterceptor, RequestTransform
from .client import MediaClient


__all__ = [
    "OriginRequest",
    "ReadinessState",
    "SourceKind",
    "VideoSource",
    "ConfigurationError",
    "MediaGatewayError",
    "OriginError",
    "OriginTransportError",
    "OriginUrlError",
    "build_stream_url",
    "validate_origin_url",
    "MediaSourceCache",
    "HlsProbe",
    "SourceResolver",
    "AuthInterceptor",
    "RequestTransform",
    "MediaClient",
]
