class MediaGatewayError(Exception):
    """Base error for the resolver/proxy layer; carries the HTTP status to surface."""

    status_code = 500

    def __init__(self, message: str, *, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(MediaGatewayError):
    """Shared origin credential (or other required setting) is missing."""

    status_code = 500


class OriginUrlError(MediaGatewayError):
    """Origin URL is malformed or outside the configured media origin."""

    status_code = 400


class OriginError(MediaGatewayError):
    """Origin answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str, *, details: str | None = None) -> None:
        """
        Parameters:
            status_code (int): Status returned by the origin; passed through to the client.
            message (str): Short client-facing description.
            details (str | None): Bounded, credential-free excerpt of the origin body.
        """
        self.status_code = status_code
        super().__init__(message, details=details)


class OriginTransportError(MediaGatewayError):
    """Network failure or timeout while reaching the origin."""

    status_code = 500
