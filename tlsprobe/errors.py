"""Exception taxonomy for a single probe attempt. Every kind is terminal."""


class ProbeError(Exception):
    """Base class for all probe failures."""

    kind = "ProbeError"

    def __init__(self, message: str, stage: str | None = None, cause: BaseException | None = None):
        super().__init__(message)
        self.stage = stage
        self.cause = cause

    def describe(self) -> str:
        """One-line operator-facing description: kind, stage and cause."""
        text = self.kind
        if self.stage:
            text += f" during {self.stage}"
        text += f": {self}"
        if self.cause is not None and str(self.cause) and str(self.cause) not in str(self):
            text += f" ({self.cause})"
        return text


class InvalidConfiguration(ProbeError):
    """An unrecognized option value, detected before any network activity."""

    kind = "InvalidConfiguration"


class ResolutionFailure(ProbeError):
    kind = "ResolutionFailure"


class ConnectionFailure(ProbeError):
    kind = "ConnectionFailure"


class HandshakeFailure(ProbeError):
    kind = "HandshakeFailure"


class CertificateDecodeFailure(ProbeError):
    kind = "CertificateDecodeFailure"

    def __init__(self, message: str, index: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.index = index


class TransportFailure(ProbeError):
    """Writing the request or reading the response failed."""

    kind = "TransportFailure"


class MalformedResponse(ProbeError):
    """Stream closed before the header/body separator appeared."""

    kind = "MalformedResponse"


class StageTimeout(ProbeError):
    kind = "Timeout"


class CertificateNotFound(IndexError):
    """Raised by a trust chain handle for an out-of-range index."""
