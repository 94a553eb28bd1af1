"""
Typed errors raised by the analysis client.

Every error carries a user-facing message and says whether the transport layer
may retry it. Callers catch ``AnalysisError`` and render ``user_message``.
"""

from typing import Optional

TIMEOUT_MESSAGE = "Request timed out. The server may be starting up. Please try again."


class AnalysisError(Exception):
    """Base class for every failure of an analysis call."""

    retryable = False

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return "Analysis failed"

    @property
    def user_message(self) -> str:
        return str(self)

    @property
    def offers_retry(self) -> bool:
        """Whether a UI should present this with a "try again" action."""
        return self.retryable


class InvalidRequest(AnalysisError):
    """The request could not be built, e.g. the image could not be encoded."""

    @classmethod
    def default_message(cls) -> str:
        return "Invalid image data"


class NoConnectivity(AnalysisError):
    @classmethod
    def default_message(cls) -> str:
        return "No internet connection available. Please check your network settings."

    @property
    def offers_retry(self) -> bool:
        return True


class RequestTimeout(AnalysisError):
    """Per-request or whole-operation timeout. Cold starts make this common."""

    retryable = True

    @classmethod
    def default_message(cls) -> str:
        return TIMEOUT_MESSAGE


class ConnectionFailed(AnalysisError):
    retryable = True

    @classmethod
    def default_message(cls) -> str:
        return "Failed to establish connection to server. Please try again."


class DataCorruption(AnalysisError):
    retryable = True

    @classmethod
    def default_message(cls) -> str:
        return "Network data corruption detected. Please try again."


class TransportError(AnalysisError):
    """Any other transport failure; the original exception is kept as `cause`."""

    retryable = True

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Network error: {cause or type(cause).__name__}")


class ServerError(AnalysisError):
    """The backend answered but reported a failure."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class MalformedResponse(AnalysisError):
    """The success body did not match the expected shape.

    Attributes:
        kind: ``missing``, ``type_mismatch`` or ``corrupted``
        field_path: dotted path of the offending field, if known
        detail: validator message for diagnostics
    """

    MISSING = "missing"
    TYPE_MISMATCH = "type_mismatch"
    CORRUPTED = "corrupted"

    def __init__(self, kind: str, field_path: Optional[str] = None, detail: str = ""):
        self.kind = kind
        self.field_path = field_path
        self.detail = detail
        if kind == self.MISSING:
            message = f"Invalid response format: missing field '{field_path}'"
        elif kind == self.TYPE_MISMATCH:
            message = f"Invalid response format: type mismatch for field '{field_path}'"
        else:
            message = "Invalid response format: corrupted data"
        super().__init__(message)
