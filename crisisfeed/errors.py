"""Error taxonomy for the analysis pipeline."""

from enum import Enum


class CrisisFeedError(Exception):
    """Base class for crisisfeed errors."""


class UnsupportedAnalysisKind(CrisisFeedError, ValueError):
    """Raised for an analysis kind the pipeline does not know."""

    def __init__(self, kind: object):
        self.kind = kind
        super().__init__(f"Unsupported analysis kind: {kind!r}")


class InvocationCause(str, Enum):
    """Why a model call failed."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class ModelInvocationError(CrisisFeedError):
    """Normalized failure from any model backend."""

    def __init__(self, cause: InvocationCause, message: str = ""):
        self.cause = cause
        super().__init__(message or cause.value)


class MalformedResponse(CrisisFeedError):
    """Model output could not be turned into a usable record set."""

    def __init__(self, reason: str, excerpt: str = ""):
        self.reason = reason
        self.excerpt = excerpt
        super().__init__(reason)
