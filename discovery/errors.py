"""Error taxonomy shared by the gateway and the controllers."""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Classification applied to every failed catalog request."""

    CONFIGURATION = "configuration"
    TIMEOUT = "timeout"
    NETWORK_UNREACHABLE = "network_unreachable"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    UNEXPECTED = "unexpected"


RETRIABLE_KINDS = frozenset(
    {FailureKind.TIMEOUT, FailureKind.NETWORK_UNREACHABLE, FailureKind.SERVER_ERROR}
)

MISSING_API_KEY_MESSAGE = (
    "TMDB_API_KEY is missing. Add it to your environment before running the app."
)

_MESSAGES: dict[FailureKind, str] = {
    FailureKind.CONFIGURATION: MISSING_API_KEY_MESSAGE,
    FailureKind.TIMEOUT: "Request timed out. Please try again.",
    FailureKind.NETWORK_UNREACHABLE: (
        "Cannot connect to TMDB. Check internet access or DNS configuration."
    ),
    FailureKind.UNAUTHORIZED: "TMDB API key is invalid or unauthorized.",
    FailureKind.RATE_LIMITED: "TMDB rate limit reached. Please retry in a few seconds.",
    FailureKind.SERVER_ERROR: "TMDB is temporarily unavailable. Please try again shortly.",
    FailureKind.UNEXPECTED: "Unexpected error while contacting TMDB.",
}


def readable_message(kind: FailureKind, status_code: int | None = None) -> str:
    """Return the user-facing message for a classified failure."""

    if kind is FailureKind.CLIENT_ERROR:
        if status_code is None:
            return "TMDB request failed."
        return f"TMDB request failed ({status_code})."
    return _MESSAGES.get(kind, _MESSAGES[FailureKind.UNEXPECTED])


class CatalogError(Exception):
    """Base class for failures surfaced by the catalog gateway."""

    kind: FailureKind = FailureKind.UNEXPECTED

    def __init__(
        self,
        message: str,
        *,
        kind: FailureKind | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.status_code = status_code

    @property
    def retriable(self) -> bool:
        return self.kind in RETRIABLE_KINDS


class ConfigurationError(CatalogError):
    """The client is not configured well enough to reach the catalog."""

    kind = FailureKind.CONFIGURATION


class TransientNetworkError(CatalogError):
    """Timeouts, unreachable network and 5xx responses."""


class PermanentRequestError(CatalogError):
    """Requests the server rejected; retrying will not help."""


class UnexpectedResponseError(CatalogError):
    """Anything the gateway could not classify, including bad payloads."""


class ReviewUploadError(Exception):
    """Raised when a simulated review upload fails."""


def build_error(kind: FailureKind, status_code: int | None = None) -> CatalogError:
    """Return the exception matching ``kind`` with its stable message."""

    message = readable_message(kind, status_code)
    if kind is FailureKind.CONFIGURATION:
        return ConfigurationError(message, status_code=status_code)
    if kind in RETRIABLE_KINDS:
        error_cls: type[CatalogError] = TransientNetworkError
    elif kind is FailureKind.UNEXPECTED:
        error_cls = UnexpectedResponseError
    else:
        error_cls = PermanentRequestError
    return error_cls(message, kind=kind, status_code=status_code)
