"""Classified provider failures; clients raise these and convert them into outcomes."""

from coinpulse.core.types import FailureKind


class ProviderError(Exception):
    """Base class for failures talking to one market-data provider."""

    kind: FailureKind = "unexpected"
    transient = False

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.provider}: HTTP {self.status_code}: {self.message}"
        return f"{self.provider}: {self.message}"


class NotEntitledError(ProviderError):
    """HTTP 403; the plan does not include this endpoint."""

    kind: FailureKind = "not_entitled"


class RateLimitedError(ProviderError):
    """HTTP 429; counted as a failed attempt, never retried."""

    kind: FailureKind = "rate_limited"
    transient = True


class HttpStatusError(ProviderError):
    kind: FailureKind = "http_error"
    transient = True


class UnreachableError(ProviderError):
    """Transport failure: DNS, connect, timeout."""

    kind: FailureKind = "unreachable"
    transient = True


class MalformedResponseError(ProviderError):
    kind: FailureKind = "malformed_response"


class NoMappingError(ProviderError):
    """The coin cannot be expressed in this provider's identifier scheme."""

    kind: FailureKind = "no_mapping"


class EmptyResponseError(ProviderError):
    kind: FailureKind = "empty"
