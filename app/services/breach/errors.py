from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    PROVIDER_BLOCKED = "PROVIDER_BLOCKED"
    RATE_LIMITED = "RATE_LIMITED"
    TRANSIENT_PROVIDER_ERROR = "TRANSIENT_PROVIDER_ERROR"
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNEXPECTED_STATUS = "UNEXPECTED_STATUS"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    INVALID_EMAIL = "INVALID_EMAIL"
    STORAGE_FAILURE = "STORAGE_FAILURE"


class ProviderError(Exception):
    """
    Typed failure from the breach provider.

    `kind` is stable and is what callers branch on; the message is for logs.
    """

    def __init__(self, kind: ErrorKind, message: str, status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind in {
            ErrorKind.PROVIDER_BLOCKED,
            ErrorKind.RATE_LIMITED,
            ErrorKind.TRANSIENT_PROVIDER_ERROR,
            ErrorKind.TIMEOUT,
            ErrorKind.NETWORK_ERROR,
        }

    def __repr__(self) -> str:
        return f"ProviderError(kind={self.kind.value}, status_code={self.status_code}, message={str(self)!r})"


class StorageError(Exception):
    kind = ErrorKind.STORAGE_FAILURE
