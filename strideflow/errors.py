from __future__ import annotations


class StrideFlowError(Exception):
    """Failure surfaced to the client as ``{"error": kind, "message": ...}``."""

    kind = "error"
    status_code = 500
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, "retryable": self.retryable}


class InvalidInput(StrideFlowError, ValueError):
    kind = "invalid_input"
    status_code = 400


class AuthError(StrideFlowError):
    kind = "auth"
    status_code = 401


class DuplicateAccount(AuthError):
    kind = "duplicate"
    status_code = 409


class NotFound(StrideFlowError):
    kind = "not_found"
    status_code = 404


class StoreError(StrideFlowError):
    kind = "store_unavailable"
    status_code = 503
    retryable = True


class StorageError(StrideFlowError):
    kind = "storage_unavailable"
    status_code = 503
    retryable = True
