"""Error taxonomy shared by the service layer, the HTTP API and the client."""
from __future__ import annotations

from typing import Any

from fastapi import status


class SocialError(Exception):
    """Base class for every error surfaced by SocialHub."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "error"
    default_detail: str = "Something went wrong"

    def __init__(self, detail: str | None = None, *, status_code: int | None = None) -> None:
        self.detail = detail or self.default_detail
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.detail)

    def to_payload(self) -> dict[str, Any]:
        return {"detail": self.detail, "error": self.code}


class AuthError(SocialError):
    """Bad credentials, missing session or an account that already exists."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "auth_error"
    default_detail = "Invalid credentials"


class DuplicateAccountError(AuthError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_account"
    default_detail = "An account with this email already exists"


class ValidationError(SocialError):
    """Input the store refuses: empty fields, name conflicts, forbidden edits."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"
    default_detail = "Invalid request"


class DisplayNameTakenError(ValidationError):
    status_code = status.HTTP_409_CONFLICT
    code = "display_name_taken"
    default_detail = "displayname already exists"


class PermissionDeniedError(ValidationError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"
    default_detail = "Not allowed"


class NotFoundError(SocialError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class StorageError(SocialError):
    """Raised when uploading, removing or signing stored objects fails."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "storage_error"
    default_detail = "Object storage request failed"


class StorageConfigurationError(StorageError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "storage_not_configured"
    default_detail = "Object storage is not configured"


class QueryError(SocialError):
    code = "query_error"
    default_detail = "The data store rejected the request"


_ERRORS_BY_CODE: dict[str, type[SocialError]] = {
    cls.code: cls
    for cls in (
        SocialError,
        AuthError,
        DuplicateAccountError,
        ValidationError,
        DisplayNameTakenError,
        PermissionDeniedError,
        NotFoundError,
        StorageError,
        StorageConfigurationError,
        QueryError,
    )
}

_ERRORS_BY_STATUS: dict[int, type[SocialError]] = {
    status.HTTP_400_BAD_REQUEST: ValidationError,
    status.HTTP_401_UNAUTHORIZED: AuthError,
    status.HTTP_403_FORBIDDEN: PermissionDeniedError,
    status.HTTP_404_NOT_FOUND: NotFoundError,
    status.HTTP_409_CONFLICT: ValidationError,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ValidationError,
    status.HTTP_502_BAD_GATEWAY: StorageError,
}


def error_from_response(status_code: int, payload: Any) -> SocialError:
    """Rebuild a typed error from an API error response body."""

    detail: str | None = None
    code: str | None = None
    if isinstance(payload, dict):
        raw_detail = payload.get("detail")
        detail = raw_detail if isinstance(raw_detail, str) else (str(raw_detail) if raw_detail else None)
        code = payload.get("error") if isinstance(payload.get("error"), str) else None

    error_cls = _ERRORS_BY_CODE.get(code or "") or _ERRORS_BY_STATUS.get(status_code, QueryError)
    return error_cls(detail, status_code=status_code)


__all__ = [
    "SocialError",
    "AuthError",
    "DuplicateAccountError",
    "ValidationError",
    "DisplayNameTakenError",
    "PermissionDeniedError",
    "NotFoundError",
    "StorageError",
    "StorageConfigurationError",
    "QueryError",
    "error_from_response",
]
