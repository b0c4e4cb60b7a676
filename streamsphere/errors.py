# errors.py
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class APIError(HTTPException):
    """Base class for errors surfaced to API callers.

    Subclasses fix the status code so handlers only choose the message.
    FastAPI's HTTPException handler renders them as ``{"detail": ...}``.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=detail if detail is not None else self.default_detail,
            headers=headers,
        )


class ValidationError(APIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"

    def __init__(self, message: str = default_detail, fields: Optional[List[str]] = None):
        self.fields = fields or []
        super().__init__(detail={"message": message, "fields": self.fields})


class Unauthenticated(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Could not validate credentials"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class PermissionDenied(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized"


class NotFound(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Conflict(APIError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists"

    def __init__(self, detail: Optional[str] = None, field: Optional[str] = None):
        self.field = field
        super().__init__(detail)


class StoreFailure(APIError):
    # Never carries the driver's message; that goes to the log only.
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"
