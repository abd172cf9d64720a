"""Mapping of domain errors to HTTP errors."""

from fastapi import HTTPException

from ..errors import AccessDeniedError, ChatNotFoundError


def to_http_error(error: Exception) -> HTTPException:
    """Translate a domain or validation error into an HTTPException."""
    if isinstance(error, ChatNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, AccessDeniedError):
        return HTTPException(status_code=403, detail=str(error))
    return HTTPException(status_code=400, detail=str(error))
