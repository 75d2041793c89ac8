"""Utility functions for mapping domain exceptions to HTTP exceptions."""

from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from ..constants import EXCEPTION_MAPPING
from ..exceptions import DomainError


def map_exception(error: DomainError) -> HTTPException:
    """Map a domain exception to a corresponding HTTP exception."""
    for exception_class, mapper in EXCEPTION_MAPPING.items():
        if isinstance(error, exception_class):
            return mapper(str(error))

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"An unexpected error occurred: {str(error)}"
    )


def error_body(error: DomainError, http_exception: HTTPException) -> Dict[str, Any]:
    """Build the JSON body for a domain error.

    Structured fields from ``error.extra`` (``read_only``, ``document_count``)
    sit next to ``detail`` so clients can react to them without parsing text.
    """
    return {"detail": http_exception.detail, **error.extra}


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers for domain exceptions."""

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
        """Convert domain exceptions to appropriate HTTP responses."""
        http_exception = map_exception(exc)
        return JSONResponse(
            status_code=http_exception.status_code,
            content=error_body(exc, http_exception),
        )
