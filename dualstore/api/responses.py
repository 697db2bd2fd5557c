"""Mapping of upload results and errors onto HTTP responses."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse

from ..errors import DualStoreError, PayloadTooLargeError, PreconditionError
from ..models import UploadResult, UploadStatus

# Partial success maps to 207 Multi-Status; the body names the failed backend.
STATUS_CODES = {
    UploadStatus.FULL_SUCCESS: status.HTTP_200_OK,
    UploadStatus.PARTIAL_SUCCESS: status.HTTP_207_MULTI_STATUS,
    UploadStatus.FULL_FAILURE: status.HTTP_502_BAD_GATEWAY,
}


def result_response(result: UploadResult) -> JSONResponse:
    return JSONResponse(status_code=STATUS_CODES[result.status], content=result.to_dict())


def error_response(status_code: int, error: str, message: str, details: Dict[str, Any] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "details": details or {}},
    )


async def dualstore_exception_handler(request: Request, exc: DualStoreError) -> JSONResponse:
    """Handle dualstore exceptions raised outside the orchestrator's result model."""
    if isinstance(exc, PayloadTooLargeError):
        status_code = 413
    elif isinstance(exc, PreconditionError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return error_response(status_code, type(exc).__name__, exc.message, exc.details)
