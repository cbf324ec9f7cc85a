"""API error type and handlers

Use-case errors travel as ``libs.result.Error`` and are raised at the route
boundary as ClientError, which renders a uniform JSON body:

    {"error": {"code": ..., "message": ..., "reason": ..., "retryable": ...}}
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from libs.result import Error

# Business error codes and the HTTP status they map to
ERROR_STATUS_CODES = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "MISSING_REASON": status.HTTP_400_BAD_REQUEST,
    "UNSETTLED_BALANCE": status.HTTP_400_BAD_REQUEST,
    "CUSTOMER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "NO_OPEN_TAB": status.HTTP_409_CONFLICT,
    "OVERPAYMENT": status.HTTP_409_CONFLICT,
    "NEGATIVE_BALANCE": status.HTTP_409_CONFLICT,
    "CONCURRENT_MODIFICATION": status.HTTP_409_CONFLICT,
    "STORAGE_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
}


class ClientError(Exception):
    def __init__(self, error: Error, status_code: int = None):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code or ERROR_STATUS_CODES.get(
            error.code, status.HTTP_400_BAD_REQUEST
        )

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.error.code,
                "message": self.error.message,
                "reason": self.error.reason,
                "retryable": self.error.retryable,
            }
        }


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
