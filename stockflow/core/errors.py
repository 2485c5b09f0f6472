from typing import Optional

from fastapi import status


class StockFlowError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error = "Unexpected error"

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None):
        self.error = error or self.default_error
        self.message = message
        super().__init__(self.error)

    def to_payload(self) -> dict:
        payload = {"success": False, "error": self.error}
        if self.message:
            payload["message"] = self.message
        return payload


class ValidationFailed(StockFlowError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_error = "Invalid request"


class NotAuthenticated(StockFlowError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_error = "Unauthorized. Please login."


class Forbidden(StockFlowError):
    status_code = status.HTTP_403_FORBIDDEN
    default_error = "Forbidden"


class NotFound(StockFlowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_error = "Not found"


class Conflict(StockFlowError):
    status_code = status.HTTP_409_CONFLICT
    default_error = "Conflict"


__all__ = [
    "Conflict",
    "Forbidden",
    "NotAuthenticated",
    "NotFound",
    "StockFlowError",
    "ValidationFailed",
]
