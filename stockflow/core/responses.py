from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success(
    data: Any = None,
    *,
    message: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
    **extra: Any,
) -> JSONResponse:
    payload = {"success": True}
    if data is not None:
        payload["data"] = data
    if message:
        payload["message"] = message
    payload.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def created(data: Any = None, *, message: Optional[str] = None, **extra: Any) -> JSONResponse:
    return success(data, message=message, status_code=status.HTTP_201_CREATED, **extra)


def failure(status_code: int, error: str, message: Optional[str] = None) -> JSONResponse:
    payload = {"success": False, "error": error}
    if message:
        payload["message"] = message
    return JSONResponse(status_code=status_code, content=payload)
