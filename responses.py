"""Response envelope helpers: ``{success, data|error, message?}``."""
from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data: Any = None, message: Optional[str] = None, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def created_response(data: Any, message: str = "Created successfully") -> JSONResponse:
    return success_response(data, message, status_code=status.HTTP_201_CREATED)


def error_response(error: str, status_code: int, code: Optional[str] = None, details: Any = None) -> JSONResponse:
    body = {"success": False, "error": error}
    if code:
        body["code"] = code
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
