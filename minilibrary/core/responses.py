from http import HTTPStatus
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from minilibrary.schemas.schemas import ApiResponse


def status_label(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return str(status_code)


def success(message: str, data: Any = None, status_code: int = 200) -> ApiResponse:
    return ApiResponse(status=status_label(status_code), message=message, data=data)


def error_response(status_code: int, message: str, error: Optional[Any] = None) -> JSONResponse:
    content = {"status": status_label(status_code), "message": message}
    if error is not None:
        content["error"] = jsonable_encoder(error)
    return JSONResponse(status_code=status_code, content=content)
