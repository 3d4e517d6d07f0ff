from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(
    *,
    data: Optional[Any] = None,
    message: str = "Operation successful",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Envelope shared by every endpoint: status_code, status, message, data.

    status is "success" below 400 and "error" otherwise. Pydantic models in
    ``data`` are encoded with their aliases (analyzer findings keep
    ``helpUrl``), and a missing payload becomes an empty object.
    """
    content = {
        "status_code": status_code,
        "status": "success" if status_code < 400 else "error",
        "message": message,
        "data": {} if data is None else jsonable_encoder(data, by_alias=True),
    }
    return JSONResponse(status_code=status_code, content=content)
