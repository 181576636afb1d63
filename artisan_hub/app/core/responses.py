"""
Standard JSON envelope for every API response.

Success: {"success": true, "message": ..., "data": ...} (+ "meta" for pages)
Error:   {"success": false, "error": CODE, "message": ...}
"""
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success(
    data: Any = None,
    message: str = "Success",
    status_code: int = 200,
    meta: Optional[dict] = None,
) -> JSONResponse:
    body = {"success": True, "message": message, "data": data}
    if meta is not None:
        body["meta"] = meta
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def created(data: Any = None, message: str = "Resource created successfully") -> JSONResponse:
    return success(data, message, status_code=201)


def paginated(page: dict, message: str = "Success") -> JSONResponse:
    """Render a {"data": [...], "meta": {...}} page produced by a service."""
    return success(page["data"], message, meta=page["meta"])


def error(message: str, error_code: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error_code, "message": message},
    )
