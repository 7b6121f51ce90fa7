"""Helpers that wrap payloads in the standard response envelope."""

from typing import Any, Iterable, Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from shipment_service.application.schemas import Pagination

def _encode(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True)
    if isinstance(data, (list, tuple)):
        return [_encode(item) for item in data]
    if isinstance(data, dict):
        return {key: _encode(value) for key, value in data.items()}
    return jsonable_encoder(data)

def success(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    body: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = _encode(data)
    return JSONResponse(status_code=status_code, content=body)

def created(message: str, data: Any = None) -> JSONResponse:
    return success(message, data, status_code=201)

def paginated(message: str, items: Iterable[Any], pagination: Pagination) -> JSONResponse:
    return JSONResponse(content={
        "success": True,
        "message": message,
        "data": _encode(list(items)),
        "pagination": _encode(pagination),
    })

def error(
    status_code: int,
    message: str,
    errors: Optional[list[dict[str, Any]]] = None,
    data: Any = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if data is not None:
        body["data"] = _encode(data)
    return JSONResponse(status_code=status_code, content=body, headers=headers)
