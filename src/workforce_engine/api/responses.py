"""Response envelope helpers.

Success: ``{"success": true, "message": ..., "data": ...}``
Failure: ``{"success": false, "message": ..., "code": ..., "errors": [...]}``
"""

from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from workforce_engine.pagination import Page


def dump(value: Any) -> Any:
    """Serialize schemas (camelCase) and plain containers of them."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [dump(item) for item in value]
    if isinstance(value, dict):
        return {key: dump(item) for key, item in value.items()}
    return jsonable_encoder(value)


def success(
    data: Any = None,
    message: str = "OK",
    status_code: int = status.HTTP_200_OK,
    **extra: Any,
) -> JSONResponse:
    content: dict[str, Any] = {"success": True, "message": message, "data": dump(data)}
    content.update({key: dump(value) for key, value in extra.items()})
    return JSONResponse(status_code=status_code, content=content)


def paginated(items: list[Any], page: Page, message: str = "OK", **extra: Any) -> JSONResponse:
    return success(items, message, pagination=page.pagination(), **extra)


def failure(
    status_code: int,
    code: str,
    message: str,
    errors: Any = None,
) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "message": message, "code": code}
    if errors is not None:
        content["errors"] = jsonable_encoder(errors)
    return JSONResponse(status_code=status_code, content=content)
