"""JSON envelope: ``{success: true, data}`` or ``{success: false, error}``."""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dustsweep.core.errors import DustSweepError, ErrorCode, http_status_for


def ok(data: Any) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    elif isinstance(data, list):
        data = [d.model_dump(mode="json", by_alias=True) if isinstance(d, BaseModel) else d for d in data]
    return {"success": True, "data": data}


def error_response(error: DustSweepError, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=http_status_for(error),
        content={"success": False, "error": error.to_payload()},
        headers=headers,
    )


def internal_error_response() -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {
                "code": ErrorCode.INTERNAL_ERROR.value,
                "name": ErrorCode.INTERNAL_ERROR.name,
                "message": "An unexpected error occurred",
            },
        },
    )
