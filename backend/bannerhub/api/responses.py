from datetime import datetime, timezone
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _timestamp() -> str:
    return datetime.now(tz=timezone.utc).isoformat().replace("+00:00", "Z")


def success(message: str, data: Any = None, meta: Any = None, status_code: int = 200) -> JSONResponse:
    body: dict[str, Any] = {"success": True, "message": message, "timestamp": _timestamp()}
    if data is not None:
        body["data"] = data
    if meta is not None:
        body["meta"] = meta
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def error(message: str, status_code: int, details: Any = None) -> JSONResponse:
    body = {"success": False, "message": message, "details": details, "timestamp": _timestamp()}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
