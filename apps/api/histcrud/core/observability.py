"""
Observability foundations.

Contract locks:
- X-Request-Id in/out (missing -> generated; always echoed back; also on errors)
- Error envelope keys: error, message, request_id, details
- Log lines are single JSON objects: ts, level, message, request_id, event, module
"""
from __future__ import annotations

import datetime
import json
import logging
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

_log = logging.getLogger("histcrud")

# request id of the request being handled; read by emit() when none is passed
current_request_id: ContextVar[Optional[str]] = ContextVar("histcrud_request_id", default=None)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "audit": logging.INFO,
}


def configure_logging(level: str) -> None:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level.upper(), format="%(message)s")
    _log.setLevel(level.upper())


def now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def new_request_id() -> str:
    return uuid.uuid4().hex.upper()


def request_id_of(request: Request) -> Optional[str]:
    return getattr(getattr(request, "state", None), "request_id", None)


def emit(level: str, event: str, message: str, request_id: Optional[str], module: str, **extra: Any) -> None:
    payload: Dict[str, Any] = {
        "ts": now_iso(),
        "level": level.lower(),
        "message": message,
        "request_id": request_id or current_request_id.get(),
        "event": event,
        "module": module,
    }
    payload.update(extra)
    _log.log(_LEVELS.get(level.lower(), logging.INFO), json.dumps(payload, ensure_ascii=False, default=str))


def err_envelope(error: str, message: str, request_id: Optional[str], details: Any, status_code: int) -> JSONResponse:
    headers = {}
    if request_id:
        headers["X-Request-Id"] = request_id
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "request_id": request_id,
            "details": details,
        },
        headers=headers,
    )
