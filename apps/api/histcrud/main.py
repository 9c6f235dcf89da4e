from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from histcrud.core.config import Settings
from histcrud.core.db import create_db_engine, db_health, init_schema
from histcrud.core.errors import ServiceError
from histcrud.core.observability import (
    configure_logging,
    current_request_id,
    emit,
    err_envelope,
    new_request_id,
    request_id_of,
)
from histcrud.core.storage import storage_health
from histcrud.modules.demos.router import fallback_router
from histcrud.modules.demos.router import router as demos_router
from histcrud.modules.orders.router import router as orders_router
from histcrud.modules.users.router import router as users_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    engine = create_db_engine(settings.database_url)
    if settings.db_auto_create:
        init_schema(engine)
    app.state.engine = engine
    app.state.http_client = httpx.AsyncClient(timeout=settings.http_timeout_s)
    emit("info", "app.start", "server ready", None, __name__, db=engine.url.get_backend_name())

    yield

    await app.state.http_client.aclose()
    engine.dispose()
    emit("info", "app.stop", "server stopped", None, __name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="histcrud API", version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings

    # === OBSERVABILITY FOUNDATIONS ===
    # - X-Request-Id in/out (missing -> generated; always echoed back; also on errors)
    # - Error envelope keys: error, message, request_id, details
    @app.middleware("http")
    async def _request_id_mw(request: Request, call_next):
        rid = request.headers.get("X-Request-Id") or new_request_id()
        request.state.request_id = rid
        token = current_request_id.set(rid)
        emit("info", "http.request.start", f"{request.method} {request.url.path}", rid, __name__)
        try:
            resp = await call_next(request)
        except Exception as e:
            emit("error", "http.request.exception", str(e), rid, __name__)
            raise
        finally:
            current_request_id.reset(token)
        resp.headers["X-Request-Id"] = rid
        emit("info", "http.request.end", f"{request.method} {request.url.path} -> {getattr(resp, 'status_code', None)}", rid, __name__)
        return resp

    @app.exception_handler(ServiceError)
    async def _service_exc_handler(request: Request, exc: ServiceError):
        rid = request_id_of(request)
        if exc.status_code >= 500:
            emit("error", "service.error", exc.message, rid, __name__, error=exc.error, details=exc.details)
        return err_envelope(exc.error, exc.message, rid, jsonable_encoder(exc.details), exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        rid = request_id_of(request)
        return err_envelope("http_error", str(exc.detail), rid, {"status_code": exc.status_code}, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_exc_handler(request: Request, exc: RequestValidationError):
        rid = request_id_of(request)
        return err_envelope("validation_error", "request validation failed", rid, jsonable_encoder(exc.errors()), 422)

    @app.exception_handler(Exception)
    async def _unhandled_exc_handler(request: Request, exc: Exception):
        rid = request_id_of(request)
        return err_envelope("internal_error", "internal server error", rid, {"type": type(exc).__name__}, 500)
    # === END OBSERVABILITY FOUNDATIONS ===

    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

    @app.get("/health")
    def health(request: Request):
        db = db_health(request.app.state.engine)
        st = storage_health(settings.storage_root)
        ok = db["status"] == "ok" and st["status"] == "ok"
        return {
            "status": "ok" if ok else "degraded",
            "version": settings.app_version,
            "db": db,
            "storage": st,
            "last_error_summary": None if ok else (db.get("error") or st.get("error")),
        }

    app.include_router(users_router)
    app.include_router(orders_router)
    app.include_router(demos_router)
    # catch-all: keep last
    app.include_router(fallback_router)
    return app


app = create_app()
