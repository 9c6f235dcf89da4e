"""
DB utilities.

The engine (and its connection pool) is created once per app in the lifespan
and handed to request handlers as a per-request Session.

Defaults:
- DATABASE_URL: sqlite:///./data/app.db
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel


def _repo_root() -> Path:
    # apps/api/histcrud/core/db.py -> repo root = parents[4]
    return Path(__file__).resolve().parents[4]


def resolve_sqlite_path(database_url: str) -> Optional[Path]:
    if not database_url.startswith("sqlite:///"):
        return None
    p = database_url[len("sqlite:///") :]

    # absolute unix
    if p.startswith("/"):
        return Path(p)

    # absolute windows drive, both C:/ and C:\ forms
    if len(p) >= 3 and p[1] == ":" and (p[2] == "/" or p[2] == "\\"):
        return Path(p)

    # relative -> repo root
    return (_repo_root() / p).resolve()


def create_db_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite:///"):
        connect_args = {"check_same_thread": False}

    sp = resolve_sqlite_path(url)
    if sp is not None:
        sp.parent.mkdir(parents=True, exist_ok=True)
        url = "sqlite:///" + sp.as_posix()

    return create_engine(url, future=True, connect_args=connect_args)


def init_schema(engine: Engine) -> None:
    # models register their tables (and sqlite triggers) on import
    from histcrud.modules.users import models as _users  # noqa: F401
    from histcrud.modules.orders import models as _orders  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def get_session(request: Request) -> Iterator[Session]:
    with Session(get_engine(request)) as session:
        yield session


def db_health(engine: Engine) -> Dict[str, Any]:
    url = engine.url
    kind = url.get_backend_name()
    path = url.database if kind == "sqlite" else url.render_as_string(hide_password=True)

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "kind": kind, "path": path}
    except Exception as e:
        return {"status": "error", "kind": kind, "path": path, "error": str(e)}
