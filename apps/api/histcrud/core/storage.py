"""
Local filesystem storage for downloads and uploads.

Defaults:
- STORAGE_ROOT: ./data/storage
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _repo_root() -> Path:
    # apps/api/histcrud/core/storage.py -> repo root = parents[4]
    return Path(__file__).resolve().parents[4]


def get_storage_root(raw: str) -> Path:
    p = Path(raw)
    return (_repo_root() / p).resolve() if not p.is_absolute() else p


def ensure_storage_root(raw: str) -> Path:
    root = get_storage_root(raw)
    root.mkdir(parents=True, exist_ok=True)
    return root


def ensure_sample_file(raw: str) -> Path:
    path = ensure_storage_root(raw) / "sample.txt"
    if not path.exists():
        path.write_text("This is a sample file for download.", encoding="utf-8")
    return path


def safe_filename(name: str) -> str:
    base = Path(name or "").name
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned or "upload.bin"


def uploads_dir(raw: str) -> Path:
    d = ensure_storage_root(raw) / "uploads"
    d.mkdir(parents=True, exist_ok=True)
    return d


def storage_health(raw: str) -> Dict[str, Any]:
    try:
        root = ensure_storage_root(raw)
        probe = root / ".probe_write"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink(missing_ok=True)
        return {"status": "ok", "kind": "local_fs", "root": str(root.as_posix())}
    except Exception as e:
        return {"status": "error", "kind": "local_fs", "root": str(get_storage_root(raw).as_posix()), "error": str(e)}
