from __future__ import annotations

import json
import re
import uuid
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from histcrud.core import storage
from histcrud.core.errors import ValidationFailure
from histcrud.core.observability import emit, request_id_of

from .sanitize import escape_html, normalize_email
from .schemas import (
    VALIDATE_MESSAGES,
    FormSubmitOut,
    JsonDemoOut,
    MethodEchoOut,
    SanitizeOut,
    UploadOut,
    ValidateIn,
    ValidateOut,
)

router = APIRouter(tags=["demos"])
fallback_router = APIRouter(include_in_schema=False)

TEMPLATES = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

REGEX_ROUTE = re.compile(r"post")

Links = Sequence[Tuple[str, str]]

INDEX_SECTIONS: List[Tuple[str, Links]] = [
    (
        "All Topics Covered:",
        [
            ("/hello", "1. Hello World"),
            ("/params/John/25", "2. Request Parameters (Named)"),
            ("/response-types", "3. Response Types"),
            ("/json", "4. JSON Response"),
            ("/cookies", "5. Manage Cookies"),
            ("/headers", "6. HTTP Headers"),
            ("/redirect-example", "7. Redirects"),
            ("/blog/first-post", "8. Regex Routing"),
            ("/template", "9. Templates (Jinja2)"),
            ("/middleware-demo", "10. Middleware Demo"),
            ("/download", "11. Send Files"),
            ("/session-demo", "12. Sessions"),
            ("/validation-form", "13. Validation Form"),
            ("/sanitization-form", "14. Sanitization Form"),
            ("/regular-form", "15. Handle Forms"),
            ("/file-upload-form", "16. File Upload"),
        ],
    ),
    (
        "Database Operations:",
        [
            ("/db/users", "View All Users"),
            ("/db/orders", "View All Orders"),
            ("/db/orders/add", "Order Form Data"),
            ("/db/search?query=a", "Search Users"),
        ],
    ),
]


def _page(request: Request, title: str, lines: Sequence[str], links: Links = (), status_code: int = 200) -> Response:
    return TEMPLATES.TemplateResponse(
        request,
        "page.html",
        {"title": title, "lines": list(lines), "links": list(links)},
        status_code=status_code,
    )


def _form(
    request: Request,
    title: str,
    action: str,
    fields: List[Dict[str, str]],
    submit: str = "Submit",
    multipart: bool = False,
) -> Response:
    return TEMPLATES.TemplateResponse(
        request,
        "form.html",
        {"title": title, "action": action, "fields": fields, "submit": submit, "multipart": multipart, "links": [("/", "Home")]},
    )


def _field(name: str, label: str, type_: str = "text", value: str = "") -> Dict[str, str]:
    return {"name": name, "label": label, "type": type_, "value": value}


# -------------------------
# Basics
# -------------------------
@router.get("/")
def index(request: Request) -> Response:
    return TEMPLATES.TemplateResponse(
        request,
        "index.html",
        {"title": "FastAPI + SQL Complete Project", "sections": INDEX_SECTIONS, "links": []},
    )


@router.get("/hello", response_class=PlainTextResponse)
def hello() -> str:
    return "Hello World!"


@router.get("/params/{name}/{age}")
def params(request: Request, name: str, age: str) -> Response:
    return _page(
        request,
        "Request Parameters",
        [
            f"Name: {name}",
            f"Age: {age}",
            f"Query string: {json.dumps(dict(request.query_params))}",
            "Try: /params/John/25?city=NYC",
        ],
    )


@router.get("/response-types")
def response_types(request: Request) -> Response:
    return _page(request, "Response with status 200", [], status_code=200)


@router.get("/empty-response")
def empty_response() -> Response:
    return Response(status_code=200)


@router.get("/not-found-demo", response_class=PlainTextResponse)
def not_found_demo() -> PlainTextResponse:
    return PlainTextResponse("File not found", status_code=404)


@router.get("/json", response_model=JsonDemoOut)
def json_demo() -> JsonDemoOut:
    return JsonDemoOut(username="Flavio", age=30, skills=["Python", "FastAPI", "SQLModel"])


# -------------------------
# Cookies / headers / redirects
# -------------------------
@router.get("/cookies")
def cookies(request: Request) -> Response:
    resp = _page(
        request,
        "Cookies Set!",
        [f"Current cookies: {json.dumps(dict(request.cookies))}"],
        links=[("/clear-cookies", "Clear Cookies")],
    )
    resp.set_cookie("username", "Flavio")
    # 15 minutes
    resp.set_cookie("theme", "dark", max_age=900)
    return resp


@router.get("/clear-cookies")
def clear_cookies(request: Request) -> Response:
    resp = _page(request, "Cookies Cleared!", [], links=[("/cookies", "Go Back")])
    resp.delete_cookie("username")
    resp.delete_cookie("theme")
    return resp


@router.get("/headers")
def headers(request: Request) -> Response:
    resp = _page(
        request,
        "HTTP Headers",
        [f"Your User-Agent: {request.headers.get('user-agent')}", "Check response headers in DevTools!"],
    )
    resp.headers["X-Custom-Header"] = "MyValue"
    return resp


@router.get("/redirect-example")
def redirect_example() -> RedirectResponse:
    return RedirectResponse("/hello", status_code=302)


@router.get("/permanent-redirect")
def permanent_redirect() -> RedirectResponse:
    return RedirectResponse("/hello", status_code=301)


# -------------------------
# Templates / route-level middleware / files / sessions
# -------------------------
@router.get("/template")
def template(request: Request) -> Response:
    return TEMPLATES.TemplateResponse(
        request,
        "about.html",
        {"name": "Flavio", "title": "Template Demo", "items": ["Item 1", "Item 2", "Item 3"], "links": []},
    )


def specific_middleware(request: Request) -> None:
    request.state.custom_data = "Data from middleware"


@router.get("/middleware-demo", dependencies=[Depends(specific_middleware)])
def middleware_demo(request: Request) -> Response:
    return _page(request, "Middleware Demo", [f"Data passed from middleware: {request.state.custom_data}"])


@router.get("/download")
def download(request: Request) -> FileResponse:
    path = storage.ensure_sample_file(request.app.state.settings.storage_root)
    return FileResponse(path, filename="downloaded-file.txt", media_type="text/plain")


@router.get("/session-demo")
def session_demo(request: Request) -> Response:
    request.session["views"] = int(request.session.get("views", 0)) + 1
    request.session["username"] = "SessionUser"
    return _page(
        request,
        "Session Demo",
        [f"Views: {request.session['views']}", f"Username: {request.session['username']}"],
        links=[("/session-demo", "Refresh to increment")],
    )


# -------------------------
# Forms
# -------------------------
@router.get("/validation-form")
def validation_form(request: Request) -> Response:
    return _form(
        request,
        "Validation Form",
        "/validate",
        [
            _field("name", "Name (min 3 chars)"),
            _field("email", "Email"),
            _field("age", "Age"),
        ],
    )


@router.post("/validate", response_model=ValidateOut)
def validate(name: str = Form(""), email: str = Form(""), age: str = Form("")) -> ValidateOut:
    try:
        ValidateIn(name=name, email=email, age=age)
    except ValidationError as e:
        errors: List[Dict[str, Any]] = []
        for err in e.errors():
            field = str(err["loc"][0]) if err.get("loc") else ""
            errors.append({"field": field, "msg": VALIDATE_MESSAGES.get(field, err.get("msg", "invalid value"))})
        raise ValidationFailure("validation failed", {"errors": errors}) from e
    return ValidateOut(name=name, email=email, age=age)


@router.get("/sanitization-form")
def sanitization_form(request: Request) -> Response:
    return _form(
        request,
        "Sanitization Form",
        "/sanitize",
        [
            _field("name", "Name", value="  John  "),
            _field("email", "Email", value="JOHN@EXAMPLE.COM"),
            _field("comment", "Comment (try HTML)", type_="textarea", value="<script>alert('xss')</script>Hello"),
        ],
    )


@router.post("/sanitize", response_model=SanitizeOut)
def sanitize(name: str = Form(""), email: str = Form(""), comment: str = Form("")) -> SanitizeOut:
    return SanitizeOut(
        name=escape_html(name.strip()),
        email=normalize_email(email),
        comment=escape_html(comment.strip()),
    )


@router.get("/regular-form")
def regular_form(request: Request) -> Response:
    return _form(
        request,
        "Regular Form",
        "/submit-form",
        [_field("username", "Username"), _field("password", "Password", type_="password")],
    )


@router.post("/submit-form", response_model=FormSubmitOut)
def submit_form(username: str = Form(""), password: str = Form("")) -> FormSubmitOut:
    return FormSubmitOut(username=username, password="*" * len(password))


@router.get("/file-upload-form")
def file_upload_form(request: Request) -> Response:
    return _form(
        request,
        "File Upload Form",
        "/upload-file",
        [_field("document", "Document", type_="file"), _field("description", "Description")],
        submit="Upload",
        multipart=True,
    )


@router.post("/upload-file", response_model=UploadOut)
async def upload_file(
    request: Request,
    document: UploadFile = File(...),
    description: str = Form(""),
) -> UploadOut:
    original = document.filename or ""
    stored = f"{uuid.uuid4().hex}_{storage.safe_filename(original)}"
    target = storage.uploads_dir(request.app.state.settings.storage_root) / stored

    content = await document.read()
    target.write_bytes(content)
    emit("info", "upload.stored", f"stored {original!r}", request_id_of(request), __name__, size=len(content), stored_as=stored)

    return UploadOut(
        filename=original,
        size=len(content),
        content_type=document.content_type,
        description=description,
        stored_as=stored,
    )


# -------------------------
# HTTP method echo
# -------------------------
@router.post("/api/create", response_model=MethodEchoOut)
def api_create() -> MethodEchoOut:
    return MethodEchoOut(message="POST request")


@router.put("/api/update", response_model=MethodEchoOut)
def api_update() -> MethodEchoOut:
    return MethodEchoOut(message="PUT request")


@router.delete("/api/delete", response_model=MethodEchoOut)
def api_delete() -> MethodEchoOut:
    return MethodEchoOut(message="DELETE request")


@router.patch("/api/patch", response_model=MethodEchoOut)
def api_patch() -> MethodEchoOut:
    return MethodEchoOut(message="PATCH request")


# -------------------------
# Fallback (must be registered last)
# -------------------------
# every method, so unmatched paths are 404 rather than 405; the regex route is GET only
@fallback_router.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
def regex_or_404(request: Request, path: str) -> Response:
    if request.method == "GET" and REGEX_ROUTE.search(request.url.path):
        return _page(request, "Regex Route Matched!", [f"Path: {request.url.path}"])
    raise HTTPException(status_code=404, detail="Page Not Found")
