"""Browser interface for listing, creating and removing users."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import parse_qs

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from .store import EmailConflictError, UserNotFoundError, UserStore
from .validation import clean_email, clean_name

logger = logging.getLogger("userhub.web")


def _template_environment() -> Jinja2Templates:
    base_dir = Path(__file__).resolve().parent
    return Jinja2Templates(directory=str(base_dir / "templates"))


def _format_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%d %b %Y %H:%M %Z")


async def _parse_form(request: Request) -> Dict[str, str]:
    body_bytes = await request.body()
    content_type = request.headers.get("content-type", "")
    charset = "utf-8"
    if "charset=" in content_type:
        charset = content_type.split("charset=", 1)[1].split(";", 1)[0].strip() or "utf-8"
    try:
        decoded = body_bytes.decode(charset)
    except (LookupError, UnicodeDecodeError):
        decoded = body_bytes.decode("utf-8", errors="ignore")
    data = parse_qs(decoded, keep_blank_values=True)
    return {key: values[0] for key, values in data.items() if values}


def register_ui_routes(app: FastAPI, store: UserStore) -> None:
    """Expose the HTML user list and form on the provided FastAPI app."""

    templates = _template_environment()
    static_dir = Path(__file__).resolve().parent / "static"
    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    router = APIRouter(include_in_schema=False)

    def _render_home(
        request: Request,
        *,
        name: str = "",
        email: str = "",
        error: Optional[str] = None,
        status_code: int = status.HTTP_200_OK,
    ) -> HTMLResponse:
        context = {
            "users": store.list_users(),
            "form_name": name,
            "form_email": email,
            "error": error,
            "format_datetime": _format_datetime,
        }
        return templates.TemplateResponse(request, "users.html", context, status_code=status_code)

    def _redirect_home(request: Request) -> RedirectResponse:
        return RedirectResponse(request.url_for("ui_home"), status_code=status.HTTP_303_SEE_OTHER)

    @router.get("/", response_class=HTMLResponse, name="ui_home")
    async def homepage(request: Request):
        return _render_home(request)

    @router.post("/users", name="ui_create_user")
    async def create_user(request: Request):
        form = await _parse_form(request)
        raw_name = form.get("name", "")
        raw_email = form.get("email", "")
        try:
            user = store.create_user(clean_name(raw_name), clean_email(raw_email))
        except (ValueError, EmailConflictError) as exc:
            logger.warning("Rejected user form submission: %s", exc)
            return _render_home(
                request,
                name=raw_name,
                email=raw_email,
                error=str(exc),
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        logger.info("User %s created from the web form", user.id)
        return _redirect_home(request)

    @router.post("/users/{user_id}/delete", name="ui_delete_user")
    async def delete_user(user_id: str, request: Request):
        try:
            store.delete_user(user_id)
        except UserNotFoundError as exc:
            return _render_home(request, error=str(exc), status_code=status.HTTP_404_NOT_FOUND)
        return _redirect_home(request)

    app.include_router(router)


__all__ = ["register_ui_routes"]
