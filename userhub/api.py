"""FastAPI application exposing the user directory over HTTP."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import ServiceSettings, load_settings
from .models import User, UserUpdate
from .store import EmailConflictError, UserNotFoundError, UserStore
from .validation import clean_email, clean_name
from .web import register_ui_routes

logger = logging.getLogger("userhub.api")


class CreateUserRequest(BaseModel):
    name: str = Field(default=None, validate_default=True)
    email: str = Field(default=None, validate_default=True)

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, value: object) -> str:
        return clean_name(value)

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: object) -> str:
        return clean_email(value)


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        return clean_name(value)

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: object) -> Optional[str]:
        if value is None:
            return None
        return clean_email(value)

    def to_update(self) -> UserUpdate:
        return UserUpdate(name=self.name, email=self.email)


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class UserEnvelope(BaseModel):
    success: bool = True
    data: UserResponse
    message: Optional[str] = None


class UserListEnvelope(BaseModel):
    success: bool = True
    data: List[UserResponse]


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str


class HealthResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: datetime
    environment: str


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    ctx = first.get("ctx") or {}
    error = ctx.get("error")
    if isinstance(error, ValueError):
        return str(error)
    loc = tuple(first.get("loc", ()))
    if loc == ("body",):
        return "Request body must be a JSON object"
    message = str(first.get("msg", "Invalid request"))
    return message.removeprefix("Value error, ")


def _error_response(status_code: int, message: str, detail: Any = None) -> JSONResponse:
    payload: Dict[str, object] = {"success": False, "message": message}
    if detail is not None:
        payload["detail"] = detail
    return JSONResponse(status_code=status_code, content=payload)


def create_app(
    *,
    store: UserStore | None = None,
    settings: ServiceSettings | None = None,
    include_ui: bool = True,
) -> FastAPI:
    if store is None:
        store = UserStore()
    if settings is None:
        settings = load_settings()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        logger.info("User directory ready (%d user(s) loaded)", store.count())
        yield
        logger.info("HTTP server closed")

    app = FastAPI(
        title="User Directory",
        description="CRUD API for managing user records",
        version="1.0.0",
        docs_url="/api-docs",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.settings = settings

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception("Unhandled error during %s %s", request.method, request.url.path)
            detail = str(exc) if settings.is_development else None
            response = _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", detail
            )
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response

    # Outermost middleware, so 500 responses built by log_requests carry CORS headers.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def healthcheck() -> HealthResponse:
        return HealthResponse(
            message="Server is healthy",
            timestamp=datetime.now(timezone.utc),
            environment=settings.environment,
        )

    @app.get("/api/users", response_model=UserListEnvelope)
    async def list_users() -> UserListEnvelope:
        return UserListEnvelope(data=[user_to_response(user) for user in store.list_users()])

    @app.get("/api/users/{user_id}", response_model=UserEnvelope, response_model_exclude_none=True)
    async def read_user(user_id: str) -> UserEnvelope:
        return UserEnvelope(data=user_to_response(store.get_user(user_id)))

    @app.post(
        "/api/users",
        response_model=UserEnvelope,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_user(payload: CreateUserRequest) -> UserEnvelope:
        user = store.create_user(payload.name, payload.email)
        return UserEnvelope(data=user_to_response(user), message="User created successfully")

    @app.put("/api/users/{user_id}", response_model=UserEnvelope)
    async def update_user(user_id: str, payload: UpdateUserRequest) -> UserEnvelope:
        user = store.update_user(user_id, payload.to_update())
        return UserEnvelope(data=user_to_response(user), message="User updated successfully")

    @app.delete("/api/users/{user_id}", response_model=MessageEnvelope)
    async def delete_user(user_id: str) -> MessageEnvelope:
        store.delete_user(user_id)
        return MessageEnvelope(message="User deleted successfully")

    if include_ui:
        register_ui_routes(app, store)

    @app.exception_handler(UserNotFoundError)
    async def handle_not_found(request: Request, exc: UserNotFoundError):
        logger.warning("%s %s: %s", request.method, request.url.path, exc)
        return _error_response(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(EmailConflictError)
    async def handle_conflict(request: Request, exc: EmailConflictError):
        logger.warning("%s %s: %s", request.method, request.url.path, exc)
        return _error_response(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        message = _validation_message(exc)
        logger.warning("%s %s: %s", request.method, request.url.path, message)
        return _error_response(status.HTTP_400_BAD_REQUEST, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            message = "Route not found"
        else:
            message = str(exc.detail)
        logger.warning("%s %s: %s", request.method, request.url.path, message)
        return _error_response(exc.status_code, message)

    return app


__all__ = ["create_app", "user_to_response"]
