"""HTTP client for talking to a running user directory service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

import httpx

from .models import User


class UserServiceError(Exception):
    """Raised when the service rejects a request or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UserServiceNotFound(UserServiceError):
    """Raised when the service reports that a user does not exist."""


@dataclass
class _ClientConfig:
    base_url: str
    timeout: float


def _normalize_base_url(base_url: str) -> str:
    cleaned = (base_url or "").strip()
    if not cleaned:
        raise ValueError("Service base URL must not be empty")
    return cleaned.rstrip("/")


def _build_endpoint(base_url: str, path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    return f"{base_url}{path}"


def _extract_error_message(payload: object, default: str) -> str:
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return default


def _parse_user(data: object) -> User:
    if not isinstance(data, dict):
        raise UserServiceError("User directory returned an unexpected user payload")
    try:
        return User(
            id=str(data["id"]),
            name=str(data["name"]),
            email=str(data["email"]),
            created_at=datetime.fromisoformat(str(data["createdAt"])),
            updated_at=datetime.fromisoformat(str(data["updatedAt"])),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise UserServiceError("User payload was missing required fields") from exc


class UserServiceClient:
    """Perform user CRUD operations against the REST API."""

    def __init__(self, base_url: str, *, timeout: float = 10.0) -> None:
        self._config = _ClientConfig(base_url=_normalize_base_url(base_url), timeout=timeout)

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def health(self) -> Dict[str, object]:
        return self._request("GET", "/health")

    def list_users(self) -> List[User]:
        payload = self._request("GET", "/api/users")
        data = payload.get("data")
        if not isinstance(data, list):
            raise UserServiceError("User directory returned an invalid user list")
        return [_parse_user(item) for item in data]

    def get_user(self, user_id: str) -> User:
        payload = self._request("GET", f"/api/users/{user_id}")
        return _parse_user(payload.get("data"))

    def create_user(self, name: str, email: str) -> User:
        payload = self._request("POST", "/api/users", json={"name": name, "email": email})
        return _parse_user(payload.get("data"))

    def update_user(
        self,
        user_id: str,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> User:
        body: Dict[str, str] = {}
        if name is not None:
            body["name"] = name
        if email is not None:
            body["email"] = email
        payload = self._request("PUT", f"/api/users/{user_id}", json=body)
        return _parse_user(payload.get("data"))

    def delete_user(self, user_id: str) -> None:
        self._request("DELETE", f"/api/users/{user_id}")

    def _request(self, method: str, path: str, *, json: object = None) -> Dict[str, object]:
        url = _build_endpoint(self._config.base_url, path)
        try:
            response = httpx.request(method, url, json=json, timeout=self._config.timeout)
        except httpx.RequestError as exc:
            raise UserServiceError(f"Failed to contact user directory: {exc}") from exc

        try:
            parsed = response.json()
        except ValueError:
            parsed = None

        if response.status_code >= 400:
            message = _extract_error_message(
                parsed,
                f"User directory request failed with status {response.status_code}",
            )
            if response.status_code == 404:
                raise UserServiceNotFound(message, response.status_code)
            raise UserServiceError(message, response.status_code)

        if not isinstance(parsed, dict):
            raise UserServiceError("User directory returned an invalid response")
        return parsed


__all__ = ["UserServiceClient", "UserServiceError", "UserServiceNotFound"]
