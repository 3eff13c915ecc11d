"""Configuration management for the user directory service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_ENVIRONMENT = "development"
DEFAULT_CORS_ORIGINS: Tuple[str, ...] = ("http://localhost:5173",)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass(frozen=True)
class ServiceSettings:
    """Runtime settings for the HTTP service."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    environment: str = DEFAULT_ENVIRONMENT
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "ServiceSettings":
        """Create :class:`ServiceSettings` from raw mapping data."""
        return _apply_overrides(ServiceSettings(), data, base_path=base_path)


def parse_port(value: object) -> int:
    try:
        port = int(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid port setting: {value!r}") from exc
    if not 1 <= port <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port}")
    return port


def _parse_origins(value: object) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        raise ValueError("cors_origins must be a comma separated string or a list")
    return tuple(item.strip() for item in items if item.strip())


def _parse_log_level(value: object) -> str:
    level = str(value).strip().upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log level: {value!r}")
    return level


def _resolve_path(value: object, base_path: Path | None) -> Path:
    raw = Path(str(value)).expanduser()
    if raw.is_absolute() or base_path is None:
        return raw.resolve(strict=False)
    return (base_path / raw).resolve(strict=False)


def _apply_overrides(
    settings: ServiceSettings,
    data: Mapping[str, object],
    *,
    base_path: Path | None = None,
) -> ServiceSettings:
    updates: Dict[str, object] = {}
    if data.get("host"):
        updates["host"] = str(data["host"]).strip()
    if data.get("port") not in (None, ""):
        updates["port"] = parse_port(data["port"])
    if data.get("environment"):
        updates["environment"] = str(data["environment"]).strip().lower()
    if data.get("cors_origins") is not None:
        updates["cors_origins"] = _parse_origins(data["cors_origins"])
    if data.get("log_level"):
        updates["log_level"] = _parse_log_level(data["log_level"])
    if data.get("log_file"):
        updates["log_file"] = _resolve_path(data["log_file"], base_path)
    return replace(settings, **updates)


def _load_yaml(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")
    service = raw.get("service", {})
    if not isinstance(service, dict):
        raise ValueError("The 'service' key must contain a mapping")
    return service


def _environment_values(environ: Mapping[str, str]) -> Dict[str, object]:
    mapping = {
        "USERHUB_HOST": "host",
        "USERHUB_PORT": "port",
        "USERHUB_ENV": "environment",
        "USERHUB_CORS_ORIGINS": "cors_origins",
        "USERHUB_LOG_LEVEL": "log_level",
        "USERHUB_LOG_FILE": "log_file",
    }
    return {field: environ[name] for name, field in mapping.items() if environ.get(name)}


def resolve_config_path(env_value: Optional[str]) -> Optional[Path]:
    """Resolve the optional YAML configuration file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    candidate = (Path(__file__).resolve().parent.parent / "config" / "userhub.yaml").resolve(strict=False)
    if candidate.exists():
        return candidate
    return None


def load_settings(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ServiceSettings:
    """Load settings from an optional YAML file, then apply environment overrides."""
    if environ is None:
        environ = os.environ

    if config_path is None:
        config_path = resolve_config_path(environ.get("USERHUB_CONFIG"))

    settings = ServiceSettings()
    if config_path is not None:
        settings = _apply_overrides(settings, _load_yaml(config_path), base_path=config_path.parent)

    return _apply_overrides(settings, _environment_values(environ))


__all__ = ["ServiceSettings", "load_settings", "parse_port", "resolve_config_path"]
