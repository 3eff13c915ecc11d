"""Command-line interface for the user directory service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from userhub.client import UserServiceClient, UserServiceError
from userhub.config import ServiceSettings, load_settings, parse_port

logger = logging.getLogger("userhub.main")

_DEFAULT_SERVICE_URL = "http://localhost:3000"
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User directory utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: settings host)")
    serve_parser.add_argument("--port", type=int, default=None, help="Listen port (default: 3000)")
    serve_parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: USERHUB_CONFIG or config/userhub.yaml)",
    )

    users_parser = subparsers.add_parser("users", help="Manage users on a running service")
    users_parser.add_argument(
        "--service-url",
        default=None,
        help="Base URL of the running service (default: USERHUB_SERVICE_URL or http://localhost:3000)",
    )
    users_commands = users_parser.add_subparsers(dest="users_command", required=True)
    users_commands.add_parser("list", help="List all users")
    create_parser = users_commands.add_parser("create", help="Create a user")
    create_parser.add_argument("name", help="Display name for the user")
    create_parser.add_argument("email", help="Unique email address")
    delete_parser = users_commands.add_parser("delete", help="Delete a user")
    delete_parser.add_argument("user_id", help="Identifier of the user to delete")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "users"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def configure_logging(level: str = "INFO", log_file: Path | None = None) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=_LOG_FORMAT, handlers=handlers, force=True)


def _serve(settings: ServiceSettings) -> None:
    from userhub.api import create_app
    import uvicorn

    base_url = f"http://{settings.host}:{settings.port}"
    logger.info("Server is running on port %s", settings.port)
    logger.info("API documentation available at %s/api-docs", base_url)
    logger.info("Health check available at %s/health", base_url)
    logger.info("Environment: %s", settings.environment)

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


def _resolve_service_url(value: str | None) -> str:
    return value or os.getenv("USERHUB_SERVICE_URL") or _DEFAULT_SERVICE_URL


def _list_users(client: UserServiceClient) -> None:
    users = client.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<36}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 120)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{user.id:<36}  {user.name:<24}  {user.email:<32}  {created}")


def _run_users_command(args: argparse.Namespace) -> int:
    client = UserServiceClient(_resolve_service_url(args.service_url))

    try:
        if args.users_command == "list":
            _list_users(client)
        elif args.users_command == "create":
            user = client.create_user(args.name.strip(), args.email.strip())
            print(f"Created user {user.id}: {user.name} <{user.email}>")
        elif args.users_command == "delete":
            client.delete_user(args.user_id)
            print(f"Deleted user {args.user_id}")
    except UserServiceError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)

    if args.command == "users":
        configure_logging("WARNING")
        return _run_users_command(args)

    config_path = Path(args.config).expanduser() if args.config else None
    try:
        settings = load_settings(config_path)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    if args.host:
        settings = replace(settings, host=args.host)
    if args.port is not None:
        try:
            settings = replace(settings, port=parse_port(args.port))
        except ValueError as exc:
            raise SystemExit(f"Invalid --port: {exc}") from exc

    configure_logging(settings.log_level, settings.log_file)
    _serve(settings)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
