"""Command-line interface for the Parley messaging backend."""

from __future__ import annotations
import argparse
import logging
import sys
from getpass import getpass
from pathlib import Path
from typing import Sequence

from parley.config import Settings, load_settings
from parley.database import DataStore

logger = logging.getLogger("parley.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Parley messaging backend utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: PARLEY_CONFIG)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Create or load the JSON data store")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP API (default: 8000)",
    )

    user_parser = subparsers.add_parser("create-user", help="Register a new account")
    user_parser.add_argument("email", help="Unique email address for login")
    user_parser.add_argument("name_first", help="First name")
    user_parser.add_argument("name_last", help="Last name")

    subparsers.add_parser("list-users", help="Print every registered account")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "create-user", "list-users"}

    leading: list[str] = []
    if args_list and args_list[0].startswith("--config="):
        leading, args_list = args_list[:1], args_list[1:]
    elif len(args_list) >= 2 and args_list[0] == "--config":
        leading, args_list = args_list[:2], args_list[2:]

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args([*leading, *args_list])
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args([*leading, *args_list])
            args_list = ["serve", *args_list]

    return parser.parse_args([*leading, *args_list])


def _initialise_store(settings: Settings) -> DataStore:
    path = settings.resolved_data_path()
    store = DataStore(path)
    store.initialize()
    if path is None:
        logger.info("Data store running in memory only")
    else:
        logger.info("Data store initialised at %s", path)
    return store


def _serve(*, store: DataStore, settings: Settings, host: str | None, port: int | None) -> None:
    from parley.service import create_app
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting Parley API on http://%s:%s", bind_host, bind_port)

    app = create_app(store=store, settings=settings)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=settings.log_level.lower())


def _create_user(store: DataStore, email: str, name_first: str, name_last: str) -> int:
    from parley.auth import AuthService
    from parley.errors import ParleyError

    password = _prompt_for_password()
    if password is None:
        print("Aborted creating user.")
        return 1

    try:
        result = AuthService(store).register(email, password, name_first, name_last)
    except ParleyError as exc:
        print(f"Failed to create user: {exc}")
        return 1

    print(f"Created user #{result.auth_user_id} <{email.strip().lower()}>")
    return 0


def _prompt_for_password() -> str | None:
    for _ in range(3):
        password = getpass("Password (min 6 characters): ")
        if len(password) < 6:
            print("Password is too short. Please try again.")
            continue
        confirmation = getpass("Confirm password: ")
        if password != confirmation:
            print("Passwords do not match. Please try again.")
            continue
        return password
    return None


def _list_users(store: DataStore) -> None:
    users = store.load().users
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Handle':<20}  {'Email':<32}  Owner")
    print("-" * 70)
    for user in users:
        owner = "yes" if user.is_global_owner else ""
        print(f"{user.id:>4}  {user.handle:<20}  {user.email:<32}  {owner}")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = load_settings(Path(args.config).expanduser() if args.config else None)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    store = _initialise_store(settings)

    if args.command == "serve":
        _serve(store=store, settings=settings, host=args.host, port=args.port)
    elif args.command == "create-user":
        return _create_user(store, args.email, args.name_first, args.name_last)
    elif args.command == "list-users":
        _list_users(store)
    elif args.command == "init-db":
        if settings.resolved_data_path() is not None:
            store.save(store.load())
        print("Data store initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
