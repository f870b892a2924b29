"""
taskhub CLI — Database bootstrap, tenant seeding and server commands.

Commands:
- taskhub init            — Create the database tables
- taskhub create-account  — Create an account, print its id
- taskhub create-user     — Create a user in an account, print its API key
- taskhub run             — Serve the HTTP API with uvicorn
- taskhub cleanup-logs    — Apply log retention (delete / gzip old files)
"""

from __future__ import annotations

import argparse
import logging
from typing import Optional

logger = logging.getLogger("taskhub.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="taskhub",
        description="taskhub — Multi-tenant task management",
    )
    parser.add_argument(
        "--config", default=None, help="Path to taskhub.yaml (default: auto-discover)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # taskhub init
    subparsers.add_parser("init", help="Create the database tables")

    # taskhub create-account
    account_parser = subparsers.add_parser("create-account", help="Create an account")
    account_parser.add_argument("name", help="Account display name")

    # taskhub create-user
    user_parser = subparsers.add_parser("create-user", help="Create a user with an API key")
    user_parser.add_argument("account_id", type=int, help="Owning account id")
    user_parser.add_argument("username", help="Unique username")

    # taskhub run
    run_parser = subparsers.add_parser("run", help="Start the HTTP API server")
    run_parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    run_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")

    # taskhub cleanup-logs
    subparsers.add_parser("cleanup-logs", help="Delete / compress expired log files")

    args = parser.parse_args(argv)

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "create-account":
        return cmd_create_account(args)
    elif args.command == "create-user":
        return cmd_create_user(args)
    elif args.command == "run":
        return cmd_run(args)
    elif args.command == "cleanup-logs":
        return cmd_cleanup_logs(args)
    else:
        parser.print_help()
        return 0


def _load_config(args: argparse.Namespace):
    from taskhub.engine.config import load_config
    return load_config(args.config)


def cmd_init(args: argparse.Namespace) -> int:
    """Load config, connect, create all tables."""
    from taskhub.db.base import Base, engine_registry
    from taskhub.db.session import ENGINE_NAME, close_all_sessions, init_db_from_config
    from taskhub.engine.errors import TaskhubConfigError

    try:
        config = _load_config(args)
    except TaskhubConfigError as e:
        print(f"[ERROR] {e.message}")
        return 1

    try:
        init_db_from_config(config)
        Base.metadata.create_all(engine_registry.get(ENGINE_NAME))
        print("[OK] Database tables created")
        return 0
    except Exception as e:
        print(f"[ERROR] Failed to create tables: {e}")
        return 1
    finally:
        close_all_sessions()


def cmd_create_account(args: argparse.Namespace) -> int:
    from taskhub.db.session import close_all_sessions, init_db_from_config
    from taskhub.tenants import create_account

    try:
        init_db_from_config(_load_config(args))
        account_id = create_account(args.name)
        print(f"[OK] Created account '{args.name}' with id {account_id}")
        return 0
    except Exception as e:
        print(f"[ERROR] Failed to create account: {e}")
        return 1
    finally:
        close_all_sessions()


def cmd_create_user(args: argparse.Namespace) -> int:
    from taskhub.db.session import close_all_sessions, init_db_from_config
    from taskhub.engine.errors import TaskhubNotFoundError
    from taskhub.tenants import create_user

    try:
        config = _load_config(args)
        init_db_from_config(config)
        user_id, api_key = create_user(
            args.account_id, args.username, bcrypt_rounds=config.security.bcrypt_rounds,
        )
        print(f"[OK] Created user '{args.username}' with id {user_id}")
        print(f"     API Key (save this — shown only once): {api_key}")
        return 0
    except TaskhubNotFoundError:
        print(f"[ERROR] Account {args.account_id} does not exist")
        return 1
    except Exception as e:
        print(f"[ERROR] Failed to create user: {e}")
        return 1
    finally:
        close_all_sessions()


def cmd_run(args: argparse.Namespace) -> int:
    """Serve the API."""
    import uvicorn

    from taskhub.api.app import create_app

    config = _load_config(args)
    logging.basicConfig(level=config.logging.level)
    print(f"Starting taskhub on http://{args.host}:{args.port}")
    try:
        uvicorn.run(create_app(config), host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nServer stopped.")
    return 0


def cmd_cleanup_logs(args: argparse.Namespace) -> int:
    from taskhub.engine.logging import LogRetentionManager

    config = _load_config(args)
    manager = LogRetentionManager(
        log_dir=config.logging.directory,
        retention_days=config.logging.retention.as_dict(),
        compress_after_days=config.logging.compress_after_days,
    )
    result = manager.cleanup()
    print(f"[OK] Deleted {result['deleted']} file(s), compressed {result['compressed']} file(s)")
    return 0
