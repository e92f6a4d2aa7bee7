#!/usr/bin/env python3
"""
Storefront -- Google sign-in with merchant/client roles and a products catalog.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py serve --reload
  python main.py seed-user --email ada@example.com --name "Ada Lovelace"

Environment variables (or .env):
  SECRET_KEY             Required unless DEBUG=true. At least 32 characters.
  GOOGLE_CLIENT_ID       Google OAuth client id. Login is disabled without it.
  GOOGLE_CLIENT_SECRET   Google OAuth client secret.
  DATABASE_URL           SQLAlchemy URL for user records (default: SQLite under data/).
"""

import argparse
import sys

from auth.errors import DuplicateRecord, StoreFailure
from auth.models import User
from auth.store import UserStore, normalize_email


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _seed_user(args: argparse.Namespace) -> int:
    """Create an email-only record that the first Google login with that email will link."""
    email = normalize_email(args.email)
    if email is None:
        print("  [!] --email must not be blank.")
        return 2

    store = UserStore()
    try:
        user = store.create_user(User(email=email, display_name=args.name))
    except DuplicateRecord:
        print(f"  [!] A user with email {email} already exists.")
        return 1
    except StoreFailure as e:
        print(f"  [!] Could not write to the user store: {e}")
        return 1
    finally:
        store.close()

    print(f"  Created user {user.id} <{user.email}> (role: {user.role.value})")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Storefront API server and admin helpers.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py seed-user --email ada@example.com --name "Ada Lovelace"
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=3000, help="Port (default: 3000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=_serve)

    seed = sub.add_parser(
        "seed-user",
        help="Pre-create a user by email; their first Google login links to it",
    )
    seed.add_argument("--email", required=True, metavar="EMAIL", help="Email address of the user")
    seed.add_argument("--name", default="", metavar="NAME", help="Display name (default: provider fallback)")
    seed.set_defaults(func=_seed_user)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
