"""Maintenance command line for the course marketplace database.

Run from the ``src`` directory:

  python main.py init-db
  python main.py cleanup
  python main.py create-user EMAIL PASSWORD [--role instructor] [--username NAME]

``cleanup`` is meant for cron; lookups never depend on it because every
expiry check filters by time.
"""

import argparse
import logging
import sys
from typing import List, Optional

from core.database import DatabaseContext
from core.exceptions import CourseMarketError, UserAlreadyExistsError
from core.logging_config import setup_logging
from core.schema import init_schema
from core.security import validate_email, validate_password, validate_username
from utils.password_reset_manager import PasswordResetManager
from utils.session_manager import SessionManager
from utils.user_manager import UserManager

logger = logging.getLogger(__name__)


def cmd_init_db(context: DatabaseContext, args: argparse.Namespace) -> int:
    init_schema(context.adapter)
    print(f"Schema initialized ({context.adapter.name}).")
    return 0


def cmd_cleanup(context: DatabaseContext, args: argparse.Namespace) -> int:
    sessions = SessionManager(context.adapter).cleanup_expired_sessions()
    resets = PasswordResetManager(context.adapter).cleanup_expired_tokens()
    logger.info("Cleanup completed: sessions=%s password_resets=%s", sessions, resets)
    return 0


def cmd_create_user(context: DatabaseContext, args: argparse.Namespace) -> int:
    checks = [validate_email(args.email), validate_password(args.password)]
    if args.username:
        checks.append(validate_username(args.username))
    for result in checks:
        if not result.valid:
            print(result.message, file=sys.stderr)
            return 1

    try:
        user = UserManager(context.adapter).create_user(
            email=args.email,
            password=args.password,
            role=args.role,
            username=args.username,
            display_name=args.display_name,
        )
    except UserAlreadyExistsError as e:
        print(str(e), file=sys.stderr)
        return 1
    print(f"Created {args.role} '{args.email}' with id {user['id']}.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Course marketplace database maintenance.")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="Create missing tables and indexes")
    init.set_defaults(handler=cmd_init_db)

    cleanup = sub.add_parser("cleanup", help="Delete expired sessions and reset tokens")
    cleanup.set_defaults(handler=cmd_cleanup)

    create = sub.add_parser("create-user", help="Create an instructor or student")
    create.add_argument("email")
    create.add_argument("password")
    create.add_argument("--role", default="instructor", choices=["instructor", "student"])
    create.add_argument("--username")
    create.add_argument("--display-name", dest="display_name")
    create.set_defaults(handler=cmd_create_user)
    return parser


def main(argv: Optional[List[str]] = None, context: Optional[DatabaseContext] = None) -> int:
    """Run one maintenance command.

    A context passed in by the caller stays open; one created here is closed.
    """
    args = build_parser().parse_args(argv)
    owns_context = context is None
    if owns_context:
        context = DatabaseContext()
    try:
        return args.handler(context, args)
    except CourseMarketError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    finally:
        if owns_context:
            context.close()


if __name__ == "__main__":
    setup_logging()
    sys.exit(main())
