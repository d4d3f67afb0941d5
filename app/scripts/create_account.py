"""
Create an account (e.g. the first admin). Run from project root:
  python -m app.scripts.create_account USERNAME EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_account admin admin@example.com your-secure-password admin
"""
import argparse
import logging
import sys

from app.core.database import SessionLocal
from app.services.accounts import AccountConflictError, create_account, normalize_email

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an account (no registration UI needed).")
    parser.add_argument("username", help="Username (1-255 chars)")
    parser.add_argument("email", help="Email address used for login and password reset")
    parser.add_argument("password", help="Password (8-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    args = parser.parse_args(argv)

    username = args.username.strip()
    email = normalize_email(args.email)
    if not username or len(username) > 255:
        logger.error("Invalid username length.")
        return 1
    if "@" not in email or len(email) > 255:
        logger.error("Invalid email address.")
        return 1
    if len(args.password) < 8 or len(args.password) > 128:
        logger.error("Password must be 8-128 characters.")
        return 1

    db = SessionLocal()
    try:
        account = create_account(
            db,
            {"username": username, "email": email, "password": args.password, "role": args.role},
        )
    except AccountConflictError as e:
        logger.error("Account not created: %s", e.message)
        return 1
    finally:
        db.close()
    logger.info("Created account '%s' (id=%s) with role '%s'.", username, account.id, args.role)
    return 0


if __name__ == "__main__":
    sys.exit(main())
