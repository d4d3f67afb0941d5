"""Password reset flow: issue a reset code, validate it, consume it to set a new password.

The live code is stored on the account row (reset_code, reset_code_expires_at).
Expiry is checked lazily on every read; nothing sweeps old codes.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import generate_reset_code, hash_password
from app.models import Account
from app.schemas.auth import ResetOutcome
from app.services.accounts import normalize_email
from app.services.mailer import MailDeliveryError, send_reset_code

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Retries when a freshly generated code collides with another account's live code.
MAX_ISSUE_ATTEMPTS = 5

REASON_CODE_SENT = "Reset code sent."
REASON_DELIVERY_FAILED = "Failed to send reset code."
REASON_CODE_VALID = "Code is valid."
REASON_CODE_INVALID = "Invalid or expired code."
REASON_PASSWORD_RESET = "Password reset successfully."


class InvalidInputError(Exception):
    """Raised when a required input is missing or malformed (maps to bad request)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AccountNotFoundError(Exception):
    """Raised when no active, non-deleted account matches the request."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _live_code_conditions(code: str, now: datetime, email: str | None) -> list:
    """WHERE clauses selecting the usable account whose unexpired code equals `code`."""
    conditions = [
        Account.reset_code == code,
        Account.reset_code_expires_at > now,
        Account.is_active.is_(True),
        Account.is_deleted.is_(False),
    ]
    if email and email.strip():
        conditions.append(Account.email == normalize_email(email))
    return conditions


def issue_reset_code(session: Session, email: str, settings: "Settings") -> ResetOutcome:
    """
    Generate a reset code for the account with `email`, store it, and deliver it by mail.

    Any previous code for the account is overwritten. The code itself is never part
    of the returned outcome. Raises InvalidInputError for an empty or malformed
    email and AccountNotFoundError when no usable account matches. A delivery
    failure is a soft failure: the code stays stored and the caller may retry.
    """
    email = normalize_email(email or "")
    if not email or "@" not in email:
        raise InvalidInputError("A valid email is required.")

    account = (
        session.query(Account)
        .filter(
            Account.email == email,
            Account.is_active.is_(True),
            Account.is_deleted.is_(False),
        )
        .first()
    )
    if account is None:
        raise AccountNotFoundError("No active account found for this email.")
    account_id = account.id

    for attempt in range(1, MAX_ISSUE_ATTEMPTS + 1):
        code = generate_reset_code(settings.RESET_CODE_LENGTH)
        account.reset_code = code
        account.reset_code_expires_at = _utcnow() + timedelta(
            minutes=settings.RESET_CODE_EXPIRE_MINUTES
        )
        try:
            session.commit()
            break
        except IntegrityError:
            session.rollback()
            logger.warning(
                "Reset code collision; regenerating",
                extra={"account_id": account_id, "attempt": attempt},
            )
    else:
        raise RuntimeError("Could not allocate a unique reset code.")

    try:
        send_reset_code(email, code, settings)
    except MailDeliveryError as e:
        logger.error(
            "Reset code delivery failed",
            extra={"account_id": account_id, "reason": e.message[:200]},
        )
        return ResetOutcome(success=False, reason=REASON_DELIVERY_FAILED)

    logger.info("Reset code issued", extra={"account_id": account_id})
    return ResetOutcome(success=True, reason=REASON_CODE_SENT)


def validate_reset_code(
    session: Session, code: str, email: str | None = None
) -> ResetOutcome:
    """
    Check `code` against the stored, unexpired codes. Read-only: the code stays valid.

    Raises InvalidInputError when the code is empty; a wrong or expired code is a
    soft failure.
    """
    code = (code or "").strip()
    if not code:
        raise InvalidInputError("otp is required.")

    match = (
        session.query(Account.id)
        .filter(*_live_code_conditions(code, _utcnow(), email))
        .first()
    )
    if match is None:
        logger.info("Reset code rejected", extra={"outcome": "invalid_or_expired"})
        return ResetOutcome(success=False, reason=REASON_CODE_INVALID)
    return ResetOutcome(success=True, reason=REASON_CODE_VALID)


def reset_password(
    session: Session, code: str, new_password: str, email: str | None = None
) -> ResetOutcome:
    """
    Set a new password for the account holding `code` and clear the code.

    Match, password write and code clearing happen in one UPDATE, so of two
    concurrent resets with the same code at most one succeeds.
    """
    code = (code or "").strip()
    if not code or not new_password:
        raise InvalidInputError("code and newPassword are required.")

    new_hash = hash_password(new_password)
    stmt = (
        update(Account)
        .where(*_live_code_conditions(code, _utcnow(), email))
        .values(password_hash=new_hash, reset_code=None, reset_code_expires_at=None)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount != 1:
        session.rollback()
        logger.info("Password reset rejected", extra={"outcome": "invalid_or_expired"})
        return ResetOutcome(success=False, reason=REASON_CODE_INVALID)

    session.commit()
    logger.info("Password reset completed", extra={"outcome": "success"})
    return ResetOutcome(success=True, reason=REASON_PASSWORD_RESET)
