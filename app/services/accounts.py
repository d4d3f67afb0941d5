"""Account data access: create, find, paginate, count, update and delete accounts."""

import logging
import math
from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from app.core.security import hash_password, verify_password
from app.models import Account
from app.schemas.account import AccountPage, AccountRead, Paginator

logger = logging.getLogger(__name__)

# Columns usable in equality filters (query / where / filter bodies).
FILTERABLE_FIELDS = frozenset(
    {
        "id",
        "username",
        "email",
        "first_name",
        "last_name",
        "mobile_no",
        "role",
        "is_active",
        "is_deleted",
        "added_by",
        "updated_by",
    }
)
SORTABLE_FIELDS = FILTERABLE_FIELDS | {"created_at", "updated_at"}


class AccountConflictError(Exception):
    """Raised when a write would duplicate a unique username or email."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidFilterError(Exception):
    """Raised when a filter or sort names a field that cannot be queried."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _filtered(
    session: Session, filters: dict[str, Any], exclude_id: int | None = None
) -> Query:
    """Query over accounts matching every (field == value) pair, minus `exclude_id`."""
    unknown = sorted(set(filters) - FILTERABLE_FIELDS)
    if unknown:
        raise InvalidFilterError(f"Unknown filter field(s): {', '.join(unknown)}")
    query = session.query(Account)
    for field, value in filters.items():
        column = getattr(Account, field)
        if value is None:
            query = query.filter(column.is_(None))
            continue
        if field == "email" and isinstance(value, str):
            value = normalize_email(value)
        query = query.filter(column == value)
    if exclude_id is not None:
        query = query.filter(Account.id != exclude_id)
    return query


def _ensure_unique(
    session: Session,
    username: str | None = None,
    email: str | None = None,
    exclude_id: int | None = None,
) -> None:
    checks = (("username", Account.username, username), ("email", Account.email, email))
    for label, column, value in checks:
        if value is None:
            continue
        query = session.query(Account.id).filter(column == value)
        if exclude_id is not None:
            query = query.filter(Account.id != exclude_id)
        if query.first() is not None:
            raise AccountConflictError(f"{label} already exists.")


def _is_unique_violation(error: IntegrityError) -> bool:
    # psycopg2 reports SQLSTATE 23505; sqlite only has the message text.
    if getattr(error.orig, "pgcode", None) == "23505":
        return True
    return "UNIQUE" in str(error.orig).upper()


def _raise_for_integrity(session: Session, error: IntegrityError) -> None:
    session.rollback()
    if _is_unique_violation(error):
        raise AccountConflictError("username or email already exists.") from error
    raise error


def _commit_or_conflict(session: Session) -> None:
    # A concurrent insert can still trip the unique index after _ensure_unique passed.
    try:
        session.commit()
    except IntegrityError as e:
        _raise_for_integrity(session, e)


def authenticate(session: Session, username: str, password: str) -> Account | None:
    """Return the usable account whose username or email is `username` and password matches."""
    handle = username.strip()
    account = (
        session.query(Account)
        .filter(or_(Account.username == handle, Account.email == normalize_email(handle)))
        .first()
    )
    if account is None or not account.is_usable:
        return None
    if not verify_password(password, account.password_hash):
        return None
    return account


def create_account(session: Session, data: dict[str, Any], added_by: int | None = None) -> Account:
    """Insert one account; `data` carries a plain `password` which is hashed here."""
    _ensure_unique(session, username=data["username"], email=data["email"])
    values = dict(data)
    password = values.pop("password")
    account = Account(**values, password_hash=hash_password(password), added_by=added_by)
    session.add(account)
    _commit_or_conflict(session)
    session.refresh(account)
    logger.info("Account created", extra={"account_id": account.id, "added_by": added_by})
    return account


def create_accounts(
    session: Session, items: list[dict[str, Any]], added_by: int | None = None
) -> list[Account]:
    """Insert several accounts in one transaction; any duplicate rejects the whole batch."""
    seen_usernames: set[str] = set()
    seen_emails: set[str] = set()
    for item in items:
        if item["username"] in seen_usernames:
            raise AccountConflictError("username is duplicated in request.")
        if item["email"] in seen_emails:
            raise AccountConflictError("email is duplicated in request.")
        seen_usernames.add(item["username"])
        seen_emails.add(item["email"])
        _ensure_unique(session, username=item["username"], email=item["email"])

    accounts = []
    for item in items:
        values = dict(item)
        password = values.pop("password")
        accounts.append(
            Account(**values, password_hash=hash_password(password), added_by=added_by)
        )
    session.add_all(accounts)
    _commit_or_conflict(session)
    logger.info("Accounts created", extra={"count": len(accounts), "added_by": added_by})
    return accounts


def find_account(session: Session, account_id: int) -> Account | None:
    return session.get(Account, account_id)


def paginate_accounts(
    session: Session,
    filters: dict[str, Any],
    page: int = 1,
    limit: int = 10,
    sort: str = "id",
    exclude_id: int | None = None,
) -> AccountPage:
    """
    One page of accounts matching `filters`, ordered by `sort`.

    sort is a column name; a leading '-' orders descending. Pages are 1-based.
    """
    descending = sort.startswith("-")
    sort_field = sort.lstrip("-")
    if sort_field not in SORTABLE_FIELDS:
        raise InvalidFilterError(f"Cannot sort by {sort_field!r}.")
    query = _filtered(session, filters, exclude_id)
    item_count = query.count()
    column = getattr(Account, sort_field)
    rows = (
        query.order_by(column.desc() if descending else column.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    page_count = math.ceil(item_count / limit)
    has_prev_page = page > 1
    has_next_page = page < page_count
    return AccountPage(
        data=[AccountRead.model_validate(row) for row in rows],
        paginator=Paginator(
            item_count=item_count,
            per_page=limit,
            page_count=page_count,
            current_page=page,
            has_prev_page=has_prev_page,
            has_next_page=has_next_page,
            prev=page - 1 if has_prev_page else None,
            next=page + 1 if has_next_page else None,
        ),
    )


def count_accounts(
    session: Session, filters: dict[str, Any], exclude_id: int | None = None
) -> int:
    return _filtered(session, filters, exclude_id).count()


def update_account(
    session: Session,
    account_id: int,
    values: dict[str, Any],
    updated_by: int | None = None,
    exclude_id: int | None = None,
) -> Account | None:
    """Write `values` onto one account; returns None if it does not exist or is excluded."""
    if exclude_id is not None and account_id == exclude_id:
        return None
    account = session.get(Account, account_id)
    if account is None:
        return None
    _ensure_unique(
        session,
        username=values.get("username"),
        email=values.get("email"),
        exclude_id=account_id,
    )
    for field, value in values.items():
        setattr(account, field, value)
    account.updated_by = updated_by
    _commit_or_conflict(session)
    session.refresh(account)
    return account


def update_accounts(
    session: Session,
    filters: dict[str, Any],
    values: dict[str, Any],
    updated_by: int | None = None,
    exclude_id: int | None = None,
) -> int:
    """Write `values` onto every matching account; returns the number of rows updated."""
    if "username" in values or "email" in values:
        raise AccountConflictError("username and email can only be updated one account at a time.")
    query = _filtered(session, filters, exclude_id)
    try:
        count = query.update({**values, "updated_by": updated_by}, synchronize_session=False)
        session.commit()
    except IntegrityError as e:
        _raise_for_integrity(session, e)
    return count


def soft_delete_accounts(
    session: Session,
    ids: list[int],
    updated_by: int | None = None,
    exclude_id: int | None = None,
) -> int:
    """Flag accounts as deleted; already deleted ones are not counted."""
    query = session.query(Account).filter(Account.id.in_(ids), Account.is_deleted.is_(False))
    if exclude_id is not None:
        query = query.filter(Account.id != exclude_id)
    count = query.update(
        {"is_deleted": True, "updated_by": updated_by}, synchronize_session=False
    )
    session.commit()
    if count:
        logger.info("Accounts soft-deleted", extra={"count": count, "updated_by": updated_by})
    return count


def delete_accounts(
    session: Session,
    ids: list[int],
    exclude_id: int | None = None,
    dry_run: bool = False,
) -> int:
    """Hard-delete accounts by id. With dry_run, only count what would be deleted."""
    query = session.query(Account).filter(Account.id.in_(ids))
    if exclude_id is not None:
        query = query.filter(Account.id != exclude_id)
    if dry_run:
        return query.count()
    count = query.delete(synchronize_session=False)
    session.commit()
    if count:
        logger.info("Accounts deleted", extra={"count": count})
    return count


def change_password(
    session: Session, account_id: int, old_password: str, new_password: str
) -> bool:
    """Replace the password if `old_password` matches. False means the old password was wrong."""
    account = session.get(Account, account_id)
    if account is None or not verify_password(old_password, account.password_hash):
        return False
    account.password_hash = hash_password(new_password)
    account.updated_by = account_id
    session.commit()
    logger.info("Password changed", extra={"account_id": account_id})
    return True
