"""Account endpoints: admin CRUD over accounts plus self-service profile and password."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_user, require_admin
from app.core.database import get_db
from app.core.errors import RecordNotFoundError, ValidationFailedError
from app.schemas.account import (
    AccountCreate,
    AccountPartialUpdate,
    AccountProfileUpdate,
    AccountRead,
    AccountUpdate,
    BulkCreateRequest,
    BulkUpdateRequest,
    ChangePasswordRequest,
    CountRequest,
    FindAllRequest,
    IdsRequest,
)
from app.schemas.auth import CurrentUser
from app.schemas.common import ApiResponse, failure, success
from app.services import accounts as account_service
from app.services.accounts import AccountConflictError, InvalidFilterError

router = APIRouter()

AdminUser = Annotated[CurrentUser, Depends(require_admin)]
AuthUser = Annotated[CurrentUser, Depends(get_current_user)]
DbSession = Annotated[Session, Depends(get_db)]


@router.post("/create", response_model=ApiResponse)
def add_account(body: AccountCreate, admin: AdminUser, db: DbSession) -> ApiResponse:
    try:
        account = account_service.create_account(db, body.model_dump(), added_by=admin.id)
    except AccountConflictError as e:
        raise ValidationFailedError(e.message) from e
    return success(data=AccountRead.model_validate(account))


@router.post("/add-bulk", response_model=ApiResponse)
def bulk_insert_accounts(body: BulkCreateRequest, admin: AdminUser, db: DbSession) -> ApiResponse:
    try:
        created = account_service.create_accounts(
            db, [item.model_dump() for item in body.data], added_by=admin.id
        )
    except AccountConflictError as e:
        raise ValidationFailedError(e.message) from e
    return success(data={"count": len(created)})


@router.post("/list", response_model=ApiResponse)
def find_all_accounts(body: FindAllRequest, admin: AdminUser, db: DbSession) -> ApiResponse:
    """
    List accounts other than the caller's, filtered by `query` (field equality).

    With is_count_only, returns only {total_records} and 404 when nothing matches.
    """
    try:
        if body.is_count_only:
            total = account_service.count_accounts(db, body.query, exclude_id=admin.id)
            if not total:
                raise RecordNotFoundError()
            return success(data={"total_records": total})
        page = account_service.paginate_accounts(
            db,
            body.query,
            page=body.options.page,
            limit=body.options.limit,
            sort=body.options.sort,
            exclude_id=admin.id,
        )
    except InvalidFilterError as e:
        raise ValidationFailedError(e.message) from e
    return success(data=page)


@router.post("/count", response_model=ApiResponse)
def get_account_count(body: CountRequest, _admin: AdminUser, db: DbSession) -> ApiResponse:
    try:
        total = account_service.count_accounts(db, body.where)
    except InvalidFilterError as e:
        raise ValidationFailedError(e.message) from e
    if not total:
        raise RecordNotFoundError()
    return success(data={"count": total})


@router.get("/me", response_model=ApiResponse)
def get_logged_in_account(current_user: AuthUser, db: DbSession) -> ApiResponse:
    account = account_service.find_account(db, current_user.id)
    if account is None:
        raise RecordNotFoundError()
    return success(data=AccountRead.model_validate(account))


@router.put("/change-password", response_model=ApiResponse)
def put_change_password(
    body: ChangePasswordRequest, current_user: AuthUser, db: DbSession
) -> ApiResponse:
    """Wrong old password is a soft failure (FAILURE with HTTP 200)."""
    changed = account_service.change_password(
        db, current_user.id, body.old_password, body.new_password
    )
    if not changed:
        return failure(message="Incorrect old password.")
    return success(message="Password changed successfully.")


@router.put("/update-profile", response_model=ApiResponse)
def update_profile(
    body: AccountProfileUpdate, current_user: AuthUser, db: DbSession
) -> ApiResponse:
    try:
        account = account_service.update_account(
            db,
            current_user.id,
            body.model_dump(exclude_unset=True),
            updated_by=current_user.id,
        )
    except AccountConflictError as e:
        raise ValidationFailedError(e.message) from e
    if account is None:
        raise RecordNotFoundError()
    return success(data=AccountRead.model_validate(account))


@router.put("/update-bulk", response_model=ApiResponse)
def bulk_update_accounts(body: BulkUpdateRequest, admin: AdminUser, db: DbSession) -> ApiResponse:
    try:
        count = account_service.update_accounts(
            db,
            body.filter,
            body.data.model_dump(exclude_unset=True),
            updated_by=admin.id,
            exclude_id=admin.id,
        )
    except (AccountConflictError, InvalidFilterError) as e:
        raise ValidationFailedError(e.message) from e
    if not count:
        raise RecordNotFoundError()
    return success(data={"count": count})


@router.put("/update/{account_id}", response_model=ApiResponse)
def update_account(
    account_id: int, body: AccountUpdate, admin: AdminUser, db: DbSession
) -> ApiResponse:
    return _write_account(db, account_id, body.model_dump(), admin)


@router.put("/partial-update/{account_id}", response_model=ApiResponse)
def partial_update_account(
    account_id: int, body: AccountPartialUpdate, admin: AdminUser, db: DbSession
) -> ApiResponse:
    return _write_account(db, account_id, body.model_dump(exclude_unset=True), admin)


def _write_account(
    db: Session, account_id: int, values: dict, admin: CurrentUser
) -> ApiResponse:
    try:
        account = account_service.update_account(
            db, account_id, values, updated_by=admin.id, exclude_id=admin.id
        )
    except AccountConflictError as e:
        raise ValidationFailedError(e.message) from e
    if account is None:
        raise RecordNotFoundError()
    return success(data=AccountRead.model_validate(account))


@router.put("/soft-delete/{account_id}", response_model=ApiResponse)
def soft_delete_account(account_id: int, admin: AdminUser, db: DbSession) -> ApiResponse:
    count = account_service.soft_delete_accounts(
        db, [account_id], updated_by=admin.id, exclude_id=admin.id
    )
    if not count:
        raise RecordNotFoundError()
    return success(data={"count": count})


@router.put("/soft-delete-many", response_model=ApiResponse)
def soft_delete_many_accounts(body: IdsRequest, admin: AdminUser, db: DbSession) -> ApiResponse:
    count = account_service.soft_delete_accounts(
        db, body.ids, updated_by=admin.id, exclude_id=admin.id
    )
    if not count:
        raise RecordNotFoundError()
    return success(data={"count": count})


@router.delete("/delete/{account_id}", response_model=ApiResponse)
def delete_account(
    account_id: int, admin: AdminUser, db: DbSession, is_warning: bool = False
) -> ApiResponse:
    """Hard delete. With ?is_warning=true, only report how many rows would be deleted."""
    count = account_service.delete_accounts(
        db, [account_id], exclude_id=admin.id, dry_run=is_warning
    )
    if not count:
        raise RecordNotFoundError()
    return success(data={"count": count})


@router.post("/delete-many", response_model=ApiResponse)
def delete_many_accounts(body: IdsRequest, admin: AdminUser, db: DbSession) -> ApiResponse:
    count = account_service.delete_accounts(
        db, body.ids, exclude_id=admin.id, dry_run=body.is_warning
    )
    if not count:
        raise RecordNotFoundError()
    return success(data={"count": count})


@router.get("/{account_id}", response_model=ApiResponse)
def get_account(account_id: int, _admin: AdminUser, db: DbSession) -> ApiResponse:
    account = account_service.find_account(db, account_id)
    if account is None:
        raise RecordNotFoundError()
    return success(data=AccountRead.model_validate(account))
