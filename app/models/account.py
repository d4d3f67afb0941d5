"""ORM model for accounts: identity, credentials and the pending password-reset code."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from app.models.base import Base


class Account(Base):
    """
    Account used for login, role-based access and password reset.

    role: 'admin' or 'user'

    reset_code / reset_code_expires_at hold the single live reset code, if any.
    Both are NULL when no reset is pending; issuing a new code overwrites them and
    a successful reset clears them. reset_code is unique so a code identifies at
    most one account.
    """

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    mobile_no = Column(String(32), nullable=True)
    role = Column(String(32), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    reset_code = Column(String(32), nullable=True, unique=True, index=True)
    reset_code_expires_at = Column(DateTime(timezone=True), nullable=True)
    added_by = Column(Integer, nullable=True)
    updated_by = Column(Integer, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    @property
    def is_usable(self) -> bool:
        """Active and not soft-deleted: may log in and reset its password."""
        return bool(self.is_active) and not self.is_deleted
