"""Account model for students and administrators."""

import enum
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import BigInteger, Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from certauth.database import Base

if TYPE_CHECKING:
    from certauth.models.email_verification_token import EmailVerificationToken
    from certauth.models.passkey_credential import PasskeyCredential
    from certauth.models.recovery_code import RecoveryCode


class AccountStatus(str, enum.Enum):
    """Registration lifecycle. Only ACTIVE accounts may obtain a session."""

    PENDING_EMAIL = "PENDING_EMAIL"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"


class AccountRole:
    """Role constants carried in session tokens."""

    STUDENT = "student"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    ADMIN_ROLES = frozenset({ADMIN, SUPER_ADMIN})


class Account(Base):
    """Identity record with password, TOTP and passkey state."""

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4())
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)  # stored lower-case
    password_hash: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str | None] = mapped_column(String(255))
    student_id_number: Mapped[str | None] = mapped_column(String(100), unique=True)
    course_name: Mapped[str | None] = mapped_column(String(100))
    year: Mapped[str | None] = mapped_column(String(10))
    role: Mapped[str] = mapped_column(String(20), default=AccountRole.STUDENT)
    status: Mapped[AccountStatus] = mapped_column(
        Enum(AccountStatus, native_enum=False, length=32),
        default=AccountStatus.PENDING_EMAIL,
        index=True,
    )
    totp_secret_encrypted: Mapped[str | None] = mapped_column(String(255))
    totp_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    totp_last_step: Mapped[int | None] = mapped_column(BigInteger)  # last step accepted at login
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    passkeys: Mapped[list["PasskeyCredential"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )
    recovery_codes: Mapped[list["RecoveryCode"]] = relationship(
        back_populates="account", cascade="all, delete-orphan", order_by="RecoveryCode.position"
    )
    email_verification_tokens: Mapped[list["EmailVerificationToken"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role in AccountRole.ADMIN_ROLES

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def __repr__(self) -> str:
        return f"<Account(id={self.id}, email='{self.email}', status={self.status.value})>"
