"""Passkey (WebAuthn) credential model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from certauth.database import Base

if TYPE_CHECKING:
    from certauth.models.account import Account


class PasskeyCredential(Base):
    """A registered authenticator. The credential id is the primary key."""

    __tablename__ = "passkey_credentials"

    id: Mapped[str] = mapped_column(Text, primary_key=True)  # base64url credential id
    account_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), index=True
    )
    public_key: Mapped[str] = mapped_column(Text)  # base64 COSE public key
    counter: Mapped[int] = mapped_column(BigInteger, default=0)
    device_type: Mapped[str] = mapped_column(String(20), default="single_device")
    backed_up: Mapped[bool] = mapped_column(Boolean, default=False)
    transports: Mapped[list[str]] = mapped_column(JSON, default=list)
    friendly_name: Mapped[str] = mapped_column(String(100), default="My Passkey")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    account: Mapped["Account"] = relationship(back_populates="passkeys")

    def __repr__(self) -> str:
        return f"<PasskeyCredential(id={self.id[:8]}..., account_id={self.account_id})>"
