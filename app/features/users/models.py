"""
Local user rows linked to Appwrite accounts.
"""
from datetime import datetime
from sqlalchemy import String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_ulid


class User(Base, TimestampMixin):
    """
    An actor of access decisions.

    Identity lives in Appwrite; this row carries what the engine needs: the
    organization the user works in and the profile bundling their
    permissions.
    """
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    appwrite_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Inactive users are rejected at authentication and not counted against the users quota
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Platform super administrator: bypasses profile checks, never plan limits
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    # Null profile falls under config.NO_PROFILE_POLICY
    profile_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, profile_id={self.profile_id})>"
