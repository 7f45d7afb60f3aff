"""
Profile, object permission, field permission and action permission models.

A profile is a named bundle of grants, analogous to a role. Each user has at
most one profile. Object permissions carry four authoritative CRUD booleans
plus view-all; access_level is a derived label recomputed on every write.
"""
import enum
from sqlalchemy import String, Boolean, ForeignKey, Text, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database.base import Base, TimestampMixin, generate_ulid


class ObjectType(str, enum.Enum):
    """Closed set of domain entity classes subject to permissioning."""
    PROPERTY = "Property"
    UNIT = "Unit"
    TENANT = "Tenant"
    LEASE = "Lease"
    PAYMENT = "Payment"
    TASK = "Task"
    MESSAGE = "Message"
    JOURNAL_ENTRY = "JournalEntry"
    USER = "User"
    ORGANIZATION = "Organization"
    REPORT = "Report"
    ACTIVITY = "Activity"
    PROFILE = "Profile"


class ObjectAction(str, enum.Enum):
    """Canonical CRUD verbs checked by canAccessObject."""
    CREATE = "create"
    READ = "read"
    EDIT = "edit"
    DELETE = "delete"
    VIEW_ALL = "view_all"


class AccessLevel(str, enum.Enum):
    """Derived label summarizing an object capability set."""
    NONE = "None"
    READ = "Read"
    READ_WRITE = "ReadWrite"
    ALL = "All"


class FieldAccessLevel(str, enum.Enum):
    """Derived label summarizing a field capability set."""
    NONE = "None"
    READ = "Read"
    READ_WRITE = "ReadWrite"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Profile(Base, TimestampMixin):
    """
    Profile model.

    organization_id is null for global profiles (seeded system profiles
    shared by every organization). System profiles cannot be deleted;
    deleting a custom profile cascades its permission rows.
    """
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_system_profile: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )

    # Relationships
    object_permissions: Mapped[list["ObjectPermission"]] = relationship(
        "ObjectPermission",
        back_populates="profile",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ObjectPermission.object_type",
    )

    field_permissions: Mapped[list["FieldPermission"]] = relationship(
        "FieldPermission",
        back_populates="profile",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    action_permissions: Mapped[list["ActionPermission"]] = relationship(
        "ActionPermission",
        back_populates="profile",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_profiles_organization_name"),
    )

    @property
    def is_global(self) -> bool:
        return self.organization_id is None

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, name={self.name!r}, org_id={self.organization_id})>"


class ObjectPermission(Base, TimestampMixin):
    """
    Object-level grant of a profile on one object type.

    The booleans are the source of truth. access_level is rewritten from them
    by the profile service on every write.
    """
    __tablename__ = "profile_object_permissions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    profile_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    object_type: Mapped[ObjectType] = mapped_column(
        SQLEnum(ObjectType, name="object_type", values_callable=_enum_values),
        nullable=False,
    )

    access_level: Mapped[AccessLevel] = mapped_column(
        SQLEnum(AccessLevel, name="access_level", values_callable=_enum_values),
        default=AccessLevel.NONE,
        nullable=False,
    )
    can_create: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_edit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_delete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_view_all: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    profile: Mapped["Profile"] = relationship("Profile", back_populates="object_permissions")

    __table_args__ = (
        UniqueConstraint("profile_id", "object_type", name="uq_object_permissions_profile_object"),
    )

    def __repr__(self) -> str:
        return (
            f"<ObjectPermission(profile_id={self.profile_id}, object_type={self.object_type}, "
            f"access_level={self.access_level})>"
        )


class FieldPermission(Base, TimestampMixin):
    """Field-level grant of a profile on one field of one object type."""
    __tablename__ = "profile_field_permissions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    profile_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    object_type: Mapped[ObjectType] = mapped_column(
        SQLEnum(ObjectType, name="object_type", values_callable=_enum_values),
        nullable=False,
    )
    field_name: Mapped[str] = mapped_column(String(100), nullable=False)

    access_level: Mapped[FieldAccessLevel] = mapped_column(
        SQLEnum(FieldAccessLevel, name="field_access_level", values_callable=_enum_values),
        default=FieldAccessLevel.NONE,
        nullable=False,
    )
    can_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_edit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_sensitive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    profile: Mapped["Profile"] = relationship("Profile", back_populates="field_permissions")

    __table_args__ = (
        UniqueConstraint(
            "profile_id", "object_type", "field_name",
            name="uq_field_permissions_profile_object_field"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<FieldPermission(profile_id={self.profile_id}, "
            f"field={self.object_type}.{self.field_name}, access_level={self.access_level})>"
        )


class ActionPermission(Base, TimestampMixin):
    """
    Named capability of a profile (e.g. "canManageProfiles", "canExportReports").

    Checked by canPerformAction. A row here always beats the object-type
    mapping of the same permission name.
    """
    __tablename__ = "profile_action_permissions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    profile_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    permission_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    is_granted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    profile: Mapped["Profile"] = relationship("Profile", back_populates="action_permissions")

    __table_args__ = (
        UniqueConstraint("profile_id", "permission_name", name="uq_action_permissions_profile_name"),
    )

    def __repr__(self) -> str:
        return f"<ActionPermission(profile_id={self.profile_id}, name={self.permission_name!r}, granted={self.is_granted})>"
