"""
Button and navigation models.

Buttons and navigation items are UI affordances whose enabled/visible state
is derived from object permissions, and can be pinned per profile (buttons,
navigation) or per organization (navigation) with override rows.
"""
import enum
from sqlalchemy import String, Boolean, ForeignKey, Integer, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_ulid
from app.features.profiles.models import ObjectType, ObjectAction


class ButtonAction(str, enum.Enum):
    """Verb a button performs. Several verbs share one object capability."""
    CREATE = "create"
    READ = "read"
    VIEW = "view"
    EDIT = "edit"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    IMPORT = "import"
    PRINT = "print"
    CUSTOM = "custom"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# ============================================================================
# Buttons
# ============================================================================

class ButtonDefinition(Base, TimestampMixin):
    """Catalog entry for one button of the UI."""
    __tablename__ = "button_definitions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    object_type: Mapped[ObjectType] = mapped_column(
        SQLEnum(ObjectType, name="button_object_type", values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    action: Mapped[ButtonAction] = mapped_column(
        SQLEnum(ButtonAction, name="button_action", values_callable=_enum_values),
        nullable=False,
    )
    # Button is only effective when the organization's plan enables this feature
    required_feature: Mapped[str | None] = mapped_column(String(100), nullable=True)

    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    variant: Mapped[str | None] = mapped_column(String(20), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<ButtonDefinition(key={self.key!r}, object_type={self.object_type}, action={self.action})>"


class ProfileButtonPermission(Base, TimestampMixin):
    """
    Enabled/visible state of a button for a profile.

    Rows with is_override set were written by an administrator and are never
    touched by synchronization; all other rows mirror the object permission.
    """
    __tablename__ = "profile_button_permissions"

    profile_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    button_key: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("button_definitions.key", ondelete="CASCADE"),
        primary_key=True,
    )

    is_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    custom_label: Mapped[str | None] = mapped_column(String(255), nullable=True)
    custom_icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_override: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ProfileButtonPermission(profile_id={self.profile_id}, button={self.button_key!r}, "
            f"enabled={self.is_enabled}, override={self.is_override})>"
        )


# ============================================================================
# Navigation
# ============================================================================

class NavigationItem(Base, TimestampMixin):
    """
    Entry of the navigation menu.

    parent_key points at another item's key; the parent graph is kept acyclic
    by the navigation service.
    """
    __tablename__ = "navigation_items"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    href: Mapped[str] = mapped_column(String(500), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    parent_key: Mapped[str | None] = mapped_column(
        String(100),
        ForeignKey("navigation_items.key", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Gates, all optional
    required_feature: Mapped[str | None] = mapped_column(String(100), nullable=True)
    required_permission: Mapped[str | None] = mapped_column(String(100), nullable=True)
    required_object_type: Mapped[ObjectType | None] = mapped_column(
        SQLEnum(ObjectType, name="navigation_object_type", values_callable=_enum_values),
        nullable=True,
    )
    required_object_action: Mapped[ObjectAction] = mapped_column(
        SQLEnum(ObjectAction, name="navigation_object_action", values_callable=_enum_values),
        default=ObjectAction.READ,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_system_item: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<NavigationItem(key={self.key!r}, parent={self.parent_key!r})>"


class ProfileNavigationItem(Base, TimestampMixin):
    """Profile-level override of a navigation item."""
    __tablename__ = "profile_navigation_items"

    profile_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    navigation_key: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("navigation_items.key", ondelete="CASCADE"),
        primary_key=True,
    )

    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    custom_sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)


class OrganizationNavigationItem(Base, TimestampMixin):
    """Organization-level override of a navigation item. Beats the profile row."""
    __tablename__ = "organization_navigation_items"

    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        primary_key=True,
    )
    navigation_key: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("navigation_items.key", ondelete="CASCADE"),
        primary_key=True,
    )

    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    custom_sort_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
