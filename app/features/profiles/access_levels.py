"""
Pure derivations between capability booleans and access-level labels.

Nothing here touches the database. derive_access_level is re-run every time
a boolean changes, so a stored label is only as fresh as the last write that
went through the profile service.
"""
from dataclasses import dataclass, asdict
from typing import Dict

from app.features.profiles.models import AccessLevel, FieldAccessLevel, ObjectAction


ACCESS_LEVEL_ORDER = [AccessLevel.NONE, AccessLevel.READ, AccessLevel.READ_WRITE, AccessLevel.ALL]


@dataclass(frozen=True)
class ObjectCapabilities:
    """Resolved object capability set for one profile and object type."""
    can_create: bool = False
    can_read: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_view_all: bool = False

    @property
    def access_level(self) -> AccessLevel:
        return derive_access_level(
            self.can_create, self.can_read, self.can_edit, self.can_delete, self.can_view_all
        )

    def allows(self, action: ObjectAction) -> bool:
        return getattr(self, ACTION_FIELDS[action])

    def as_dict(self) -> Dict[str, bool]:
        return asdict(self)


NO_ACCESS = ObjectCapabilities()
READ_ONLY = ObjectCapabilities(can_read=True)

ACTION_FIELDS: Dict[ObjectAction, str] = {
    ObjectAction.CREATE: "can_create",
    ObjectAction.READ: "can_read",
    ObjectAction.EDIT: "can_edit",
    ObjectAction.DELETE: "can_delete",
    ObjectAction.VIEW_ALL: "can_view_all",
}


def derive_access_level(
    can_create: bool,
    can_read: bool,
    can_edit: bool,
    can_delete: bool,
    can_view_all: bool = False,
) -> AccessLevel:
    """
    Map a boolean capability set to its access-level label.

    - no CRUD boolean set                     -> None
    - read only                               -> Read
    - read + create + edit, no delete/viewall -> ReadWrite
    - everything including view-all           -> All
    - any other combination                   -> ReadWrite
    """
    if not (can_create or can_read or can_edit or can_delete):
        return AccessLevel.NONE
    if can_read and not (can_create or can_edit or can_delete):
        return AccessLevel.READ
    if can_read and can_create and can_edit and can_delete and can_view_all:
        return AccessLevel.ALL
    # read+create+edit without delete, and every custom mix, share the label
    return AccessLevel.READ_WRITE


def derive_field_access_level(can_read: bool, can_edit: bool) -> FieldAccessLevel:
    if can_read and can_edit:
        return FieldAccessLevel.READ_WRITE
    if can_read:
        return FieldAccessLevel.READ
    return FieldAccessLevel.NONE


def has_access_level_or_higher(level: AccessLevel, minimum: AccessLevel) -> bool:
    """True if level is at least as permissive as minimum."""
    return ACCESS_LEVEL_ORDER.index(AccessLevel(level)) >= ACCESS_LEVEL_ORDER.index(AccessLevel(minimum))


def most_permissive(levels) -> AccessLevel:
    best = AccessLevel.NONE
    for level in levels:
        if has_access_level_or_higher(level, best):
            best = AccessLevel(level)
    return best
