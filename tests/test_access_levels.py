import pytest

from app.features.profiles.access_levels import (
    ObjectCapabilities,
    derive_access_level,
    derive_field_access_level,
    has_access_level_or_higher,
    most_permissive,
)
from app.features.profiles.models import AccessLevel, FieldAccessLevel, ObjectAction


@pytest.mark.parametrize(
    "flags, expected",
    [
        ((False, False, False, False, False), AccessLevel.NONE),
        ((False, False, False, False, True), AccessLevel.NONE),
        ((False, True, False, False, False), AccessLevel.READ),
        ((False, True, False, False, True), AccessLevel.READ),
        ((True, True, True, False, False), AccessLevel.READ_WRITE),
        ((True, True, True, False, True), AccessLevel.READ_WRITE),
        ((True, True, True, True, False), AccessLevel.READ_WRITE),
        ((True, True, True, True, True), AccessLevel.ALL),
        ((False, True, True, False, False), AccessLevel.READ_WRITE),
        ((True, False, False, False, False), AccessLevel.READ_WRITE),
    ],
)
def test_derive_access_level(flags, expected):
    assert derive_access_level(*flags) == expected


def test_field_access_level():
    assert derive_field_access_level(False, False) == FieldAccessLevel.NONE
    assert derive_field_access_level(True, False) == FieldAccessLevel.READ
    assert derive_field_access_level(True, True) == FieldAccessLevel.READ_WRITE


def test_capabilities_allow_each_action():
    capabilities = ObjectCapabilities(can_read=True, can_edit=True)
    assert capabilities.allows(ObjectAction.READ)
    assert capabilities.allows(ObjectAction.EDIT)
    assert not capabilities.allows(ObjectAction.CREATE)
    assert not capabilities.allows(ObjectAction.DELETE)
    assert not capabilities.allows(ObjectAction.VIEW_ALL)
    assert capabilities.access_level == AccessLevel.READ_WRITE


def test_level_ordering():
    assert has_access_level_or_higher(AccessLevel.ALL, AccessLevel.READ)
    assert has_access_level_or_higher(AccessLevel.READ, AccessLevel.READ)
    assert not has_access_level_or_higher(AccessLevel.READ, AccessLevel.READ_WRITE)
    assert most_permissive([AccessLevel.READ, AccessLevel.NONE, AccessLevel.READ_WRITE]) == AccessLevel.READ_WRITE
    assert most_permissive([]) == AccessLevel.NONE
