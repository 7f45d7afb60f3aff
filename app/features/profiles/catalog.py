"""
Static catalogs used by the profile resolver and the seed script.

- PERMISSION_NAME_MAP: named capabilities that are really object grants
- SENSITIVE_FIELDS: fields that default to no access when no row exists
- DEFAULT_PROFILES: the profiles every new organization starts with
"""
from typing import Dict, Tuple

from app.features.profiles.models import ObjectAction, ObjectType


# permission name -> (object type, capability checked on that object type)
PERMISSION_NAME_MAP: Dict[str, Tuple[ObjectType, ObjectAction]] = {
    # Properties
    "canViewAllProperties": (ObjectType.PROPERTY, ObjectAction.VIEW_ALL),
    "canCreateProperties": (ObjectType.PROPERTY, ObjectAction.CREATE),
    "canEditProperties": (ObjectType.PROPERTY, ObjectAction.EDIT),
    "canDeleteProperties": (ObjectType.PROPERTY, ObjectAction.DELETE),
    # Units
    "canViewAllUnits": (ObjectType.UNIT, ObjectAction.VIEW_ALL),
    "canCreateUnits": (ObjectType.UNIT, ObjectAction.CREATE),
    "canEditUnits": (ObjectType.UNIT, ObjectAction.EDIT),
    "canDeleteUnits": (ObjectType.UNIT, ObjectAction.DELETE),
    # Tenants
    "canViewAllTenants": (ObjectType.TENANT, ObjectAction.VIEW_ALL),
    "canCreateTenants": (ObjectType.TENANT, ObjectAction.CREATE),
    "canEditTenants": (ObjectType.TENANT, ObjectAction.EDIT),
    "canDeleteTenants": (ObjectType.TENANT, ObjectAction.DELETE),
    # Leases
    "canViewAllLeases": (ObjectType.LEASE, ObjectAction.VIEW_ALL),
    "canCreateLeases": (ObjectType.LEASE, ObjectAction.CREATE),
    "canEditLeases": (ObjectType.LEASE, ObjectAction.EDIT),
    "canDeleteLeases": (ObjectType.LEASE, ObjectAction.DELETE),
    # Payments
    "canViewAllPayments": (ObjectType.PAYMENT, ObjectAction.VIEW_ALL),
    "canCreatePayments": (ObjectType.PAYMENT, ObjectAction.CREATE),
    "canEditPayments": (ObjectType.PAYMENT, ObjectAction.EDIT),
    "canDeletePayments": (ObjectType.PAYMENT, ObjectAction.DELETE),
    # Tasks
    "canViewAllTasks": (ObjectType.TASK, ObjectAction.VIEW_ALL),
    "canCreateTasks": (ObjectType.TASK, ObjectAction.CREATE),
    "canEditTasks": (ObjectType.TASK, ObjectAction.EDIT),
    "canDeleteTasks": (ObjectType.TASK, ObjectAction.DELETE),
    # Messages
    "canSendMessages": (ObjectType.MESSAGE, ObjectAction.CREATE),
    "canViewAllMessages": (ObjectType.MESSAGE, ObjectAction.VIEW_ALL),
    # Accounting
    "canViewAccounting": (ObjectType.JOURNAL_ENTRY, ObjectAction.READ),
    "canCreateJournalEntries": (ObjectType.JOURNAL_ENTRY, ObjectAction.CREATE),
    "canEditJournalEntries": (ObjectType.JOURNAL_ENTRY, ObjectAction.EDIT),
    # Users
    "canViewAllUsers": (ObjectType.USER, ObjectAction.VIEW_ALL),
    "canCreateUsers": (ObjectType.USER, ObjectAction.CREATE),
    "canEditUsers": (ObjectType.USER, ObjectAction.EDIT),
    "canDeleteUsers": (ObjectType.USER, ObjectAction.DELETE),
    # Organization
    "canViewSettings": (ObjectType.ORGANIZATION, ObjectAction.READ),
    # Profiles
    "canManageProfiles": (ObjectType.PROFILE, ObjectAction.EDIT),
    "canCreateProfiles": (ObjectType.PROFILE, ObjectAction.CREATE),
    "canEditProfiles": (ObjectType.PROFILE, ObjectAction.EDIT),
    "canDeleteProfiles": (ObjectType.PROFILE, ObjectAction.DELETE),
    # Reports
    "canViewReports": (ObjectType.REPORT, ObjectAction.READ),
    "canCreateReports": (ObjectType.REPORT, ObjectAction.CREATE),
    # Activities
    "canViewActivities": (ObjectType.ACTIVITY, ObjectAction.READ),
}


SENSITIVE_FIELDS: Dict[ObjectType, frozenset] = {
    ObjectType.TENANT: frozenset({"id_number", "bank_account", "date_of_birth", "monthly_income"}),
    ObjectType.USER: frozenset({"phone", "bank_account"}),
    ObjectType.PAYMENT: frozenset({"bank_reference", "card_last4"}),
    ObjectType.LEASE: frozenset({"deposit_account"}),
}


def is_sensitive_field(object_type: ObjectType, field_name: str) -> bool:
    return field_name in SENSITIVE_FIELDS.get(object_type, frozenset())


def _grant(create=False, read=False, edit=False, delete=False, view_all=False) -> Dict[str, bool]:
    return {
        "can_create": create,
        "can_read": read,
        "can_edit": edit,
        "can_delete": delete,
        "can_view_all": view_all,
    }


FULL = _grant(True, True, True, True, True)
READ_ALL = _grant(read=True, view_all=True)
READ_OWN = _grant(read=True)
WRITE_ALL = _grant(create=True, read=True, edit=True, view_all=True)
NONE = _grant()


# name -> (display name, description, grants per object type)
DEFAULT_PROFILES = {
    "owner": (
        "Owner",
        "Full access to the portfolio",
        {
            ObjectType.PROPERTY: FULL,
            ObjectType.UNIT: FULL,
            ObjectType.TENANT: FULL,
            ObjectType.LEASE: FULL,
            ObjectType.PAYMENT: FULL,
            ObjectType.TASK: FULL,
            ObjectType.MESSAGE: FULL,
            ObjectType.JOURNAL_ENTRY: FULL,
            ObjectType.USER: FULL,
            ObjectType.ORGANIZATION: READ_OWN,
            ObjectType.PROFILE: FULL,
        },
    ),
    "accountant": (
        "Accountant",
        "Access to financial data",
        {
            ObjectType.PROPERTY: READ_ALL,
            ObjectType.UNIT: READ_ALL,
            ObjectType.TENANT: READ_ALL,
            ObjectType.LEASE: READ_ALL,
            ObjectType.PAYMENT: FULL,
            ObjectType.TASK: WRITE_ALL,
            ObjectType.MESSAGE: _grant(create=True, read=True, view_all=True),
            ObjectType.JOURNAL_ENTRY: FULL,
            ObjectType.USER: NONE,
            ObjectType.ORGANIZATION: READ_OWN,
            ObjectType.PROFILE: NONE,
        },
    ),
    "agent": (
        "Agent",
        "Day-to-day operational access",
        {
            ObjectType.PROPERTY: WRITE_ALL,
            ObjectType.UNIT: WRITE_ALL,
            ObjectType.TENANT: WRITE_ALL,
            ObjectType.LEASE: WRITE_ALL,
            ObjectType.PAYMENT: WRITE_ALL,
            ObjectType.TASK: WRITE_ALL,
            ObjectType.MESSAGE: FULL,
            ObjectType.JOURNAL_ENTRY: READ_ALL,
            ObjectType.USER: NONE,
            ObjectType.ORGANIZATION: READ_OWN,
            ObjectType.PROFILE: NONE,
        },
    ),
    "viewer": (
        "Viewer",
        "Read-only access",
        {
            ObjectType.PROPERTY: READ_ALL,
            ObjectType.UNIT: READ_ALL,
            ObjectType.TENANT: READ_ALL,
            ObjectType.LEASE: READ_ALL,
            ObjectType.PAYMENT: READ_ALL,
            ObjectType.TASK: READ_ALL,
            ObjectType.MESSAGE: READ_ALL,
            ObjectType.JOURNAL_ENTRY: READ_ALL,
            ObjectType.USER: NONE,
            ObjectType.ORGANIZATION: READ_OWN,
            ObjectType.PROFILE: NONE,
        },
    ),
}
