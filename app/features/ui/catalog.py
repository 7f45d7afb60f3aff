"""
Seed catalog of buttons and navigation items.
"""
from app.features.profiles.models import ObjectType, ObjectAction
from app.features.ui.models import ButtonAction


def _button(key, name, label, object_type, action, icon=None, variant="default", required_feature=None):
    return {
        "key": key,
        "name": name,
        "label": label,
        "object_type": object_type,
        "action": action,
        "icon": icon,
        "variant": variant,
        "required_feature": required_feature,
    }


BUTTON_DEFINITIONS = [
    # Properties
    _button("property.create", "Create property", "New property", ObjectType.PROPERTY, ButtonAction.CREATE, "Plus"),
    _button("property.edit", "Edit property", "Edit", ObjectType.PROPERTY, ButtonAction.EDIT, "Edit", "outline"),
    _button("property.delete", "Delete property", "Delete", ObjectType.PROPERTY, ButtonAction.DELETE, "Trash2", "destructive"),
    _button("property.view", "View property", "View", ObjectType.PROPERTY, ButtonAction.VIEW, "Eye", "ghost"),
    # Units
    _button("unit.create", "Create unit", "New unit", ObjectType.UNIT, ButtonAction.CREATE, "Plus"),
    _button("unit.edit", "Edit unit", "Edit", ObjectType.UNIT, ButtonAction.EDIT, "Edit", "outline"),
    _button("unit.delete", "Delete unit", "Delete", ObjectType.UNIT, ButtonAction.DELETE, "Trash2", "destructive"),
    # Tenants
    _button("tenant.create", "Create tenant", "New tenant", ObjectType.TENANT, ButtonAction.CREATE, "UserPlus"),
    _button("tenant.edit", "Edit tenant", "Edit", ObjectType.TENANT, ButtonAction.EDIT, "Edit", "outline"),
    _button("tenant.delete", "Delete tenant", "Delete", ObjectType.TENANT, ButtonAction.DELETE, "Trash2", "destructive"),
    # Leases
    _button("lease.create", "Create lease", "New lease", ObjectType.LEASE, ButtonAction.CREATE, "FileText"),
    _button("lease.edit", "Edit lease", "Edit", ObjectType.LEASE, ButtonAction.EDIT, "Edit", "outline"),
    _button("lease.delete", "Delete lease", "Delete", ObjectType.LEASE, ButtonAction.DELETE, "Trash2", "destructive"),
    # Payments
    _button("payment.create", "Record payment", "Record payment", ObjectType.PAYMENT, ButtonAction.CREATE, "CreditCard"),
    _button("payment.edit", "Edit payment", "Edit", ObjectType.PAYMENT, ButtonAction.EDIT, "Edit", "outline"),
    _button("payment.delete", "Delete payment", "Delete", ObjectType.PAYMENT, ButtonAction.DELETE, "Trash2", "destructive"),
    _button("payment.export", "Export payments", "Export", ObjectType.PAYMENT, ButtonAction.EXPORT, "Download", "outline",
            required_feature="reports_basic"),
    # Journal entries
    _button("journal.create", "Create journal entry", "New entry", ObjectType.JOURNAL_ENTRY, ButtonAction.CREATE, "Plus",
            required_feature="accounting_basic"),
    _button("journal.edit", "Edit journal entry", "Edit", ObjectType.JOURNAL_ENTRY, ButtonAction.EDIT, "Edit", "outline",
            required_feature="accounting_basic"),
    _button("journal.delete", "Delete journal entry", "Delete", ObjectType.JOURNAL_ENTRY, ButtonAction.DELETE, "Trash2",
            "destructive", required_feature="accounting_basic"),
    _button("journal.validate", "Validate journal entry", "Validate", ObjectType.JOURNAL_ENTRY, ButtonAction.CUSTOM,
            "CheckCircle", required_feature="accounting_basic"),
    # Tasks
    _button("task.create", "Create task", "New task", ObjectType.TASK, ButtonAction.CREATE, "Plus"),
    _button("task.edit", "Edit task", "Edit", ObjectType.TASK, ButtonAction.EDIT, "Edit", "outline"),
    _button("task.delete", "Delete task", "Delete", ObjectType.TASK, ButtonAction.DELETE, "Trash2", "destructive"),
    # Users
    _button("user.create", "Invite user", "Invite user", ObjectType.USER, ButtonAction.CREATE, "UserPlus"),
    _button("user.edit", "Edit user", "Edit", ObjectType.USER, ButtonAction.EDIT, "Edit", "outline"),
    _button("user.delete", "Delete user", "Delete", ObjectType.USER, ButtonAction.DELETE, "Trash2", "destructive"),
]


def _item(key, name, href, sort_order, icon=None, required_feature=None, required_permission=None,
          required_object_type=None, parent_key=None):
    return {
        "key": key,
        "name": name,
        "href": href,
        "icon": icon,
        "sort_order": sort_order,
        "required_feature": required_feature,
        "required_permission": required_permission,
        "required_object_type": required_object_type,
        "required_object_action": ObjectAction.READ,
        "parent_key": parent_key,
        "is_system_item": True,
    }


# Parents are listed before their children
NAVIGATION_ITEMS = [
    _item("dashboard", "Dashboard", "/dashboard", 1, "LayoutDashboard", "dashboard"),
    _item("properties", "Properties", "/properties", 2, "Building2", "properties_management",
          "canViewAllProperties", ObjectType.PROPERTY),
    _item("units", "Units", "/units", 3, "Home", "units_management", "canViewAllUnits", ObjectType.UNIT),
    _item("tenants", "Tenants", "/tenants", 4, "Users", None, "canViewAllTenants", ObjectType.TENANT),
    _item("leases", "Leases", "/leases", 5, "FileText", None, "canViewAllLeases", ObjectType.LEASE),
    _item("payments", "Payments", "/payments", 6, "CreditCard", None, "canViewAllPayments", ObjectType.PAYMENT),
    _item("payments-tenant", "Tenant payments", "/payments?tab=tenant-payments", 1, None, None,
          "canViewAllPayments", ObjectType.PAYMENT, parent_key="payments"),
    _item("payments-owner", "Owner transfers", "/payments?tab=owner-transfers", 2, None, None,
          "canViewAllPayments", ObjectType.PAYMENT, parent_key="payments"),
    _item("accounting", "Accounting", "/accounting", 7, "Calculator", "accounting_basic",
          "canViewAccounting", ObjectType.JOURNAL_ENTRY),
    _item("tasks", "Tasks", "/tasks", 8, "CheckSquare", None, "canViewAllTasks", ObjectType.TASK),
    _item("messages", "Messages", "/messages", 9, "MessageSquare", "messaging", "canSendMessages", ObjectType.MESSAGE),
    _item("reports", "Reports", "/reports", 10, "BarChart3", "reports_basic", "canViewReports", ObjectType.REPORT),
    _item("settings", "Settings", "/settings", 11, "Settings", None, "canViewSettings", ObjectType.ORGANIZATION),
]
