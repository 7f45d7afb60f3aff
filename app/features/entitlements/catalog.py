"""
Seed catalog of features and plans.

Loaded by scripts/seed_access.py. Plan limits of None are unlimited.
"""

# name -> (display name, category, is_premium)
FEATURES = {
    "dashboard": ("Dashboard", "core", False),
    "properties_management": ("Property management", "core", False),
    "units_management": ("Unit management", "core", False),
    "tenants_basic": ("Tenant management (basic)", "tenants", False),
    "tenants_full": ("Tenant management (full)", "tenants", True),
    "leases_basic": ("Lease management (basic)", "leases", False),
    "leases_full": ("Lease management (full)", "leases", True),
    "payments_manual_entry": ("Manual payment entry", "payments", False),
    "payments_all_methods": ("All payment methods", "payments", True),
    "receipt_generation": ("Receipt generation", "payments", False),
    "basic_tasks": ("Basic tasks", "tasks", False),
    "tasks_full": ("Full task management", "tasks", True),
    "email_notifications": ("Email notifications", "notifications", False),
    "sms_notifications": ("SMS notifications", "notifications", True),
    "messaging": ("Messaging", "notifications", False),
    "extranet_tenant": ("Tenant extranet", "extranet", False),
    "custom_extranet_domain": ("Custom extranet domain", "extranet", True),
    "accounting_basic": ("Accounting (basic)", "accounting", True),
    "accounting_full": ("Accounting (full)", "accounting", True),
    "dsf_export": ("DSF export", "accounting", True),
    "bank_sync": ("Bank synchronization", "accounting", True),
    "electronic_signature": ("Electronic signature", "advanced", True),
    "reports_basic": ("Basic reports", "reports", False),
    "reports_advanced": ("Advanced reports", "reports", True),
    "api_access": ("API access", "advanced", True),
}


_CORE = {
    "dashboard": True,
    "properties_management": True,
    "units_management": True,
    "receipt_generation": True,
    "email_notifications": True,
    "messaging": True,
    "extranet_tenant": True,
}

_PAID = {
    **_CORE,
    "tenants_full": True,
    "leases_full": True,
    "payments_all_methods": True,
    "tasks_full": True,
    "sms_notifications": True,
    "reports_basic": True,
    "reports_advanced": True,
}


# name -> (display name, max_lots, max_users, max_extranet_tenants, features)
PLANS = {
    "freemium": ("Freemium", 5, 1, 5, {
        **_CORE,
        "tenants_basic": True,
        "leases_basic": True,
        "payments_manual_entry": True,
        "basic_tasks": True,
        "reports_basic": True,
        "sms_notifications": False,
        "accounting_basic": False,
    }),
    "starter": ("Starter", 30, 2, 50, {
        **_PAID,
        "accounting_basic": True,
        "dsf_export": False,
        "bank_sync": False,
    }),
    "pro": ("Pro", 150, 5, 300, {
        **_PAID,
        "accounting_basic": True,
        "accounting_full": True,
        "dsf_export": True,
        "bank_sync": True,
        "electronic_signature": True,
    }),
    "agency": ("Agency", None, 15, None, {
        **_PAID,
        "accounting_basic": True,
        "accounting_full": True,
        "dsf_export": True,
        "bank_sync": True,
        "electronic_signature": True,
        "custom_extranet_domain": True,
    }),
    "enterprise": ("Enterprise", None, None, None, {
        **_PAID,
        "accounting_basic": True,
        "accounting_full": True,
        "dsf_export": True,
        "bank_sync": True,
        "electronic_signature": True,
        "custom_extranet_domain": True,
        "api_access": True,
    }),
}
