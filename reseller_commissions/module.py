"""
Reseller Commissions Module Configuration

This file defines the module metadata, default settings and role permissions
for the Reseller Commissions module.
Resellers request commissions for their customers, admins approve, reject
and pay them out, and auto-approval rules can short-circuit the review.
"""
from django.utils.translation import gettext_lazy as _

# Module Identification
MODULE_ID = "reseller_commissions"
MODULE_NAME = _("Reseller Commissions")
MODULE_ICON = "wallet-outline"
MODULE_VERSION = "1.0.0"
MODULE_CATEGORY = "sales"

# Default Settings (overridable through settings.RESELLER_COMMISSIONS)
SETTINGS = {
    "app_name": "Reseller Portal",
    "app_url": "",
    "currency": "EUR",
    "email_sender": "noreply@reseller-portal.com",
    "email_max_attempts": 5,
    "payout_document_dir": "payouts",
    "notify_admins_on_request": True,
}

# Roles
ROLE_ADMIN = "admin"
ROLE_RESELLER = "reseller"

# Permissions - tuple format (action_suffix, display_name)
PERMISSIONS = [
    ("request_commission", _("Can request commissions")),
    ("view_own_commission", _("Can view own commissions")),
    ("view_commission", _("Can view all commissions")),
    ("approve_commission", _("Can approve commissions")),
    ("reject_commission", _("Can reject commissions")),
    ("pay_commission", _("Can mark commissions as paid")),
    ("close_deal", _("Can close customer deals")),
    ("manage_rules", _("Can manage auto-approval rules")),
    ("manage_resellers", _("Can change reseller trust")),
    ("view_audit_log", _("Can view the audit log")),
]

# Role-based permission assignments
ROLE_PERMISSIONS = {
    ROLE_ADMIN: [
        "view_commission",
        "approve_commission",
        "reject_commission",
        "pay_commission",
        "close_deal",
        "manage_rules",
        "manage_resellers",
        "view_audit_log",
    ],
    ROLE_RESELLER: [
        "request_commission",
        "view_own_commission",
    ],
}
