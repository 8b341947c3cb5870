"""Module vocabulary, legacy module aliases and the system role catalogue."""

from typing import Dict, FrozenSet, List

# Platform-level modules.
PLATFORM_MODULES: FrozenSet[str] = frozenset(
    {
        "platform_settings",
        "tenant_crud",
        "tenant_suspend",
        "subscription_plans",
        "payments_revenue",
        "refunds",
        "marketplace_control",
        "platform_coupons",
        "view_all_orders",
        "audit_logs",
        "leads",
        "user_impersonation",
        "roles",
    }
)

# Tenant-level modules.
TENANT_MODULES: FrozenSet[str] = frozenset(
    {
        "business_profile",
        "services",
        "orders",
        "staff",
        "customers",
        "coupons",
        "campaigns",
        "banners",
        "loyalty",
        "referrals",
        "wallet",
        "logistics",
        "inventory",
        "tickets",
        "support",
        "payments_earnings",
        "refund_requests",
        "analytics",
        "branding",
        "tenant_settings",
    }
)

MODULES: FrozenSet[str] = PLATFORM_MODULES | TENANT_MODULES

# Old module key -> current module key. Applied only when the current key is empty.
LEGACY_MODULE_ALIASES: Dict[str, str] = {
    "settings": "platform_settings",
    "admins": "tenant_crud",
    "billing": "subscription_plans",
    "finances": "payments_revenue",
    "audit": "audit_logs",
    "services_pricing": "services",
    "orders_view": "orders",
    "staff_management": "staff",
    "customer_management": "customers",
    "tenant_coupons": "coupons",
    "reports_analytics": "analytics",
}

SUPER_ADMIN_SLUG = "super-admin"

# System (default) roles seeded once. Immutable templates: toggle only.
SYSTEM_ROLES: List[dict] = [
    {
        "name": "Super Admin",
        "slug": SUPER_ADMIN_SLUG,
        "description": "Full platform access - highest privilege level",
        "permissions": {
            "platform_settings": "rcude",
            "tenant_crud": "rcude",
            "tenant_suspend": "rcue",
            "subscription_plans": "rcude",
            "payments_revenue": "rcue",
            "refunds": "rcue",
            "marketplace_control": "rcude",
            "platform_coupons": "rcude",
            "view_all_orders": "re",
            "audit_logs": "re",
            "leads": "rcude",
            "user_impersonation": "",
            "roles": "rcude",
        },
    },
    {
        "name": "Platform Support",
        "slug": "platform-support",
        "description": "Support operations with limited tenant access",
        "permissions": {
            "tenant_crud": "r",
            "tenant_suspend": "r",
            "marketplace_control": "r",
            "view_all_orders": "r",
            "audit_logs": "r",
            "leads": "re",
            "user_impersonation": "r",
        },
    },
    {
        "name": "Platform Finance Admin",
        "slug": "platform-finance-admin",
        "description": "Financial operations and revenue management",
        "permissions": {
            "subscription_plans": "re",
            "payments_revenue": "rcue",
            "refunds": "rcue",
            "view_all_orders": "re",
            "audit_logs": "re",
            "leads": "r",
        },
    },
    {
        "name": "Platform Auditor",
        "slug": "platform-auditor",
        "description": "Read-only access for compliance and auditing",
        "permissions": {
            "payments_revenue": "re",
            "view_all_orders": "re",
            "audit_logs": "re",
            "leads": "r",
        },
    },
    {
        "name": "Platform Sales",
        "slug": "platform-sales",
        "description": "Sales and lead management",
        "permissions": {
            "leads": "rcude",
            "subscription_plans": "re",
            "payments_revenue": "r",
        },
    },
]
