"""
Permission codes and default role grants.

DESIGN PRINCIPLES:
- One action per permission code
- Admin bypasses every check (Role.bypass_all_permissions)
- Cashiers sell; only managers cancel and read reports
"""


class PermissionCategory:
    SALES = "SALES"
    INVENTORY = "INVENTORY"
    REPORTS = "REPORTS"


# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    (
        "CREATE_TRANSACTION",
        "Create Transaction",
        "Ring up cash and gateway sales at the cashier",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_TRANSACTIONS",
        "View Transactions",
        "View transactions, receipts and payment status",
        PermissionCategory.SALES,
    ),
    (
        "CANCEL_TRANSACTION",
        "Cancel Transaction",
        "Cancel a transaction within 24 hours and restore its stock",
        PermissionCategory.SALES,
    ),
    (
        "MANAGE_INVENTORY",
        "Manage Inventory",
        "Adjust on-hand stock and view product activity",
        PermissionCategory.INVENTORY,
    ),
    (
        "VIEW_REPORTS",
        "View Reports",
        "View sales summaries and best sellers",
        PermissionCategory.REPORTS,
    ),
]


# role name -> (description, bypass_all_permissions, permission codes)
DEFAULT_ROLES = {
    "admin": ("Full access", True, []),
    "manager": (
        "Store manager",
        False,
        ["CREATE_TRANSACTION", "VIEW_TRANSACTIONS", "CANCEL_TRANSACTION", "MANAGE_INVENTORY", "VIEW_REPORTS"],
    ),
    "cashier": (
        "Cashier",
        False,
        ["CREATE_TRANSACTION", "VIEW_TRANSACTIONS"],
    ),
}
