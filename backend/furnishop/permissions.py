"""
Permission codes and the default role mapping.

Roles are a plain string on User. Each role maps to a fixed set of
permission codes; admin holds every permission.
"""


class PermissionCategory:
    """Permission categories for organization."""
    CATALOG = "CATALOG"
    SALES = "SALES"
    HIRE_PURCHASE = "HIRE_PURCHASE"
    INVENTORY = "INVENTORY"
    REPORTS = "REPORTS"
    USERS = "USERS"
    SYSTEM = "SYSTEM"


# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    ("VIEW_PRODUCTS", "View Products", "View products, stock levels and movement history", PermissionCategory.CATALOG),
    ("MANAGE_PRODUCTS", "Manage Products", "Create, edit and upload images for products", PermissionCategory.CATALOG),
    ("VIEW_CUSTOMERS", "View Customers", "View customer records and images", PermissionCategory.CATALOG),
    ("MANAGE_CUSTOMERS", "Manage Customers", "Create and edit customers and their images", PermissionCategory.CATALOG),

    ("CREATE_SALE", "Create Sale", "Commit cash sales", PermissionCategory.SALES),
    ("VIEW_SALES", "View Sales", "View cash sales and receipts", PermissionCategory.SALES),

    ("CREATE_CONTRACT", "Create Contract", "Create hire-purchase contracts", PermissionCategory.HIRE_PURCHASE),
    ("VIEW_CONTRACTS", "View Contracts", "View contracts and installment schedules", PermissionCategory.HIRE_PURCHASE),
    ("RECORD_INSTALLMENT_PAYMENT", "Record Installment Payment", "Apply payments to installments", PermissionCategory.HIRE_PURCHASE),
    ("MANAGE_CONTRACTS", "Manage Contracts", "Change contract status and mark overdue installments", PermissionCategory.HIRE_PURCHASE),

    ("RECEIVE_INVENTORY", "Receive Inventory", "Receive stock into a branch", PermissionCategory.INVENTORY),
    ("REMOVE_PRODUCTS", "Remove Products", "Remove products from the catalog", PermissionCategory.INVENTORY),
    ("CREATE_TRANSFERS", "Create Transfers", "Initiate and cancel branch transfers", PermissionCategory.INVENTORY),
    ("RECEIVE_TRANSFERS", "Receive Transfers", "Confirm receipt of incoming transfers", PermissionCategory.INVENTORY),

    ("VIEW_REPORTS", "View Reports", "View dashboards and reports", PermissionCategory.REPORTS),
    ("VIEW_ACCOUNTING", "View Accounting", "View income and expense summaries", PermissionCategory.REPORTS),
    ("MANAGE_EXPENSES", "Manage Expenses", "Record branch expenses", PermissionCategory.REPORTS),

    ("MANAGE_USERS", "Manage Users", "Create and list staff accounts", PermissionCategory.USERS),
    ("MANAGE_BRANCHES", "Manage Branches", "Create and edit branches", PermissionCategory.SYSTEM),
]


ROLES = ("admin", "manager", "sales", "cashier", "warehouse")


DEFAULT_ROLE_PERMISSIONS = {
    "admin": [perm[0] for perm in PERMISSION_DEFINITIONS],
    "manager": [
        "VIEW_PRODUCTS", "MANAGE_PRODUCTS", "VIEW_CUSTOMERS", "MANAGE_CUSTOMERS",
        "CREATE_SALE", "VIEW_SALES",
        "CREATE_CONTRACT", "VIEW_CONTRACTS", "RECORD_INSTALLMENT_PAYMENT", "MANAGE_CONTRACTS",
        "RECEIVE_INVENTORY", "REMOVE_PRODUCTS", "CREATE_TRANSFERS", "RECEIVE_TRANSFERS",
        "VIEW_REPORTS", "VIEW_ACCOUNTING", "MANAGE_EXPENSES",
    ],
    "sales": [
        "VIEW_PRODUCTS", "VIEW_CUSTOMERS", "MANAGE_CUSTOMERS",
        "CREATE_SALE", "VIEW_SALES",
        "CREATE_CONTRACT", "VIEW_CONTRACTS",
    ],
    "cashier": [
        "VIEW_PRODUCTS", "VIEW_CUSTOMERS",
        "CREATE_SALE", "VIEW_SALES",
        "VIEW_CONTRACTS", "RECORD_INSTALLMENT_PAYMENT",
    ],
    "warehouse": [
        "VIEW_PRODUCTS", "MANAGE_PRODUCTS",
        "RECEIVE_INVENTORY", "CREATE_TRANSFERS", "RECEIVE_TRANSFERS",
    ],
}


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_role_permissions(role: str) -> set[str]:
    return set(DEFAULT_ROLE_PERMISSIONS.get(role, ()))


def role_has_permission(role: str, code: str) -> bool:
    return code in get_role_permissions(role)
