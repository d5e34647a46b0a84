"""Canonical role names.

Role rows are data, but code paths (guards, approvals, decorators) refer to
roles by these names, so they live in one place.
"""

ADMIN = "Admin"
SALES = "Sales"
CUSTOMER_SERVICE = "Customer Service"
PRODUCTION_PLANNER = "Production Planner"
PRODUCTION_MANAGER = "Production Manager"
OPERATOR = "Operator"
QC_ANALYST = "QC Analyst"
QUALIFIED_PERSON = "Qualified Person"
LOGISTICS = "Logistics"
DRIVER = "Driver"
FINANCE = "Finance"
CUSTOMER = "Customer"

# name -> hierarchy level (higher = more authority)
DEFAULT_ROLES = {
    ADMIN: 100,
    QUALIFIED_PERSON: 80,
    PRODUCTION_MANAGER: 60,
    FINANCE: 60,
    PRODUCTION_PLANNER: 50,
    QC_ANALYST: 40,
    SALES: 40,
    CUSTOMER_SERVICE: 40,
    LOGISTICS: 40,
    OPERATOR: 30,
    DRIVER: 20,
    CUSTOMER: 10,
}

STAFF_ROLES = frozenset(name for name in DEFAULT_ROLES if name != CUSTOMER)
