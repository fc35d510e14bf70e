# Roles and what each one may see.

from logbook.models import APPROVED

OPERATOR = "operator"
SUPERVISOR = "supervisor"
CUSTOMER = "customer"
SUPER_ADMIN = "super_admin"

ROLES = (OPERATOR, SUPERVISOR, CUSTOMER, SUPER_ADMIN)

APPROVER_ROLES = (SUPERVISOR, SUPER_ADMIN)
CREATOR_ROLES = (OPERATOR, SUPERVISOR, SUPER_ADMIN)

# Which sections exist and who can open them.
SECTIONS = {
    "dashboard": {
        "label": "Dashboard",
        "allowed_roles": [OPERATOR, SUPERVISOR, CUSTOMER, SUPER_ADMIN]
    },
    "logbooks": {
        "label": "Logbooks",
        "allowed_roles": [OPERATOR, SUPERVISOR, SUPER_ADMIN]
    },
    "utility-logs": {
        "label": "Utility Logs",
        "allowed_roles": [OPERATOR, SUPERVISOR, SUPER_ADMIN]
    },
    "chemical-prep": {
        "label": "Chemical Prep",
        "allowed_roles": [OPERATOR, SUPERVISOR, SUPER_ADMIN]
    },
    "air-validation": {
        "label": "Air Validation",
        "allowed_roles": [OPERATOR, SUPERVISOR, SUPER_ADMIN]
    },
    "instruments": {
        "label": "Instruments",
        "allowed_roles": [SUPERVISOR, SUPER_ADMIN]
    },
    "reports": {
        "label": "Reports",
        "allowed_roles": [SUPERVISOR, CUSTOMER, SUPER_ADMIN]
    },
    "users": {
        "label": "Users",
        "allowed_roles": [SUPER_ADMIN]
    },
}


def can_open(role, section):
    info = SECTIONS.get(section)
    return info is not None and role in info["allowed_roles"]


def get_allowed_sections_for_role(role):
    """Section keys this role can open, in menu order."""
    return [key for key, info in SECTIONS.items() if role in info["allowed_roles"]]


def can_approve(role):
    return role in APPROVER_ROLES


def can_create(role):
    return role in CREATOR_ROLES


def can_view(actor, record):
    """
    Read-side policy for a single record.

    Customers only ever see approved records. Super admins are not tied
    to a site; everyone else only sees their own site.
    """
    if actor.role == CUSTOMER and record.status != APPROVED:
        return False
    if actor.role == SUPER_ADMIN:
        return True
    return record.site_id == actor.site_id


def visible_records(actor, records):
    return [r for r in records if can_view(actor, r)]
