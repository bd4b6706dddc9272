# opschat/core/roles.py
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    AGENT = "agent"
    QC = "qc"
    AM = "am"
    CLIENT = "client"


# spellings found in tbRoles for the account manager role
AM_ROLE_NAMES = ("am", "account manager", "account_manager")

ADMIN_ROLE_NAMES = (Role.ADMIN.value, Role.MANAGER.value)


def normalize_role(name: str | None) -> str:
    r = (name or "").strip().lower()
    if r in AM_ROLE_NAMES:
        return Role.AM.value
    return r


def is_admin_or_manager(role: str | None) -> bool:
    return normalize_role(role) in ADMIN_ROLE_NAMES
