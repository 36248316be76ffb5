"""Account types and access policy."""

from solarops.auth.permissions import (
    DEFAULT_POLICY,
    SYSTEM_PRINCIPAL,
    AccountType,
    PermissionPolicy,
    Principal,
)

__all__ = [
    "DEFAULT_POLICY",
    "SYSTEM_PRINCIPAL",
    "AccountType",
    "PermissionPolicy",
    "Principal",
]
