"""Capability-based access policy for the three account tiers."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

from solarops.utils.exceptions import PermissionDeniedError

Action = Literal["create", "read", "update", "delete"]

CRUD: tuple[Action, ...] = ("create", "read", "update", "delete")

READ_ONLY_RESOURCES = (
    "organizations",
    "vendors",
    "plants",
    "work_orders",
    "alerts",
    "telemetry",
    "efficiency",
)


class AccountType(StrEnum):
    SUPERADMIN = "SUPERADMIN"
    ORG = "ORG"
    GOVT = "GOVT"


@dataclass(frozen=True)
class Principal:
    """The account performing an operation."""

    account_type: AccountType
    account_id: str
    org_id: int | None = None

    @property
    def is_org_scoped(self) -> bool:
        """ORG accounts only see data belonging to their own organization."""
        return self.account_type == AccountType.ORG


@dataclass
class PermissionPolicy:
    """Maps each account type to the (resource, action) capabilities it holds."""

    capabilities: dict[AccountType, frozenset[tuple[str, str]]] = field(default_factory=dict)

    def has_permission(self, account_type: AccountType | str, resource: str, action: Action) -> bool:
        try:
            key = AccountType(account_type)
        except ValueError:
            return False
        return (resource, action) in self.capabilities.get(key, frozenset())

    def require(self, principal: Principal, resource: str, action: Action) -> None:
        """Raise unless the principal holds the capability.

        Raises:
            PermissionDeniedError: If the capability is missing.
        """
        if not self.has_permission(principal.account_type, resource, action):
            raise PermissionDeniedError(
                f"Account type {principal.account_type} does not have permission "
                f"to {action} {resource}"
            )


def _build_default_policy() -> PermissionPolicy:
    superadmin = {
        (resource, action)
        for resource in ("organizations", "vendors", "plants", "work_orders")
        for action in CRUD
    }
    superadmin |= {
        ("accounts", "read"),
        ("alerts", "read"),
        ("alerts", "update"),
        ("telemetry", "read"),
        ("efficiency", "read"),
    }
    read_only = frozenset((resource, "read") for resource in READ_ONLY_RESOURCES)

    return PermissionPolicy(
        capabilities={
            AccountType.SUPERADMIN: frozenset(superadmin),
            AccountType.GOVT: read_only,
            AccountType.ORG: read_only,
        }
    )


DEFAULT_POLICY = _build_default_policy()

SYSTEM_PRINCIPAL = Principal(account_type=AccountType.SUPERADMIN, account_id="system")
