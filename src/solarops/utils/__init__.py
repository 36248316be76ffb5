"""Utility modules for SolarOps."""

from solarops.utils.exceptions import (
    ConfigurationError,
    InvalidTransitionError,
    NotFoundError,
    OrganizationMismatchError,
    PermissionDeniedError,
    PlantInUseError,
    SolarOpsError,
    ValidationError,
    VendorAPIError,
    VendorSyncError,
)
from solarops.utils.retry import retry_with_backoff

__all__ = [
    "ConfigurationError",
    "InvalidTransitionError",
    "NotFoundError",
    "OrganizationMismatchError",
    "PermissionDeniedError",
    "PlantInUseError",
    "SolarOpsError",
    "ValidationError",
    "VendorAPIError",
    "VendorSyncError",
    "retry_with_backoff",
]
