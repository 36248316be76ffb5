"""Custom exception hierarchy for SolarOps."""


class SolarOpsError(Exception):
    """Base exception for all SolarOps errors."""

    pass


class ConfigurationError(SolarOpsError):
    """Error in application or vendor configuration."""

    pass


class VendorAPIError(SolarOpsError):
    """Error communicating with a vendor API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize vendor API error.

        Args:
            message: Error message.
            status_code: HTTP status code if available.
        """
        super().__init__(message)
        self.status_code = status_code


class VendorSyncError(SolarOpsError):
    """A vendor sync could not run at all."""

    def __init__(self, vendor_id: int, message: str) -> None:
        super().__init__(message)
        self.vendor_id = vendor_id


class NotFoundError(SolarOpsError):
    """A referenced record does not exist."""

    pass


class ValidationError(SolarOpsError):
    """A request is malformed or incomplete."""

    pass


class PermissionDeniedError(SolarOpsError):
    """The acting account lacks the required capability."""

    pass


class InvalidTransitionError(SolarOpsError):
    """A work order status change is not allowed."""

    def __init__(self, current: str, requested: str) -> None:
        """Initialize transition error.

        Args:
            current: Status the work order is in.
            requested: Status that was requested.
        """
        super().__init__(f"Invalid status transition from {current} to {requested}")
        self.current = current
        self.requested = requested


class OrganizationMismatchError(ValidationError):
    """Plants on one work order belong to more than one organization."""

    pass


class PlantInUseError(SolarOpsError):
    """A plant is referenced by an active work order."""

    pass
