"""Vendor repository."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from solarops.db.models.vendor import Vendor
from solarops.db.repositories.base import BaseRepository


class VendorRepository(BaseRepository[Vendor]):
    """Repository for Vendor operations."""

    model = Vendor

    def get_active_with_org(self) -> list[Vendor]:
        """Get active vendors that are assigned to an organization.

        Returns:
            Vendors with their organization loaded, ordered by ID.
        """
        stmt = (
            select(Vendor)
            .where(Vendor.is_active.is_(True), Vendor.org_id.is_not(None))
            .options(selectinload(Vendor.organization))
            .order_by(Vendor.id)
        )
        return list(self.session.scalars(stmt).all())

    def mark_synced(self, vendor_id: int, synced_at: datetime) -> None:
        """Record a completed sync for a vendor.

        Args:
            vendor_id: Vendor ID.
            synced_at: Time the sync completed.
        """
        vendor = self.get_by_id(vendor_id)
        if vendor is not None:
            vendor.last_synced_at = synced_at
            self.session.flush()

    def mark_alerts_synced(self, vendor_id: int, synced_at: datetime) -> None:
        vendor = self.get_by_id(vendor_id)
        if vendor is not None:
            vendor.last_alert_synced_at = synced_at
            self.session.flush()

    def get_token(self, vendor_id: int) -> tuple[str, datetime | None] | None:
        """Get the cached API token for a vendor.

        Args:
            vendor_id: Vendor ID.

        Returns:
            (token, expires_at) or None if no token is stored.
        """
        vendor = self.get_by_id(vendor_id)
        if vendor is None or not vendor.access_token:
            return None
        return vendor.access_token, vendor.token_expires_at

    def save_token(self, vendor_id: int, token: str, expires_at: datetime | None) -> None:
        """Store an API token for a vendor.

        Args:
            vendor_id: Vendor ID.
            token: Access token.
            expires_at: Token expiry, if known.
        """
        vendor = self.get_by_id(vendor_id)
        if vendor is None:
            return
        vendor.access_token = token
        vendor.token_expires_at = expires_at
        self.session.flush()
