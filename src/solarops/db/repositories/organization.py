"""Organization repository."""

from sqlalchemy import select

from solarops.db.models.organization import Organization
from solarops.db.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    """Repository for Organization operations."""

    model = Organization

    def get_by_name(self, name: str) -> Organization | None:
        """Get an organization by name.

        Args:
            name: Organization name.

        Returns:
            Organization or None.
        """
        stmt = select(Organization).where(Organization.name == name)
        return self.session.scalar(stmt)
