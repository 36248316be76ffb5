"""Token storage backed by the vendors table."""

from datetime import datetime

from sqlalchemy.orm import Session

from solarops.db.repositories.vendor import VendorRepository


class DatabaseTokenStore:
    """Keeps vendor API tokens on the vendor row."""

    def __init__(self, session: Session) -> None:
        self._repo = VendorRepository(session)

    def get_token(self, vendor_id: int) -> tuple[str, datetime | None] | None:
        return self._repo.get_token(vendor_id)

    def save_token(self, vendor_id: int, token: str, expires_at: datetime | None) -> None:
        self._repo.save_token(vendor_id, token, expires_at)
