"""Vendor ORM model."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from solarops.db.base import Base, TimestampMixin


class Vendor(Base, TimestampMixin):
    """A vendor integration (telemetry/inventory provider) scoped to an organization."""

    __tablename__ = "vendors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_type: Mapped[str] = mapped_column(String(50), nullable=False)  # SOLARMAN, SOLARDM, SUNGROW, OTHER
    api_base_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    credentials: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    org_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_alert_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Cached vendor API token
    access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    organization: Mapped["Organization"] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Organization", back_populates="vendors"
    )
    plants: Mapped[list["Plant"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Plant", back_populates="vendor", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Vendor(id={self.id}, name='{self.name}', type={self.vendor_type})>"
