"""Alert ORM model."""

from datetime import datetime
from enum import StrEnum

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from solarops.db.base import Base, TimestampMixin


class AlertSeverity(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AlertStatus(StrEnum):
    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    ACKNOWLEDGED = "ACKNOWLEDGED"


class Alert(Base, TimestampMixin):
    """A device alert reported by a vendor for one of its plants."""

    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    vendor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False
    )
    vendor_alert_id: Mapped[str] = mapped_column(String(100), nullable=False)
    vendor_plant_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    severity: Mapped[str] = mapped_column(String(20), nullable=False, default=AlertSeverity.MEDIUM)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AlertStatus.ACTIVE)

    alert_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    grid_down_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # raw vendor record

    plant: Mapped["Plant"] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Plant", back_populates="alerts"
    )

    __table_args__ = (
        UniqueConstraint("vendor_id", "plant_id", "vendor_alert_id", name="uq_alert_vendor_key"),
    )

    def __repr__(self) -> str:
        return f"<Alert(id={self.id}, plant={self.plant_id}, vendor_alert_id='{self.vendor_alert_id}')>"
