"""Work order ORM models."""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from solarops.db.base import Base, TimestampMixin


class WorkOrder(Base, TimestampMixin):
    """A maintenance task grouping plants from a single organization."""

    __tablename__ = "work_orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="MEDIUM")  # LOW, MEDIUM, HIGH
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="OPEN")
    org_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True
    )
    location: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)

    # Relationships
    plant_links: Mapped[list["WorkOrderPlant"]] = relationship(
        "WorkOrderPlant", back_populates="work_order", cascade="all, delete-orphan"
    )

    @property
    def active_plant_ids(self) -> list[int]:
        """IDs of plants currently attached to this work order."""
        return [link.plant_id for link in self.plant_links if link.is_active]

    def __repr__(self) -> str:
        return f"<WorkOrder(id={self.id}, title='{self.title}', status={self.status})>"


class WorkOrderPlant(Base):
    """Binding of a plant to a work order. Detaching clears is_active, the row stays."""

    __tablename__ = "work_order_plants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    work_order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("work_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    plant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("plants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    work_order: Mapped["WorkOrder"] = relationship("WorkOrder", back_populates="plant_links")
    plant: Mapped["Plant"] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Plant", back_populates="work_order_links"
    )

    __table_args__ = (
        UniqueConstraint("work_order_id", "plant_id", name="uq_work_order_plant"),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkOrderPlant(work_order={self.work_order_id}, plant={self.plant_id}, "
            f"active={self.is_active})>"
        )
