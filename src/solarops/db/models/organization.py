"""Organization ORM model."""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from solarops.db.base import Base, TimestampMixin


class Organization(Base, TimestampMixin):
    """An operator organization owning plants and vendor integrations."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Scheduled sync settings
    auto_sync_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sync_interval_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True, default=15)

    # Relationships
    vendors: Mapped[list["Vendor"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Vendor", back_populates="organization"
    )
    plants: Mapped[list["Plant"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        "Plant", back_populates="organization", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}')>"
