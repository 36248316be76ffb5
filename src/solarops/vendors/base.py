"""Vendor adapter contract and the records exchanged across it."""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class VendorPlant(BaseModel):
    """A plant as reported by a vendor API.

    ``metadata`` may carry the optional keys ``currentPowerKw``,
    ``dailyEnergyKwh``, ``monthlyEnergyMwh``, ``yearlyEnergyMwh``,
    ``totalEnergyMwh``, ``performanceRatio``, ``lastUpdateTime``,
    ``createdDate``, ``startOperatingTime``, ``networkStatus`` and
    ``locationAddress``. Any other keys are ignored during sync.
    """

    external_id: str | None = None
    name: str | None = None
    capacity_kw: float | None = None
    location: dict[str, Any] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class VendorAlert(BaseModel):
    """A device alert as reported by a vendor API.

    ``alert_time`` and ``end_time`` are passed through as the vendor sends
    them and parsed during sync. An alert without ``end_time`` is active.
    """

    external_id: str | None = None
    external_plant_id: str | None = None
    title: str | None = None
    description: str | None = None
    severity: str | None = None
    device_type: str | None = None
    alert_time: Any = None
    end_time: Any = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class VendorConfig(BaseModel):
    """Vendor integration settings handed to adapters and the sync engine."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    vendor_type: str
    org_id: int | None = None
    api_base_url: str | None = None
    credentials: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


@runtime_checkable
class VendorAdapter(Protocol):
    """Client for one vendor API.

    Adapters are async context managers owning their HTTP session. They raise
    VendorAPIError on transport or authentication failure and return an empty
    list when the vendor reports no plants or alerts.
    """

    async def __aenter__(self) -> "VendorAdapter": ...

    async def __aexit__(self, *args: Any) -> None: ...

    async def list_plants(self) -> list[VendorPlant]: ...

    async def list_alerts(self, start: datetime, end: datetime) -> list[VendorAlert]: ...


class TokenStore(Protocol):
    """Persistence for vendor API tokens."""

    def get_token(self, vendor_id: int) -> tuple[str, datetime | None] | None: ...

    def save_token(self, vendor_id: int, token: str, expires_at: datetime | None) -> None: ...
