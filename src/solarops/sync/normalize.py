"""Normalize vendor plant records into plant rows."""

from datetime import UTC, datetime
from typing import Any

from solarops.vendors.base import VendorConfig, VendorPlant

# metadata key -> plant column
METRIC_FIELDS = {
    "currentPowerKw": "current_power_kw",
    "dailyEnergyKwh": "daily_energy_kwh",
    "monthlyEnergyMwh": "monthly_energy_mwh",
    "yearlyEnergyMwh": "yearly_energy_mwh",
    "totalEnergyMwh": "total_energy_mwh",
    "performanceRatio": "performance_ratio",
}

TIMESTAMP_FIELDS = {
    "lastUpdateTime": "last_update_time",
    "createdDate": "vendor_created_date",
    "startOperatingTime": "start_operating_time",
}


def _from_unix(seconds: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a vendor timestamp into an aware UTC datetime.

    Accepts datetimes, ISO 8601 strings and Unix timestamps in seconds (as
    numbers or numeric strings). Naive values are taken to be UTC.

    Args:
        value: Raw timestamp.

    Returns:
        Aware datetime, or None if the value is empty or unparseable.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, int | float):
        parsed = _from_unix(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = _from_unix(float(text))
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
    else:
        return None

    if parsed is None:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _to_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def clean_id(value: Any) -> str | None:
    """Strip a vendor identifier; blank identifiers count as missing."""
    if value is None:
        return None
    return str(value).strip() or None


def normalize_plant(
    plant: VendorPlant, vendor: VendorConfig, refreshed_at: datetime | None = None
) -> dict[str, Any]:
    """Build a plant row for upsert from a vendor record.

    Args:
        plant: Record returned by the vendor adapter.
        vendor: Vendor the record belongs to. Must have an org_id.
        refreshed_at: Time of the sync run, stored as last_refreshed_at.

    Returns:
        Dictionary of plant column values. Every row has the same keys. A
        blank external ID becomes None, which the store rejects.
    """
    metadata = plant.metadata or {}
    vendor_plant_id = clean_id(plant.external_id)

    location = dict(plant.location) if plant.location else {}
    if metadata.get("locationAddress") and not location.get("address"):
        location["address"] = metadata["locationAddress"]

    network_status = metadata.get("networkStatus")

    row: dict[str, Any] = {
        "org_id": vendor.org_id,
        "vendor_id": vendor.id,
        "vendor_plant_id": vendor_plant_id,
        "name": plant.name or f"Plant {vendor_plant_id}",
        "capacity_kw": _to_float(plant.capacity_kw) or 0.0,
        "location": location or None,
        "network_status": str(network_status).strip() or None if network_status else None,
        "last_refreshed_at": refreshed_at or datetime.now(UTC),
    }
    for key, column in METRIC_FIELDS.items():
        row[column] = _to_float(metadata.get(key))
    for key, column in TIMESTAMP_FIELDS.items():
        row[column] = parse_timestamp(metadata.get(key))
    return row
