"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from sqlalchemy.orm import Session

from solarops.auth.permissions import AccountType, Principal
from solarops.config.settings import Settings
from solarops.db.base import Base
from solarops.db.engine import create_engine, get_session
from solarops.db.models import Organization, Plant, Vendor
from solarops.utils.exceptions import VendorAPIError
from solarops.vendors.base import VendorAlert, VendorConfig, VendorPlant


class FakeVendorAdapter:
    """In-memory vendor adapter returning fixed plant and alert lists."""

    def __init__(
        self,
        plants: list[VendorPlant] | None = None,
        error: Exception | None = None,
        alerts: list[VendorAlert] | None = None,
    ) -> None:
        self.plants = plants or []
        self.alerts = alerts or []
        self.error = error
        self.calls = 0
        self.alert_windows: list[tuple[datetime, datetime]] = []
        self.entered = False
        self.closed = False

    async def __aenter__(self) -> "FakeVendorAdapter":
        self.entered = True
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.closed = True

    async def list_plants(self) -> list[VendorPlant]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.plants)

    async def list_alerts(self, start: datetime, end: datetime) -> list[VendorAlert]:
        self.alert_windows.append((start, end))
        if self.error is not None:
            raise self.error
        return list(self.alerts)


def make_vendor_plants(count: int, prefix: str = "ST") -> list[VendorPlant]:
    """Build ``count`` vendor plants with sequential external IDs."""
    return [
        VendorPlant(
            external_id=f"{prefix}{i:04d}",
            name=f"Station {i}",
            capacity_kw=50.0 + i,
            metadata={"currentPowerKw": 12.5, "networkStatus": "NORMAL"},
        )
        for i in range(count)
    ]


def make_vendor_alerts(
    count: int, plant_id: str = "ST0000", start: datetime | None = None, prefix: str = "AL"
) -> list[VendorAlert]:
    """Build ``count`` active alerts for one vendor plant, an hour apart."""
    start = start or datetime(2024, 1, 10, 8, 0, tzinfo=UTC)
    return [
        VendorAlert(
            external_id=f"{prefix}{i:04d}",
            external_plant_id=plant_id,
            title=f"Grid outage {i}",
            severity="HIGH",
            device_type="INVERTER",
            alert_time=(start + timedelta(hours=i)).isoformat(),
        )
        for i in range(count)
    ]


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with in-memory SQLite."""
    return Settings(
        database_url="sqlite:///:memory:",
        log_level="DEBUG",
        retry_delay=0.0,
        max_retries=1,
    )


@pytest.fixture
def test_engine(test_settings):
    """Create test database engine with tables."""
    engine = create_engine(test_settings)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def test_session(test_engine) -> Session:
    """Create test database session."""
    with get_session(test_engine) as session:
        yield session


@pytest.fixture
def organization(test_session) -> Organization:
    org = Organization(name="Sunrise Energy", auto_sync_enabled=True, sync_interval_minutes=15)
    test_session.add(org)
    test_session.flush()
    return org


@pytest.fixture
def other_organization(test_session) -> Organization:
    org = Organization(name="Dusk Power", auto_sync_enabled=True, sync_interval_minutes=30)
    test_session.add(org)
    test_session.flush()
    return org


@pytest.fixture
def vendor(test_session, organization) -> Vendor:
    record = Vendor(
        name="Solarman Main",
        vendor_type="SOLARMAN",
        org_id=organization.id,
        credentials={"appId": "app", "appSecret": "secret", "username": "ops", "password": "hash"},
    )
    test_session.add(record)
    test_session.flush()
    return record


@pytest.fixture
def vendor_config(vendor) -> VendorConfig:
    return VendorConfig.model_validate(vendor)


@pytest.fixture
def make_plant(test_session, vendor):
    """Factory fixture creating stored plants."""
    counter = {"n": 0}

    def _make(org_id: int | None = None, vendor_id: int | None = None, name: str | None = None) -> Plant:
        counter["n"] += 1
        plant = Plant(
            org_id=org_id if org_id is not None else vendor.org_id,
            vendor_id=vendor_id if vendor_id is not None else vendor.id,
            vendor_plant_id=f"P{counter['n']:03d}",
            name=name or f"Plant {counter['n']}",
            capacity_kw=100.0,
        )
        test_session.add(plant)
        test_session.flush()
        return plant

    return _make


@pytest.fixture
def superadmin() -> Principal:
    return Principal(account_type=AccountType.SUPERADMIN, account_id="admin-1")


@pytest.fixture
def govt_user() -> Principal:
    return Principal(account_type=AccountType.GOVT, account_id="govt-1")


@pytest.fixture
def org_user(organization) -> Principal:
    return Principal(account_type=AccountType.ORG, account_id="org-1", org_id=organization.id)


@pytest.fixture
def fake_adapter_factory():
    """Return a factory that hands out a given FakeVendorAdapter and records calls."""

    def _factory_for(adapter: FakeVendorAdapter):
        created: list[VendorConfig] = []

        def _factory(config, settings, token_store=None):
            created.append(config)
            return adapter

        _factory.created = created  # type: ignore[attr-defined]
        return _factory

    return _factory_for


@pytest.fixture
def failing_adapter() -> FakeVendorAdapter:
    return FakeVendorAdapter(error=VendorAPIError("Gateway timeout", status_code=504))
