"""SolarDM API adapter."""

import math
from datetime import datetime
from typing import Any

import structlog

from solarops.config.settings import Settings
from solarops.utils.exceptions import ConfigurationError, VendorAPIError
from solarops.vendors.base import TokenStore, VendorAlert, VendorConfig, VendorPlant
from solarops.vendors.http import HttpVendorAdapter

logger = structlog.get_logger(__name__)

DEFAULT_TOKEN_LIFETIME = 3600
LOGIN_PATH = "/ums/business/email_login"
PLANT_LIST_PATH = "/dms/plant/list_all"
FAULT_LIST_PATH = "/dms/inverter_fault/page_list/all"
# Grid outage faults are the only ones tracked as alerts
GRID_FAULT = "There is no mains voltage"

NETWORK_STATUS = {1: "NORMAL", 2: "ALL_OFFLINE", 3: "PARTIAL_OFFLINE"}
FAULT_SEVERITY = {1: "LOW", 2: "MEDIUM", 3: "HIGH", 4: "CRITICAL"}


def _capacity(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def map_plant(plant: dict[str, Any]) -> VendorPlant:
    """Map one entry of the SolarDM plant list to a VendorPlant.

    SolarDM reports capacity as a decimal string and the creation time as
    ``YYYY-MM-DD HH:MM:SS``; the creation time doubles as the start of
    operation. No production metrics are available from this endpoint.
    """
    plant_id = plant.get("id")
    address = plant.get("address") or None

    location = None
    if plant.get("latitude") or plant.get("longitude") or address:
        location = {
            "lat": plant.get("latitude") or None,
            "lng": plant.get("longitude") or None,
            "address": address,
        }

    created = plant.get("createTime") or None
    return VendorPlant(
        external_id=str(plant_id) if plant_id is not None else None,
        name=plant.get("plantName") or (f"Plant {plant_id}" if plant_id is not None else None),
        capacity_kw=_capacity(plant.get("capacity")),
        location=location,
        metadata={
            "networkStatus": NETWORK_STATUS.get(plant.get("communicateStatus")),
            "createdDate": created,
            "startOperatingTime": created,
            "locationAddress": address,
            "raw": {
                key: plant.get(key)
                for key in (
                    "communicateStatus",
                    "alarmStatus",
                    "timeZone",
                    "type",
                    "systemType",
                    "createTime",
                    "updateTime",
                )
            },
        },
    )


def map_fault(fault: dict[str, Any]) -> VendorAlert:
    """Map one inverter fault record to a VendorAlert."""
    fault_id = fault.get("id")
    plant_id = fault.get("plantId")
    info = fault.get("faultInfoEN") or fault.get("faultInfo") or None
    return VendorAlert(
        external_id=str(fault_id) if fault_id is not None else None,
        external_plant_id=str(plant_id) if plant_id is not None else None,
        title=info,
        description=info,
        severity=FAULT_SEVERITY.get(fault.get("faultLevel"), "MEDIUM"),
        device_type="INVERTER",
        alert_time=fault.get("happenTime"),
        end_time=fault.get("recoverTime"),
        metadata=fault,
    )


class SolarDmAdapter(HttpVendorAdapter):
    """Async client for the SolarDM business API."""

    vendor_type = "SOLARDM"
    display_name = "SolarDM"

    def __init__(
        self,
        config: VendorConfig,
        settings: Settings,
        token_store: TokenStore | None = None,
    ) -> None:
        super().__init__(config, settings, token_store)
        self._base_url = (config.api_base_url or settings.solardm_api_base_url).rstrip("/")

    def _check_payload(self, data: Any, status_code: int) -> None:
        # SolarDM answers 200 with a non-zero code on failure
        if isinstance(data, dict) and data.get("code", 0) != 0:
            message = data.get("message") or "Unknown error"
            raise VendorAPIError(f"SolarDM API error: {message}", status_code=status_code)

    async def authenticate(self) -> str:
        """Log in with email and RSA-encrypted password, reusing a fresh token.

        Raises:
            ConfigurationError: If email or passwordRSA is missing.
            VendorAPIError: If SolarDM rejects the login.
        """
        token = self._stored_token()
        if token:
            logger.debug("Reusing stored SolarDM token", vendor_id=self._config.id)
            return token

        credentials = self._config.credentials
        email = credentials.get("email")
        password = credentials.get("passwordRSA")
        if not email or not password:
            raise ConfigurationError("SolarDM credentials require email and passwordRSA")

        logger.info("Authenticating with SolarDM", vendor_id=self._config.id)
        data = await self._request(
            "POST",
            f"{self._base_url}{LOGIN_PATH}",
            json={"email": email, "password": password, "loginType": "email", "regionSign": "3"},
        )

        payload = data.get("data") or {}
        access_token = payload.get("token")
        if not access_token:
            raise VendorAPIError("SolarDM authentication failed: no token in response")

        self._remember_token(access_token, int(payload.get("expiresIn") or DEFAULT_TOKEN_LIFETIME))
        return access_token

    async def list_plants(self) -> list[VendorPlant]:
        """Fetch every plant visible to the account."""
        token = await self.authenticate()
        data = await self._request("GET", f"{self._base_url}{PLANT_LIST_PATH}", token=token)

        plants = (data.get("data") or {}).get("list")
        if not isinstance(plants, list):
            raise VendorAPIError("Invalid response from SolarDM plant list: expected data.list array")

        logger.info(
            "Fetched SolarDM plants",
            vendor_id=self._config.id,
            count=len(plants),
            total=(data.get("data") or {}).get("total"),
        )
        return [map_plant(plant) for plant in plants if isinstance(plant, dict)]

    async def list_alerts(self, start: datetime, end: datetime) -> list[VendorAlert]:
        """Fetch grid outage faults across all plants.

        The fault list cannot be filtered by date, so every page is fetched
        and the window is applied by the caller.
        """
        token = await self.authenticate()
        page_size = self._settings.alert_page_size
        records: list[dict[str, Any]] = []
        current, total_pages = 1, 1

        while current <= total_pages:
            data = await self._request(
                "GET",
                f"{self._base_url}{FAULT_LIST_PATH}",
                params={"current": current, "size": page_size, "faultInfo": GRID_FAULT},
                token=token,
            )
            body = data.get("data") or {}
            page = body.get("records") or []
            total = body.get("total") or 0

            if current == 1:
                # Some responses report pages=0 alongside a non-zero total
                total_pages = body.get("pages") or math.ceil(total / page_size) or 1

            if not page:
                break
            records.extend(r for r in page if isinstance(r, dict))
            if len(records) >= total:
                break
            current += 1

        logger.info("Fetched SolarDM faults", vendor_id=self._config.id, count=len(records))
        return [map_fault(record) for record in records]
