"""Solarman API adapter."""

from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from solarops.config.settings import Settings
from solarops.utils.exceptions import ConfigurationError, VendorAPIError
from solarops.vendors.base import TokenStore, VendorAlert, VendorConfig, VendorPlant
from solarops.vendors.http import HttpVendorAdapter

logger = structlog.get_logger(__name__)

DEFAULT_TOKEN_LIFETIME = 3600
STATION_SEARCH_PATH = "/maintain-s/operating/station/v2/search"
ALERT_SEARCH_PATH = "/maintain-s/operating/station/alert"
INVERTER = "INVERTER"


def _domain(url: str) -> str:
    parsed = httpx.URL(url)
    return f"{parsed.scheme}://{parsed.netloc.decode()}"


def _per_thousand(value: Any) -> float | None:
    """Convert W to kW or kWh to MWh. Zero and missing values become None."""
    if not value:
        return None
    return float(value) / 1000


def _unix_to_iso(value: Any) -> str | None:
    """Convert a Unix timestamp in seconds (possibly fractional) to ISO 8601 UTC."""
    if not value:
        return None
    try:
        seconds = int(float(value))
    except (TypeError, ValueError):
        return None
    return datetime.fromtimestamp(seconds, tz=UTC).isoformat()


def _performance_ratio(station: dict[str, Any]) -> float | None:
    if station.get("prYesterday") is not None:
        return float(station["prYesterday"])
    generation_capacity = station.get("generationCapacity")
    installed = station.get("installedCapacity") or 0
    if generation_capacity is not None and installed > 0:
        return float(generation_capacity) / float(installed)
    return None


def map_station(station: dict[str, Any]) -> VendorPlant:
    """Map a station record from the PRO station search to a VendorPlant.

    Args:
        station: The ``station`` object of one search result.

    Returns:
        Vendor plant with metrics converted to kW, kWh and MWh.
    """
    station_id = station.get("id")
    address = station.get("locationAddress") or None

    location = None
    if station.get("locationLat") or station.get("locationLng") or address:
        location = {
            "lat": station.get("locationLat"),
            "lng": station.get("locationLng"),
            "address": address,
        }

    network_status = station.get("networkStatus")

    return VendorPlant(
        external_id=str(station_id) if station_id is not None else None,
        name=station.get("name") or (f"Station {station_id}" if station_id is not None else None),
        capacity_kw=station.get("installedCapacity") or 0,
        location=location,
        metadata={
            "stationId": station_id,
            "currentPowerKw": _per_thousand(station.get("generationPower")),
            "dailyEnergyKwh": station.get("generationValue") or None,
            "monthlyEnergyMwh": _per_thousand(station.get("generationMonth")),
            "yearlyEnergyMwh": _per_thousand(station.get("generationYear")),
            "totalEnergyMwh": _per_thousand(station.get("generationTotal")),
            "performanceRatio": _performance_ratio(station),
            "lastUpdateTime": _unix_to_iso(station.get("lastUpdateTime")),
            "createdDate": _unix_to_iso(station.get("createdDate")),
            "startOperatingTime": _unix_to_iso(station.get("startOperatingTime")),
            "networkStatus": str(network_status).strip() if network_status else None,
            "locationAddress": address,
        },
    )


_SEVERITY_BY_LEVEL = {0: "LOW", 1: "MEDIUM", 2: "HIGH"}


def alert_severity(level: Any, influence: Any) -> str:
    """Map Solarman alert level and safety influence to a severity.

    A safety influence of 2 or 3 is always critical; an influence of 1
    raises a low alert to medium.
    """
    severity = _SEVERITY_BY_LEVEL.get(1 if level is None else level, "MEDIUM")
    if influence in (2, 3):
        return "CRITICAL"
    if influence == 1 and severity == "LOW":
        return "MEDIUM"
    return severity


def map_alert(alert: dict[str, Any]) -> VendorAlert:
    """Map one record of the PRO station alert search to a VendorAlert."""
    alert_id = alert.get("id")
    station_id = alert.get("stationId")
    return VendorAlert(
        external_id=str(alert_id) if alert_id is not None else None,
        external_plant_id=str(station_id) if station_id is not None else None,
        title=alert.get("alertName") or None,
        severity=alert_severity(alert.get("level"), alert.get("influence")),
        device_type=alert.get("deviceType"),
        alert_time=_unix_to_iso(alert.get("alertTime")),
        end_time=_unix_to_iso(alert.get("endTime")),
        metadata=alert,
    )


class SolarmanAdapter(HttpVendorAdapter):
    """Async client for the Solarman OpenAPI and PRO station APIs."""

    vendor_type = "SOLARMAN"
    display_name = "Solarman"

    def __init__(
        self,
        config: VendorConfig,
        settings: Settings,
        token_store: TokenStore | None = None,
    ) -> None:
        super().__init__(config, settings, token_store)

        base_url = config.api_base_url or settings.solarman_api_base_url
        # Authentication always goes to globalapi
        self._auth_base_url = _domain(base_url.replace("globalpro", "globalapi"))
        if settings.solarman_pro_api_base_url or not config.api_base_url:
            self._pro_base_url = settings.get_solarman_pro_api_base_url()
        else:
            self._pro_base_url = _domain(base_url.replace("globalapi", "globalpro"))

    def _check_payload(self, data: Any, status_code: int) -> None:
        if isinstance(data, dict) and data.get("success") is False:
            message = data.get("msg") or data.get("message") or "Unknown error"
            raise VendorAPIError(f"Solarman reported failure: {message}", status_code=status_code)

    async def authenticate(self) -> str:
        """Get an access token, reusing a stored one when it is still fresh.

        Returns:
            Bearer token.

        Raises:
            ConfigurationError: If required credentials are missing.
            VendorAPIError: If Solarman rejects the login.
        """
        token = self._stored_token()
        if token:
            logger.debug("Reusing stored Solarman token", vendor_id=self._config.id)
            return token

        credentials = self._config.credentials
        app_id = credentials.get("appId")
        password = credentials.get("password") or credentials.get("passwordSha256")
        if not app_id:
            raise ConfigurationError("Solarman credentials require appId")
        if not password:
            raise ConfigurationError("Solarman credentials require password or passwordSha256")

        body: dict[str, Any] = {
            "appSecret": credentials.get("appSecret"),
            "username": credentials.get("username"),
            "password": password,
        }
        solarman_org_id = credentials.get("solarmanOrgId") or credentials.get("orgId")
        if solarman_org_id:
            body["orgId"] = solarman_org_id

        logger.info("Authenticating with Solarman", vendor_id=self._config.id)
        data = await self._request(
            "POST",
            f"{self._auth_base_url}/account/v1.0/token",
            params={"appId": app_id},
            json=body,
        )

        access_token = data.get("access_token")
        if not access_token:
            raise VendorAPIError("Solarman authentication failed: no access token in response")

        self._remember_token(access_token, int(data.get("expires_in") or DEFAULT_TOKEN_LIFETIME))
        return access_token

    async def list_plants(self) -> list[VendorPlant]:
        """Fetch every PV station visible to the account.

        Returns:
            List of vendor plants.
        """
        token = await self.authenticate()
        data = await self._request(
            "POST",
            f"{self._pro_base_url}{STATION_SEARCH_PATH}",
            json={"station": {"powerTypeList": ["PV"]}},
            token=token,
        )

        items = data.get("data")
        if not isinstance(items, list):
            raise VendorAPIError("Invalid response from Solarman station search: expected data array")

        stations = [item["station"] for item in items if isinstance(item, dict) and item.get("station")]
        logger.info(
            "Fetched Solarman stations",
            vendor_id=self._config.id,
            count=len(stations),
            total=data.get("total"),
        )
        return [map_station(station) for station in stations]

    async def list_alerts(self, start: datetime, end: datetime) -> list[VendorAlert]:
        """Fetch inverter alerts raised between two days, oldest first.

        Pages through the PRO station alert search until a short or empty
        page comes back. Alerts for other device types are dropped.

        Args:
            start: First day of the window.
            end: Last day of the window.

        Returns:
            List of vendor alerts.
        """
        token = await self.authenticate()
        page_size = self._settings.alert_page_size
        body = {
            "alertQueryName": None,
            "language": "en",
            "status": "-1",
            "timeZone": self._settings.sync_timezone,
            "deviceId": None,
            "startDay": start.strftime("%Y-%m-%d"),
            "endDay": end.strftime("%Y-%m-%d"),
            "plantIdList": None,
            "groupIdList": None,
        }

        alerts: list[VendorAlert] = []
        page = 1
        while True:
            data = await self._request(
                "POST",
                f"{self._pro_base_url}{ALERT_SEARCH_PATH}",
                params={
                    "order.direction": "ASC",
                    "order.property": "alertTime",
                    "size": page_size,
                    "page": page,
                },
                json=body,
                token=token,
            )
            records = data.get("data")
            if not isinstance(records, list) or not records:
                break

            alerts.extend(
                map_alert(record)
                for record in records
                if isinstance(record, dict) and record.get("deviceType") == INVERTER
            )
            if len(records) < page_size:
                break
            page += 1

        logger.info("Fetched Solarman alerts", vendor_id=self._config.id, count=len(alerts), pages=page)
        return alerts
