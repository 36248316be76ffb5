"""Tests for the Solarman adapter."""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from solarops.utils.exceptions import ConfigurationError, VendorAPIError
from solarops.vendors.base import VendorConfig
from solarops.vendors.solarman import SolarmanAdapter, alert_severity, map_alert, map_station

CREDENTIALS = {
    "appId": "123",
    "appSecret": "s3cret",
    "username": "ops@example.com",
    "passwordSha256": "abc123",
}


class MemoryTokenStore:
    def __init__(self, tokens=None):
        self.tokens = dict(tokens or {})

    def get_token(self, vendor_id):
        return self.tokens.get(vendor_id)

    def save_token(self, vendor_id, token, expires_at):
        self.tokens[vendor_id] = (token, expires_at)


@pytest.fixture
def config():
    return VendorConfig(id=5, name="Solarman", vendor_type="SOLARMAN", org_id=1, credentials=CREDENTIALS)


@pytest.fixture
def adapter(config, test_settings):
    return SolarmanAdapter(config, test_settings)


STATION = {
    "id": 60001,
    "name": "Rooftop A",
    "installedCapacity": 250.0,
    "locationLat": 12.97,
    "locationLng": 77.59,
    "locationAddress": "Bengaluru",
    "generationPower": 120500,
    "generationValue": 812.4,
    "generationMonth": 20500,
    "generationYear": 240000,
    "generationTotal": 1200000,
    "prYesterday": 0.81,
    "lastUpdateTime": 1700000000.123,
    "createdDate": 1600000000,
    "startOperatingTime": 1650000000,
    "networkStatus": " NORMAL",
}


class TestMapStation:
    """Test map_station."""

    def test_full_station(self):
        plant = map_station(STATION)

        assert plant.external_id == "60001"
        assert plant.name == "Rooftop A"
        assert plant.capacity_kw == 250.0
        assert plant.location == {"lat": 12.97, "lng": 77.59, "address": "Bengaluru"}
        assert plant.metadata["currentPowerKw"] == 120.5
        assert plant.metadata["dailyEnergyKwh"] == 812.4
        assert plant.metadata["monthlyEnergyMwh"] == 20.5
        assert plant.metadata["yearlyEnergyMwh"] == 240.0
        assert plant.metadata["totalEnergyMwh"] == 1200.0
        assert plant.metadata["performanceRatio"] == 0.81
        assert plant.metadata["lastUpdateTime"] == "2023-11-14T22:13:20+00:00"
        assert plant.metadata["networkStatus"] == "NORMAL"
        assert plant.metadata["locationAddress"] == "Bengaluru"

    def test_performance_ratio_from_generation_capacity(self):
        plant = map_station({"id": 1, "installedCapacity": 200, "generationCapacity": 150})
        assert plant.metadata["performanceRatio"] == 0.75

    def test_sparse_station(self):
        plant = map_station({"id": 7})

        assert plant.name == "Station 7"
        assert plant.capacity_kw == 0
        assert plant.location is None
        assert plant.metadata["currentPowerKw"] is None
        assert plant.metadata["performanceRatio"] is None
        assert plant.metadata["lastUpdateTime"] is None

    def test_station_without_id(self):
        plant = map_station({"name": "Ghost"})
        assert plant.external_id is None


ALERT = {
    "id": 9001,
    "stationId": 60001,
    "alertName": "Grid Overvoltage",
    "level": 0,
    "influence": 1,
    "deviceType": "INVERTER",
    "alertTime": 1700000000,
    "endTime": 1700003600,
}


class TestMapAlert:
    """Test map_alert and alert_severity."""

    def test_full_alert(self):
        alert = map_alert(ALERT)

        assert alert.external_id == "9001"
        assert alert.external_plant_id == "60001"
        assert alert.title == "Grid Overvoltage"
        assert alert.severity == "MEDIUM"
        assert alert.device_type == "INVERTER"
        assert alert.alert_time == "2023-11-14T22:13:20+00:00"
        assert alert.end_time == "2023-11-14T23:13:20+00:00"
        assert alert.metadata == ALERT

    def test_active_alert(self):
        alert = map_alert({"id": 1, "stationId": 2, "alertTime": 1700000000})
        assert alert.end_time is None
        assert alert.title is None

    @pytest.mark.parametrize(
        ("level", "influence", "expected"),
        [
            (0, 0, "LOW"),
            (0, 1, "MEDIUM"),
            (1, None, "MEDIUM"),
            (2, 0, "HIGH"),
            (0, 2, "CRITICAL"),
            (1, 3, "CRITICAL"),
            (None, None, "MEDIUM"),
            (7, 0, "MEDIUM"),
        ],
    )
    def test_severity(self, level, influence, expected):
        assert alert_severity(level, influence) == expected


class TestSolarmanAdapter:
    """Test SolarmanAdapter."""

    def test_urls_derived_from_settings(self, adapter):
        assert adapter._auth_base_url == "https://globalapi.solarmanpv.com"
        assert adapter._pro_base_url == "https://globalpro.solarmanpv.com"

    def test_urls_from_vendor_base_url(self, config, test_settings):
        config.api_base_url = "https://globalpro.solarmanpv.com/some/path"
        adapter = SolarmanAdapter(config, test_settings)

        assert adapter._auth_base_url == "https://globalapi.solarmanpv.com"
        assert adapter._pro_base_url == "https://globalpro.solarmanpv.com"

    @pytest.mark.asyncio
    async def test_context_manager(self, adapter):
        async with adapter as a:
            assert a._client is not None
        assert a._client is None

    @pytest.mark.asyncio
    async def test_request_without_context_manager_raises(self, adapter):
        with pytest.raises(VendorAPIError, match="Client not initialized"):
            await adapter._request("GET", "https://example.com")

    @pytest.mark.asyncio
    async def test_authenticate_request(self, adapter):
        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"access_token": "tok-1", "expires_in": 7200}
            token = await adapter.authenticate()

        assert token == "tok-1"
        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://globalapi.solarmanpv.com/account/v1.0/token")
        assert kwargs["params"] == {"appId": "123"}
        assert kwargs["json"] == {
            "appSecret": "s3cret",
            "username": "ops@example.com",
            "password": "abc123",
        }

    @pytest.mark.asyncio
    async def test_authenticate_includes_solarman_org(self, config, test_settings):
        config.credentials = {**CREDENTIALS, "orgId": 42}
        adapter = SolarmanAdapter(config, test_settings)

        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"access_token": "tok"}
            await adapter.authenticate()

        assert mock_request.call_args.kwargs["json"]["orgId"] == 42

    @pytest.mark.asyncio
    async def test_authenticate_requires_password(self, config, test_settings):
        config.credentials = {"appId": "1", "appSecret": "s", "username": "u"}
        adapter = SolarmanAdapter(config, test_settings)

        with pytest.raises(ConfigurationError, match="password"):
            await adapter.authenticate()

    @pytest.mark.asyncio
    async def test_authenticate_without_token_in_response(self, adapter):
        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"success": True}
            with pytest.raises(VendorAPIError, match="no access token"):
                await adapter.authenticate()

    @pytest.mark.asyncio
    async def test_token_saved_and_reused(self, config, test_settings):
        store = MemoryTokenStore()
        adapter = SolarmanAdapter(config, test_settings, token_store=store)

        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"access_token": "tok-1", "expires_in": 3600}
            await adapter.authenticate()
            await adapter.authenticate()

        assert mock_request.call_count == 1
        assert store.tokens[5][0] == "tok-1"

    @pytest.mark.asyncio
    async def test_stored_token_reused_across_adapters(self, config, test_settings):
        store = MemoryTokenStore({5: ("stored", datetime.now(UTC) + timedelta(hours=1))})
        adapter = SolarmanAdapter(config, test_settings, token_store=store)

        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            assert await adapter.authenticate() == "stored"

        mock_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_naive_stored_expiry_treated_as_utc(self, config, test_settings):
        expires = (datetime.now(UTC) + timedelta(hours=1)).replace(tzinfo=None)
        store = MemoryTokenStore({5: ("stored", expires)})
        adapter = SolarmanAdapter(config, test_settings, token_store=store)

        assert await adapter.authenticate() == "stored"

    @pytest.mark.asyncio
    async def test_token_inside_refresh_buffer_is_renewed(self, config, test_settings):
        store = MemoryTokenStore({5: ("old", datetime.now(UTC) + timedelta(minutes=2))})
        adapter = SolarmanAdapter(config, test_settings, token_store=store)

        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.return_value = {"access_token": "new"}
            assert await adapter.authenticate() == "new"

        assert store.tokens[5][0] == "new"

    @pytest.mark.asyncio
    async def test_list_plants(self, adapter):
        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = [
                {"access_token": "tok"},
                {"total": 2, "data": [{"station": STATION}, {"station": {"id": 2, "name": "B"}}, {"tags": []}]},
            ]
            plants = await adapter.list_plants()

        assert [p.external_id for p in plants] == ["60001", "2"]
        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://globalpro.solarmanpv.com/maintain-s/operating/station/v2/search")
        assert kwargs["json"] == {"station": {"powerTypeList": ["PV"]}}
        assert kwargs["token"] == "tok"

    @pytest.mark.asyncio
    async def test_list_plants_empty(self, adapter):
        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = [{"access_token": "tok"}, {"total": 0, "data": []}]
            assert await adapter.list_plants() == []

    @pytest.mark.asyncio
    async def test_list_plants_invalid_response(self, adapter):
        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = [{"access_token": "tok"}, {"msg": "weird"}]
            with pytest.raises(VendorAPIError, match="expected data array"):
                await adapter.list_plants()

    @pytest.mark.asyncio
    async def test_list_alerts_pages_and_filters_inverters(self, adapter, test_settings):
        test_settings.alert_page_size = 2
        meter = {**ALERT, "id": 9002, "deviceType": "METER"}
        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = [
                {"access_token": "tok"},
                {"data": [ALERT, meter]},
                {"data": [{**ALERT, "id": 9003}]},
            ]
            alerts = await adapter.list_alerts(
                datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 3, 31, 23, 0, tzinfo=UTC)
            )

        assert [a.external_id for a in alerts] == ["9001", "9003"]
        assert mock_request.call_count == 3
        args, kwargs = mock_request.call_args
        assert args == ("POST", "https://globalpro.solarmanpv.com/maintain-s/operating/station/alert")
        assert kwargs["params"] == {
            "order.direction": "ASC",
            "order.property": "alertTime",
            "size": 2,
            "page": 2,
        }
        assert kwargs["json"]["startDay"] == "2024-01-01"
        assert kwargs["json"]["endDay"] == "2024-03-31"
        assert kwargs["json"]["timeZone"] == test_settings.sync_timezone
        assert kwargs["token"] == "tok"

    @pytest.mark.asyncio
    async def test_list_alerts_stops_on_empty_page(self, adapter, test_settings):
        test_settings.alert_page_size = 1
        with patch.object(adapter, "_request", new_callable=AsyncMock) as mock_request:
            mock_request.side_effect = [{"access_token": "tok"}, {"data": [ALERT]}, {"data": []}]
            alerts = await adapter.list_alerts(
                datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 2, 1, tzinfo=UTC)
            )

        assert len(alerts) == 1
        assert mock_request.call_count == 3


class TestSolarmanTransport:
    """Test request handling against a mocked HTTP transport."""

    @staticmethod
    def _client(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self, adapter):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": []})

        adapter._client = self._client(handler)
        await adapter._request("POST", "https://pro.example.com/x", json={"a": 1}, token="tok")

        assert seen == {"auth": "Bearer tok", "body": {"a": 1}}

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, adapter):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, text="bad credentials")

        adapter._client = self._client(handler)
        with pytest.raises(VendorAPIError) as exc_info:
            await adapter._request("POST", "https://api.example.com/token")

        assert exc_info.value.status_code == 401
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried(self, adapter, test_settings):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        adapter._client = self._client(handler)
        with pytest.raises(VendorAPIError):
            await adapter._request("GET", "https://api.example.com/x")

        assert len(calls) == test_settings.max_retries + 1

    @pytest.mark.asyncio
    async def test_success_false_raises(self, adapter):
        adapter._client = self._client(
            lambda request: httpx.Response(200, json={"success": False, "msg": "auth invalid"})
        )
        with pytest.raises(VendorAPIError, match="auth invalid"):
            await adapter._request("GET", "https://api.example.com/x")

    @pytest.mark.asyncio
    async def test_reported_failure_not_retried(self, adapter):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"success": False, "msg": "rate limited"})

        adapter._client = self._client(handler)
        with pytest.raises(VendorAPIError) as exc_info:
            await adapter._request("GET", "https://api.example.com/x")

        assert exc_info.value.status_code == 200
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_transport_error(self, adapter):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        adapter._client = self._client(handler)
        with pytest.raises(VendorAPIError, match="Request failed"):
            await adapter._request("GET", "https://api.example.com/x")
