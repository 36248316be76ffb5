"""Shared HTTP plumbing for JSON vendor APIs."""

from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import structlog

from solarops.config.settings import Settings
from solarops.utils.exceptions import VendorAPIError
from solarops.utils.retry import retry_with_backoff
from solarops.vendors.base import TokenStore, VendorConfig

logger = structlog.get_logger(__name__)


class HttpVendorAdapter:
    """Base for vendor adapters that talk JSON over HTTP with bearer tokens.

    Owns the ``httpx.AsyncClient`` for the lifetime of an ``async with``
    block, retries transient failures and caches tokens in memory and in an
    optional token store. Subclasses set ``vendor_type`` and
    ``display_name`` and override ``_check_payload`` to reject responses the
    vendor marks as failed.
    """

    vendor_type = ""
    display_name = "Vendor"

    def __init__(
        self,
        config: VendorConfig,
        settings: Settings,
        token_store: TokenStore | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            config: Vendor configuration with credentials.
            settings: Application settings.
            token_store: Where tokens are cached between runs. Without one,
                tokens only live as long as the adapter.
        """
        self._config = config
        self._settings = settings
        self._token_store = token_store
        self._timeout = settings.vendor_timeout
        self._client: httpx.AsyncClient | None = None
        self._token: tuple[str, datetime] | None = None

        self._request = retry_with_backoff(
            max_retries=settings.max_retries,
            base_delay=settings.retry_delay,
        )(self._send)

    async def __aenter__(self) -> "HttpVendorAdapter":
        """Context manager entry."""
        self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _check_payload(self, data: Any, status_code: int) -> None:
        """Raise VendorAPIError if a 2xx response body reports failure."""

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> dict[str, Any]:
        """Make an API request.

        Raises:
            VendorAPIError: If the request fails or the vendor reports failure.
        """
        if not self._client:
            raise VendorAPIError("Client not initialized. Use 'async with' context manager.")

        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        logger.debug("Vendor request", vendor=self.display_name, method=method, url=url)
        try:
            response = await self._client.request(method, url, params=params, json=json, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Vendor API error",
                vendor=self.display_name,
                status_code=e.response.status_code,
                url=url,
                response=e.response.text[:500],
            )
            raise VendorAPIError(
                f"{self.display_name} request failed: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.error("Vendor request error", vendor=self.display_name, url=url, error=str(e))
            raise VendorAPIError(f"Request failed: {e}") from e
        except ValueError as e:
            raise VendorAPIError(f"Invalid JSON from {self.display_name}: {e}") from e

        self._check_payload(data, response.status_code)
        return data

    def _stored_token(self) -> str | None:
        """Return a cached token that stays valid past the refresh buffer."""
        cached = self._token
        if cached is None and self._token_store is not None:
            stored = self._token_store.get_token(self._config.id)
            if stored is not None and stored[1] is not None:
                cached = stored  # type: ignore[assignment]
        if cached is None:
            return None

        token, expires_at = cached
        if expires_at.tzinfo is None:
            # SQLite drops tzinfo; stored values are UTC
            expires_at = expires_at.replace(tzinfo=UTC)
        buffer = timedelta(minutes=self._settings.token_refresh_buffer_minutes)
        if expires_at - buffer > datetime.now(UTC):
            return token
        return None

    def _remember_token(self, token: str, lifetime_seconds: int) -> None:
        expires_at = datetime.now(UTC) + timedelta(seconds=lifetime_seconds)
        self._token = (token, expires_at)
        if self._token_store is not None:
            self._token_store.save_token(self._config.id, token, expires_at)
