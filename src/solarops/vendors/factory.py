"""Vendor adapter registry."""

from collections.abc import Callable

from solarops.config.settings import Settings
from solarops.utils.exceptions import ConfigurationError
from solarops.vendors.base import TokenStore, VendorAdapter, VendorConfig
from solarops.vendors.solardm import SolarDmAdapter
from solarops.vendors.solarman import SolarmanAdapter

AdapterFactory = Callable[[VendorConfig, Settings, TokenStore | None], VendorAdapter]

_ADAPTERS: dict[str, AdapterFactory] = {}


def register_adapter(vendor_type: str, factory: AdapterFactory) -> None:
    """Register an adapter class or factory for a vendor type.

    Args:
        vendor_type: Vendor type name, matched case-insensitively.
        factory: Callable taking (config, settings, token_store).
    """
    _ADAPTERS[vendor_type.upper()] = factory


def is_supported(vendor_type: str) -> bool:
    return vendor_type.upper() in _ADAPTERS


def supported_types() -> list[str]:
    return sorted(_ADAPTERS)


def create_adapter(
    config: VendorConfig,
    settings: Settings,
    token_store: TokenStore | None = None,
) -> VendorAdapter:
    """Create the adapter for a vendor.

    Raises:
        ConfigurationError: If no adapter is registered for the vendor type.
    """
    vendor_type = config.vendor_type.upper()
    factory = _ADAPTERS.get(vendor_type)
    if factory is None:
        raise ConfigurationError(
            f"No adapter registered for vendor type: {vendor_type}. "
            f"Available types: {', '.join(supported_types())}"
        )
    return factory(config, settings, token_store)


for _adapter in (SolarmanAdapter, SolarDmAdapter):
    register_adapter(_adapter.vendor_type, _adapter)
