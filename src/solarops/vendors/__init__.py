"""Vendor API adapters."""

from solarops.vendors.base import TokenStore, VendorAdapter, VendorAlert, VendorConfig, VendorPlant
from solarops.vendors.factory import create_adapter, is_supported, register_adapter, supported_types
from solarops.vendors.solardm import SolarDmAdapter
from solarops.vendors.solarman import SolarmanAdapter
from solarops.vendors.token_store import DatabaseTokenStore

__all__ = [
    "DatabaseTokenStore",
    "SolarDmAdapter",
    "SolarmanAdapter",
    "TokenStore",
    "VendorAdapter",
    "VendorAlert",
    "VendorConfig",
    "VendorPlant",
    "create_adapter",
    "is_supported",
    "register_adapter",
    "supported_types",
]
