"""Plant management."""

from solarops.plants.service import PlantService

__all__ = ["PlantService"]
