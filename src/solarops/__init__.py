"""SolarOps - work orders and vendor plant synchronization for solar operators."""

__version__ = "0.1.0"
