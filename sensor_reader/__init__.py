"""Sensor Reader: hardware inventory and live sensor snapshots."""

__version__ = "1.0.0"
