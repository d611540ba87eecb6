"""Collectors module for gathering hardware inventory and sensors."""

from .base import HardwareSource
from .wmi_provider import WmiProvider
from .live_collector import LiveSensorCollector, MonitorHandle

__all__ = [
    "HardwareSource",
    "WmiProvider",
    "LiveSensorCollector",
    "MonitorHandle",
]
