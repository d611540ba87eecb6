"""Core module containing data models and configuration."""

from .models import (
    Sensor,
    SensorType,
    CpuInfo,
    GpuInfo,
    MemoryInfo,
    MotherboardInfo,
    StorageInfo,
    HardwareReport,
)
from .config import Config

__all__ = [
    "Sensor",
    "SensorType",
    "CpuInfo",
    "GpuInfo",
    "MemoryInfo",
    "MotherboardInfo",
    "StorageInfo",
    "HardwareReport",
    "Config",
]
