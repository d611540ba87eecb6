"""
Cross-source identity matching.

The inventory and live-sensor sources share no primary key, so records
are paired by name. CPU and GPU readings go to the first record of their
category: multi-socket and multi-GPU machines get every reading on the
first device.
"""

import logging
from typing import Iterable, List, Optional

from .models import NOT_AVAILABLE, HardwareReport, Sensor, StorageInfo


logger = logging.getLogger(__name__)


CPU_HARDWARE_TYPES = ("Cpu",)
GPU_HARDWARE_TYPES = ("GpuNvidia", "GpuAmd", "GpuIntel")
MEMORY_HARDWARE_TYPES = ("Memory",)
MOTHERBOARD_HARDWARE_TYPES = ("Motherboard", "SuperIO")
STORAGE_HARDWARE_TYPES = ("Storage",)


def sanitize_name(name: Optional[str]) -> str:
    """Strip all whitespace and uppercase, for case-insensitive comparison."""
    if not name:
        return ""
    return "".join(str(name).split()).upper()


def find_storage_device(report: HardwareReport, hardware_name: str) -> Optional[StorageInfo]:
    """
    Find the inventory drive a live storage node belongs to.

    A drive matches when its sanitized model is contained in the sanitized
    hardware name. The first match wins, so drives sharing a generic model
    prefix can be mis-paired. Drives without a model never match.
    """
    target = sanitize_name(hardware_name)
    for device in report.storage_devices:
        model = sanitize_name(device.model)
        if model and model != NOT_AVAILABLE and model in target:
            return device
    return None


def attach_sensors(
    report: HardwareReport,
    hardware_type: str,
    hardware_name: str,
    sensors: Iterable[Sensor],
) -> bool:
    """
    Attach sensors of one hardware node to the matching report record.

    Returns False when no record takes the readings; they are dropped.
    """
    target: Optional[List[Sensor]] = None

    if hardware_type in CPU_HARDWARE_TYPES:
        if report.cpus:
            target = report.cpus[0].sensors
    elif hardware_type in GPU_HARDWARE_TYPES:
        if report.gpus:
            target = report.gpus[0].sensors
    elif hardware_type in MEMORY_HARDWARE_TYPES:
        target = report.memory.global_sensors
    elif hardware_type in MOTHERBOARD_HARDWARE_TYPES:
        target = report.motherboard.sensors
    elif hardware_type in STORAGE_HARDWARE_TYPES:
        device = find_storage_device(report, hardware_name)
        if device is not None:
            target = device.sensors

    if target is None:
        logger.debug(f"No record for {hardware_type} '{hardware_name}', readings dropped")
        return False

    target.extend(sensors)
    return True
