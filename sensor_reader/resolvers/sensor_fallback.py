"""
Fallback sensors for gaps left by the live-sensor source.

Temperatures come from ACPI thermal zones and aggregate CPU load from the
processor performance counters. Both are only consulted when the primary
source left the corresponding reading missing.
"""

import logging
from typing import List, Optional

from ..collectors.wmi_provider import NAMESPACE_CIMV2, NAMESPACE_WMI, WmiProvider, get_property
from ..core.models import (
    ORIGIN_WMI_FALLBACK,
    HardwareReport,
    Sensor,
    SensorType,
)


logger = logging.getLogger(__name__)


THERMAL_ZONE_QUERY = "SELECT CurrentTemperature, InstanceName FROM MSAcpi_ThermalZoneTemperature"
CPU_TOTAL_QUERY = (
    "SELECT Name, PercentProcessorTime FROM Win32_PerfFormattedData_PerfOS_Processor "
    "WHERE Name='_Total'"
)

CPU_ZONE_TOKENS = ("CPU", "PROCESSOR", "PROC")
GPU_ZONE_TOKENS = ("GPU", "GFX", "VIDEO", "GRAPHICS")

CPU_TOTAL_SENSOR_NAME = "CPU Total"


def kelvin_tenths_to_celsius(raw: float) -> float:
    """Thermal zones report tenths of a Kelvin."""
    return raw / 10.0 - 273.15


def has_primary_temperature(sensors: List[Sensor]) -> bool:
    """True when a temperature sensor not produced by a fallback is present."""
    return any(
        s.sensor_type == SensorType.TEMPERATURE and s.data_source != ORIGIN_WMI_FALLBACK
        for s in sensors
    )


def has_total_load(sensors: List[Sensor]) -> bool:
    return any(
        s.sensor_type == SensorType.LOAD and "total" in s.name.lower()
        for s in sensors
    )


def _add_unique(target: List[Sensor], sensor: Sensor) -> bool:
    if any(s.name == sensor.name and s.data_source == sensor.data_source for s in target):
        return False
    target.append(sensor)
    return True


class SensorFallbackResolver:
    """Backfills missing temperatures and CPU load from WMI."""

    def __init__(self, provider: WmiProvider):
        self.provider = provider

    def resolve(self, report: HardwareReport):
        """Fill gaps in place. Provider failures leave the gaps unfilled."""
        self.fill_missing_temperatures(report)
        self.fill_missing_cpu_load(report)

    def _temperature_targets(self, report: HardwareReport) -> dict:
        """Sensor lists, keyed by route, of records still lacking a temperature."""
        targets = {}
        if report.cpus and not has_primary_temperature(report.cpus[0].sensors):
            targets["cpu"] = report.cpus[0].sensors
        if report.gpus and not has_primary_temperature(report.gpus[0].sensors):
            targets["gpu"] = report.gpus[0].sensors
        if not has_primary_temperature(report.motherboard.sensors):
            targets["motherboard"] = report.motherboard.sensors
        return targets

    @staticmethod
    def route_zone(instance_name: str) -> str:
        """Pick the component a thermal zone belongs to from its instance name."""
        name = instance_name.upper()
        if any(token in name for token in CPU_ZONE_TOKENS):
            return "cpu"
        if any(token in name for token in GPU_ZONE_TOKENS):
            return "gpu"
        return "motherboard"

    def fill_missing_temperatures(self, report: HardwareReport) -> int:
        """Returns the number of sensors added."""
        targets = self._temperature_targets(report)
        if not targets:
            return 0

        rows = self.provider.query(THERMAL_ZONE_QUERY, NAMESPACE_WMI)
        if rows is None:
            logger.debug("Thermal zone fallback unavailable")
            return 0

        added = 0
        for row in rows:
            raw = get_property(row, "CurrentTemperature", 0.0, cast=float)
            if raw <= 0:
                continue
            instance_name = get_property(row, "InstanceName", "Thermal Zone")
            target = targets.get(self.route_zone(instance_name))
            if target is None:
                continue

            sensor = Sensor(
                name=instance_name,
                value=kelvin_tenths_to_celsius(raw),
                sensor_type=SensorType.TEMPERATURE,
                data_source=ORIGIN_WMI_FALLBACK,
            )
            if _add_unique(target, sensor):
                added += 1

        if added:
            logger.info(f"Added {added} fallback temperature sensor(s)")
        return added

    def fill_missing_cpu_load(self, report: HardwareReport) -> Optional[Sensor]:
        """Attach the processor-time counter when the CPU has no total load."""
        if not report.cpus or has_total_load(report.cpus[0].sensors):
            return None

        rows = self.provider.query(CPU_TOTAL_QUERY, NAMESPACE_CIMV2)
        if not rows:
            logger.debug("CPU load fallback unavailable")
            return None

        value = get_property(rows[0], "PercentProcessorTime", None, cast=float)
        if value is None:
            return None

        sensor = Sensor(
            name=CPU_TOTAL_SENSOR_NAME,
            value=value,
            sensor_type=SensorType.LOAD,
            data_source=ORIGIN_WMI_FALLBACK,
        )
        report.cpus[0].sensors.append(sensor)
        return sensor

    def close(self):
        self.provider.close()
