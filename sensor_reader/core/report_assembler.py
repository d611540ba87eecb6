"""
Report Assembler.

Runs the inventory source, the live-sensor source and the fallback
resolver in a fixed order and stamps the result.
"""

import logging
import platform
from datetime import datetime
from typing import Optional

from .config import SOURCE_AUTO, Config
from .models import HardwareReport


logger = logging.getLogger(__name__)


class ReportAssembler:
    """
    Builds one HardwareReport per call.

    Order: static inventory (storage media types are resolved during
    inventory collection), live sensors, fallbacks, timestamp.
    """

    def __init__(self, inventory, sensors, fallback=None):
        self.inventory = inventory
        self.sensors = sensors
        self.fallback = fallback

    def build(self) -> Optional[HardwareReport]:
        """
        Assemble a report, or None if the live-sensor source is unavailable.
        """
        report = self.inventory.get_hardware_report()
        if report is None:
            logger.warning("Inventory source returned nothing, continuing with an empty report")
            report = HardwareReport()

        report = self.sensors.get_hardware_report(report)
        if report is None:
            return None

        if self.fallback is not None:
            try:
                self.fallback.resolve(report)
            except Exception as e:
                logger.warning(f"Fallback sensors unavailable: {e}")

        report.timestamp = datetime.now().astimezone().isoformat()
        return report

    def close(self):
        """Release every source; later ones are closed even if an earlier one fails."""
        try:
            self.sensors.close()
        finally:
            try:
                self.inventory.close()
            finally:
                if self.fallback is not None:
                    self.fallback.close()


def _resolve_source(requested: str, windows_choice: str) -> str:
    if requested != SOURCE_AUTO:
        return requested
    return windows_choice if platform.system() == "Windows" else "local"


def create_assembler(config: Config) -> ReportAssembler:
    """Wire sources from configuration; ``auto`` picks WMI/LHM on Windows."""
    from ..collectors.live_collector import LiveSensorCollector, MonitorHandle
    from ..collectors.local_collector import LocalInventoryCollector, LocalSensorCollector
    from ..collectors.static_collector import StaticInventoryCollector
    from ..collectors.wmi_provider import WmiProvider
    from ..resolvers.sensor_fallback import SensorFallbackResolver

    collection = config.collection
    inventory_source = _resolve_source(collection.inventory_source, "wmi")
    sensor_source = _resolve_source(collection.sensor_source, "lhm")

    provider = None
    if inventory_source == "wmi" or (sensor_source == "lhm" and collection.enable_fallbacks):
        provider = WmiProvider()

    if inventory_source == "wmi":
        inventory = StaticInventoryCollector(provider)
    else:
        inventory = LocalInventoryCollector()

    fallback = None
    if sensor_source == "lhm":
        sensors = LiveSensorCollector(MonitorHandle(
            dll_path=collection.lhm_dll_path,
            warmup_seconds=collection.monitor_warmup_seconds,
        ))
        if collection.enable_fallbacks:
            fallback = SensorFallbackResolver(provider)
    else:
        sensors = LocalSensorCollector()

    logger.info(f"Using inventory source '{inventory_source}' and sensor source '{sensor_source}'")
    return ReportAssembler(inventory, sensors, fallback)
