"""
Live Sensor Collector.

Reads temperatures, loads, clocks, fans, power and voltages from
LibreHardwareMonitor (loaded through pythonnet) and attaches them to the
matching records of an inventory report.
"""

import logging
import math
import os
import sys
import time
from typing import Any, Callable, List, Optional

from ..core.matching import attach_sensors
from ..core.models import ORIGIN_LHM, HardwareReport, Sensor, SensorType
from .base import HardwareSource


logger = logging.getLogger(__name__)


LHM_DLL_NAME = "LibreHardwareMonitorLib.dll"


def find_lhm_dll(explicit_path: Optional[str] = None) -> Optional[str]:
    """Locate LibreHardwareMonitorLib.dll in the usual install locations."""
    if explicit_path:
        return explicit_path if os.path.exists(explicit_path) else None

    base_path = getattr(sys, "_MEIPASS", os.path.dirname(os.path.abspath(__file__)))
    search_paths = [
        os.path.join(base_path, "libs", LHM_DLL_NAME),
        os.path.join(base_path, LHM_DLL_NAME),
        os.path.join(os.getcwd(), LHM_DLL_NAME),
        os.path.join(os.getcwd(), "libs", LHM_DLL_NAME),
        os.path.join("C:\\Program Files", "LibreHardwareMonitor", LHM_DLL_NAME),
        os.path.join("C:\\Program Files (x86)", "LibreHardwareMonitor", LHM_DLL_NAME),
    ]
    for path in search_paths:
        if os.path.exists(path):
            return path
    return None


def load_lhm_computer(dll_path: Optional[str] = None):
    """Create an unopened LibreHardwareMonitor ``Computer``."""
    import clr

    resolved = find_lhm_dll(dll_path)
    if not resolved:
        raise FileNotFoundError(f"{LHM_DLL_NAME} not found")

    clr.AddReference(resolved)
    from LibreHardwareMonitor.Hardware import Computer

    return Computer()


def sanitize_value(raw: Any) -> Optional[float]:
    """Convert a library reading to a float, mapping NaN and Infinity to None."""
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


class MonitorHandle:
    """
    Long-lived handle on the monitoring library.

    Opening enumerates every hardware driver and is slow, so the handle is
    opened once on first use, kept for the process lifetime and closed
    exactly once.
    """

    def __init__(
        self,
        dll_path: Optional[str] = None,
        warmup_seconds: float = 2.0,
        computer_factory: Optional[Callable[[], Any]] = None,
    ):
        self.dll_path = dll_path
        self.warmup_seconds = warmup_seconds
        self._computer_factory = computer_factory or (lambda: load_lhm_computer(self.dll_path))
        self._computer = None

    @property
    def is_open(self) -> bool:
        return self._computer is not None

    def open(self):
        """Open the library; raises when it cannot be loaded."""
        if self.is_open:
            return

        computer = self._computer_factory()
        computer.IsCpuEnabled = True
        computer.IsGpuEnabled = True
        computer.IsMotherboardEnabled = True
        computer.IsMemoryEnabled = True
        computer.IsStorageEnabled = True
        computer.Open()
        self._computer = computer

        # First readings are only populated after the drivers settle
        if self.warmup_seconds > 0:
            time.sleep(self.warmup_seconds)
        logger.info("Hardware monitor opened")

    def ensure_open(self) -> bool:
        """Open on first use. Returns False if the library is unavailable."""
        if self.is_open:
            return True
        try:
            self.open()
        except Exception as e:
            logger.error(f"Could not open hardware monitor: {e}")
            return False
        return True

    @property
    def hardware(self) -> List[Any]:
        if not self.is_open:
            return []
        return list(self._computer.Hardware)

    def update(self):
        """Refresh every hardware node and sub-node so sensor values are current."""
        for hardware in self.hardware:
            self._update(hardware)

    def _update(self, hardware):
        hardware.Update()
        for sub_hardware in hardware.SubHardware:
            self._update(sub_hardware)

    def close(self):
        if not self.is_open:
            return
        computer, self._computer = self._computer, None
        try:
            computer.Close()
        finally:
            logger.info("Hardware monitor closed")

    def __enter__(self):
        self.ensure_open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class LiveSensorCollector(HardwareSource):
    """
    Attaches live sensors to an inventory report.

    CPU and GPU readings go to the first record of their category.
    """

    def __init__(self, handle: Optional[MonitorHandle] = None):
        self.handle = handle or MonitorHandle()

    def read_sensors(self, hardware) -> List[Sensor]:
        """Wrap the sensors of one hardware node."""
        sensors = []
        for sensor in hardware.Sensors:
            sensor_type = SensorType.from_name(str(sensor.SensorType))
            sensors.append(Sensor(
                name=str(sensor.Name),
                value=sanitize_value(sensor.Value),
                sensor_type=sensor_type,
                unit=sensor_type.unit,
                data_source=ORIGIN_LHM,
            ))
        return sensors

    def _process_hardware(self, hardware, report: HardwareReport):
        hardware_type = str(hardware.HardwareType)
        hardware_name = str(hardware.Name)
        attach_sensors(report, hardware_type, hardware_name, self.read_sensors(hardware))

        for sub_hardware in hardware.SubHardware:
            self._process_hardware(sub_hardware, report)

    def get_hardware_report(self, existing: Optional[HardwareReport] = None) -> Optional[HardwareReport]:
        """Enrich ``existing`` (or a new report); None when the monitor is unavailable."""
        if not self.handle.ensure_open():
            return None

        report = existing if existing is not None else HardwareReport()
        report.add_data_source(self.name)

        self.handle.update()
        for hardware in self.handle.hardware:
            self._process_hardware(hardware, report)

        return report

    def close(self):
        self.handle.close()
