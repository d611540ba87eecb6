"""
Report output formatters.

Two encodings of a HardwareReport:

- ``Json``: the full report tree, strict JSON.
- ``PlainText``: one ``KEY:value;`` entry per live sensor reading, for
  consumers that want a flat line they can split without a JSON parser.
"""

import json
import logging
import math
import sys
from typing import Any, Dict, List, TextIO

from ..core.models import HardwareReport, Sensor, SensorType


logger = logging.getLogger(__name__)


FORMAT_JSON = "Json"
FORMAT_PLAIN_TEXT = "PlainText"

_KEY_SEPARATORS = (" ", "_", "-", "/", "\\")


def sanitize_key(name: str) -> str:
    """
    Normalize a name into a key segment.

    The name is uppercased first, then letters and digits are kept,
    separators become a single underscore and anything else is dropped.
    Letters that uppercase to a base letter plus a combining mark keep
    only the base letter. Applying it twice gives the same result as applying it once.
    """
    if not name:
        return ""

    chars = []
    for c in str(name).upper():
        if c.isalnum():
            chars.append(c)
        elif c in _KEY_SEPARATORS:
            if not chars or chars[-1] != "_":
                chars.append("_")
    return "".join(chars)


def format_value(value: float) -> str:
    """One fractional digit, ``.`` as decimal separator."""
    return f"{value:.1f}"


def _replace_non_finite(obj: Any) -> Any:
    """Swap NaN and infinities for their names so the tree stays valid JSON."""
    if isinstance(obj, float) and not math.isfinite(obj):
        if math.isnan(obj):
            return "NaN"
        return "Infinity" if obj > 0 else "-Infinity"
    if isinstance(obj, dict):
        return {k: _replace_non_finite(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_replace_non_finite(v) for v in obj]
    return obj


class OutputFormatter:
    """Base class for report encodings."""

    name = ""

    def format(self, report: HardwareReport) -> str:
        raise NotImplementedError

    def write(self, report: HardwareReport, stream: TextIO = None):
        """Write the encoded report followed by a newline."""
        stream = stream or sys.stdout
        stream.write(self.format(report))
        stream.write("\n")
        stream.flush()


class JsonOutputFormatter(OutputFormatter):
    """Serializes the whole report tree."""

    name = FORMAT_JSON

    def __init__(self, indent: int = 2):
        self.indent = indent

    def format(self, report: HardwareReport) -> str:
        data = _replace_non_finite(report.to_dict())
        return json.dumps(data, indent=self.indent or None, ensure_ascii=False, allow_nan=False)


class PlainTextOutputFormatter(OutputFormatter):
    """
    Flat ``KEY:value;`` encoding of live sensor readings.

    Keys are ``<PREFIX>_<KIND>_<SENSOR NAME>``. Sections come out in the
    order CPU, GPU, memory, motherboard, storage; sensors without a value
    are skipped.
    """

    name = FORMAT_PLAIN_TEXT

    # Memory "Data" readings are GiB in the report and MiB in this encoding
    MEMORY_DATA_SCALE = 1024

    def _entries(self, prefix: str, sensors: List[Sensor], data_scale: float = 1) -> List[str]:
        entries = []
        for sensor in sensors:
            if sensor.value is None:
                continue
            value = sensor.value
            if sensor.sensor_type == SensorType.DATA:
                value = value * data_scale
            key = f"{prefix}_{sensor.sensor_type.value.upper()}_{sanitize_key(sensor.name)}"
            entries.append(f"{key}:{format_value(value)};")
        return entries

    def format(self, report: HardwareReport) -> str:
        entries = []

        for cpu in report.cpus:
            entries.extend(self._entries("CPU", cpu.sensors))

        multi_gpu = len(report.gpus) > 1
        for gpu in report.gpus:
            prefix = f"GPU_{sanitize_key(gpu.name)}" if multi_gpu else "GPU"
            entries.extend(self._entries(prefix, gpu.sensors))

        entries.extend(self._entries("RAM", report.memory.global_sensors, self.MEMORY_DATA_SCALE))
        entries.extend(self._entries("MB", report.motherboard.sensors))

        for position, device in enumerate(report.storage_devices):
            # Drives without a usable model are keyed by their position
            name = sanitize_key(device.model).strip("_") or f"DISK{position}"
            entries.extend(self._entries(f"STORAGE_{name}", device.sensors))

        return "".join(entries)


FORMATTERS: Dict[str, type] = {
    FORMAT_JSON.lower(): JsonOutputFormatter,
    FORMAT_PLAIN_TEXT.lower(): PlainTextOutputFormatter,
}


def get_formatter(name: str, indent: int = 2) -> OutputFormatter:
    """Resolve a formatter by name, case-insensitively."""
    key = (name or FORMAT_JSON).strip().lower()
    formatter_class = FORMATTERS.get(key)
    if formatter_class is None:
        raise ValueError(
            f"Unknown output format '{name}', expected {FORMAT_JSON} or {FORMAT_PLAIN_TEXT}"
        )
    if formatter_class is JsonOutputFormatter:
        return JsonOutputFormatter(indent=indent)
    return formatter_class()
