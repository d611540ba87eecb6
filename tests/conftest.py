"""
Shared fixtures: in-memory stand-ins for the management provider and the
LibreHardwareMonitor object model, so no test touches real hardware APIs.
"""

import re

import pytest


ENV_VARS = (
    "SENSOR_READER_INTERVAL",
    "SENSOR_READER_FORMAT",
    "SENSOR_READER_INVENTORY_SOURCE",
    "SENSOR_READER_SENSOR_SOURCE",
    "LHM_DLL_PATH",
    "LOG_LEVEL",
)

_CLASS_PATTERN = re.compile(r"(?:FROM|AssocClass\s*=)\s+(\w+)", re.IGNORECASE)


class FakeWmiProvider:
    """
    Answers WQL queries from a table keyed by the queried class.

    A value may be a list of rows, None (query failed) or a callable taking
    the query text. Classes missing from the table behave like failed
    queries.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.queries = []
        self.close_count = 0

    def query(self, wql, namespace=None):
        self.queries.append((wql, namespace))
        if wql in self.responses:
            response = self.responses[wql]
        else:
            classes = _CLASS_PATTERN.findall(wql)
            key = next((c for c in reversed(classes) if c in self.responses), None)
            if key is None:
                return None
            response = self.responses[key]

        if callable(response):
            return response(wql)
        if response is None:
            return None
        return [dict(row) for row in response]

    def queried(self, class_name):
        return [q for q, _ in self.queries if class_name in q]

    def close(self):
        self.close_count += 1


class FakeSensor:
    def __init__(self, name, sensor_type, value):
        self.Name = name
        self.SensorType = sensor_type
        self.Value = value


class FakeHardware:
    def __init__(self, name, hardware_type, sensors=None, sub_hardware=None):
        self.Name = name
        self.HardwareType = hardware_type
        self.Sensors = list(sensors or [])
        self.SubHardware = list(sub_hardware or [])
        self.update_count = 0

    def Update(self):
        self.update_count += 1


class FakeComputer:
    def __init__(self, hardware=None):
        self.Hardware = list(hardware or [])
        self.IsCpuEnabled = False
        self.IsGpuEnabled = False
        self.IsMotherboardEnabled = False
        self.IsMemoryEnabled = False
        self.IsStorageEnabled = False
        self.open_count = 0
        self.close_count = 0

    def Open(self):
        self.open_count += 1

    def Close(self):
        self.close_count += 1


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_provider():
    return FakeWmiProvider()


@pytest.fixture
def fake_computer():
    return FakeComputer()
