"""Tests for report assembly order and source wiring."""

import pytest

from sensor_reader.collectors.base import HardwareSource
from sensor_reader.collectors.live_collector import LiveSensorCollector
from sensor_reader.collectors.local_collector import LocalInventoryCollector, LocalSensorCollector
from sensor_reader.collectors.static_collector import StaticInventoryCollector
from sensor_reader.core.config import Config
from sensor_reader.core.models import CpuInfo, HardwareReport, Sensor, SensorType
from sensor_reader.core.report_assembler import ReportAssembler, create_assembler
from sensor_reader.resolvers.sensor_fallback import SensorFallbackResolver


class Inventory(HardwareSource):
    def __init__(self, calls, report=True):
        self.calls = calls
        self.report = report
        self.closed = False

    def get_hardware_report(self, existing=None):
        self.calls.append("inventory")
        if not self.report:
            return None
        report = HardwareReport()
        report.add_data_source(self.name)
        report.cpus.append(CpuInfo(name="Test CPU"))
        return report

    def close(self):
        self.calls.append("close inventory")
        self.closed = True


class Sensors(HardwareSource):
    def __init__(self, calls, available=True, fail_close=False):
        self.calls = calls
        self.available = available
        self.fail_close = fail_close

    def get_hardware_report(self, existing=None):
        self.calls.append("sensors")
        if not self.available:
            return None
        assert existing.timestamp == ""
        existing.add_data_source(self.name)
        existing.cpus[0].sensors.append(Sensor(name="CPU Total", value=20.0, sensor_type=SensorType.LOAD))
        return existing

    def close(self):
        self.calls.append("close sensors")
        if self.fail_close:
            raise RuntimeError("close failed")


class Fallback:
    def __init__(self, calls, fail=False):
        self.calls = calls
        self.fail = fail

    def resolve(self, report):
        self.calls.append("fallback")
        if self.fail:
            raise RuntimeError("provider gone")

    def close(self):
        self.calls.append("close fallback")


def test_build_order_and_timestamp():
    calls = []
    assembler = ReportAssembler(Inventory(calls), Sensors(calls), Fallback(calls))

    report = assembler.build()

    assert calls == ["inventory", "sensors", "fallback"]
    assert report.timestamp
    assert report.data_sources == ["Inventory", "Sensors"]
    assert report.cpus[0].sensors[0].value == 20.0


def test_no_report_when_sensors_unavailable():
    calls = []
    assembler = ReportAssembler(Inventory(calls), Sensors(calls, available=False), Fallback(calls))

    assert assembler.build() is None
    assert "fallback" not in calls


def test_missing_inventory_still_enriched():
    calls = []

    class BareSensors(Sensors):
        def get_hardware_report(self, existing=None):
            existing.add_data_source(self.name)
            return existing

    report = ReportAssembler(Inventory(calls, report=False), BareSensors(calls)).build()

    assert report.data_sources == ["BareSensors"]


def test_fallback_failure_is_not_fatal():
    calls = []
    report = ReportAssembler(Inventory(calls), Sensors(calls), Fallback(calls, fail=True)).build()

    assert report is not None
    assert report.timestamp


def test_close_releases_everything_even_on_failure():
    calls = []
    inventory = Inventory(calls)
    assembler = ReportAssembler(inventory, Sensors(calls, fail_close=True), Fallback(calls))

    with pytest.raises(RuntimeError):
        assembler.close()

    assert inventory.closed
    assert calls == ["close sensors", "close inventory", "close fallback"]


def test_create_local_sources():
    config = Config()
    config.collection.inventory_source = "local"
    config.collection.sensor_source = "local"

    assembler = create_assembler(config)

    assert isinstance(assembler.inventory, LocalInventoryCollector)
    assert isinstance(assembler.sensors, LocalSensorCollector)
    assert assembler.fallback is None


def test_create_windows_sources():
    config = Config()
    config.collection.inventory_source = "wmi"
    config.collection.sensor_source = "lhm"
    config.collection.lhm_dll_path = "C:\\tools\\LibreHardwareMonitorLib.dll"
    config.collection.monitor_warmup_seconds = 1.5

    assembler = create_assembler(config)

    assert isinstance(assembler.inventory, StaticInventoryCollector)
    assert isinstance(assembler.sensors, LiveSensorCollector)
    assert isinstance(assembler.fallback, SensorFallbackResolver)
    assert assembler.sensors.handle.dll_path == "C:\\tools\\LibreHardwareMonitorLib.dll"
    assert assembler.sensors.handle.warmup_seconds == 1.5
    assert not assembler.sensors.handle.is_open


def test_fallbacks_can_be_disabled():
    config = Config()
    config.collection.inventory_source = "local"
    config.collection.sensor_source = "lhm"
    config.collection.enable_fallbacks = False

    assert create_assembler(config).fallback is None


def test_auto_sources_follow_platform(monkeypatch):
    monkeypatch.setattr("sensor_reader.core.report_assembler.platform.system", lambda: "Linux")
    assembler = create_assembler(Config())
    assert isinstance(assembler.inventory, LocalInventoryCollector)

    monkeypatch.setattr("sensor_reader.core.report_assembler.platform.system", lambda: "Windows")
    assembler = create_assembler(Config())
    assert isinstance(assembler.inventory, StaticInventoryCollector)
    assert isinstance(assembler.sensors, LiveSensorCollector)
