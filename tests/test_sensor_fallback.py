"""Tests for the thermal-zone and CPU-load fallbacks."""

import pytest

from conftest import FakeWmiProvider
from sensor_reader.core.models import (
    ORIGIN_LHM,
    ORIGIN_WMI_FALLBACK,
    CpuInfo,
    GpuInfo,
    HardwareReport,
    Sensor,
    SensorType,
)
from sensor_reader.resolvers.sensor_fallback import (
    CPU_TOTAL_SENSOR_NAME,
    SensorFallbackResolver,
    kelvin_tenths_to_celsius,
)


def _report(cpu_sensors=None, gpu=False):
    report = HardwareReport()
    report.cpus.append(CpuInfo(name="Test CPU", sensors=list(cpu_sensors or [])))
    if gpu:
        report.gpus.append(GpuInfo(name="Test GPU"))
    return report


def _zones(*zones):
    return {"MSAcpi_ThermalZoneTemperature": [
        {"InstanceName": name, "CurrentTemperature": raw} for name, raw in zones
    ]}


def test_kelvin_conversion():
    assert kelvin_tenths_to_celsius(3232) == pytest.approx(50.05)


def test_cpu_zone_fills_missing_temperature():
    provider = FakeWmiProvider(_zones(("ACPI\\ThermalZone\\CPUZ_0", 3232)))
    report = _report()

    added = SensorFallbackResolver(provider).fill_missing_temperatures(report)

    assert added == 1
    sensor = report.cpus[0].sensors[0]
    assert sensor.sensor_type == SensorType.TEMPERATURE
    assert sensor.value == pytest.approx(50.05)
    assert sensor.data_source == ORIGIN_WMI_FALLBACK
    assert sensor.unit == "°C"


def test_existing_temperature_is_not_overridden():
    existing = Sensor(name="CPU Package", value=48.0, sensor_type=SensorType.TEMPERATURE, data_source=ORIGIN_LHM)
    provider = FakeWmiProvider(_zones(("ACPI\\ThermalZone\\CPUZ_0", 3232)))
    report = _report([existing])

    SensorFallbackResolver(provider).fill_missing_temperatures(report)

    assert report.cpus[0].sensors == [existing]
    assert report.motherboard.sensors == []


def test_unnamed_zone_goes_to_motherboard():
    provider = FakeWmiProvider(_zones(("ACPI\\ThermalZone\\TZ00_0", 3010)))
    report = _report()

    SensorFallbackResolver(provider).fill_missing_temperatures(report)

    assert report.cpus[0].sensors == []
    assert report.motherboard.sensors[0].value == pytest.approx(27.85)


def test_gpu_zone_routing():
    provider = FakeWmiProvider(_zones(("ACPI\\ThermalZone\\GFX0_0", 3300)))
    report = _report(gpu=True)

    SensorFallbackResolver(provider).fill_missing_temperatures(report)

    assert len(report.gpus[0].sensors) == 1


def test_invalid_readings_are_skipped():
    provider = FakeWmiProvider(_zones(("ACPI\\ThermalZone\\CPUZ_0", 0), ("ACPI\\ThermalZone\\TZ01_0", -5)))
    report = _report()

    assert SensorFallbackResolver(provider).fill_missing_temperatures(report) == 0
    assert report.cpus[0].sensors == []


def test_repeated_resolution_does_not_duplicate():
    provider = FakeWmiProvider(_zones(("ACPI\\ThermalZone\\TZ00_0", 3010)))
    report = _report()
    resolver = SensorFallbackResolver(provider)

    resolver.fill_missing_temperatures(report)
    resolver.fill_missing_temperatures(report)

    assert len(report.motherboard.sensors) == 1


def test_no_query_when_nothing_is_missing():
    provider = FakeWmiProvider(_zones(("ACPI\\ThermalZone\\CPUZ_0", 3232)))
    report = _report([Sensor(name="CPU Package", value=40.0, sensor_type=SensorType.TEMPERATURE)])
    report.motherboard.sensors.append(Sensor(name="System", value=30.0, sensor_type=SensorType.TEMPERATURE))

    assert SensorFallbackResolver(provider).fill_missing_temperatures(report) == 0
    assert provider.queried("MSAcpi_ThermalZoneTemperature") == []


def test_failed_thermal_query_leaves_gap():
    report = _report()
    assert SensorFallbackResolver(FakeWmiProvider()).fill_missing_temperatures(report) == 0
    assert report.cpus[0].sensors == []


def test_cpu_load_fallback():
    provider = FakeWmiProvider({"Win32_PerfFormattedData_PerfOS_Processor": [
        {"Name": "_Total", "PercentProcessorTime": "17"},
    ]})
    report = _report()

    sensor = SensorFallbackResolver(provider).fill_missing_cpu_load(report)

    assert sensor.name == CPU_TOTAL_SENSOR_NAME
    assert sensor.value == 17.0
    assert sensor.sensor_type == SensorType.LOAD
    assert report.cpus[0].sensors == [sensor]


def test_cpu_load_not_queried_when_present():
    provider = FakeWmiProvider({"Win32_PerfFormattedData_PerfOS_Processor": [
        {"Name": "_Total", "PercentProcessorTime": 99},
    ]})
    report = _report([Sensor(name="CPU Total", value=5.0, sensor_type=SensorType.LOAD)])

    assert SensorFallbackResolver(provider).fill_missing_cpu_load(report) is None
    assert provider.queried("PerfOS_Processor") == []


def test_cpu_load_without_cpu_record():
    provider = FakeWmiProvider()
    assert SensorFallbackResolver(provider).fill_missing_cpu_load(HardwareReport()) is None


def test_resolve_runs_both_fallbacks():
    responses = _zones(("ACPI\\ThermalZone\\CPUZ_0", 3232))
    responses["Win32_PerfFormattedData_PerfOS_Processor"] = [{"PercentProcessorTime": 3}]
    report = _report()

    SensorFallbackResolver(FakeWmiProvider(responses)).resolve(report)

    kinds = sorted(s.sensor_type.value for s in report.cpus[0].sensors)
    assert kinds == ["Load", "Temperature"]
