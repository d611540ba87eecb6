"""Tests for the command line and the monitoring service."""

import asyncio
import io
import logging

import pytest

from sensor_reader.core.models import HardwareReport, Sensor, SensorType
from sensor_reader.main import MonitoringService, load_config, main, parse_args
from sensor_reader.output.formatters import JsonOutputFormatter, PlainTextOutputFormatter


class FakeAssembler:
    def __init__(self, results):
        self.results = list(results)
        self.builds = 0
        self.closed = 0
        self.on_build = None

    def build(self):
        self.builds += 1
        if self.on_build:
            self.on_build()
        result = self.results.pop(0) if self.results else None
        if isinstance(result, Exception):
            raise result
        return result

    def close(self):
        self.closed += 1


def _report():
    report = HardwareReport()
    report.motherboard.sensors.append(Sensor(name="System", value=31.0, sensor_type=SensorType.TEMPERATURE))
    return report


def test_defaults_to_single_run():
    args = parse_args([])
    assert not args.once
    assert args.interval is None
    assert args.format is None


def test_once_and_interval_are_exclusive():
    with pytest.raises(SystemExit):
        parse_args(["--once", "--interval", "5"])


def test_interval_must_be_positive():
    with pytest.raises(SystemExit):
        parse_args(["--interval", "0"])


@pytest.mark.parametrize("value", ["nan", "inf", "-inf"])
def test_interval_must_be_finite(value):
    with pytest.raises(SystemExit):
        parse_args(["--interval", value])


def test_format_is_case_insensitive():
    assert parse_args(["--format", "plaintext"]).format == "PlainText"
    assert parse_args(["--format", "JSON"]).format == "Json"
    with pytest.raises(SystemExit):
        parse_args(["--format", "yaml"])


def test_load_config_applies_arguments(tmp_path):
    args = parse_args(["-c", str(tmp_path / "none.yaml"), "--interval", "2.5", "--format", "plaintext", "-v"])

    config = load_config(args)

    assert config.collection.interval_seconds == 2.5
    assert config.output.format == "PlainText"
    assert config.logging.level == "DEBUG"


def test_once_overrides_configured_interval(tmp_path, monkeypatch):
    monkeypatch.setenv("SENSOR_READER_INTERVAL", "60")
    config = load_config(parse_args(["-c", str(tmp_path / "none.yaml"), "--once"]))
    assert config.collection.interval_seconds is None


def test_run_once_writes_report():
    stream = io.StringIO()
    service = MonitoringService(FakeAssembler([_report()]), PlainTextOutputFormatter(), stream)

    assert service.run_once() is True
    assert stream.getvalue() == "MB_TEMPERATURE_SYSTEM:31.0;\n"


def test_run_once_without_report_writes_nothing(caplog):
    stream = io.StringIO()
    service = MonitoringService(FakeAssembler([None]), JsonOutputFormatter(), stream)

    with caplog.at_level(logging.ERROR):
        assert service.run_once() is False

    assert stream.getvalue() == ""
    assert "Could not build a hardware report" in caplog.text


def test_continuous_mode_survives_failed_cycles():
    stream = io.StringIO()
    assembler = FakeAssembler([RuntimeError("boom"), _report(), _report()])
    service = MonitoringService(assembler, PlainTextOutputFormatter(), stream)

    def stop_after_three():
        if assembler.builds == 3:
            service.stop()

    assembler.on_build = stop_after_three
    asyncio.run(service.run_continuous(0.01))

    assert assembler.builds == 3
    assert stream.getvalue().count("\n") == 2
    assert not service.running


def test_close_releases_assembler():
    assembler = FakeAssembler([])
    MonitoringService(assembler, JsonOutputFormatter()).close()
    assert assembler.closed == 1


def test_bad_environment_interval_is_a_usage_error(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("SENSOR_READER_INTERVAL", "every minute")

    status = asyncio.run(main(["-c", str(tmp_path / "none.yaml")]))

    assert status == 2
    assert "SENSOR_READER_INTERVAL" in capsys.readouterr().err


def test_unknown_configured_format_is_a_usage_error(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("SENSOR_READER_FORMAT", "xml")

    assert asyncio.run(main(["-c", str(tmp_path / "none.yaml")])) == 2
    assert "xml" in capsys.readouterr().err
