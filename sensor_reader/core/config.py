"""
Configuration management for Sensor Reader.

Loads configuration from YAML files and environment variables.
"""

import logging
import logging.handlers
import math
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


SOURCE_AUTO = "auto"
INVENTORY_SOURCES = (SOURCE_AUTO, "wmi", "local")
SENSOR_SOURCES = (SOURCE_AUTO, "lhm", "local")


def _parse_seconds(value: str, name: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got '{value}'")


@dataclass
class CollectionConfig:
    """Hardware collection configuration."""

    interval_seconds: Optional[float] = None  # None runs a single cycle
    inventory_source: str = SOURCE_AUTO  # auto, wmi or local
    sensor_source: str = SOURCE_AUTO  # auto, lhm or local
    lhm_dll_path: Optional[str] = None
    monitor_warmup_seconds: float = 2.0
    enable_fallbacks: bool = True


@dataclass
class OutputConfig:
    """Report output configuration."""

    format: str = "Json"  # Json or PlainText
    indent: int = 2


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """Main configuration container."""

    collection: CollectionConfig = field(default_factory=CollectionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            config = cls()
            config._apply_env_overrides()
            return config

        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        config = cls()

        if "collection" in data:
            config.collection = CollectionConfig(**data["collection"])

        if "output" in data:
            config.output = OutputConfig(**data["output"])

        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        # Override with environment variables
        config._apply_env_overrides()

        return config

    def _apply_env_overrides(self):
        """Apply environment variable overrides."""
        # Collection settings
        if os.getenv("SENSOR_READER_INTERVAL"):
            self.collection.interval_seconds = _parse_seconds(
                os.getenv("SENSOR_READER_INTERVAL"), "SENSOR_READER_INTERVAL"
            )
        if os.getenv("SENSOR_READER_INVENTORY_SOURCE"):
            self.collection.inventory_source = os.getenv("SENSOR_READER_INVENTORY_SOURCE").lower()
        if os.getenv("SENSOR_READER_SENSOR_SOURCE"):
            self.collection.sensor_source = os.getenv("SENSOR_READER_SENSOR_SOURCE").lower()
        if os.getenv("LHM_DLL_PATH"):
            self.collection.lhm_dll_path = os.getenv("LHM_DLL_PATH")

        # Output
        if os.getenv("SENSOR_READER_FORMAT"):
            self.output.format = os.getenv("SENSOR_READER_FORMAT")

        # Logging
        if os.getenv("LOG_LEVEL"):
            self.logging.level = os.getenv("LOG_LEVEL")

    def validate(self):
        """Reject unknown source names and unusable intervals."""
        if self.collection.inventory_source not in INVENTORY_SOURCES:
            raise ValueError(
                f"Unknown inventory source '{self.collection.inventory_source}', "
                f"expected one of {', '.join(INVENTORY_SOURCES)}"
            )
        if self.collection.sensor_source not in SENSOR_SOURCES:
            raise ValueError(
                f"Unknown sensor source '{self.collection.sensor_source}', "
                f"expected one of {', '.join(SENSOR_SOURCES)}"
            )
        interval = self.collection.interval_seconds
        if interval is not None and (
            isinstance(interval, bool)
            or not isinstance(interval, (int, float))
            or not math.isfinite(interval)
            or interval <= 0
        ):
            raise ValueError("interval_seconds must be a finite, positive number of seconds")

    def to_yaml(self, path: str):
        """Save configuration to YAML file."""
        data = {
            "collection": {
                "interval_seconds": self.collection.interval_seconds,
                "inventory_source": self.collection.inventory_source,
                "sensor_source": self.collection.sensor_source,
                "lhm_dll_path": self.collection.lhm_dll_path,
                "monitor_warmup_seconds": self.collection.monitor_warmup_seconds,
                "enable_fallbacks": self.collection.enable_fallbacks,
            },
            "output": {
                "format": self.output.format,
                "indent": self.output.indent,
            },
            "logging": {
                "level": self.logging.level,
                "file_path": self.logging.file_path,
            },
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


def configure_logging(config: LoggingConfig):
    """
    Install root handlers for the process.

    Log records go to stderr so that stdout carries report data only.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(config.level).upper(), logging.WARNING))
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter(config.format)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if config.file_path:
        file_handler = logging.handlers.RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    # Check common locations
    candidates = [
        Path("config/config.yaml"),
        Path("config.yaml"),
        Path.home() / ".sensor-reader" / "config.yaml",
        Path("/etc/sensor-reader/config.yaml"),
    ]

    for path in candidates:
        if path.exists():
            return str(path)

    # Return the first candidate as default
    return str(candidates[0])
