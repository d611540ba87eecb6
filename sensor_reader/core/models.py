"""
Data models for the unified hardware report.

These dataclasses represent one poll cycle's view of the machine:
static inventory records enriched with live sensor readings.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


NOT_AVAILABLE = "N/A"

ORIGIN_LHM = "LibreHardwareMonitor"
ORIGIN_PSUTIL = "psutil"
ORIGIN_WMI_FALLBACK = "WMI_Fallback"


class SensorType(str, Enum):
    """Kind of a live sensor reading."""

    UNKNOWN = "Unknown"
    TEMPERATURE = "Temperature"
    LOAD = "Load"
    FAN = "Fan"
    CLOCK = "Clock"
    POWER = "Power"
    VOLTAGE = "Voltage"
    DATA = "Data"
    CONTROL = "Control"
    THROUGHPUT = "Throughput"
    FREQUENCY = "Frequency"
    SMALL_DATA = "SmallData"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "SensorType":
        """Map a monitoring library sensor-kind name to a SensorType."""
        if not name:
            return cls.UNKNOWN
        key = str(name).strip().lower()
        for member in cls:
            if member.value.lower() == key:
                return member
        return cls.UNKNOWN

    @property
    def unit(self) -> str:
        """Display unit for readings of this kind."""
        return _SENSOR_UNITS.get(self, "")


_SENSOR_UNITS = {
    SensorType.VOLTAGE: "V",
    SensorType.CLOCK: "MHz",
    SensorType.FREQUENCY: "MHz",
    SensorType.TEMPERATURE: "°C",
    SensorType.LOAD: "%",
    SensorType.FAN: "RPM",
    SensorType.POWER: "W",
    SensorType.DATA: "GB",
    SensorType.SMALL_DATA: "MB",
    SensorType.THROUGHPUT: "B/s",
}


def _gb(value: int) -> float:
    return round(value / (1024 ** 3), 2)


@dataclass
class Sensor:
    """A named, typed live reading with its origin tag."""

    name: str = ""
    value: Optional[float] = None
    sensor_type: SensorType = SensorType.UNKNOWN
    unit: str = ""
    data_source: str = ""

    def __post_init__(self):
        if not self.unit:
            self.unit = self.sensor_type.unit

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "type": self.sensor_type.value,
            "unit": self.unit,
            "data_source": self.data_source,
        }


@dataclass
class OperatingSystemInfo:
    """Operating system identification."""

    caption: str = NOT_AVAILABLE
    version: str = NOT_AVAILABLE
    build_number: str = NOT_AVAILABLE
    os_architecture: str = NOT_AVAILABLE
    install_date: Optional[str] = None
    last_boot_up_time: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "caption": self.caption,
            "version": self.version,
            "build_number": self.build_number,
            "os_architecture": self.os_architecture,
            "install_date": self.install_date,
            "last_boot_up_time": self.last_boot_up_time,
        }


@dataclass
class NetworkAdapterInfo:
    """Network adapter with its bound addresses."""

    name: str = NOT_AVAILABLE
    adapter_type: str = NOT_AVAILABLE
    mac_address: str = NOT_AVAILABLE
    ip_addresses: List[str] = field(default_factory=list)

    @property
    def is_connected(self) -> bool:
        """An adapter is considered connected once it holds an address."""
        return len(self.ip_addresses) > 0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "adapter_type": self.adapter_type,
            "mac_address": self.mac_address,
            "ip_addresses": list(self.ip_addresses),
            "is_connected": self.is_connected,
        }


@dataclass
class BatteryInfo:
    """Battery charge and capacity information."""

    name: str = NOT_AVAILABLE
    chemistry: str = NOT_AVAILABLE
    status: str = "Unknown"
    design_capacity: float = 0.0
    full_charge_capacity: float = 0.0
    estimated_charge_remaining: float = 0.0
    estimated_run_time: float = 0.0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "chemistry": self.chemistry,
            "status": self.status,
            "design_capacity": self.design_capacity,
            "full_charge_capacity": self.full_charge_capacity,
            "estimated_charge_remaining": self.estimated_charge_remaining,
            "estimated_run_time": self.estimated_run_time,
        }


@dataclass
class CpuInfo:
    """Processor identity plus its live sensors."""

    name: str = NOT_AVAILABLE
    manufacturer: str = NOT_AVAILABLE
    number_of_cores: int = 0
    number_of_logical_processors: int = 0
    l2_cache_size: int = 0  # KB
    l3_cache_size: int = 0  # KB
    sensors: List[Sensor] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "manufacturer": self.manufacturer,
            "number_of_cores": self.number_of_cores,
            "number_of_logical_processors": self.number_of_logical_processors,
            "l2_cache_size": self.l2_cache_size,
            "l3_cache_size": self.l3_cache_size,
            "sensors": [s.to_dict() for s in self.sensors],
        }


@dataclass
class GpuInfo:
    """Video controller identity plus its live sensors."""

    name: str = NOT_AVAILABLE
    manufacturer: str = NOT_AVAILABLE
    driver_version: str = NOT_AVAILABLE
    adapter_ram: int = 0  # bytes
    sensors: List[Sensor] = field(default_factory=list)

    @property
    def adapter_ram_in_gb(self) -> float:
        return _gb(self.adapter_ram)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "manufacturer": self.manufacturer,
            "driver_version": self.driver_version,
            "adapter_ram": self.adapter_ram,
            "adapter_ram_in_gb": self.adapter_ram_in_gb,
            "sensors": [s.to_dict() for s in self.sensors],
        }


@dataclass
class MemoryStick:
    """A single installed memory module."""

    device_locator: str = NOT_AVAILABLE
    capacity: int = 0  # bytes
    speed: int = 0  # MHz
    manufacturer: str = NOT_AVAILABLE
    part_number: str = NOT_AVAILABLE
    form_factor: str = NOT_AVAILABLE
    memory_type: str = NOT_AVAILABLE

    def to_dict(self) -> dict:
        return {
            "device_locator": self.device_locator,
            "capacity": self.capacity,
            "speed": self.speed,
            "manufacturer": self.manufacturer,
            "part_number": self.part_number,
            "form_factor": self.form_factor,
            "memory_type": self.memory_type,
        }


@dataclass
class MemoryInfo:
    """System memory: total capacity, modules and global sensors."""

    total_physical_memory: int = 0  # bytes
    sticks: List[MemoryStick] = field(default_factory=list)
    global_sensors: List[Sensor] = field(default_factory=list)

    @property
    def total_physical_memory_in_gb(self) -> float:
        return _gb(self.total_physical_memory)

    def to_dict(self) -> dict:
        return {
            "total_physical_memory": self.total_physical_memory,
            "total_physical_memory_in_gb": self.total_physical_memory_in_gb,
            "sticks": [s.to_dict() for s in self.sticks],
            "global_sensors": [s.to_dict() for s in self.global_sensors],
        }


@dataclass
class MotherboardInfo:
    """Baseboard and BIOS identity plus board-level sensors."""

    product: str = NOT_AVAILABLE
    manufacturer: str = NOT_AVAILABLE
    serial_number: str = NOT_AVAILABLE
    bios_version: str = NOT_AVAILABLE
    sensors: List[Sensor] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "product": self.product,
            "manufacturer": self.manufacturer,
            "serial_number": self.serial_number,
            "bios_version": self.bios_version,
            "sensors": [s.to_dict() for s in self.sensors],
        }


@dataclass
class LogicalDiskInfo:
    """A mounted volume living on a physical drive."""

    device_id: str = NOT_AVAILABLE  # e.g. "C:" or "/"
    file_system: str = NOT_AVAILABLE
    size: int = 0  # bytes
    free_space: int = 0  # bytes

    @property
    def size_in_gb(self) -> float:
        return _gb(self.size)

    @property
    def free_space_in_gb(self) -> float:
        return _gb(self.free_space)

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "file_system": self.file_system,
            "size": self.size,
            "free_space": self.free_space,
            "size_in_gb": self.size_in_gb,
            "free_space_in_gb": self.free_space_in_gb,
        }


MEDIA_HDD = "HDD"
MEDIA_SATA_SSD = "SATA SSD"
MEDIA_NVME_SSD = "NVMe SSD"
MEDIA_SSD = "SSD"
MEDIA_UNSPECIFIED = "Unspecified"


@dataclass
class StorageInfo:
    """
    Physical drive.

    ``device_id`` and ``index`` are the per-source keys used to look up
    media type evidence; they are not part of the serialized report.
    """

    model: str = NOT_AVAILABLE
    media_type: str = MEDIA_UNSPECIFIED
    interface_type: str = NOT_AVAILABLE
    size: int = 0  # bytes
    logical_disks: List[LogicalDiskInfo] = field(default_factory=list)
    sensors: List[Sensor] = field(default_factory=list)
    device_id: str = field(default="", repr=False)
    index: Optional[int] = field(default=None, repr=False)

    @property
    def size_in_gb(self) -> float:
        return _gb(self.size)

    def to_dict(self) -> dict:
        return {
            "model": self.model,
            "media_type": self.media_type,
            "interface_type": self.interface_type,
            "size": self.size,
            "size_in_gb": self.size_in_gb,
            "logical_disks": [d.to_dict() for d in self.logical_disks],
            "sensors": [s.to_dict() for s in self.sensors],
        }


@dataclass
class HardwareReport:
    """Complete hardware report for one poll cycle."""

    timestamp: str = ""
    data_sources: List[str] = field(default_factory=list)
    os_info: OperatingSystemInfo = field(default_factory=OperatingSystemInfo)
    network_adapters: List[NetworkAdapterInfo] = field(default_factory=list)
    batteries: List[BatteryInfo] = field(default_factory=list)
    cpus: List[CpuInfo] = field(default_factory=list)
    gpus: List[GpuInfo] = field(default_factory=list)
    memory: MemoryInfo = field(default_factory=MemoryInfo)
    motherboard: MotherboardInfo = field(default_factory=MotherboardInfo)
    storage_devices: List[StorageInfo] = field(default_factory=list)

    def add_data_source(self, name: str):
        """Record a contributing source once."""
        if name not in self.data_sources:
            self.data_sources.append(name)

    def to_dict(self) -> dict:
        """Convert report to dictionary for serialization."""
        return {
            "timestamp": self.timestamp,
            "data_sources": list(self.data_sources),
            "os_info": self.os_info.to_dict(),
            "network_adapters": [a.to_dict() for a in self.network_adapters],
            "batteries": [b.to_dict() for b in self.batteries],
            "cpus": [c.to_dict() for c in self.cpus],
            "gpus": [g.to_dict() for g in self.gpus],
            "memory": self.memory.to_dict(),
            "motherboard": self.motherboard.to_dict(),
            "storage_devices": [s.to_dict() for s in self.storage_devices],
        }
