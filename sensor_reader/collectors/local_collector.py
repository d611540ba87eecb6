"""
Local Hardware Collectors.

Portable inventory and sensor sources for hosts without WMI or
LibreHardwareMonitor, built on psutil, the platform module and sysfs.
"""

import logging
import platform
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import psutil

from ..core.matching import attach_sensors
from ..core.models import (
    NOT_AVAILABLE,
    ORIGIN_PSUTIL,
    BatteryInfo,
    CpuInfo,
    GpuInfo,
    HardwareReport,
    LogicalDiskInfo,
    NetworkAdapterInfo,
    Sensor,
    SensorType,
    StorageInfo,
)
from ..resolvers.media_type import StorageMediaTypeResolver, SysfsDiskEvidence
from .base import HardwareSource
from .live_collector import sanitize_value


logger = logging.getLogger(__name__)


DMI_PATH = Path("/sys/class/dmi/id")
DRM_PATH = Path("/sys/class/drm")

PCI_VENDORS = {
    "0x10de": "NVIDIA",
    "0x1002": "AMD",
    "0x8086": "Intel",
}

# psutil temperature chip names, mapped to the hardware type they belong to
CPU_CHIPS = ("coretemp", "k10temp", "k8temp", "zenpower", "cpu_thermal", "cpu-thermal", "soc_thermal")
GPU_CHIPS = {
    "amdgpu": "GpuAmd",
    "radeon": "GpuAmd",
    "nouveau": "GpuNvidia",
    "i915": "GpuIntel",
    "xe": "GpuIntel",
}


def _read_text(path: Path) -> Optional[str]:
    try:
        value = path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return None
    return value or None


def _read_int(path: Path) -> Optional[int]:
    text = _read_text(path)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        return None


class LocalInventoryCollector(HardwareSource):
    """
    Collects hardware inventory from the local machine.

    Uses psutil and the platform module, plus sysfs on Linux for board,
    GPU and drive identity.
    """

    def __init__(
        self,
        dmi_path: Path = DMI_PATH,
        drm_path: Path = DRM_PATH,
        evidence: Optional[SysfsDiskEvidence] = None,
    ):
        self.dmi_path = Path(dmi_path)
        self.drm_path = Path(drm_path)
        self.evidence = evidence or SysfsDiskEvidence()
        self.media_resolver = StorageMediaTypeResolver(self.evidence)

    def get_hardware_report(self, existing: Optional[HardwareReport] = None) -> Optional[HardwareReport]:
        report = existing if existing is not None else HardwareReport()
        report.add_data_source(self.name)

        sections = [
            ("OS", self.fill_os_info),
            ("Network", self.fill_network_info),
            ("Battery", self.fill_battery_info),
            ("CPU", self.fill_cpu_info),
            ("GPU", self.fill_gpu_info),
            ("Memory", self.fill_memory_info),
            ("Motherboard", self.fill_motherboard_info),
            ("Storage", self.fill_storage_info),
        ]
        for label, fill in sections:
            try:
                fill(report)
            except Exception as e:
                logger.warning(f"{label} inventory unavailable: {e}")

        return report

    def fill_os_info(self, report: HardwareReport):
        uname = platform.uname()
        report.os_info.caption = f"{uname.system} {uname.release}".strip() or NOT_AVAILABLE
        report.os_info.version = uname.version or NOT_AVAILABLE
        report.os_info.build_number = uname.release or NOT_AVAILABLE
        report.os_info.os_architecture = uname.machine or NOT_AVAILABLE
        try:
            report.os_info.last_boot_up_time = datetime.fromtimestamp(psutil.boot_time()).astimezone().isoformat()
        except Exception:
            report.os_info.last_boot_up_time = None

    def fill_network_info(self, report: HardwareReport):
        addrs = psutil.net_if_addrs()
        if_stats = psutil.net_if_stats()

        for name, entries in addrs.items():
            # Skip loopback
            if name.lower().startswith("lo"):
                continue

            adapter = NetworkAdapterInfo(name=name)
            for addr in entries:
                family = getattr(addr.family, "name", str(addr.family))
                if family in ("AF_INET", "AF_INET6"):
                    adapter.ip_addresses.append(addr.address)
                elif family in ("AF_LINK", "AF_PACKET"):
                    adapter.mac_address = addr.address

            stats = if_stats.get(name)
            if stats is not None and stats.speed:
                adapter.adapter_type = f"Ethernet {stats.speed} Mbps"
            report.network_adapters.append(adapter)

    def fill_battery_info(self, report: HardwareReport):
        try:
            battery = psutil.sensors_battery()
        except (AttributeError, NotImplementedError):
            battery = None
        if battery is None:
            return

        if battery.power_plugged:
            status = "Fully Charged" if battery.percent >= 100 else "Charging"
        else:
            status = "Discharging"

        run_time = 0.0
        if battery.secsleft not in (psutil.POWER_TIME_UNKNOWN, psutil.POWER_TIME_UNLIMITED) and battery.secsleft > 0:
            run_time = battery.secsleft / 60.0

        report.batteries.append(BatteryInfo(
            name="Battery",
            status=status,
            estimated_charge_remaining=float(battery.percent),
            estimated_run_time=run_time,
        ))

    def fill_cpu_info(self, report: HardwareReport):
        report.cpus.append(CpuInfo(
            name=self._get_cpu_model(),
            manufacturer=self._get_cpu_vendor(),
            number_of_cores=psutil.cpu_count(logical=False) or 0,
            number_of_logical_processors=psutil.cpu_count(logical=True) or 0,
        ))

    def _get_cpu_model(self) -> str:
        """Get CPU model name."""
        try:
            if platform.system() == "Darwin":
                result = subprocess.run(
                    ["sysctl", "-n", "machdep.cpu.brand_string"],
                    capture_output=True,
                    text=True,
                )
                if result.stdout.strip():
                    return result.stdout.strip()
            elif platform.system() == "Linux":
                with open("/proc/cpuinfo", "r") as f:
                    for line in f:
                        if "model name" in line:
                            return line.split(":", 1)[1].strip()
        except Exception:
            pass
        return platform.processor() or NOT_AVAILABLE

    def _get_cpu_vendor(self) -> str:
        try:
            if platform.system() == "Linux":
                with open("/proc/cpuinfo", "r") as f:
                    for line in f:
                        if line.startswith("vendor_id"):
                            return line.split(":", 1)[1].strip()
        except OSError:
            pass
        return NOT_AVAILABLE

    def fill_gpu_info(self, report: HardwareReport):
        if not self.drm_path.exists():
            return
        for card in sorted(self.drm_path.glob("card[0-9]*")):
            # Connectors (card0-DP-1) share the prefix
            if "-" in card.name:
                continue
            device = card / "device"
            vendor_id = _read_text(device / "vendor")
            if vendor_id is None:
                continue
            vendor = PCI_VENDORS.get(vendor_id.lower(), vendor_id)
            device_id = _read_text(device / "device") or ""
            driver = (device / "driver").resolve().name if (device / "driver").exists() else None
            driver_version = _read_text(Path("/sys/module") / driver / "version") if driver else None
            report.gpus.append(GpuInfo(
                name=f"{vendor} GPU {device_id}".strip(),
                manufacturer=vendor,
                driver_version=driver_version or driver or NOT_AVAILABLE,
            ))

    def fill_memory_info(self, report: HardwareReport):
        report.memory.total_physical_memory = int(psutil.virtual_memory().total)

    def _read_dmi(self, field: str) -> str:
        return _read_text(self.dmi_path / field) or NOT_AVAILABLE

    def fill_motherboard_info(self, report: HardwareReport):
        if not self.dmi_path.exists():
            return
        report.motherboard.product = self._read_dmi("board_name")
        report.motherboard.manufacturer = self._read_dmi("board_vendor")
        report.motherboard.serial_number = self._read_dmi("board_serial")
        report.motherboard.bios_version = self._read_dmi("bios_version")

    def _interface_type(self, block: Path) -> str:
        if block.name.startswith("nvme"):
            return "NVMe"
        if block.name.startswith("mmcblk"):
            return "MMC"
        try:
            path = str(block.resolve())
        except OSError:
            return NOT_AVAILABLE
        if "/usb" in path:
            return "USB"
        if "/ata" in path:
            return "SATA"
        if "/virtio" in path:
            return "VirtIO"
        return "SCSI"

    def _partitions_by_disk(self, disks: List[Path]) -> Dict[str, List[LogicalDiskInfo]]:
        volumes: Dict[str, List[LogicalDiskInfo]] = {disk.name: [] for disk in disks}
        for partition in psutil.disk_partitions(all=False):
            part_name = Path(partition.device).name
            owner = next(
                (d.name for d in disks if d.name == part_name or (d / part_name).exists()),
                None,
            )
            if owner is None:
                continue
            try:
                usage = psutil.disk_usage(partition.mountpoint)
            except (PermissionError, OSError) as e:
                logger.debug(f"Could not access {partition.mountpoint}: {e}")
                continue
            volumes[owner].append(LogicalDiskInfo(
                device_id=partition.mountpoint,
                file_system=partition.fstype or NOT_AVAILABLE,
                size=int(usage.total),
                free_space=int(usage.free),
            ))
        return volumes

    def fill_storage_info(self, report: HardwareReport):
        disks = self.evidence.block_devices()
        volumes = self._partitions_by_disk(disks)

        devices = []
        for index, block in enumerate(disks):
            sectors = _read_int(block / "size") or 0
            devices.append(StorageInfo(
                model=_read_text(block / "device" / "model") or block.name,
                interface_type=self._interface_type(block),
                size=sectors * 512,
                logical_disks=volumes.get(block.name, []),
                device_id=block.name,
                index=index,
            ))

        self.media_resolver.resolve_all(devices)
        report.storage_devices.extend(devices)


class LocalSensorCollector(HardwareSource):
    """
    Live readings from psutil.

    Temperature chips are routed by driver name: CPU drivers to the CPU,
    GPU drivers to the GPU, everything else to the board.
    """

    def __init__(self, cpu_sample_interval: float = 0.1):
        self.cpu_sample_interval = cpu_sample_interval

    def _sensor(self, name: str, value, sensor_type: SensorType) -> Sensor:
        return Sensor(
            name=name,
            value=sanitize_value(value),
            sensor_type=sensor_type,
            data_source=ORIGIN_PSUTIL,
        )

    def get_hardware_report(self, existing: Optional[HardwareReport] = None) -> Optional[HardwareReport]:
        report = existing if existing is not None else HardwareReport()
        report.add_data_source(self.name)

        attach_sensors(report, "Cpu", "CPU", self.get_cpu_sensors())
        attach_sensors(report, "Memory", "Memory", self.get_memory_sensors())
        for hardware_type, chip, sensors in self.get_temperature_sensors():
            attach_sensors(report, hardware_type, chip, sensors)
        attach_sensors(report, "Motherboard", "Fans", self.get_fan_sensors())

        return report

    def get_cpu_sensors(self) -> List[Sensor]:
        sensors = []
        try:
            sensors.append(self._sensor("CPU Total", psutil.cpu_percent(interval=self.cpu_sample_interval), SensorType.LOAD))
        except Exception as e:
            logger.debug(f"CPU load unavailable: {e}")

        try:
            freq = psutil.cpu_freq()
            if freq:
                sensors.append(self._sensor("CPU Clock", freq.current, SensorType.CLOCK))
        except Exception as e:
            logger.debug(f"CPU clock unavailable: {e}")
        return sensors

    def get_memory_sensors(self) -> List[Sensor]:
        try:
            mem = psutil.virtual_memory()
        except Exception as e:
            logger.debug(f"Memory usage unavailable: {e}")
            return []
        return [
            self._sensor("Memory", mem.percent, SensorType.LOAD),
            self._sensor("Memory Used", mem.used / (1024 ** 3), SensorType.DATA),
            self._sensor("Memory Available", mem.available / (1024 ** 3), SensorType.DATA),
        ]

    def get_temperature_sensors(self):
        """Yield (hardware type, chip, sensors) per temperature chip."""
        try:
            chips = psutil.sensors_temperatures()
        except (AttributeError, NotImplementedError):
            chips = {}

        for chip, entries in chips.items():
            if chip in CPU_CHIPS:
                hardware_type = "Cpu"
            else:
                hardware_type = GPU_CHIPS.get(chip, "Motherboard")

            sensors = []
            for i, entry in enumerate(entries):
                label = entry.label or (chip if len(entries) == 1 else f"{chip} #{i + 1}")
                sensors.append(self._sensor(label, entry.current, SensorType.TEMPERATURE))
            yield hardware_type, chip, sensors

    def get_fan_sensors(self) -> List[Sensor]:
        try:
            fans = psutil.sensors_fans()
        except (AttributeError, NotImplementedError):
            fans = {}

        sensors = []
        for chip, entries in fans.items():
            for i, entry in enumerate(entries):
                label = entry.label or f"{chip} Fan #{i + 1}"
                sensors.append(self._sensor(label, entry.current, SensorType.FAN))
        return sensors
