"""
Static Inventory Collector.

Collects slow-changing hardware identity (OS, network, batteries, CPU,
GPU, memory, motherboard and storage) through Windows Management
Instrumentation.
"""

import logging
from typing import Dict, List, Optional

from ..core.models import (
    BatteryInfo,
    CpuInfo,
    GpuInfo,
    HardwareReport,
    LogicalDiskInfo,
    MemoryStick,
    NetworkAdapterInfo,
    NOT_AVAILABLE,
    StorageInfo,
)
from ..resolvers.media_type import StorageMediaTypeResolver, WmiDiskEvidence
from .base import HardwareSource
from .wmi_provider import WmiProvider, get_property, parse_cim_datetime


logger = logging.getLogger(__name__)


MEMORY_TYPES = {
    0x00: "Unknown",
    0x14: "DDR",
    0x15: "DDR2",
    0x18: "DDR3",
    0x1A: "DDR4",
    0x22: "DDR5",
}

MEMORY_FORM_FACTORS = {
    8: "DIMM",
    12: "SODIMM",
}

BATTERY_CHEMISTRY = {
    1: "Other",
    2: "Unknown",
    3: "Lead Acid",
    4: "Nickel Cadmium",
    5: "Nickel Metal Hydride",
    6: "Lithium-ion",
    7: "Zinc air",
    8: "Lithium Polymer",
}

BATTERY_STATUS = {
    1: "Discharging",
    2: "On AC",
    3: "Fully Charged",
    4: "Low",
    5: "Critical",
    6: "Charging",
    7: "Charging and High",
    8: "Charging and Low",
    9: "Charging and Critical",
    10: "Undefined",
    11: "Partially Charged",
}

PHYSICAL_DRIVE_PREFIX = "\\\\.\\PHYSICALDRIVE"


def decode_memory_type(code: Optional[int]) -> str:
    if code is None:
        return "Unknown"
    return MEMORY_TYPES.get(code, "Other")


def decode_form_factor(code: Optional[int]) -> str:
    if code is None:
        return "Unknown"
    return MEMORY_FORM_FACTORS.get(code, "Other")


def physical_drive_number(device_id: str) -> str:
    """``\\\\.\\PHYSICALDRIVE1`` -> ``1``; the storage provider keys disks by this number."""
    upper = device_id.upper()
    if upper.startswith(PHYSICAL_DRIVE_PREFIX):
        return device_id[len(PHYSICAL_DRIVE_PREFIX):]
    return upper.replace("PHYSICALDRIVE", "").lstrip("\\.")


def _escape_wql(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class StaticInventoryCollector(HardwareSource):
    """
    Builds the inventory skeleton of a HardwareReport.

    Every section is collected independently; a section whose query fails
    keeps its defaults and collection moves on. Never raises.
    """

    def __init__(
        self,
        provider: Optional[WmiProvider] = None,
        media_resolver: Optional[StorageMediaTypeResolver] = None,
    ):
        self.provider = provider or WmiProvider()
        self.media_resolver = media_resolver or StorageMediaTypeResolver(WmiDiskEvidence(self.provider))

    def _rows(self, wql: str, namespace: Optional[str] = None) -> List[Dict]:
        return self.provider.query(wql, namespace) or []

    def get_hardware_report(self, existing: Optional[HardwareReport] = None) -> Optional[HardwareReport]:
        """Collect all sections into ``existing`` or a new report."""
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
        rows = self._rows("SELECT * FROM Win32_OperatingSystem")
        if not rows:
            return
        os_row = rows[0]
        report.os_info.caption = get_property(os_row, "Caption", NOT_AVAILABLE)
        report.os_info.version = get_property(os_row, "Version", NOT_AVAILABLE)
        report.os_info.build_number = get_property(os_row, "BuildNumber", NOT_AVAILABLE)
        report.os_info.os_architecture = get_property(os_row, "OSArchitecture", NOT_AVAILABLE)
        report.os_info.install_date = parse_cim_datetime(get_property(os_row, "InstallDate", None, cast=str))
        report.os_info.last_boot_up_time = parse_cim_datetime(get_property(os_row, "LastBootUpTime", None, cast=str))

    def fill_network_info(self, report: HardwareReport):
        adapter_types: Dict[int, str] = {}
        for row in self._rows("SELECT Index, AdapterType FROM Win32_NetworkAdapter"):
            index = get_property(row, "Index", None, cast=int)
            if index is not None:
                adapter_types[index] = get_property(row, "AdapterType", NOT_AVAILABLE)

        query = (
            "SELECT Index, Description, MACAddress, IPAddress "
            "FROM Win32_NetworkAdapterConfiguration WHERE IPEnabled=TRUE"
        )
        for row in self._rows(query):
            index = get_property(row, "Index", None, cast=int)
            addresses = row.get("IPAddress") or []
            if isinstance(addresses, str):
                addresses = [addresses]
            report.network_adapters.append(NetworkAdapterInfo(
                name=get_property(row, "Description", NOT_AVAILABLE),
                adapter_type=adapter_types.get(index, NOT_AVAILABLE),
                mac_address=get_property(row, "MACAddress", NOT_AVAILABLE),
                ip_addresses=[str(a) for a in addresses],
            ))

    def fill_battery_info(self, report: HardwareReport):
        for row in self._rows("SELECT * FROM Win32_Battery"):
            report.batteries.append(BatteryInfo(
                name=get_property(row, "Name", NOT_AVAILABLE),
                chemistry=BATTERY_CHEMISTRY.get(get_property(row, "Chemistry", 0), NOT_AVAILABLE),
                status=BATTERY_STATUS.get(get_property(row, "BatteryStatus", 0), "Unknown"),
                design_capacity=get_property(row, "DesignCapacity", 0.0),
                full_charge_capacity=get_property(row, "FullChargeCapacity", 0.0),
                estimated_charge_remaining=get_property(row, "EstimatedChargeRemaining", 0.0),
                estimated_run_time=get_property(row, "EstimatedRunTime", 0.0),
            ))

    def fill_cpu_info(self, report: HardwareReport):
        for row in self._rows("SELECT * FROM Win32_Processor"):
            report.cpus.append(CpuInfo(
                name=get_property(row, "Name", NOT_AVAILABLE),
                manufacturer=get_property(row, "Manufacturer", NOT_AVAILABLE),
                number_of_cores=get_property(row, "NumberOfCores", 0),
                number_of_logical_processors=get_property(row, "NumberOfLogicalProcessors", 0),
                l2_cache_size=get_property(row, "L2CacheSize", 0),
                l3_cache_size=get_property(row, "L3CacheSize", 0),
            ))

    def fill_gpu_info(self, report: HardwareReport):
        for row in self._rows("SELECT * FROM Win32_VideoController"):
            report.gpus.append(GpuInfo(
                name=get_property(row, "Name", NOT_AVAILABLE),
                manufacturer=get_property(row, "AdapterCompatibility", NOT_AVAILABLE),
                driver_version=get_property(row, "DriverVersion", NOT_AVAILABLE),
                adapter_ram=get_property(row, "AdapterRAM", 0),
            ))

    def fill_memory_info(self, report: HardwareReport):
        rows = self._rows("SELECT TotalPhysicalMemory FROM Win32_ComputerSystem")
        if rows:
            report.memory.total_physical_memory = get_property(rows[0], "TotalPhysicalMemory", 0)

        for row in self._rows("SELECT * FROM Win32_PhysicalMemory"):
            memory_type = get_property(row, "SMBIOSMemoryType", None, cast=int)
            if not memory_type:
                memory_type = get_property(row, "MemoryType", None, cast=int)
            report.memory.sticks.append(MemoryStick(
                device_locator=get_property(row, "DeviceLocator", NOT_AVAILABLE),
                capacity=get_property(row, "Capacity", 0),
                speed=get_property(row, "Speed", 0),
                manufacturer=get_property(row, "Manufacturer", NOT_AVAILABLE),
                part_number=get_property(row, "PartNumber", NOT_AVAILABLE),
                form_factor=decode_form_factor(get_property(row, "FormFactor", None, cast=int)),
                memory_type=decode_memory_type(memory_type),
            ))

    def fill_motherboard_info(self, report: HardwareReport):
        rows = self._rows("SELECT Product, Manufacturer, SerialNumber FROM Win32_BaseBoard")
        if rows:
            board = rows[0]
            report.motherboard.product = get_property(board, "Product", NOT_AVAILABLE)
            report.motherboard.manufacturer = get_property(board, "Manufacturer", NOT_AVAILABLE)
            report.motherboard.serial_number = get_property(board, "SerialNumber", NOT_AVAILABLE)

        rows = self._rows("SELECT SMBIOSBIOSVersion FROM Win32_BIOS")
        if rows:
            report.motherboard.bios_version = get_property(rows[0], "SMBIOSBIOSVersion", NOT_AVAILABLE)

    def fill_storage_info(self, report: HardwareReport):
        devices = []
        for row in self._rows("SELECT * FROM Win32_DiskDrive"):
            device_path = get_property(row, "DeviceID", "")
            device = StorageInfo(
                model=get_property(row, "Model", NOT_AVAILABLE),
                interface_type=get_property(row, "InterfaceType", NOT_AVAILABLE),
                size=get_property(row, "Size", 0),
                device_id=physical_drive_number(device_path) if device_path else "",
                index=get_property(row, "Index", None, cast=int),
            )
            if device_path:
                device.logical_disks = self.get_logical_disks(device_path)
            devices.append(device)

        self.media_resolver.resolve_all(devices)
        report.storage_devices.extend(devices)

    def get_logical_disks(self, drive_device_id: str) -> List[LogicalDiskInfo]:
        """Volumes on a physical drive, through its partitions."""
        logical_disks = []
        partition_query = (
            f"ASSOCIATORS OF {{Win32_DiskDrive.DeviceID='{_escape_wql(drive_device_id)}'}} "
            "WHERE AssocClass = Win32_DiskDriveToDiskPartition"
        )
        for partition in self._rows(partition_query):
            partition_id = get_property(partition, "DeviceID", "")
            if not partition_id:
                continue
            volume_query = (
                f"ASSOCIATORS OF {{Win32_DiskPartition.DeviceID='{_escape_wql(partition_id)}'}} "
                "WHERE AssocClass = Win32_LogicalDiskToPartition"
            )
            for volume in self._rows(volume_query):
                logical_disks.append(LogicalDiskInfo(
                    device_id=get_property(volume, "DeviceID", NOT_AVAILABLE),
                    file_system=get_property(volume, "FileSystem", NOT_AVAILABLE),
                    size=get_property(volume, "Size", 0),
                    free_space=get_property(volume, "FreeSpace", 0),
                ))
        return logical_disks

    def close(self):
        self.provider.close()
