"""
Storage media type classification.

Each drive is classified by the first evidence tier that identifies it:

1. per-disk evidence (bus type, media type code, spindle speed) keyed by
   device id;
2. aggregate evidence (media type code, rotation rate) keyed by device
   index;
3. the model string alone.

A drive no tier identifies stays "Unspecified".
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from ..collectors.wmi_provider import (
    NAMESPACE_STORAGE,
    NAMESPACE_STORAGE_SPACES,
    WmiProvider,
    get_property,
)
from ..core.models import (
    MEDIA_HDD,
    MEDIA_NVME_SSD,
    MEDIA_SATA_SSD,
    MEDIA_SSD,
    MEDIA_UNSPECIFIED,
    StorageInfo,
)


logger = logging.getLogger(__name__)


BUS_SATA = "SATA"
BUS_NVME = "NVMe"
BUS_USB = "USB"
BUS_OTHER = "Other"

# MSFT_PhysicalDisk.BusType
_BUS_TYPE_CODES = {
    7: BUS_USB,
    11: BUS_SATA,
    17: BUS_NVME,
}

# MSFT_PhysicalDisk.MediaType
MEDIA_CODE_UNSPECIFIED = 0
MEDIA_CODE_HDD = 3
MEDIA_CODE_SSD = 4

VIRTUAL_BLOCK_PREFIXES = ("loop", "ram", "zram", "dm-", "md", "sr", "fd", "nbd")

# SpindleSpeed reports this when the speed cannot be determined
_SPINDLE_UNKNOWN = 0xFFFFFFFF

NVME_MODEL_TOKENS = (
    "NVME",
    "PCIE",
    "MZVL",
    "MZ-V",
    "SN5",
    "SN7",
    "SN8",
    "PM9",
    "SNV",
    "SKC3000",
    "KXG",
)

HDD_MODEL_PATTERN = re.compile(
    r"^(ST\d|WDC\s*WD\d|WD\d|HGST|HITACHI|HTS\d|HDS\d|TOSHIBA\s*(DT|MQ|MG|HDW|MD)|MAXTOR|SAMSUNG\s*HD|SAMSUNG\s*HN)",
    re.IGNORECASE,
)


@dataclass
class PhysicalDiskEvidence:
    """Tier 1: per-disk bus and media facts."""

    bus_type: str = BUS_OTHER
    media_type: int = MEDIA_CODE_UNSPECIFIED
    spindle_speed: int = 0


@dataclass
class RotationEvidence:
    """Tier 2: coarse media code and nominal rotation rate."""

    media_type: int = MEDIA_CODE_UNSPECIFIED
    rotation_rate: int = 0


def has_nvme_token(model: Optional[str]) -> bool:
    text = (model or "").upper()
    return any(token in text for token in NVME_MODEL_TOKENS)


def classify_physical_disk(evidence: Optional[PhysicalDiskEvidence]) -> Optional[str]:
    """Apply the tier 1 rule table. None means the tier did not identify the disk."""
    if evidence is None:
        return None
    if evidence.bus_type == BUS_NVME:
        return MEDIA_NVME_SSD
    if evidence.bus_type == BUS_SATA and evidence.media_type == MEDIA_CODE_SSD:
        return MEDIA_SATA_SSD
    if evidence.media_type == MEDIA_CODE_SSD:
        return MEDIA_SSD
    if evidence.media_type == MEDIA_CODE_HDD or evidence.spindle_speed > 1:
        return MEDIA_HDD
    return None


def classify_rotation(evidence: Optional[RotationEvidence], model: str, interface_type: str) -> Optional[str]:
    """Apply the tier 2 rule table."""
    if evidence is None:
        return None
    if evidence.media_type == MEDIA_CODE_SSD:
        if (interface_type or "").strip().upper() == BUS_SATA:
            return MEDIA_SATA_SSD
        if has_nvme_token(model):
            return MEDIA_NVME_SSD
        return MEDIA_SSD
    if evidence.media_type == MEDIA_CODE_HDD or evidence.rotation_rate > 1:
        return MEDIA_HDD
    return None


def classify_model_name(model: Optional[str]) -> Optional[str]:
    """
    Apply the tier 3 heuristic.

    Only NVMe and HDD are ever asserted from a model string; a plain "SSD"
    in the name is not trusted on its own.
    """
    text = (model or "").strip()
    if not text:
        return None
    if has_nvme_token(text):
        return MEDIA_NVME_SSD
    if HDD_MODEL_PATTERN.match(text) and "SSD" not in text.upper():
        return MEDIA_HDD
    return None


class DiskEvidenceSource:
    """Supplies evidence tables; None means the query failed or is unsupported."""

    def physical_disks(self) -> Optional[Dict[str, PhysicalDiskEvidence]]:
        return None

    def disk_rotation(self) -> Optional[Dict[int, RotationEvidence]]:
        return None


class WmiDiskEvidence(DiskEvidenceSource):
    """
    Evidence from the Windows storage management providers.

    Per-disk facts come from the storage management API and the coarse
    rotation table from the Storage Spaces provider, in its own namespace.
    """

    PHYSICAL_DISK_QUERY = "SELECT DeviceId, BusType, MediaType, SpindleSpeed FROM MSFT_PhysicalDisk"
    ROTATION_QUERY = "SELECT DeviceId, MediaType, SpindleSpeed FROM SPACES_PhysicalDisk"

    def __init__(self, provider: WmiProvider):
        self.provider = provider

    def physical_disks(self) -> Optional[Dict[str, PhysicalDiskEvidence]]:
        rows = self.provider.query(self.PHYSICAL_DISK_QUERY, NAMESPACE_STORAGE)
        if rows is None:
            return None

        evidence = {}
        for row in rows:
            device_id = get_property(row, "DeviceId", "")
            if not device_id:
                continue
            spindle = get_property(row, "SpindleSpeed", 0)
            if spindle == _SPINDLE_UNKNOWN:
                spindle = 0
            evidence[device_id] = PhysicalDiskEvidence(
                bus_type=_BUS_TYPE_CODES.get(get_property(row, "BusType", 0), BUS_OTHER),
                media_type=get_property(row, "MediaType", MEDIA_CODE_UNSPECIFIED),
                spindle_speed=spindle,
            )
        return evidence

    def disk_rotation(self) -> Optional[Dict[int, RotationEvidence]]:
        rows = self.provider.query(self.ROTATION_QUERY, NAMESPACE_STORAGE_SPACES)
        if rows is None:
            return None

        evidence = {}
        for row in rows:
            index = get_property(row, "DeviceId", -1, cast=int)
            if index < 0:
                continue
            rotation = get_property(row, "SpindleSpeed", 0)
            if rotation == _SPINDLE_UNKNOWN:
                rotation = 0
            evidence[index] = RotationEvidence(
                media_type=get_property(row, "MediaType", MEDIA_CODE_UNSPECIFIED),
                rotation_rate=rotation,
            )
        return evidence


class SysfsDiskEvidence(DiskEvidenceSource):
    """
    Evidence from Linux ``/sys/block``.

    NVMe namespaces are identified by their kernel name; everything else
    only carries the rotational flag.
    """

    def __init__(self, sys_block: str = "/sys/block"):
        self.sys_block = Path(sys_block)

    def block_devices(self) -> List[Path]:
        """Physical block devices in name order; virtual devices are skipped."""
        if not self.sys_block.exists():
            return []
        return sorted(
            p for p in self.sys_block.iterdir()
            if not p.name.startswith(VIRTUAL_BLOCK_PREFIXES) and (p / "queue" / "rotational").exists()
        )

    def _rotational(self, device: Path) -> Optional[bool]:
        try:
            return (device / "queue" / "rotational").read_text().strip() == "1"
        except OSError:
            return None

    def physical_disks(self) -> Optional[Dict[str, PhysicalDiskEvidence]]:
        evidence = {}
        for device in self.block_devices():
            if device.name.startswith("nvme"):
                evidence[device.name] = PhysicalDiskEvidence(bus_type=BUS_NVME, media_type=MEDIA_CODE_SSD)
        return evidence

    def disk_rotation(self) -> Optional[Dict[int, RotationEvidence]]:
        evidence = {}
        for index, device in enumerate(self.block_devices()):
            rotational = self._rotational(device)
            if rotational is None:
                continue
            evidence[index] = RotationEvidence(
                media_type=MEDIA_CODE_HDD if rotational else MEDIA_CODE_SSD,
            )
        return evidence


class _LazyTable:
    """Loads an evidence table on first lookup; a failed load reads as empty."""

    def __init__(self, loader: Callable[[], Optional[Dict]], label: str):
        self._loader = loader
        self._label = label
        self._table: Optional[Dict] = None

    def get(self, key):
        if key is None:
            return None
        if self._table is None:
            try:
                self._table = self._loader()
            except Exception as e:
                logger.debug(f"{self._label} evidence unavailable: {e}")
                self._table = None
            if self._table is None:
                logger.debug(f"No {self._label} evidence")
                self._table = {}
        return self._table.get(key)


class StorageMediaTypeResolver:
    """Assigns ``media_type`` to every drive using the tiered evidence chain."""

    def __init__(self, evidence: DiskEvidenceSource):
        self.evidence = evidence

    def resolve_all(self, devices: Iterable[StorageInfo]):
        """Classify drives in place. Evidence is queried at most once per call."""
        per_disk = _LazyTable(self.evidence.physical_disks, "physical disk")
        aggregate = _LazyTable(self.evidence.disk_rotation, "rotation")

        for device in devices:
            device.media_type = self.classify(device, per_disk, aggregate)
            logger.debug(f"Drive '{device.model}' classified as {device.media_type}")

    @staticmethod
    def classify(device: StorageInfo, per_disk, aggregate) -> str:
        """
        Walk the tiers for one drive.

        ``per_disk`` and ``aggregate`` only need a ``get(key)`` method, so
        plain dicts work as well as lazily-loaded tables. A lower tier is
        only looked up when every higher tier failed to identify the drive.
        """
        media_type = classify_physical_disk(per_disk.get(device.device_id or None))
        if media_type:
            return media_type

        media_type = classify_rotation(aggregate.get(device.index), device.model, device.interface_type)
        if media_type:
            return media_type

        return classify_model_name(device.model) or MEDIA_UNSPECIFIED
