"""
Common contract for hardware data sources.
"""

from typing import Optional

from ..core.models import HardwareReport


class HardwareSource:
    """
    A source that produces or enriches a HardwareReport.

    Implementations return None when they cannot produce anything for
    this cycle. Merging across sources is left to the ReportAssembler.
    """

    @property
    def name(self) -> str:
        """Identifier recorded in ``HardwareReport.data_sources``."""
        return type(self).__name__

    def get_hardware_report(self, existing: Optional[HardwareReport] = None) -> Optional[HardwareReport]:
        raise NotImplementedError

    def close(self):
        """Release any long-lived resource held by the source."""
