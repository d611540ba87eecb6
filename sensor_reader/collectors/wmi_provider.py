"""
Windows Management Instrumentation row provider.

Runs WQL queries through the ``wmi`` package and hands back plain
property-bag dictionaries. A failed query is reported as None so callers
treat it as "no data" instead of handling exceptions.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


NAMESPACE_CIMV2 = "root\\cimv2"
NAMESPACE_STORAGE = "root\\Microsoft\\Windows\\Storage"
NAMESPACE_STORAGE_SPACES = "root\\Microsoft\\Windows\\Storage\\Providers_v2"
NAMESPACE_WMI = "root\\WMI"

Row = Dict[str, Any]


class WmiProvider:
    """
    Executes WQL queries against local WMI namespaces.

    One connection is opened per namespace on first use and reused for
    the lifetime of the provider.
    """

    def __init__(self, connect: Optional[Callable[[str], Any]] = None):
        self._connect = connect or self._default_connect
        self._connections: Dict[str, Any] = {}

    @staticmethod
    def _default_connect(namespace: str):
        import wmi
        return wmi.WMI(namespace=namespace)

    def _connection(self, namespace: str):
        if namespace not in self._connections:
            self._connections[namespace] = self._connect(namespace)
        return self._connections[namespace]

    def query(self, wql: str, namespace: Optional[str] = None) -> Optional[List[Row]]:
        """Run a query and return its rows, or None if it failed."""
        namespace = namespace or NAMESPACE_CIMV2
        try:
            results = self._connection(namespace).query(wql)
            return [self._to_row(item) for item in results]
        except Exception as e:
            logger.debug(f"WMI query failed [{namespace}] {wql}: {e}")
            return None

    @staticmethod
    def _to_row(item: Any) -> Row:
        if isinstance(item, dict):
            return dict(item)
        properties = getattr(item, "properties", None) or {}
        return {name: getattr(item, name, None) for name in properties}

    def close(self):
        self._connections.clear()


def get_property(row: Optional[Row], key: str, default: Any = None, cast: Optional[Callable] = None) -> Any:
    """
    Read ``key`` from a row, converted to the type of ``default``.

    Absent keys, None values and failed conversions all yield ``default``.
    Pass ``cast`` when the default is None or a different conversion is
    wanted.
    """
    if not row:
        return default
    value = row.get(key)
    if value is None:
        return default

    converter = cast or (type(default) if default is not None else None)
    if converter is None:
        return value

    try:
        if converter is str:
            text = str(value).strip()
            return text if text else default
        if converter is bool:
            if isinstance(value, str):
                return value.strip().lower() in ("true", "1", "yes")
            return bool(value)
        if converter is int and isinstance(value, str):
            return int(value.strip())
        return converter(value)
    except (TypeError, ValueError, OverflowError):
        return default


def parse_cim_datetime(value: Optional[str]) -> Optional[str]:
    """
    Convert a CIM_DATETIME string to ISO-8601.

    CIM format: ``yyyymmddHHMMSS.ffffff+UUU`` where UUU is the UTC offset
    in minutes.
    """
    if not value or not isinstance(value, str) or len(value) < 14:
        return None
    try:
        parsed = datetime.strptime(value[:14], "%Y%m%d%H%M%S")
        if len(value) >= 21 and value[14] == ".":
            parsed = parsed.replace(microsecond=int(value[15:21]))
        if len(value) >= 25 and value[21] in "+-":
            minutes = int(value[22:25])
            if value[21] == "-":
                minutes = -minutes
            parsed = parsed.replace(tzinfo=timezone(timedelta(minutes=minutes)))
    except ValueError:
        return None
    return parsed.isoformat()
