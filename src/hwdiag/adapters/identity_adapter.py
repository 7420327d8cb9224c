"""
Machine Identity Adapter

Reports the host display name and the platform serial number.
"""

import sys
import socket
import platform
from pathlib import Path
from typing import Dict, Any, Optional

if sys.platform == "win32":
    try:
        import wmi
        import pythoncom
        HAS_WMI = True
    except ImportError:
        HAS_WMI = False
else:
    HAS_WMI = False

from .base_adapter import BaseHardwareAdapter, MetricValue
from ..models import UNKNOWN_SERIAL, UNKNOWN_MACHINE
from ..utils import run_command, parse_ioreg_properties, read_text_file

# Placeholder strings firmware vendors leave in the serial field
_PLACEHOLDER_SERIALS = {
    "",
    "0",
    "none",
    "default string",
    "to be filled by o.e.m.",
    "system serial number",
    "not specified",
    "not applicable",
}


def _clean_serial(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if value.lower() in _PLACEHOLDER_SERIALS:
        return None
    return value


class IdentityAdapter(BaseHardwareAdapter):
    """
    Machine identity adapter.

    Collects:
        - machine_name: host name
        - serial_number: IOPlatformExpertDevice (macOS), DMI (Linux) or
          Win32_BIOS (Windows) serial, UNKNOWN_SERIAL when unavailable
    """

    DMI_PATH = Path("/sys/class/dmi/id")

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self._serial: Optional[str] = None

    def initialize(self) -> bool:
        self._initialized = True
        return True

    def _serial_macos(self) -> Optional[str]:
        output = run_command(["ioreg", "-c", "IOPlatformExpertDevice", "-d", "2"])
        if not output:
            return None
        return _clean_serial(parse_ioreg_properties(output).get("IOPlatformSerialNumber"))

    def _serial_linux(self) -> Optional[str]:
        # product_serial is root-only on most distributions
        for name in ("product_serial", "board_serial", "chassis_serial"):
            serial = _clean_serial(read_text_file(self.DMI_PATH / name))
            if serial:
                return serial
        return None

    def _serial_windows(self) -> Optional[str]:
        if not HAS_WMI:
            return None
        try:
            pythoncom.CoInitialize()
            try:
                bios = wmi.WMI().Win32_BIOS()
                return _clean_serial(bios[0].SerialNumber) if bios else None
            finally:
                pythoncom.CoUninitialize()
        except Exception as e:
            self.logger.debug(f"WMI serial query failed: {e}")
            return None

    def get_serial_number(self) -> str:
        """Return the platform serial number or UNKNOWN_SERIAL."""
        if self._serial:
            return self._serial

        if sys.platform == "darwin":
            serial = self._serial_macos()
        elif sys.platform == "win32":
            serial = self._serial_windows()
        else:
            serial = self._serial_linux()

        if serial:
            self._serial = serial
            return serial
        return UNKNOWN_SERIAL

    def get_machine_name(self) -> str:
        """Return the host display name or UNKNOWN_MACHINE."""
        name = platform.node() or socket.gethostname()
        return name.strip() or UNKNOWN_MACHINE

    def collect_metrics(self) -> Dict[str, MetricValue]:
        """Collect machine name and serial number."""
        metrics = {}

        try:
            metrics["machine_name"] = self.metric("machine_name", self.get_machine_name(), "", source="platform")
        except Exception as e:
            self.record_error(f"host name lookup failed: {e}")
            metrics["machine_name"] = self.fallback("machine_name", UNKNOWN_MACHINE, "", str(e))

        try:
            serial = self.get_serial_number()
        except Exception as e:
            self.record_error(f"serial number lookup failed: {e}")
            metrics["serial_number"] = self.fallback("serial_number", UNKNOWN_SERIAL, "", str(e))
        else:
            if serial == UNKNOWN_SERIAL:
                metrics["serial_number"] = self.fallback(
                    "serial_number", UNKNOWN_SERIAL, "", "no serial number reported"
                )
            else:
                metrics["serial_number"] = self.metric("serial_number", serial, "", source="platform_specific")

        self._last_metrics = metrics
        return metrics
