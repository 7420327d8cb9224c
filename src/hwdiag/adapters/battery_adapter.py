"""
Battery Hardware Adapter

Reports battery health, charge cycle count and charge percentage.

Health is derived from the battery's maximum capacity relative to its design
capacity. psutil only exposes the charge level, so capacity and cycle counts
come from platform sources:

    - macOS: ``ioreg -rn AppleSmartBattery``
    - Linux: ``/sys/class/power_supply/BAT*``
    - Windows: WMI ``root\\wmi`` battery classes (requires the ``windows`` extra)
"""

import sys
from pathlib import Path
from typing import Dict, Any, Optional

import psutil

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
from ..models import BATTERY_GOOD, BATTERY_FAIR, BATTERY_POOR, BATTERY_NONE, BATTERY_UNKNOWN
from ..utils import run_command, parse_ioreg_properties, read_text_file

GOOD_THRESHOLD = 80
FAIR_THRESHOLD = 60


def classify_battery_health(max_capacity_percent: Optional[float]) -> str:
    """
    Map maximum capacity (percent of design capacity) to a health category.

    >= 80 is Good, >= 60 is Fair, anything lower is Poor. None means no
    battery is present.
    """
    if max_capacity_percent is None:
        return BATTERY_NONE
    if max_capacity_percent >= GOOD_THRESHOLD:
        return BATTERY_GOOD
    if max_capacity_percent >= FAIR_THRESHOLD:
        return BATTERY_FAIR
    return BATTERY_POOR


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _ratio_percent(current: Optional[int], design: Optional[int]) -> Optional[float]:
    if current is None or not design:
        return None
    return round(current / design * 100, 1)


class BatteryAdapter(BaseHardwareAdapter):
    """
    Battery adapter.

    Collects:
        - battery_health: Good / Fair / Poor / No Battery / Unknown
        - battery_cycle_count: charge cycles (0 when not reported)
        - battery_percentage: current charge, 0-100
        - battery_max_capacity: max capacity as % of design (when known)
    """

    POWER_SUPPLY_PATH = Path("/sys/class/power_supply")

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self._wmi_conn = None

    def initialize(self) -> bool:
        """Initialize battery monitoring."""
        if HAS_WMI:
            try:
                pythoncom.CoInitialize()
                self._wmi_conn = wmi.WMI(namespace="root\\wmi")
            except Exception as e:
                self.logger.debug(f"WMI unavailable: {e}")
                self._wmi_conn = None
        self._initialized = True
        return True

    # -------------------------------------------------------------------------
    # Platform sources. Each returns None when no battery is found, otherwise a
    # dict with any of: cycle_count, max_capacity, percentage.
    # -------------------------------------------------------------------------

    def _read_macos(self) -> Optional[Dict[str, Any]]:
        output = run_command(["ioreg", "-rn", "AppleSmartBattery"])
        if not output:
            return None
        props = parse_ioreg_properties(output)
        if not props:
            return None

        design = _to_int(props.get("DesignCapacity"))
        raw_max = _to_int(props.get("AppleRawMaxCapacity"))
        max_capacity = _to_int(props.get("MaxCapacity"))

        # Apple silicon reports MaxCapacity as a percentage and the mAh value
        # as AppleRawMaxCapacity; Intel Macs report MaxCapacity in mAh.
        if raw_max is not None and design:
            max_percent = _ratio_percent(raw_max, design)
        elif max_capacity is not None and max_capacity > 100 and design:
            max_percent = _ratio_percent(max_capacity, design)
        else:
            max_percent = float(max_capacity) if max_capacity is not None else None

        percentage = _to_int(props.get("CurrentCapacity"))
        if percentage is not None and max_capacity and max_capacity > 100:
            percentage = round(percentage / max_capacity * 100)

        return {
            "cycle_count": _to_int(props.get("CycleCount")),
            "max_capacity": max_percent,
            "percentage": percentage,
        }

    def _read_linux(self) -> Optional[Dict[str, Any]]:
        if not self.POWER_SUPPLY_PATH.is_dir():
            return None
        batteries = sorted(self.POWER_SUPPLY_PATH.glob("BAT*"))
        if not batteries:
            return None

        battery = batteries[0]

        def read(name: str) -> Optional[int]:
            return _to_int(read_text_file(battery / name))

        full = read("energy_full")
        design = read("energy_full_design")
        if full is None or not design:
            full = read("charge_full")
            design = read("charge_full_design")

        return {
            "cycle_count": read("cycle_count"),
            "max_capacity": _ratio_percent(full, design),
            "percentage": read("capacity"),
        }

    def _read_windows(self) -> Optional[Dict[str, Any]]:
        if not self._wmi_conn:
            return None
        try:
            static = self._wmi_conn.BatteryStaticData()
            if not static:
                return None
            design = _to_int(static[0].DesignedCapacity)
            full_charged = self._wmi_conn.BatteryFullChargedCapacity()
            cycles = self._wmi_conn.BatteryCycleCount()
            return {
                "cycle_count": _to_int(cycles[0].CycleCount) if cycles else None,
                "max_capacity": _ratio_percent(
                    _to_int(full_charged[0].FullChargedCapacity) if full_charged else None,
                    design,
                ),
                "percentage": None,
            }
        except Exception as e:
            self.logger.debug(f"WMI battery query failed: {e}")
            return None

    def _read_platform_details(self) -> Optional[Dict[str, Any]]:
        if sys.platform == "darwin":
            return self._read_macos()
        if sys.platform == "win32":
            return self._read_windows()
        return self._read_linux()

    def collect_metrics(self) -> Dict[str, MetricValue]:
        """Collect battery health, cycles and charge."""
        metrics = {}

        try:
            sensors = getattr(psutil, "sensors_battery", None)
            battery = sensors() if sensors else None
            details = self._read_platform_details()

            if battery is None and details is None:
                metrics["battery_health"] = self.metric("battery_health", BATTERY_NONE, "")
                metrics["battery_cycle_count"] = self.metric("battery_cycle_count", 0, "count")
                metrics["battery_percentage"] = self.metric("battery_percentage", 0, "%")
                self._last_metrics = metrics
                return metrics

            details = details or {}
            if battery is not None:
                percentage = battery.percent
            else:
                percentage = details.get("percentage")

            # A battery that does not report its capacity is treated as healthy
            max_capacity = details.get("max_capacity")
            health = classify_battery_health(100.0 if max_capacity is None else max_capacity)

            metrics["battery_health"] = self.metric("battery_health", health, "")
            metrics["battery_cycle_count"] = self.metric(
                "battery_cycle_count", max(int(details.get("cycle_count") or 0), 0), "count"
            )
            metrics["battery_percentage"] = self.metric(
                "battery_percentage", min(max(int(round(percentage or 0)), 0), 100), "%"
            )
            if max_capacity is not None:
                metrics["battery_max_capacity"] = self.metric(
                    "battery_max_capacity", max_capacity, "%", source="platform_specific"
                )
            self.reset_error_count()

        except Exception as e:
            self.record_error(f"battery query failed: {e}")
            metrics["battery_health"] = self.fallback("battery_health", BATTERY_UNKNOWN, "", str(e))
            metrics["battery_cycle_count"] = self.fallback("battery_cycle_count", 0, "count", str(e))
            metrics["battery_percentage"] = self.fallback("battery_percentage", 0, "%", str(e))

        self._last_metrics = metrics
        return metrics

    def cleanup(self) -> None:
        """Clean up resources."""
        if self._wmi_conn is not None:
            try:
                pythoncom.CoUninitialize()
            except Exception:
                pass
            self._wmi_conn = None
        self._initialized = False
