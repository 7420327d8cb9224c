"""
System Hardware Reader

HardwareReader backed by the psutil/platform adapters. Each read delegates to
one adapter and unpacks its metrics; adapters already substitute sentinels
for failed reads, so no read raises.
"""

import logging
from typing import Dict, Any, Optional

from .base_adapter import HardwareReader, MetricValue
from .cpu_adapter import CPUAdapter
from .memory_adapter import MemoryAdapter
from .disk_adapter import DiskAdapter
from .battery_adapter import BatteryAdapter
from .identity_adapter import IdentityAdapter
from ..models import (
    CPUInfo,
    MemoryInfo,
    StorageInfo,
    BatteryInfo,
    BATTERY_UNKNOWN,
    UNKNOWN_CPU,
    UNKNOWN_SERIAL,
    UNKNOWN_MACHINE,
)

logger = logging.getLogger("hwdiag.adapters")


def _value(metrics: Dict[str, MetricValue], name: str, default: Any) -> Any:
    metric = metrics.get(name)
    return default if metric is None else metric.value


class SystemHardwareReader(HardwareReader):
    """Reads the local machine through one adapter per metric category."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.cpu = CPUAdapter(self.config)
        self.memory = MemoryAdapter(self.config)
        self.disk = DiskAdapter(self.config)
        self.battery = BatteryAdapter(self.config)
        self.identity = IdentityAdapter(self.config)
        self._adapters = [self.cpu, self.memory, self.disk, self.battery, self.identity]

        for adapter in self._adapters:
            if adapter.initialize():
                logger.debug(f"{adapter.adapter_name} initialized")
            else:
                # Reads still run and resolve to fallback values
                logger.warning(f"Failed to initialize {adapter.adapter_name}")

    def read_cpu(self) -> CPUInfo:
        metrics = self.cpu.collect_metrics()
        return CPUInfo(
            model=_value(metrics, "cpu_model", UNKNOWN_CPU) or UNKNOWN_CPU,
            cores=max(int(_value(metrics, "cpu_cores", 1)), 1),
        )

    def read_memory(self) -> MemoryInfo:
        metrics = self.memory.collect_metrics()
        return MemoryInfo(
            total_gb=float(_value(metrics, "ram_total_gb", 0.0)),
            used_gb=float(_value(metrics, "ram_used_gb", 0.0)),
        )

    def read_storage(self) -> StorageInfo:
        metrics = self.disk.collect_metrics()
        return StorageInfo(
            total_gb=float(_value(metrics, "storage_total_gb", 0.0)),
            used_gb=float(_value(metrics, "storage_used_gb", 0.0)),
        )

    def read_battery(self) -> BatteryInfo:
        metrics = self.battery.collect_metrics()
        return BatteryInfo(
            health=_value(metrics, "battery_health", BATTERY_UNKNOWN),
            cycle_count=int(_value(metrics, "battery_cycle_count", 0)),
            percentage=int(_value(metrics, "battery_percentage", 0)),
        )

    def read_serial_number(self) -> str:
        metrics = self.identity.collect_metrics()
        return _value(metrics, "serial_number", UNKNOWN_SERIAL) or UNKNOWN_SERIAL

    def read_machine_name(self) -> str:
        return self.identity.get_machine_name() or UNKNOWN_MACHINE

    def close(self) -> None:
        for adapter in self._adapters:
            adapter.cleanup()
