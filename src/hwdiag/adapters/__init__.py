"""
Hardware Adapters Module

One adapter per metric category, composed by SystemHardwareReader into the
HardwareReader interface the collector consumes. Contributors can add support
for new platforms by extending the adapter for the relevant category.

Available Adapters:
    - cpu_adapter: CPU brand string and logical core count
    - memory_adapter: Physical memory total and used estimate
    - disk_adapter: Root volume capacity
    - battery_adapter: Battery health, cycle count and charge
    - identity_adapter: Host name and platform serial number
"""

from .base_adapter import BaseHardwareAdapter, HardwareReader, MetricValue
from .cpu_adapter import CPUAdapter
from .memory_adapter import MemoryAdapter
from .disk_adapter import DiskAdapter
from .battery_adapter import BatteryAdapter, classify_battery_health
from .identity_adapter import IdentityAdapter
from .system_reader import SystemHardwareReader

__all__ = [
    "BaseHardwareAdapter",
    "HardwareReader",
    "MetricValue",
    "CPUAdapter",
    "MemoryAdapter",
    "DiskAdapter",
    "BatteryAdapter",
    "IdentityAdapter",
    "SystemHardwareReader",
    "classify_battery_health",
]
