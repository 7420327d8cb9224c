"""
Disk/Storage Hardware Adapter

Reports capacity and usage of the system root volume.
"""

import os
import sys
from typing import Dict, Any, Optional

import psutil

from .base_adapter import BaseHardwareAdapter, MetricValue
from ..utils import bytes_to_gb


def get_root_volume() -> str:
    """Return the mount point of the volume the OS boots from."""
    if sys.platform == "win32":
        return os.environ.get("SystemDrive", "C:") + "\\"
    return "/"


class DiskAdapter(BaseHardwareAdapter):
    """
    Root volume storage adapter.

    Collects:
        - storage_total_gb: volume capacity
        - storage_used_gb: capacity minus space available, never negative
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        collection_config = self.config.get("collection", {})
        self.volume = collection_config.get("storage_volume") or get_root_volume()

    def initialize(self) -> bool:
        """Initialize disk monitoring."""
        if not os.path.exists(self.volume):
            self.record_error(f"volume not found: {self.volume}")
            return False
        self._initialized = True
        return True

    def collect_metrics(self) -> Dict[str, MetricValue]:
        """Collect current root volume usage."""
        metrics = {}

        try:
            usage = psutil.disk_usage(self.volume)
            total_gb = bytes_to_gb(usage.total)
            free_gb = bytes_to_gb(usage.free)
            # Rounding both sides can push the difference just below zero
            used_gb = round(max(total_gb - free_gb, 0.0), 2)

            metrics["storage_total_gb"] = self.metric("storage_total_gb", total_gb, "GB")
            metrics["storage_used_gb"] = self.metric("storage_used_gb", used_gb, "GB")
            self.reset_error_count()
        except Exception as e:
            self.record_error(f"disk_usage({self.volume}) failed: {e}")
            metrics["storage_total_gb"] = self.fallback("storage_total_gb", 0.0, "GB", str(e))
            metrics["storage_used_gb"] = self.fallback("storage_used_gb", 0.0, "GB", str(e))

        self._last_metrics = metrics
        return metrics
