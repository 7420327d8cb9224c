"""
Memory (RAM) Hardware Adapter

Reports installed physical memory and an estimate of memory in use.
"""

from typing import Dict

import psutil

from .base_adapter import BaseHardwareAdapter, MetricValue
from ..utils import bytes_to_gb

# Share of total reported as used when the page statistics are unreadable
USED_FALLBACK_RATIO = 0.5


class MemoryAdapter(BaseHardwareAdapter):
    """
    System memory adapter.

    Collects:
        - ram_total_gb: installed physical memory
        - ram_used_gb: active + wired (+ compressed) pages, as the OS
          activity monitors report "memory used"
    """

    def initialize(self) -> bool:
        """Initialize memory monitoring."""
        try:
            psutil.virtual_memory()
            self._initialized = True
            return True
        except Exception as e:
            self.record_error(str(e))
            return False

    @staticmethod
    def _estimate_used_bytes(mem) -> float:
        """
        Estimate used memory from the page counters psutil exposes.

        macOS reports active and wired, Linux active only. Platforms without
        page counters (Windows) report ``used`` directly.
        """
        if hasattr(mem, "active"):
            used = mem.active + getattr(mem, "wired", 0)
            # Only some platforms surface the compressor pool
            used += getattr(mem, "compressed", 0)
            return float(used)
        return float(mem.used)

    def collect_metrics(self) -> Dict[str, MetricValue]:
        """Collect current memory metrics."""
        metrics = {}

        try:
            mem = psutil.virtual_memory()
            total_bytes = float(mem.total)
        except Exception as e:
            self.record_error(f"virtual_memory failed: {e}")
            metrics["ram_total_gb"] = self.fallback("ram_total_gb", 0.0, "GB", str(e))
            metrics["ram_used_gb"] = self.fallback("ram_used_gb", 0.0, "GB", str(e))
            self._last_metrics = metrics
            return metrics

        metrics["ram_total_gb"] = self.metric("ram_total_gb", bytes_to_gb(total_bytes), "GB")

        try:
            used_bytes = self._estimate_used_bytes(mem)
            metrics["ram_used_gb"] = self.metric("ram_used_gb", bytes_to_gb(used_bytes), "GB")
            self.reset_error_count()
        except Exception as e:
            self.record_error(f"memory statistics unavailable: {e}")
            metrics["ram_used_gb"] = self.fallback(
                "ram_used_gb",
                bytes_to_gb(total_bytes * USED_FALLBACK_RATIO),
                "GB",
                str(e),
            )

        self._last_metrics = metrics
        return metrics
