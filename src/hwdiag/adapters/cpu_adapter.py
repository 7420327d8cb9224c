"""
CPU Hardware Adapter

Reads the CPU brand string and the logical processor count.
"""

import platform
from typing import Dict, Any, Optional

import psutil
import cpuinfo

from .base_adapter import BaseHardwareAdapter, MetricValue
from ..models import UNKNOWN_CPU


class CPUAdapter(BaseHardwareAdapter):
    """
    Cross-platform CPU identification adapter.

    Collects:
        - cpu_model: human-readable brand string (py-cpuinfo, then platform)
        - cpu_cores: logical processor count, never below 1
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self._model: Optional[str] = None

    def initialize(self) -> bool:
        """Initialize CPU monitoring capabilities."""
        try:
            psutil.cpu_count(logical=True)
            self._initialized = True
            return True
        except Exception as e:
            self.record_error(str(e))
            return False

    def _get_model(self) -> str:
        """Resolve the CPU brand string, caching the first non-empty answer."""
        if self._model:
            return self._model

        model = ""
        try:
            # get_cpu_info() is slow (it may spawn a subprocess), hence the cache
            model = (cpuinfo.get_cpu_info().get("brand_raw") or "").strip()
        except Exception as e:
            self.logger.debug(f"py-cpuinfo failed: {e}")

        if not model:
            model = (platform.processor() or "").strip()

        if model:
            self._model = model
        return model

    def collect_metrics(self) -> Dict[str, MetricValue]:
        """Collect CPU model and core count."""
        metrics = {}

        model = self._get_model()
        if model:
            metrics["cpu_model"] = self.metric("cpu_model", model, "", source="cpuinfo")
        else:
            metrics["cpu_model"] = self.fallback("cpu_model", UNKNOWN_CPU, "", "empty CPU brand string")

        try:
            cores = psutil.cpu_count(logical=True)
            if not cores:
                raise ValueError("logical CPU count unavailable")
            metrics["cpu_cores"] = self.metric("cpu_cores", int(cores), "count")
            self.reset_error_count()
        except Exception as e:
            self.record_error(f"cpu_count failed: {e}")
            metrics["cpu_cores"] = self.fallback("cpu_cores", 1, "count", str(e))

        self._last_metrics = metrics
        return metrics
