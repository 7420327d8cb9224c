"""
Base Hardware Adapter Interface

All hardware adapters inherit from BaseHardwareAdapter. Adapters never raise
out of collect_metrics(): a failed read is reported as a MetricValue carrying
a fallback value with is_available=False.

HardwareReader is the capability interface the collector depends on: one
method per metric category, so collection can be driven by fake readers in
tests.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from datetime import datetime

from ..models import CPUInfo, MemoryInfo, StorageInfo, BatteryInfo


@dataclass
class MetricValue:
    """One value read from the platform, or the sentinel used in its place."""
    name: str
    value: Any
    unit: str
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = ""
    is_available: bool = True
    error_message: Optional[str] = None


class BaseHardwareAdapter(ABC):
    """
    Abstract base class for all hardware adapters.

    Subclasses implement initialize() and collect_metrics(). collect_metrics()
    must always return every metric it declares, substituting fallback
    values when the platform query fails.

    Example:
        class MyCustomAdapter(BaseHardwareAdapter):
            def initialize(self) -> bool:
                self._initialized = True
                return True

            def collect_metrics(self) -> Dict[str, MetricValue]:
                return {"answer": self.metric("answer", 42, "")}
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the adapter with optional configuration.

        Args:
            config: Optional dictionary containing application settings
        """
        self.config = config or {}
        self.logger = logging.getLogger(f"hwdiag.adapters.{self.adapter_name}")
        self._initialized = False
        self._last_metrics: Dict[str, MetricValue] = {}
        self._error_count = 0
        self._last_error: Optional[str] = None

    @property
    def is_initialized(self) -> bool:
        """Check if the adapter has been successfully initialized."""
        return self._initialized

    @property
    def adapter_name(self) -> str:
        """Return the name of this adapter."""
        return self.__class__.__name__

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def last_error(self) -> Optional[str]:
        """Message of the most recent failed read, kept after a reset."""
        return self._last_error

    @abstractmethod
    def initialize(self) -> bool:
        """
        Prepare platform access for this adapter.

        Returns:
            True if initialization was successful, False otherwise
        """
        pass

    @abstractmethod
    def collect_metrics(self) -> Dict[str, MetricValue]:
        """
        Collect current hardware metrics.

        Returns:
            Dictionary mapping metric names to MetricValue objects
        """
        pass

    def cleanup(self) -> None:
        """Release resources. Safe to call repeatedly."""
        self._initialized = False

    def metric(self, name: str, value: Any, unit: str, source: str = "psutil") -> MetricValue:
        """Build an available metric."""
        return MetricValue(name=name, value=value, unit=unit, source=source)

    def fallback(self, name: str, value: Any, unit: str, error: str) -> MetricValue:
        """Build a sentinel metric for a failed read."""
        return MetricValue(
            name=name,
            value=value,
            unit=unit,
            source="fallback",
            is_available=False,
            error_message=error,
        )

    def get_metric_names(self) -> List[str]:
        """Names reported by the last collect_metrics() call."""
        return list(self._last_metrics.keys())

    def record_error(self, error_message: str) -> None:
        """Count a failed platform read and log it."""
        self._error_count += 1
        self._last_error = error_message
        self.logger.warning(f"{self.adapter_name}: {error_message}")

    def reset_error_count(self) -> None:
        """Clear the failure count once a read succeeds again."""
        self._error_count = 0

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()
        return False


class HardwareReader(ABC):
    """
    One read per metric category.

    Implementations resolve every read to a value, falling back to sentinels
    instead of raising.
    """

    @abstractmethod
    def read_cpu(self) -> CPUInfo:
        pass

    @abstractmethod
    def read_memory(self) -> MemoryInfo:
        pass

    @abstractmethod
    def read_storage(self) -> StorageInfo:
        pass

    @abstractmethod
    def read_battery(self) -> BatteryInfo:
        pass

    @abstractmethod
    def read_serial_number(self) -> str:
        pass

    @abstractmethod
    def read_machine_name(self) -> str:
        pass

    def close(self) -> None:
        """Release any platform handles held by the reader."""
        pass
