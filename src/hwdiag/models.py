"""
Data Models

Immutable records exchanged between the collector, the API client and the UI:

    - HardwareSnapshot: one complete collection run (request body of a submit)
    - UploadResult: server acknowledgement of a submitted snapshot
    - RemoteRecord: a stored snapshot as returned by the read endpoints
    - AggregateStatistics: backend-wide summary

Attribute names are the snake_case keys used on the wire, so ``to_dict`` and
``from_dict`` are the only translation layer.
"""

from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Dict, Any, NamedTuple, Tuple, Type

from .errors import DecodingError


# Battery health categories
BATTERY_GOOD = "Good"
BATTERY_FAIR = "Fair"
BATTERY_POOR = "Poor"
BATTERY_NONE = "No Battery"
BATTERY_UNKNOWN = "Unknown"

# Fallback literals
UNKNOWN_CPU = "Unknown CPU"
UNKNOWN_SERIAL = "UNKNOWN_SERIAL"
UNKNOWN_MACHINE = "Unknown Machine"

STATUS_COMPLETED = "completed"


class CPUInfo(NamedTuple):
    model: str
    cores: int


class MemoryInfo(NamedTuple):
    total_gb: float
    used_gb: float


class StorageInfo(NamedTuple):
    total_gb: float
    used_gb: float


class BatteryInfo(NamedTuple):
    health: str
    cycle_count: int
    percentage: int


class DiagnosticStep(Enum):
    """Collection stages, in execution order, with their progress fraction."""

    CPU = ("Test CPU", 0.15)
    RAM = ("Test RAM", 0.30)
    STORAGE = ("Test Storage", 0.50)
    BATTERY = ("Test Battery", 0.70)
    SYSTEM = ("System Information", 0.85)
    UPLOAD = ("Sending to server", 1.0)

    def __init__(self, label: str, progress: float):
        self.label = label
        self.progress = progress


def _field(data: Dict[str, Any], key: str, kind: Type, model: str) -> Any:
    """Fetch and type-check one wire field."""
    if key not in data:
        raise DecodingError(f"{model}: missing field '{key}'")
    value = data[key]
    if kind is float:
        # JSON has a single number type; bool is not a number here
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecodingError(f"{model}: field '{key}' must be a number")
        return float(value)
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise DecodingError(f"{model}: field '{key}' must be an integer")
        return value
    if not isinstance(value, kind):
        raise DecodingError(f"{model}: field '{key}' must be {kind.__name__}")
    return value


def _require_mapping(data: Any, model: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise DecodingError(f"{model}: expected a JSON object, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class HardwareSnapshot:
    """A fully resolved hardware collection run."""

    machine_name: str
    serial_number: str
    cpu_model: str
    cpu_cores: int
    ram_total_gb: float
    ram_used_gb: float
    storage_total_gb: float
    storage_used_gb: float
    battery_health: str
    battery_cycle_count: int
    battery_percentage: int
    test_duration_seconds: int
    status: str = STATUS_COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Return the wire representation."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HardwareSnapshot":
        data = _require_mapping(data, cls.__name__)
        return cls(**_snapshot_fields(data, cls.__name__))


# Wire type of every snapshot field, in declaration order
_SNAPSHOT_TYPES: Tuple[Tuple[str, Type], ...] = (
    ("machine_name", str),
    ("serial_number", str),
    ("cpu_model", str),
    ("cpu_cores", int),
    ("ram_total_gb", float),
    ("ram_used_gb", float),
    ("storage_total_gb", float),
    ("storage_used_gb", float),
    ("battery_health", str),
    ("battery_cycle_count", int),
    ("battery_percentage", int),
    ("test_duration_seconds", int),
    ("status", str),
)


def _snapshot_fields(data: Dict[str, Any], model: str, optional=()) -> Dict[str, Any]:
    values = {}
    for key, kind in _SNAPSHOT_TYPES:
        if key in optional and key not in data:
            continue
        values[key] = _field(data, key, kind, model)
    return values


@dataclass(frozen=True)
class UploadResult:
    """Server-assigned identity of a submitted snapshot."""

    id: int
    serial_number: str
    timestamp: str
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UploadResult":
        data = _require_mapping(data, cls.__name__)
        return cls(
            id=_field(data, "id", int, cls.__name__),
            serial_number=_field(data, "serial_number", str, cls.__name__),
            timestamp=_field(data, "timestamp", str, cls.__name__),
            status=_field(data, "status", str, cls.__name__),
        )


@dataclass(frozen=True)
class RemoteRecord(HardwareSnapshot):
    """A stored snapshot returned by the read endpoints."""

    # Defaults only because dataclass inheritance requires them after
    # the inherited defaulted ``status`` field.
    id: int = 0
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteRecord":
        data = _require_mapping(data, cls.__name__)
        values = _snapshot_fields(data, cls.__name__, optional=("machine_name",))
        values.setdefault("machine_name", "")
        values["id"] = _field(data, "id", int, cls.__name__)
        values["timestamp"] = _field(data, "timestamp", str, cls.__name__)
        return cls(**values)

    def to_snapshot(self) -> HardwareSnapshot:
        """Strip the server-assigned fields."""
        names = {f.name for f in fields(HardwareSnapshot)}
        return HardwareSnapshot(**{k: v for k, v in asdict(self).items() if k in names})


@dataclass(frozen=True)
class AggregateStatistics:
    """Backend-wide summary of stored diagnostics."""

    total_tests: int
    completed_tests: int
    failed_tests: int
    average_test_duration: float
    unique_machines: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AggregateStatistics":
        data = _require_mapping(data, cls.__name__)
        return cls(
            total_tests=_field(data, "total_tests", int, cls.__name__),
            completed_tests=_field(data, "completed_tests", int, cls.__name__),
            failed_tests=_field(data, "failed_tests", int, cls.__name__),
            average_test_duration=_field(data, "average_test_duration", float, cls.__name__),
            unique_machines=_field(data, "unique_machines", int, cls.__name__),
        )
