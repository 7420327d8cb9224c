"""
Pytest Configuration and Fixtures

Provides shared fixtures and configuration for all tests.
"""

import json
import sys
from pathlib import Path
from typing import Any, List, Optional
from unittest.mock import MagicMock

import pytest
import requests

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hwdiag.adapters.base_adapter import HardwareReader
from hwdiag.models import (
    BatteryInfo,
    CPUInfo,
    HardwareSnapshot,
    MemoryInfo,
    StorageInfo,
)
from hwdiag.utils import get_default_config


class FakeHardwareReader(HardwareReader):
    """HardwareReader returning fixed values and recording call order."""

    def __init__(self, on_read=None):
        self.calls: List[str] = []
        self.closed = False
        # Called with the category name after each read
        self.on_read = on_read

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.on_read:
            self.on_read(name)

    def read_cpu(self) -> CPUInfo:
        self._record("cpu")
        return CPUInfo(model="Apple M2 Pro", cores=12)

    def read_memory(self) -> MemoryInfo:
        self._record("memory")
        return MemoryInfo(total_gb=32.0, used_gb=18.5)

    def read_storage(self) -> StorageInfo:
        self._record("storage")
        return StorageInfo(total_gb=994.66, used_gb=512.3)

    def read_battery(self) -> BatteryInfo:
        self._record("battery")
        return BatteryInfo(health="Good", cycle_count=87, percentage=76)

    def read_serial_number(self) -> str:
        self._record("serial")
        return "C02XK1ZQJGH5"

    def read_machine_name(self) -> str:
        self._record("machine_name")
        return "MacBook-Pro-de-Test"

    def close(self) -> None:
        self.closed = True


def make_response(status_code: int, body: Any = None, raw: Optional[bytes] = None) -> requests.Response:
    """Build a real requests.Response with a JSON (or raw) body."""
    response = requests.Response()
    response.status_code = status_code
    if raw is not None:
        response._content = raw
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
    else:
        response._content = b""
    response.headers["Content-Type"] = "application/json"
    return response


@pytest.fixture
def default_config():
    """Provide default configuration without step pacing."""
    config = get_default_config()
    config["collection"]["step_delay_seconds"] = 0
    return config


@pytest.fixture
def fake_reader():
    """Provide a HardwareReader with fixed values."""
    return FakeHardwareReader()


@pytest.fixture
def sample_snapshot():
    """Provide a completed snapshot."""
    return HardwareSnapshot(
        machine_name="MacBook-Pro-de-Test",
        serial_number="C02XK1ZQJGH5",
        cpu_model="Apple M2 Pro",
        cpu_cores=12,
        ram_total_gb=32.0,
        ram_used_gb=18.5,
        storage_total_gb=994.66,
        storage_used_gb=512.3,
        battery_health="Good",
        battery_cycle_count=87,
        battery_percentage=76,
        test_duration_seconds=2,
        status="completed",
    )


@pytest.fixture
def sample_record_dict(sample_snapshot):
    """Provide a stored record as the backend returns it."""
    record = sample_snapshot.to_dict()
    record.update({"id": 42, "timestamp": "2025-12-09T14:03:11Z"})
    return record


@pytest.fixture
def mock_session():
    """Provide a stand-in requests.Session."""
    session = MagicMock()
    session.headers = {}
    return session
