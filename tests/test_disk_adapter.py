"""
Tests for Disk Adapter

Covers:
    - Root volume selection
    - Used = total - available
    - Failure fallback
"""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from hwdiag.adapters.disk_adapter import DiskAdapter, get_root_volume

GB = 1024 ** 3


class TestDiskAdapterBasic:
    """Basic disk adapter tests."""

    def test_initialization(self):
        """Test disk adapter initializes on the root volume."""
        adapter = DiskAdapter()
        assert adapter.initialize() is True
        assert adapter.volume == get_root_volume()
        adapter.cleanup()

    def test_missing_volume(self, tmp_path):
        """Test initialization fails for a missing volume."""
        config = {"collection": {"storage_volume": str(tmp_path / "missing")}}
        adapter = DiskAdapter(config)
        assert adapter.initialize() is False

    def test_configured_volume(self, tmp_path):
        """Test the volume can be configured."""
        adapter = DiskAdapter({"collection": {"storage_volume": str(tmp_path)}})
        assert adapter.volume == str(tmp_path)

    def test_collect_metrics(self):
        """Test metric collection on the real machine."""
        with DiskAdapter() as adapter:
            metrics = adapter.collect_metrics()
            total = metrics["storage_total_gb"].value
            used = metrics["storage_used_gb"].value
            assert total > 0
            assert 0 <= used <= total


class TestDiskAdapterValues:
    """Value derivation tests."""

    @pytest.mark.parametrize("total,free", [(500, 120), (256, 0), (1000, 1000)])
    def test_used_is_total_minus_available(self, total, free):
        """Test used space equals total minus available space."""
        usage = SimpleNamespace(total=total * GB, used=0, free=free * GB, percent=0.0)
        adapter = DiskAdapter()
        with patch("psutil.disk_usage", return_value=usage):
            metrics = adapter.collect_metrics()
        assert metrics["storage_total_gb"].value == float(total)
        assert metrics["storage_used_gb"].value == float(total - free)

    def test_used_never_negative(self):
        """Test rounding never produces negative usage."""
        usage = SimpleNamespace(total=100 * GB, used=0, free=100 * GB + 1, percent=0.0)
        adapter = DiskAdapter()
        with patch("psutil.disk_usage", return_value=usage):
            metrics = adapter.collect_metrics()
        assert metrics["storage_used_gb"].value == 0.0

    def test_disk_usage_failure(self):
        """Test a failing disk_usage call yields zeros."""
        adapter = DiskAdapter()
        with patch("psutil.disk_usage", side_effect=PermissionError("denied")):
            metrics = adapter.collect_metrics()
        assert metrics["storage_total_gb"].value == 0.0
        assert metrics["storage_used_gb"].value == 0.0
        assert not metrics["storage_used_gb"].is_available
        assert "denied" in adapter.last_error

    def test_reported_metrics(self):
        """Test only capacity and usage are reported."""
        usage = SimpleNamespace(total=500 * GB, used=0, free=120 * GB, percent=0.0)
        adapter = DiskAdapter()
        with patch("psutil.disk_usage", return_value=usage):
            metrics = adapter.collect_metrics()
        assert sorted(metrics) == ["storage_total_gb", "storage_used_gb"]
