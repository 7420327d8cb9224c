"""
Tests for the Diagnostic Collector

Covers:
    - Read order and progress publication
    - Snapshot assembly
    - Cancellation (no partial result)
    - Background runs
    - Collect-then-upload outcome
"""

import time
from unittest.mock import MagicMock

import pytest

from hwdiag.collector import (
    CollectionCancelled,
    DiagnosticCollector,
    DiagnosticState,
    DiagnosticStatus,
    collect_and_upload,
)
from hwdiag.errors import NetworkError, ServerError
from hwdiag.models import DiagnosticStep, HardwareSnapshot, UploadResult

from conftest import FakeHardwareReader


class TestDiagnosticState:
    """Observable state tests."""

    def test_initial_status(self):
        """Test the idle status."""
        status = DiagnosticState().snapshot()
        assert status == DiagnosticStatus()
        assert not status.is_running
        assert status.result is None

    def test_subscribe_and_unsubscribe(self):
        """Test callbacks receive every change until removed."""
        state = DiagnosticState()
        seen = []
        unsubscribe = state.subscribe(seen.append)
        state.begin()
        state.enter_step(DiagnosticStep.RAM)
        unsubscribe()
        state.enter_step(DiagnosticStep.STORAGE)
        assert [s.progress for s in seen] == [0.0, 0.30]

    def test_broken_subscriber(self):
        """Test a failing callback does not stop later ones."""
        state = DiagnosticState()
        seen = []
        state.subscribe(MagicMock(side_effect=RuntimeError("repaint failed")))
        state.subscribe(seen.append)
        state.begin()
        assert len(seen) == 1

    def test_set_error_keeps_result(self, sample_snapshot):
        """Test an upload error leaves the collected result in place."""
        state = DiagnosticState()
        state.complete(sample_snapshot)
        state.set_error("Upload error: boom")
        status = state.snapshot()
        assert status.result == sample_snapshot
        assert status.error_message == "Upload error: boom"


class TestDiagnosticCollector:
    """Synchronous collection tests."""

    def test_read_order(self, fake_reader, default_config):
        """Test categories are read in fixed order, serial before name."""
        DiagnosticCollector(reader=fake_reader, config=default_config).run()
        assert fake_reader.calls == ["cpu", "memory", "storage", "battery", "serial", "machine_name"]

    def test_snapshot_values(self, fake_reader, default_config, sample_snapshot):
        """Test the snapshot carries the reader's values."""
        snapshot = DiagnosticCollector(reader=fake_reader, config=default_config).run()
        assert isinstance(snapshot, HardwareSnapshot)
        assert snapshot.to_dict() == {**sample_snapshot.to_dict(), "test_duration_seconds": 0}
        assert snapshot.status == "completed"

    def test_progress_sequence(self, fake_reader, default_config):
        """Test progress is published for every step, non-decreasing."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)
        seen = []
        collector.state.subscribe(seen.append)
        collector.run()

        progress = [s.progress for s in seen]
        assert progress == [0.0, 0.15, 0.30, 0.50, 0.70, 0.85, 1.0]
        assert progress == sorted(progress)
        assert [s.current_step for s in seen[1:6]] == [
            DiagnosticStep.CPU,
            DiagnosticStep.RAM,
            DiagnosticStep.STORAGE,
            DiagnosticStep.BATTERY,
            DiagnosticStep.SYSTEM,
        ]

    def test_final_status(self, fake_reader, default_config):
        """Test the status after a completed run."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)
        snapshot = collector.run()
        status = collector.state.snapshot()
        assert not status.is_running
        assert status.result == snapshot
        assert status.error_message is None
        assert status.progress == 1.0

    def test_duration_includes_pauses(self, fake_reader, default_config):
        """Test the duration covers the pacing delays."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config, step_delay=0.3)
        snapshot = collector.run()
        assert snapshot.test_duration_seconds == 1

    def test_step_delay_from_config(self, fake_reader, default_config):
        """Test the pacing delay comes from the config."""
        default_config["collection"]["step_delay_seconds"] = 0.2
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)
        assert collector.step_delay == 0.2

    def test_negative_delay(self, fake_reader, default_config):
        """Test a negative delay disables pacing."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config, step_delay=-1)
        assert collector.step_delay == 0.0

    def test_independent_runs(self, default_config):
        """Test each run starts from a clean state."""
        collector = DiagnosticCollector(reader=FakeHardwareReader(), config=default_config)
        first = collector.run()
        second = collector.run()
        assert first == second


class TestCancellation:
    """Cancellation tests."""

    def test_cancel_mid_run(self, default_config):
        """Test cancelling after the storage read stops before battery."""
        collector = None

        def on_read(name):
            if name == "storage":
                collector.cancel()

        reader = FakeHardwareReader(on_read=on_read)
        collector = DiagnosticCollector(reader=reader, config=default_config)

        with pytest.raises(CollectionCancelled):
            collector.run()

        assert reader.calls == ["cpu", "memory", "storage"]
        status = collector.state.snapshot()
        assert status.result is None
        assert not status.is_running
        assert status.error_message.startswith("Diagnostic error:")

    def test_cancel_before_run_does_not_carry_over(self, fake_reader, default_config):
        """Test a stale cancel request is cleared by run()."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)
        collector.cancel()
        assert collector.run() is not None

    def test_reader_failure(self, default_config):
        """Test an unexpected reader exception is published and raised."""
        reader = FakeHardwareReader()
        reader.read_battery = MagicMock(side_effect=RuntimeError("smc crashed"))
        collector = DiagnosticCollector(reader=reader, config=default_config)

        with pytest.raises(RuntimeError):
            collector.run()

        status = collector.state.snapshot()
        assert status.result is None
        assert status.error_message == "Diagnostic error: smc crashed"


class TestBackgroundRun:
    """start() / join() tests."""

    def test_start_and_join(self, fake_reader, default_config):
        """Test a background run completes and join() returns the snapshot."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)
        collector.start()
        snapshot = collector.join(timeout=5)
        assert snapshot is not None
        assert snapshot.serial_number == "C02XK1ZQJGH5"

    def test_cancel_during_delay(self, fake_reader, default_config):
        """Test cancel wakes a long pacing delay promptly."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config, step_delay=30)
        collector.start()
        time.sleep(0.1)
        started = time.monotonic()
        collector.cancel()
        assert collector.join(timeout=5) is None
        assert time.monotonic() - started < 5
        assert fake_reader.calls == ["cpu"]
        assert not collector.is_running

    def test_close_releases_reader(self, fake_reader, default_config):
        """Test close() cancels and closes the reader."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config, step_delay=30)
        collector.start()
        collector.close()
        assert fake_reader.closed


class TestCollectAndUpload:
    """collect_and_upload() tests."""

    def test_success(self, fake_reader, default_config):
        """Test a stored snapshot returns the server result."""
        client = MagicMock()
        client.submit.return_value = UploadResult(
            id=42, serial_number="C02XK1ZQJGH5", timestamp="2025-12-09T14:03:11Z", status="completed"
        )
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)
        seen = []
        collector.state.subscribe(seen.append)

        outcome = collect_and_upload(collector, client)

        assert outcome.upload.id == 42
        assert outcome.upload_error is None
        client.submit.assert_called_once_with(outcome.snapshot)
        assert seen[-1].current_step == DiagnosticStep.UPLOAD
        assert collector.state.snapshot().error_message is None

    def test_upload_failure_keeps_snapshot(self, fake_reader, default_config):
        """Test an upload error keeps the collected snapshot."""
        client = MagicMock()
        client.submit.side_effect = ServerError("database unavailable", status_code=500)
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)

        outcome = collect_and_upload(collector, client)

        assert outcome.upload is None
        assert outcome.snapshot.cpu_model == "Apple M2 Pro"
        assert outcome.upload_error == "Upload error: Server error: database unavailable"
        status = collector.state.snapshot()
        assert status.result == outcome.snapshot
        assert status.error_message == outcome.upload_error

    def test_network_failure(self, fake_reader, default_config):
        """Test a transport error is reported as an upload error."""
        client = MagicMock()
        client.submit.side_effect = NetworkError()
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)

        outcome = collect_and_upload(collector, client)
        assert outcome.upload_error.startswith("Upload error: Network error")

    def test_cancelled_collection_skips_upload(self, default_config):
        """Test nothing is submitted when collection is cancelled."""
        collector = None

        def on_read(name):
            collector.cancel()

        collector = DiagnosticCollector(reader=FakeHardwareReader(on_read=on_read), config=default_config)
        client = MagicMock()
        with pytest.raises(CollectionCancelled):
            collect_and_upload(collector, client)
        client.submit.assert_not_called()

    def test_cancel_during_upload(self, fake_reader, default_config):
        """Test a cancel issued while the request is in flight discards the outcome."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)
        client = MagicMock()

        def submit(snapshot):
            collector.cancel()
            return UploadResult(id=1, serial_number="C02XK1ZQJGH5", timestamp="t", status="completed")

        client.submit.side_effect = submit
        with pytest.raises(CollectionCancelled):
            collect_and_upload(collector, client)
        assert collector.cancelled
        assert collector.state.snapshot().error_message == "Upload cancelled"

    def test_cancel_during_failed_upload(self, fake_reader, default_config):
        """Test cancellation wins over an upload error."""
        collector = DiagnosticCollector(reader=fake_reader, config=default_config)
        client = MagicMock()

        def submit(snapshot):
            collector.cancel()
            raise NetworkError()

        client.submit.side_effect = submit
        with pytest.raises(CollectionCancelled):
            collect_and_upload(collector, client)

    def test_is_collecting(self, default_config):
        """Test the collecting flag covers the hardware reads only."""
        seen = []
        collector = None
        reader = FakeHardwareReader(on_read=lambda name: seen.append(collector.is_collecting))
        collector = DiagnosticCollector(reader=reader, config=default_config)
        collector.run()
        assert all(seen) and len(seen) == 6
        assert not collector.is_collecting
