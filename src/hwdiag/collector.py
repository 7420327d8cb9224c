"""
hwdiag Diagnostic Collector

Runs one hardware collection pass and publishes its progress.

The pass reads each metric category in a fixed order
(CPU -> RAM -> storage -> battery -> machine identity), pausing between
categories so an attached UI can repaint. Hardware read failures never abort
the pass; the reader resolves them to sentinel values. Only cancellation
aborts, and an aborted pass never publishes a partial snapshot.

Usage:
    collector = DiagnosticCollector(config=load_config())
    collector.state.subscribe(lambda status: print(status.progress))
    snapshot = collector.run()
"""

import time
import logging
import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, Any, List, Optional

from .adapters import HardwareReader, SystemHardwareReader
from .errors import APIError
from .models import DiagnosticStep, HardwareSnapshot, UploadResult, STATUS_COMPLETED
from .utils import get_default_config

# Module logger
logger = logging.getLogger("hwdiag.collector")


class CollectionCancelled(Exception):
    """Raised when a collection pass is cancelled before completing."""


@dataclass(frozen=True)
class DiagnosticStatus:
    """Point-in-time view of a collection pass, as shown to the UI."""
    current_step: DiagnosticStep = DiagnosticStep.CPU
    progress: float = 0.0
    is_running: bool = False
    result: Optional[HardwareSnapshot] = None
    error_message: Optional[str] = None


StatusCallback = Callable[[DiagnosticStatus], None]


class DiagnosticState:
    """
    Observable collection state.

    Only the collector's own task mutates it. Observers either poll
    ``snapshot()`` or register a callback with ``subscribe()``; callbacks run
    synchronously on the collecting thread after every change.
    """

    def __init__(self):
        self._status = DiagnosticStatus()
        self._subscribers: List[StatusCallback] = []
        self._lock = threading.Lock()

    def snapshot(self) -> DiagnosticStatus:
        with self._lock:
            return self._status

    def subscribe(self, callback: StatusCallback) -> Callable[[], None]:
        """
        Register a change callback.

        Returns:
            A function that removes the callback
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _update(self, **changes) -> None:
        with self._lock:
            self._status = replace(self._status, **changes)
            status = self._status
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(status)
            except Exception as e:
                # A broken observer must not abort collection
                logger.warning(f"Status subscriber failed: {e}")

    def begin(self) -> None:
        self._update(
            current_step=DiagnosticStep.CPU,
            progress=0.0,
            is_running=True,
            result=None,
            error_message=None,
        )

    def enter_step(self, step: DiagnosticStep) -> None:
        self._update(current_step=step, progress=step.progress)

    def complete(self, snapshot: HardwareSnapshot) -> None:
        self._update(result=snapshot, progress=1.0, is_running=False)

    def fail(self, message: str) -> None:
        self._update(error_message=message, is_running=False)

    def mark_uploading(self) -> None:
        self._update(current_step=DiagnosticStep.UPLOAD, progress=DiagnosticStep.UPLOAD.progress)

    def set_error(self, message: Optional[str]) -> None:
        """Attach an error message without touching the collected result."""
        self._update(error_message=message)


class DiagnosticCollector:
    """
    Sequential hardware collection pipeline.

    Owns the snapshot under construction until every category has resolved,
    then hands out the frozen HardwareSnapshot.
    """

    def __init__(
        self,
        reader: Optional[HardwareReader] = None,
        config: Optional[Dict[str, Any]] = None,
        step_delay: Optional[float] = None,
    ):
        """
        Initialize the collector.

        Args:
            reader: Hardware source; defaults to SystemHardwareReader
            config: Configuration dictionary
            step_delay: Seconds to pause after each category, overriding
                ``collection.step_delay_seconds``; 0 disables pacing
        """
        self.config = config or get_default_config()
        collection_config = self.config.get("collection", {})

        self.reader = reader or SystemHardwareReader(self.config)
        if step_delay is None:
            step_delay = collection_config.get("step_delay_seconds", 0.5)
        self.step_delay = max(float(step_delay or 0), 0.0)

        self.state = DiagnosticState()
        self._cancel_event = threading.Event()
        # Plain flag, readable from a signal handler without taking the state lock
        self._collecting = False
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self.state.snapshot().is_running

    @property
    def is_collecting(self) -> bool:
        """True while a pass is reading hardware; safe to call from a signal handler."""
        return self._collecting

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next suspension point."""
        self._cancel_event.set()

    def _checkpoint(self) -> None:
        if self._cancel_event.is_set():
            raise CollectionCancelled("Diagnostic cancelled")

    def _pause(self) -> None:
        """Wait out the pacing delay, waking early on cancellation."""
        self._checkpoint()
        if self.step_delay and self._cancel_event.wait(self.step_delay):
            raise CollectionCancelled("Diagnostic cancelled")

    def _enter(self, step: DiagnosticStep) -> None:
        self._checkpoint()
        logger.debug(f"Step: {step.label}")
        self.state.enter_step(step)

    def run(self) -> HardwareSnapshot:
        """
        Collect one HardwareSnapshot in the calling thread.

        Each run is independent: a cancellation requested before this call
        does not carry over.

        Returns:
            The completed snapshot

        Raises:
            CollectionCancelled: if cancel() was called before completion
        """
        self._cancel_event.clear()
        return self._collect()

    def _collect(self) -> HardwareSnapshot:
        self._collecting = True
        try:
            return self._collect_steps()
        finally:
            self._collecting = False

    def _collect_steps(self) -> HardwareSnapshot:
        self.state.begin()
        start_time = time.monotonic()
        logger.info("Starting hardware diagnostic")

        try:
            self._enter(DiagnosticStep.CPU)
            cpu = self.reader.read_cpu()
            self._pause()

            self._enter(DiagnosticStep.RAM)
            memory = self.reader.read_memory()
            self._pause()

            self._enter(DiagnosticStep.STORAGE)
            storage = self.reader.read_storage()
            self._pause()

            self._enter(DiagnosticStep.BATTERY)
            battery = self.reader.read_battery()
            self._pause()

            self._enter(DiagnosticStep.SYSTEM)
            serial_number = self.reader.read_serial_number()
            machine_name = self.reader.read_machine_name()
            duration = int(time.monotonic() - start_time)
            self._pause()

            snapshot = HardwareSnapshot(
                machine_name=machine_name,
                serial_number=serial_number,
                cpu_model=cpu.model,
                cpu_cores=cpu.cores,
                ram_total_gb=memory.total_gb,
                ram_used_gb=memory.used_gb,
                storage_total_gb=storage.total_gb,
                storage_used_gb=storage.used_gb,
                battery_health=battery.health,
                battery_cycle_count=battery.cycle_count,
                battery_percentage=battery.percentage,
                test_duration_seconds=duration,
                status=STATUS_COMPLETED,
            )

        except CollectionCancelled as e:
            logger.info("Hardware diagnostic cancelled")
            self.state.fail(f"Diagnostic error: {e}")
            raise
        except Exception as e:
            logger.error(f"Hardware diagnostic failed: {e}")
            self.state.fail(f"Diagnostic error: {e}")
            raise

        self.state.complete(snapshot)
        logger.info(
            f"Diagnostic completed in {duration}s "
            f"(serial: {snapshot.serial_number}, CPU: {snapshot.cpu_model})"
        )
        return snapshot

    def _run_in_thread(self) -> None:
        try:
            self._collect()
        except CollectionCancelled:
            pass
        except Exception:
            # Already recorded in state by _collect()
            logger.debug("Background diagnostic ended with an error", exc_info=True)

    def start(self) -> None:
        """Run the collection pass on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            logger.warning("Diagnostic already running")
            return

        self._cancel_event.clear()
        self._thread = threading.Thread(
            target=self._run_in_thread,
            name="DiagnosticCollector",
            daemon=True
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> Optional[HardwareSnapshot]:
        """
        Wait for a background pass started with start().

        Returns:
            The snapshot if the pass completed, otherwise None
        """
        if self._thread is not None:
            self._thread.join(timeout)
        return self.state.snapshot().result

    def close(self) -> None:
        """Cancel any running pass and release the reader."""
        self.cancel()
        if self._thread is not None:
            self._thread.join(timeout=5)
        self.reader.close()


@dataclass(frozen=True)
class DiagnosticOutcome:
    """Result of a collect-then-upload run."""
    snapshot: HardwareSnapshot
    upload: Optional[UploadResult] = None
    upload_error: Optional[str] = None


def _check_upload_cancelled(collector: DiagnosticCollector) -> None:
    if collector.cancelled:
        logger.info("Upload cancelled")
        collector.state.set_error("Upload cancelled")
        raise CollectionCancelled("Upload cancelled")


def collect_and_upload(collector: DiagnosticCollector, client) -> DiagnosticOutcome:
    """
    Collect a snapshot, then submit it.

    An upload failure does not discard the collected snapshot: it is
    returned with ``upload_error`` set, and the error is also published on
    the collector state.

    A cancel() issued while the request is in flight is honoured once the
    request returns; the outcome is discarded.

    Raises:
        CollectionCancelled: if collection or upload was cancelled
    """
    snapshot = collector.run()

    collector.state.mark_uploading()
    try:
        upload = client.submit(snapshot)
    except APIError as e:
        _check_upload_cancelled(collector)
        message = f"Upload error: {e}"
        logger.warning(message)
        collector.state.set_error(message)
        return DiagnosticOutcome(snapshot=snapshot, upload_error=message)

    _check_upload_cancelled(collector)
    logger.info(f"Diagnostic stored with ID {upload.id}")
    return DiagnosticOutcome(snapshot=snapshot, upload=upload)
