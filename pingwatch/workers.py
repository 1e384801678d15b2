"""Worker classes for background probe tasks."""

import logging

from PySide6.QtCore import QObject, QRunnable, Signal

from pingwatch.models import HostConfig, ProbeOutcome
from pingwatch.prober import Prober
from pingwatch.status_table import StatusTable, StatusTableError

logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    """Signals for communicating between worker threads and main thread."""

    probe_finished = Signal(str, object)  # Emits (address, ProbeOutcome)
    fatal = Signal(str)  # Emits error message when shared state is corrupted
    finished = Signal()  # Emits when worker completes


class ProbeWorker(QRunnable):
    """Worker that runs one probe on a pool thread and records its outcome."""

    def __init__(self, prober: Prober, host: HostConfig, status_table: StatusTable):
        super().__init__()
        self.prober = prober
        self.host = host
        self.status_table = status_table
        self.signals = WorkerSignals()

    def run(self):
        """Execute the probe task in background thread."""
        address = self.host.address
        try:
            logger.debug("Worker starting: host=%s", address)

            try:
                outcome = self.prober.probe(self.host)
            except Exception as e:
                # Probers report failures as outcomes; anything else is still just a lost probe
                logger.exception("Prober raised: host=%s, error=%s", address, str(e))
                outcome = ProbeOutcome.failure()

            try:
                applied = self.status_table.apply(address, outcome, self.host.generation)
            except StatusTableError as e:
                self.signals.fatal.emit(str(e))
                return

            if applied:
                self.signals.probe_finished.emit(address, outcome)

            logger.debug(
                "Worker completed: host=%s, alive=%s, applied=%s",
                address,
                outcome.alive,
                applied,
            )

        finally:
            self.signals.finished.emit()
