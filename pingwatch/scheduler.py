"""Multi-host probe scheduler with per-host jittered cadences."""

import logging
import random
import time

from PySide6.QtCore import QCoreApplication, QObject, QThreadPool, QTimer, Signal

from pingwatch.models import HostConfig, PingMode
from pingwatch.prober import Prober
from pingwatch.registry import HostRegistry
from pingwatch.status_table import StatusTable
from pingwatch.workers import ProbeWorker

logger = logging.getLogger(__name__)

DEFAULT_TICK_MS = 100
DEFAULT_MAX_CONCURRENT = 128


def compute_interval(mode: PingMode, rng: random.Random | None = None) -> float:
    """Draw the next probe interval for a mode, in seconds.

    Uniform in [base - jitter, base + jitter), redrawn on every call so that
    consecutive probes of one host are not periodic.
    """
    rng = rng or random
    base, jitter = mode.timing
    return base - jitter + rng.random() * 2.0 * jitter


class ProbeScheduler(QObject):
    """Fires probes for every registered host at its own cadence.

    Key features:
    - Single driver timer ticking every ``tick_ms``
    - Per-registration next-due instants, seeded to "now" on first sight
    - Each due host dispatched to a thread pool; slow hosts never delay others
    - Overlapping probes of one host are allowed, results land in delivery order

    The scheduler only runs on the Qt main thread; the status table is the
    sole state shared with workers.
    """

    # Signals
    probe_finished = Signal(str, object)  # (address, ProbeOutcome)
    fatal = Signal(str)  # (error_msg)

    def __init__(
        self,
        registry: HostRegistry,
        status_table: StatusTable,
        prober: Prober,
        tick_ms: int = DEFAULT_TICK_MS,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        rng: random.Random | None = None,
        clock=time.monotonic,
        parent=None,
    ):
        """Initialize probe scheduler.

        Args:
            registry: Source of host configuration, read on every tick
            status_table: Shared table receiving probe outcomes
            prober: Probe executor used by workers
            tick_ms: Driver loop period in milliseconds
            max_concurrent: Thread pool size for in-flight probes
            rng: Random source for interval jitter
            clock: Monotonic time source in seconds
            parent: Qt parent object
        """
        super().__init__(parent)

        self.registry = registry
        self.status_table = status_table
        self.prober = prober
        self.tick_ms = tick_ms
        self.max_concurrent = max_concurrent
        self._rng = rng or random.Random()
        self._clock = clock

        self._next_due: dict[tuple[str, int], float] = {}  # monotonic seconds
        self._in_flight = 0

        # Dedicated pool so probe threads never compete with other Qt work
        self.thread_pool = QThreadPool(self)
        self.thread_pool.setMaxThreadCount(max_concurrent)

        self.timer = QTimer(self)
        self.timer.timeout.connect(self._schedule_tick)

        self.is_monitoring = False

    def start_monitoring(self):
        """Start the driver loop."""
        if self.is_monitoring:
            return

        self.is_monitoring = True
        self.timer.start(self.tick_ms)
        logger.info("Monitoring started: %d hosts, tick=%dms", len(self.registry), self.tick_ms)

    def stop_monitoring(self):
        """Stop the driver loop. In-flight probes still complete and are recorded."""
        if not self.is_monitoring:
            return

        self.is_monitoring = False
        self.timer.stop()
        logger.info("Monitoring stopped (in-flight: %d)", self._in_flight)

    def due_hosts(self, now: float | None = None) -> list[HostConfig]:
        """Select the hosts due for a probe and advance their next-due instants.

        Timers are keyed by address and registration generation. Hosts that
        left the registry lose their timer, and a re-added address is a new
        registration that starts fresh at "now", even within one tick.

        Args:
            now: Current monotonic time in seconds (defaults to the clock)

        Returns:
            Snapshots of the due hosts, in registry order
        """
        if now is None:
            now = self._clock()

        hosts = self.registry.snapshot()
        present = {(h.address, h.generation) for h in hosts}
        for key in list(self._next_due):
            if key not in present:
                del self._next_due[key]

        due = []
        for host in hosts:
            key = (host.address, host.generation)
            next_due = self._next_due.setdefault(key, now)
            if next_due <= now:
                self._next_due[key] = now + compute_interval(host.mode, self._rng)
                due.append(host)
        return due

    def _schedule_tick(self):
        """Handle timer tick - dispatch every due host without waiting."""
        if not self.is_monitoring:
            return

        due = self.due_hosts()
        for host in due:
            self._dispatch(host)

        if due:
            logger.debug("Dispatched %d probes (in-flight: %d)", len(due), self._in_flight)

    def _dispatch(self, host: HostConfig):
        """Hand one probe to the thread pool.

        Args:
            host: Snapshot of the host to probe
        """
        self._in_flight += 1

        worker = ProbeWorker(self.prober, host, self.status_table)
        worker.signals.probe_finished.connect(self.probe_finished)
        worker.signals.fatal.connect(self._on_fatal)
        worker.signals.finished.connect(self._on_probe_finished)

        self.thread_pool.start(worker)

    def _on_probe_finished(self):
        self._in_flight = max(0, self._in_flight - 1)

    def _on_fatal(self, error_msg: str):
        """Shared statistics can no longer be trusted - stop and exit."""
        logger.critical("Fatal status table failure, shutting down: %s", error_msg)
        self.stop_monitoring()
        self.fatal.emit(error_msg)

        app = QCoreApplication.instance()
        if app is not None:
            app.exit(1)

    def next_due(self, address: str) -> float | None:
        """Return the next-due instant of an address, if it is being tracked."""
        for (tracked, _generation), due in self._next_due.items():
            if tracked == address:
                return due
        return None

    def get_stats(self):
        """Get scheduler statistics.

        Returns:
            Dict with scheduler state info
        """
        return {
            "hosts": len(self._next_due),
            "in_flight": self._in_flight,
            "max_concurrent": self.max_concurrent,
            "monitoring": self.is_monitoring,
            "tick_ms": self.tick_ms,
        }
