"""Shared address -> HostStatus table written by probe workers."""

import logging
import threading

from pingwatch.models import ProbeOutcome
from pingwatch.stats import HostStatus

logger = logging.getLogger(__name__)


class StatusTableError(RuntimeError):
    """Raised when the shared table is left in an inconsistent state.

    Unrecoverable: callers should stop probing and terminate.
    """


class StatusTable:
    """Thread-safe mapping from host address to its rolling status.

    Writers (probe workers on pool threads) hold the lock for one
    ``add_sample`` call. Readers get deep copies, never live records.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._statuses: dict[str, HostStatus] = {}
        self._generations: dict[str, int] = {}
        self._poisoned: str | None = None

    def _check(self):
        if self._poisoned is not None:
            raise StatusTableError(f"Status table is poisoned: {self._poisoned}")

    def register(self, address: str, generation: int = 0):
        """Create an empty status for an address.

        Registering the generation already held is a no-op; a different
        generation replaces the entry with a fresh one.
        """
        with self._lock:
            self._check()
            if self._generations.get(address) == generation and address in self._statuses:
                return
            self._statuses[address] = HostStatus()
            self._generations[address] = generation
            logger.debug("Status registered: %s (generation %d)", address, generation)

    def unregister(self, address: str):
        """Drop the status of an address. In-flight results for it will be ignored."""
        with self._lock:
            self._check()
            self._generations.pop(address, None)
            if self._statuses.pop(address, None) is not None:
                logger.debug("Status unregistered: %s", address)

    def generation(self, address: str) -> int | None:
        with self._lock:
            return self._generations.get(address)

    def apply(self, address: str, outcome: ProbeOutcome, generation: int | None = None) -> bool:
        """Feed a probe outcome into the status of an address.

        Args:
            address: Host address the probe was sent to
            outcome: Probe result
            generation: Registration the probe was sent for; None skips the check

        Returns:
            True if applied, False if the address is no longer registered or
            was re-registered since the probe was sent

        Raises:
            StatusTableError: If the update failed and left the table unusable
        """
        with self._lock:
            self._check()
            status = self._statuses.get(address)
            if status is None:
                logger.debug("Dropping outcome for unregistered host: %s", address)
                return False
            if generation is not None and generation != self._generations.get(address):
                logger.debug("Dropping stale outcome: host=%s, generation=%d", address, generation)
                return False

            try:
                status.alive = outcome.alive
                status.add_sample(outcome.rtt_ms)
            except Exception as e:
                self._poisoned = f"update for {address} failed: {e}"
                logger.critical(
                    "Status update failed, table poisoned: host=%s, error=%s",
                    address,
                    e,
                    exc_info=True,
                )
                raise StatusTableError(self._poisoned) from e

        return True

    def get(self, address: str) -> HostStatus | None:
        """Return a copy of one status, or None if the address is unknown."""
        with self._lock:
            self._check()
            status = self._statuses.get(address)
            return status.copy() if status is not None else None

    def snapshot(self) -> dict[str, HostStatus]:
        """Return a consistent copy of the whole table."""
        with self._lock:
            self._check()
            return {address: status.copy() for address, status in self._statuses.items()}

    @property
    def poisoned(self) -> bool:
        return self._poisoned is not None

    def __len__(self):
        with self._lock:
            return len(self._statuses)

    def __contains__(self, address):
        with self._lock:
            return address in self._statuses
