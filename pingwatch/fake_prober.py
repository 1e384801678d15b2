"""Simulated prober used when ICMP sockets are unavailable, and in tests."""

import random
import threading

from pingwatch.models import HostConfig, ProbeOutcome

LOCAL_LATENCY_MS = 1.5
REMOTE_LATENCY_MS = 25.0
PER_BYTE_MS = 0.002  # serialization delay of the echo payload


class FakeProber:
    """Produces plausible outcomes without touching the network.

    Local addresses answer in about a millisecond, everything else around
    ``remote_latency`` with occasional spikes. Payload size adds a small
    delay, and addresses listed in ``down`` never answer.
    """

    def __init__(self, seed: int | None = None):
        """Initialize with optional random seed for deterministic behavior."""
        self._random = random.Random(seed)
        self._lock = threading.Lock()

        self.local_latency = LOCAL_LATENCY_MS
        self.remote_latency = REMOTE_LATENCY_MS
        self.jitter_fraction = 0.2
        self.spike_probability = 0.05
        self.spike_multiplier = 3.0
        self.loss_probability = 0.02
        self.down: set[str] = set()

    def probe(self, host: HostConfig) -> ProbeOutcome:
        address = host.address.strip()
        if not address or address in self.down:
            return ProbeOutcome.failure()

        base = self.local_latency if host.is_local() else self.remote_latency
        base += host.packet_size * PER_BYTE_MS

        # Random is shared by every pool thread probing through this instance
        with self._lock:
            if self._random.random() < self.loss_probability:
                return ProbeOutcome.failure()
            if self._random.random() < self.spike_probability:
                base *= self.spike_multiplier
            rtt = self._random.gauss(base, base * self.jitter_fraction)

        return ProbeOutcome.success(round(max(0.1, rtt), 2))
