"""Rolling per-host quality statistics."""

import copy
import math
import statistics
from collections import deque
from dataclasses import dataclass, field

HISTORY_LIMIT = 300

# RFC 3550 jitter smoothing factor
JITTER_GAIN = 1.0 / 16.0

OUTLIER_SIGMA = 3.0
OUTLIER_MIN_STDDEV = 0.1

MOS_MIN = 1.0
MOS_MAX = 4.5


def _bounded() -> deque:
    return deque(maxlen=HISTORY_LIMIT)


def calculate_percentile(data, percentile: float) -> float:
    """Compute a percentile with linear interpolation between sorted neighbours.

    Args:
        data: Iterable of numbers (NaN-free)
        percentile: Percentile in [0, 100]

    Returns:
        Interpolated value, or 0.0 for empty data

    Examples:
        >>> calculate_percentile([1, 2, 3, 4, 5], 25)
        2.0
        >>> calculate_percentile([10, 20], 50)
        15.0
    """
    ordered = sorted(data)
    if not ordered:
        return 0.0

    pos = (percentile / 100.0) * (len(ordered) - 1)
    base = math.floor(pos)
    fract = pos - base
    if base + 1 < len(ordered):
        return ordered[base] + fract * (ordered[base + 1] - ordered[base])
    return float(ordered[base])


def calculate_mos(rtt: float, jitter: float, loss_pct: float) -> float:
    """Estimate a Mean Opinion Score from an E-model R-factor.

    Args:
        rtt: Mean round-trip time in milliseconds
        jitter: RTP jitter in milliseconds
        loss_pct: Packet loss in percent

    Returns:
        MOS in [1.0, 4.5]
    """
    effective_latency = rtt + jitter * 2.0 + 10.0

    if effective_latency < 160.0:
        r = 94.2 - effective_latency / 40.0
    else:
        r = 94.2 - (effective_latency - 120.0) / 10.0

    r -= loss_pct * 2.5
    r = max(0.0, min(100.0, r))

    mos = 1.0 + 0.035 * r + 0.000007 * r * (r - 60.0) * (100.0 - r)
    # the cubic dips slightly under 1.0 for R close to 0
    return max(MOS_MIN, min(MOS_MAX, mos))


@dataclass
class HostStatus:
    """Rolling quality profile of one host.

    Every field is derived from the bounded RTT history and the monotonic
    counters. Instances are transient and are rebuilt empty on restart.
    """

    alive: bool = False
    latency: float = 0.0  # last RTT, NaN on loss
    history: deque = field(default_factory=_bounded)
    mean: float = 0.0
    median: float = 0.0
    p95: float = 0.0
    stddev: float = 0.0
    min_rtt: float = 0.0
    max_rtt: float = 0.0
    rtp_jitter: float = 0.0
    rtp_jitter_history: deque = field(default_factory=_bounded)
    rtp_jitter_mean: float = 0.0
    rtp_jitter_median: float = 0.0
    mos: float = 0.0
    availability: float = 0.0
    outliers: int = 0
    streak: int = 0
    streak_success: bool = False
    sent: int = 0
    lost: int = 0

    @property
    def loss_percent(self) -> float:
        if self.sent == 0:
            return 0.0
        return self.lost / self.sent * 100.0

    @property
    def is_down(self) -> bool:
        return self.sent > 0 and not self.alive

    def copy(self) -> "HostStatus":
        """Return an independent deep copy, safe to hand to another thread."""
        return copy.deepcopy(self)

    def add_sample(self, rtt_ms: float):
        """Add one RTT sample (NaN for loss) and recompute every derived field."""
        success = not math.isnan(rtt_ms)

        self.sent += 1
        if not success:
            self.lost += 1

        if success == self.streak_success:
            self.streak += 1
        else:
            self.streak = 1
            self.streak_success = success

        self.latency = rtt_ms
        self.history.append(rtt_ms)

        self.availability = (self.sent - self.lost) / self.sent * 100.0

        valid_data = [v for v in self.history if not math.isnan(v)]

        if not valid_data:
            self.mean = 0.0
            self.median = 0.0
            return

        if len(valid_data) == 1:
            self.mean = valid_data[0]
            self.median = valid_data[0]
            self.mos = calculate_mos(self.mean, self.rtp_jitter, 0.0)
            return

        self.mean = statistics.fmean(valid_data)

        # J = J + (|D| - J) / 16, D taken between the last two valid RTTs.
        # Bootstraps on the second sample sent, losses included.
        d = abs(valid_data[-1] - valid_data[-2])
        if self.sent == 2:
            self.rtp_jitter = d
        else:
            self.rtp_jitter += (d - self.rtp_jitter) * JITTER_GAIN
        self.rtp_jitter_history.append(self.rtp_jitter)

        self.median = calculate_percentile(valid_data, 50.0)
        self.p95 = calculate_percentile(valid_data, 95.0)
        self.min_rtt = min(valid_data)
        self.max_rtt = max(valid_data)
        self.stddev = statistics.pstdev(valid_data, self.mean)

        if self.rtp_jitter_history:
            self.rtp_jitter_mean = statistics.fmean(self.rtp_jitter_history)
            self.rtp_jitter_median = calculate_percentile(self.rtp_jitter_history, 50.0)

        # mean and stddev already include the current sample
        threshold = self.mean + OUTLIER_SIGMA * self.stddev
        if success and rtt_ms > threshold and self.stddev > OUTLIER_MIN_STDDEV:
            self.outliers += 1

        self.mos = calculate_mos(self.mean, self.rtp_jitter, self.loss_percent)
