"""Data models for PingWatch hosts and probe outcomes."""

import ipaddress
import json
import math
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import NamedTuple

MIN_PACKET_SIZE = 16
MAX_PACKET_SIZE = 1400
DEFAULT_PACKET_SIZE = 16


class PingMode(Enum):
    """Probing cadence of a host."""

    VERY_FAST = "VeryFast"
    FAST = "Fast"
    NOT_FAST = "NotFast"
    NORMAL = "Normal"
    NOT_SLOW = "NotSlow"
    SLOW = "Slow"
    VERY_SLOW = "VerySlow"

    @property
    def timing(self) -> "ModeTiming":
        return MODE_TIMINGS[self]

    @property
    def label(self) -> str:
        return MODE_LABELS[self]


class ModeTiming(NamedTuple):
    """Base interval and jitter half-range of a mode, in seconds."""

    base_s: float
    jitter_s: float


MODE_TIMINGS = {
    PingMode.VERY_FAST: ModeTiming(1.0, 0.05),
    PingMode.FAST: ModeTiming(2.0, 0.2),
    PingMode.NOT_FAST: ModeTiming(5.0, 0.5),
    PingMode.NORMAL: ModeTiming(10.0, 1.0),
    PingMode.NOT_SLOW: ModeTiming(30.0, 3.0),
    PingMode.SLOW: ModeTiming(60.0, 5.0),
    PingMode.VERY_SLOW: ModeTiming(300.0, 15.0),
}

MODE_LABELS = {
    PingMode.VERY_FAST: "Very fast (1s)",
    PingMode.FAST: "Fast (2s)",
    PingMode.NOT_FAST: "Not fast (5s)",
    PingMode.NORMAL: "Normal (10s)",
    PingMode.NOT_SLOW: "Not slow (30s)",
    PingMode.SLOW: "Slow (1m)",
    PingMode.VERY_SLOW: "Very slow (5m)",
}

_PRIVATE_V4_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)
_UNIQUE_LOCAL_V6 = ipaddress.ip_network("fc00::/7")


def clamp_packet_size(size: int) -> int:
    """Clamp a configured payload size into the supported range."""
    return max(MIN_PACKET_SIZE, min(MAX_PACKET_SIZE, int(size)))


def strip_brackets(address: str) -> str:
    """Strip the brackets of a ``[addr]`` IPv6 literal; other input is returned as-is."""
    if address.startswith("[") and address.endswith("]"):
        return address[1:-1]
    return address


@dataclass
class DisplaySettings:
    """Which statistics a display should show for a host."""

    show_name: bool = True
    show_address: bool = True
    show_latency: bool = True
    show_mean: bool = True
    show_median: bool = True
    show_rtp_jitter: bool = True
    show_rtp_mean_jitter: bool = False
    show_rtp_median_jitter: bool = False
    show_mos: bool = True
    show_availability: bool = False
    show_outliers: bool = False
    show_streak: bool = False
    show_stddev: bool = False
    show_p95: bool = False
    show_min_max: bool = False
    show_loss: bool = True


@dataclass
class HostConfig:
    """Identity and probing policy of one monitored host.

    This is the only per-host record that is persisted. Rolling statistics
    live in :class:`pingwatch.stats.HostStatus` and are never serialized.
    """

    name: str
    address: str
    mode: PingMode = PingMode.FAST
    packet_size: int = DEFAULT_PACKET_SIZE
    random_padding: bool = False
    display: DisplaySettings = field(default_factory=DisplaySettings)
    # Registration counter stamped by the registry; never persisted
    generation: int = field(default=0, compare=False, repr=False)

    def __post_init__(self):
        """Clamp packet_size into range instead of rejecting it."""
        self.packet_size = clamp_packet_size(self.packet_size)

    def is_local(self) -> bool:
        """Return True if the address is a private, loopback or link-local IP literal."""
        try:
            ip = ipaddress.ip_address(strip_brackets(self.address.strip()))
        except ValueError:
            return False

        if ip.version == 4:
            return (
                any(ip in net for net in _PRIVATE_V4_NETWORKS)
                or ip.is_loopback
                or ip.is_link_local
            )
        return ip.is_loopback or ip.is_link_local or ip in _UNIQUE_LOCAL_V6


@dataclass
class ProbeOutcome:
    """Result of a single echo probe."""

    alive: bool
    rtt_ms: float  # NaN indicates no reply

    def __post_init__(self):
        """Ensure consistency between alive and rtt_ms fields."""
        if not self.alive:
            self.rtt_ms = math.nan
        elif self.rtt_ms is None or math.isnan(self.rtt_ms):
            self.alive = False
            self.rtt_ms = math.nan

    @classmethod
    def success(cls, rtt_ms: float) -> "ProbeOutcome":
        return cls(alive=True, rtt_ms=float(rtt_ms))

    @classmethod
    def failure(cls) -> "ProbeOutcome":
        return cls(alive=False, rtt_ms=math.nan)


def _host_to_dict(host: HostConfig) -> dict:
    data = asdict(host)
    del data["generation"]
    data["mode"] = host.mode.value
    return data


def _host_from_dict(data: dict) -> HostConfig:
    if not isinstance(data, dict):
        raise ValueError(f"Host entry must be an object, got {type(data).__name__}")

    try:
        mode = PingMode(data.get("mode", PingMode.FAST.value))
    except ValueError:
        mode = PingMode.FAST

    known_flags = {f.name for f in fields(DisplaySettings)}
    raw_display = data.get("display") or {}
    display = DisplaySettings(
        **{k: bool(v) for k, v in raw_display.items() if k in known_flags}
    )

    try:
        packet_size = int(data.get("packet_size", DEFAULT_PACKET_SIZE))
    except (TypeError, ValueError):
        packet_size = DEFAULT_PACKET_SIZE

    return HostConfig(
        name=str(data.get("name", "")),
        address=str(data["address"]),
        mode=mode,
        packet_size=packet_size,
        random_padding=bool(data.get("random_padding", False)),
        display=display,
    )


def hosts_to_json(hosts: list[HostConfig]) -> str:
    """Serialize host configuration. Statistics are never part of the document."""
    return json.dumps({"hosts": [_host_to_dict(h) for h in hosts]}, indent=2)


def hosts_from_json(text: str) -> list[HostConfig]:
    """Parse a document produced by :func:`hosts_to_json`.

    Missing fields take their defaults and unknown modes fall back to Fast.

    Raises:
        ValueError: If the document is not valid JSON or an entry has no address
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid host document: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("hosts", []), list):
        raise ValueError("Host document must be an object with a 'hosts' list")

    try:
        return [_host_from_dict(entry) for entry in document.get("hosts", [])]
    except KeyError as e:
        raise ValueError(f"Host entry missing field: {e}") from e
