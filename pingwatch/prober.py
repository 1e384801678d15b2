"""Probe executor: address resolution, payload construction and ICMP echo."""

import ipaddress
import itertools
import logging
import os
import random
import secrets
import socket
from typing import Protocol

from icmplib import ICMPLibError, ICMPRequest, ICMPv4Socket, ICMPv6Socket, TimeoutExceeded

from pingwatch.fake_prober import FakeProber
from pingwatch.models import HostConfig, ProbeOutcome, clamp_packet_size, strip_brackets

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_S = 2.0


class Prober(Protocol):
    """Protocol defining the interface for probe executors."""

    def probe(self, host: HostConfig) -> ProbeOutcome:
        """Send one probe to the host and report the outcome. Never raises."""
        ...


def resolve_address(address: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Resolve a host address to a single IP (pure lookup, no probing).

    IP literals are used directly; ``[addr]`` IPv6 literals are unwrapped first.
    Anything else goes through DNS and the first result of either family wins.

    ``getaddrinfo`` takes no timeout, so a lookup is bounded only by the
    system resolver's own limits, not by the probe timeout. It blocks the
    calling pool thread only, so other hosts are not held up.

    Args:
        address: IP literal, bracketed IPv6 literal or hostname

    Returns:
        The resolved IP, or None if the address is neither a literal nor resolvable
    """
    candidate = strip_brackets(address.strip())
    if not candidate:
        return None

    try:
        return ipaddress.ip_address(candidate)
    except ValueError:
        pass

    try:
        infos = socket.getaddrinfo(candidate, None)
    except (OSError, UnicodeError) as e:
        logger.debug("Resolution failed: host=%s, error=%s", address, e)
        return None

    for _family, _type, _proto, _canonname, sockaddr in infos:
        try:
            return ipaddress.ip_address(sockaddr[0])
        except ValueError:
            continue

    return None


def generate_payload(host: HostConfig, rng: random.Random | None = None) -> bytes:
    """Build a random echo payload for a host.

    Size is the clamped packet_size, plus up to 25% extra bytes when
    random_padding is set. Content is always fresh random bytes.
    """
    rng = rng or random
    size = clamp_packet_size(host.packet_size)
    if host.random_padding:
        size += rng.randint(0, size // 4)
    return secrets.token_bytes(size)


class IcmpProber:
    """Prober that sends one ICMP echo request through icmplib.

    By default uses unprivileged datagram ICMP sockets (Linux needs
    ``net.ipv4.ping_group_range`` to include the user; macOS allows them
    out of the box). Raw sockets need root or CAP_NET_RAW.
    """

    def __init__(self, timeout_s: float = PROBE_TIMEOUT_S, privileged: bool = False):
        """Initialize ICMP prober.

        Args:
            timeout_s: Maximum time to wait for the echo reply
            privileged: Use raw sockets instead of datagram sockets
        """
        if timeout_s <= 0:
            raise ValueError("timeout_s must be positive")

        self.timeout_s = timeout_s
        self.privileged = privileged
        self._identifier = os.getpid() & 0xFFFF
        self._sequence = itertools.count(1)

        logger.debug(
            "IcmpProber initialized: timeout_s=%.1f, privileged=%s",
            timeout_s,
            privileged,
        )

    def check_available(self):
        """Open and close a socket to verify ICMP is permitted.

        Raises:
            ICMPLibError: If sockets of the configured kind cannot be created
            OSError: On other socket failures
        """
        with ICMPv4Socket(privileged=self.privileged):
            pass

    def probe(self, host: HostConfig) -> ProbeOutcome:
        """Send one echo request to the host and measure its round trip.

        Resolution failure, timeout or any transport error gives a failure
        outcome; nothing is retried.
        """
        ip = resolve_address(host.address)
        if ip is None:
            logger.debug("Unresolvable host: %s", host.address)
            return ProbeOutcome.failure()

        payload = generate_payload(host)
        socket_cls = ICMPv6Socket if ip.version == 6 else ICMPv4Socket

        try:
            with socket_cls(privileged=self.privileged) as sock:
                request = ICMPRequest(
                    destination=str(ip),
                    id=self._identifier,
                    sequence=next(self._sequence) & 0xFFFF,
                    payload=payload,
                )
                sock.send(request)
                reply = sock.receive(request, self.timeout_s)
                reply.raise_for_status()

        except TimeoutExceeded:
            logger.debug("Probe timeout: host=%s, timeout=%.1fs", host.address, self.timeout_s)
            return ProbeOutcome.failure()
        except ICMPLibError as e:
            logger.debug("Probe failed: host=%s, error=%s", host.address, e)
            return ProbeOutcome.failure()
        except Exception as e:
            logger.warning("Probe error: host=%s, error=%s", host.address, str(e), exc_info=True)
            return ProbeOutcome.failure()

        rtt_ms = (reply.time - request.time) * 1000.0
        logger.debug(
            "Probe reply: host=%s, ip=%s, bytes=%d, rtt=%.2fms",
            host.address,
            ip,
            len(payload),
            rtt_ms,
        )
        return ProbeOutcome.success(rtt_ms)


def create_prober() -> Prober:
    """Pick the prober from the environment.

    Environment Variables:
        PINGWATCH_PROBER: ``icmp`` (default) or ``fake`` for simulated data
        PINGWATCH_PRIVILEGED: ``1``/``true`` to use raw ICMP sockets

    Falls back to simulated data when ICMP sockets are not available.
    """
    if os.environ.get("PINGWATCH_PROBER", "").lower() == "fake":
        logger.info("Using FakeProber (PINGWATCH_PROBER=fake)")
        return FakeProber()

    privileged = os.environ.get("PINGWATCH_PRIVILEGED", "").lower() in ("1", "true", "yes")
    prober = IcmpProber(privileged=privileged)

    try:
        prober.check_available()
    except (ICMPLibError, OSError) as e:
        logger.warning("ICMP sockets unavailable, using simulated data: %s", e)
        return FakeProber()

    logger.info("IcmpProber initialized successfully (privileged=%s)", privileged)
    return prober
