"""Mutable, thread-safe list of monitored hosts."""

import dataclasses
import itertools
import logging
import threading

from pingwatch.models import (
    DEFAULT_PACKET_SIZE,
    HostConfig,
    PingMode,
    hosts_from_json,
    hosts_to_json,
)
from pingwatch.status_table import StatusTable

logger = logging.getLogger(__name__)


def _copy(host: HostConfig) -> HostConfig:
    return dataclasses.replace(host, display=dataclasses.replace(host.display))


class HostRegistry:
    """Ordered host configuration list, unique by address.

    When given a StatusTable, the registry keeps it in step: adding a host
    registers an empty status, removing it drops the status. Every registration
    gets a new generation number, so a removed and re-added address is a
    different entry from the one probes were sent for.
    """

    def __init__(self, status_table: StatusTable | None = None, hosts=None):
        self._lock = threading.RLock()
        self._hosts: list[HostConfig] = []
        self.status_table = status_table
        self._generation_counter = itertools.count(1)

        for host in hosts or []:
            if self._index_of(host.address) is None:
                host = _copy(host)
                self._register(host)
                self._hosts.append(host)

    def _index_of(self, address: str) -> int | None:
        for i, host in enumerate(self._hosts):
            if host.address == address:
                return i
        return None

    def _register(self, host: HostConfig):
        host.generation = next(self._generation_counter)
        if self.status_table is not None:
            self.status_table.register(host.address, host.generation)

    def _unregister(self, address: str):
        if self.status_table is not None:
            self.status_table.unregister(address)

    def add(
        self,
        name: str,
        address: str,
        mode: PingMode | None = None,
        packet_size: int = DEFAULT_PACKET_SIZE,
        random_padding: bool = False,
    ) -> HostConfig | None:
        """Add a host to the end of the list.

        Args:
            name: Display label (may be empty)
            address: IP literal, bracketed IPv6 literal or hostname
            mode: Probing cadence; defaults to Fast for local addresses, Slow otherwise
            packet_size: Payload size in bytes (clamped to 16..1400)
            random_padding: Whether to pad payloads with up to 25% random bytes

        Returns:
            A copy of the stored host, or None if the address is empty or already present
        """
        address = address.strip()
        if not address:
            return None

        host = HostConfig(
            name=name.strip(),
            address=address,
            packet_size=packet_size,
            random_padding=random_padding,
        )
        if mode is None:
            host.mode = PingMode.FAST if host.is_local() else PingMode.SLOW
        else:
            host.mode = mode

        with self._lock:
            if self._index_of(address) is not None:
                logger.debug("Duplicate host ignored: %s", address)
                return None
            self._register(host)
            self._hosts.append(host)
            logger.info("Host added: %s (%s, total: %d)", address, host.mode.label, len(self._hosts))
            return _copy(host)

    def remove(self, address: str) -> bool:
        """Remove a host. Returns False if it was not present."""
        with self._lock:
            index = self._index_of(address)
            if index is None:
                return False
            del self._hosts[index]
            self._unregister(address)
            logger.info("Host removed: %s (remaining: %d)", address, len(self._hosts))
            return True

    def update(self, address: str, **changes) -> HostConfig | None:
        """Edit a host's settings in place.

        Changing the address re-keys its status, which starts over empty.

        Returns:
            A copy of the updated host, or None if the host is unknown or the
            new address is empty or already taken
        """
        with self._lock:
            index = self._index_of(address)
            if index is None:
                return None

            new_address = changes.get("address", address).strip()
            if not new_address:
                return None
            if new_address != address and self._index_of(new_address) is not None:
                return None
            changes["address"] = new_address
            if "name" in changes:
                changes["name"] = changes["name"].strip()

            changes.pop("generation", None)
            updated = _copy(dataclasses.replace(self._hosts[index], **changes))

            if new_address != address:
                self._unregister(address)
                self._register(updated)
            self._hosts[index] = updated

            logger.debug("Host updated: %s", new_address)
            return _copy(updated)

    def move(self, src: int, dst: int):
        """Move the host at position src to position dst."""
        with self._lock:
            if not (0 <= src < len(self._hosts)):
                raise IndexError(f"source index out of range: {src}")
            host = self._hosts.pop(src)
            dst = max(0, min(dst, len(self._hosts)))
            self._hosts.insert(dst, host)

    def get(self, address: str) -> HostConfig | None:
        with self._lock:
            index = self._index_of(address)
            return _copy(self._hosts[index]) if index is not None else None

    def snapshot(self) -> list[HostConfig]:
        """Return copies of all hosts in display order."""
        with self._lock:
            return [_copy(h) for h in self._hosts]

    def addresses(self) -> list[str]:
        with self._lock:
            return [h.address for h in self._hosts]

    def __len__(self):
        with self._lock:
            return len(self._hosts)

    def to_json(self) -> str:
        """Serialize the host list. Live statistics are never included."""
        return hosts_to_json(self.snapshot())

    @classmethod
    def from_json(cls, text: str, status_table: StatusTable | None = None) -> "HostRegistry":
        """Build a registry from saved configuration; statuses start empty.

        A document that cannot be parsed yields an empty registry.
        """
        try:
            hosts = hosts_from_json(text)
        except ValueError as e:
            logger.warning("Ignoring unreadable host configuration: %s", e)
            hosts = []
        return cls(status_table=status_table, hosts=hosts)
