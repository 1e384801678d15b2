"""Tests for HostRegistry."""

from pingwatch.models import HostConfig, PingMode, ProbeOutcome
from pingwatch.registry import HostRegistry
from pingwatch.status_table import StatusTable


class TestHostRegistry:
    """Test suite for HostRegistry class."""

    def test_initial_state(self):
        registry = HostRegistry()

        assert len(registry) == 0
        assert registry.snapshot() == []

    def test_add_host(self):
        registry = HostRegistry()

        host = registry.add("Google", "8.8.8.8")

        assert host.name == "Google"
        assert host.address == "8.8.8.8"
        assert registry.addresses() == ["8.8.8.8"]

    def test_whitespace_trimmed(self):
        registry = HostRegistry()
        registry.add("  Google  ", "  8.8.8.8  ")

        host = registry.snapshot()[0]
        assert host.name == "Google"
        assert host.address == "8.8.8.8"

    def test_empty_address_rejected(self):
        registry = HostRegistry()

        assert registry.add("Invalid", "") is None
        assert registry.add("Invalid", "   ") is None
        assert len(registry) == 0

    def test_empty_name_allowed(self):
        registry = HostRegistry()
        assert registry.add("", "1.1.1.1") is not None

    def test_duplicate_address_ignored(self):
        registry = HostRegistry()
        registry.add("First", "8.8.8.8")

        assert registry.add("Second", " 8.8.8.8") is None
        assert len(registry) == 1
        assert registry.snapshot()[0].name == "First"

    def test_local_host_gets_fast_mode(self):
        registry = HostRegistry()
        assert registry.add("Router", "192.168.1.1").mode == PingMode.FAST

    def test_remote_host_gets_slow_mode(self):
        registry = HostRegistry()
        assert registry.add("Google", "8.8.8.8").mode == PingMode.SLOW

    def test_explicit_mode_wins(self):
        registry = HostRegistry()
        assert registry.add("Google", "8.8.8.8", mode=PingMode.VERY_FAST).mode == PingMode.VERY_FAST

    def test_new_host_payload_defaults(self):
        registry = HostRegistry()
        host = registry.add("Test", "8.8.4.4")

        assert host.packet_size == 16
        assert host.random_padding is False

    def test_remove_host(self):
        registry = HostRegistry()
        registry.add("a", "1.1.1.1")
        registry.add("b", "2.2.2.2")

        assert registry.remove("1.1.1.1")
        assert registry.addresses() == ["2.2.2.2"]
        assert not registry.remove("1.1.1.1")

    def test_update_settings(self):
        registry = HostRegistry()
        registry.add("a", "1.1.1.1")

        updated = registry.update("1.1.1.1", mode=PingMode.NORMAL, packet_size=5000, name=" A ")

        assert updated.mode == PingMode.NORMAL
        assert updated.packet_size == 1400
        assert updated.name == "A"
        assert registry.get("1.1.1.1") == updated

    def test_update_rejects_taken_address(self):
        registry = HostRegistry()
        registry.add("a", "1.1.1.1")
        registry.add("b", "2.2.2.2")

        assert registry.update("1.1.1.1", address="2.2.2.2") is None
        assert registry.update("missing", name="x") is None
        assert registry.addresses() == ["1.1.1.1", "2.2.2.2"]

    def test_move(self):
        registry = HostRegistry()
        for address in ("a", "b", "c"):
            registry.add(address, address)

        registry.move(0, 2)
        assert registry.addresses() == ["b", "c", "a"]

        registry.move(2, 0)
        assert registry.addresses() == ["a", "b", "c"]

    def test_snapshot_is_detached(self):
        registry = HostRegistry()
        registry.add("a", "1.1.1.1")

        snapshot = registry.snapshot()
        snapshot[0].name = "changed"
        snapshot[0].display.show_mos = False

        host = registry.get("1.1.1.1")
        assert host.name == "a"
        assert host.display.show_mos is True


class TestRegistryStatusSync:
    """Test that statuses follow the host list."""

    def test_add_registers_status(self):
        table = StatusTable()
        registry = HostRegistry(status_table=table)

        registry.add("a", "1.1.1.1")

        assert "1.1.1.1" in table

    def test_remove_unregisters_status(self):
        table = StatusTable()
        registry = HostRegistry(status_table=table)
        registry.add("a", "1.1.1.1")

        registry.remove("1.1.1.1")

        assert "1.1.1.1" not in table

    def test_readd_starts_empty(self):
        table = StatusTable()
        registry = HostRegistry(status_table=table)
        registry.add("a", "1.1.1.1")
        table.apply("1.1.1.1", ProbeOutcome.success(10.0))

        registry.remove("1.1.1.1")
        registry.add("a", "1.1.1.1")

        assert table.get("1.1.1.1").sent == 0

    def test_readd_gets_new_generation(self):
        table = StatusTable()
        registry = HostRegistry(status_table=table)
        first = registry.add("a", "1.1.1.1")

        registry.remove("1.1.1.1")
        second = registry.add("a", "1.1.1.1")

        assert second.generation != first.generation
        assert table.generation("1.1.1.1") == second.generation
        assert registry.get("1.1.1.1").generation == second.generation

    def test_settings_update_keeps_generation(self):
        registry = HostRegistry()
        host = registry.add("a", "1.1.1.1")

        updated = registry.update("1.1.1.1", name="b", generation=99)

        assert updated.generation == host.generation

    def test_loaded_hosts_are_registered_with_generations(self):
        table = StatusTable()
        registry = HostRegistry.from_json(
            HostRegistry(hosts=[HostConfig(name="a", address="1.1.1.1")]).to_json(),
            status_table=table,
        )

        assert registry.get("1.1.1.1").generation == table.generation("1.1.1.1") == 1

    def test_address_change_rekeys_status(self):
        table = StatusTable()
        registry = HostRegistry(status_table=table)
        registry.add("a", "1.1.1.1")
        table.apply("1.1.1.1", ProbeOutcome.success(10.0))

        registry.update("1.1.1.1", address="9.9.9.9")

        assert "1.1.1.1" not in table
        assert table.get("9.9.9.9").sent == 0

    def test_settings_change_keeps_status(self):
        table = StatusTable()
        registry = HostRegistry(status_table=table)
        registry.add("a", "1.1.1.1")
        table.apply("1.1.1.1", ProbeOutcome.success(10.0))

        registry.update("1.1.1.1", mode=PingMode.VERY_SLOW)

        assert table.get("1.1.1.1").sent == 1


class TestRegistryPersistence:
    """Test that only configuration survives a save/load cycle."""

    def test_roundtrip(self):
        registry = HostRegistry()
        registry.add("Router", "192.168.1.1")
        registry.add("DNS", "[2001:4860:4860::8888]", packet_size=64, random_padding=True)

        restored = HostRegistry.from_json(registry.to_json())

        assert restored.snapshot() == registry.snapshot()

    def test_statistics_not_restored(self):
        table = StatusTable()
        registry = HostRegistry(status_table=table)
        registry.add("a", "1.1.1.1")
        for _ in range(5):
            table.apply("1.1.1.1", ProbeOutcome.success(10.0))

        fresh_table = StatusTable()
        HostRegistry.from_json(registry.to_json(), status_table=fresh_table)

        assert fresh_table.get("1.1.1.1").sent == 0
        assert "sent" not in registry.to_json()

    def test_unreadable_document_gives_empty_registry(self):
        registry = HostRegistry.from_json("{broken")
        assert len(registry) == 0

    def test_duplicates_in_document_collapsed(self):
        hosts = [HostConfig(name="a", address="1.1.1.1"), HostConfig(name="b", address="1.1.1.1")]
        registry = HostRegistry(hosts=hosts)

        assert registry.addresses() == ["1.1.1.1"]
