"""Tests for the init/set/get/delete/list operations."""
import pytest
import yaml

from mcp_host_network.netplan import (
    CommitFailure,
    ConfigNotFound,
    ConflictingAddressMode,
    GatewayConflict,
    InterfaceNotFound,
    InterfaceView,
    InvalidAddress,
    NetplanEngine,
)
from mcp_host_network.system.commands import CommandError
from mcp_host_network.utils.audit_log import get_recent_changes, setup_audit_logging

from conftest import FakeRunner, fake_interfaces

STATIC = """\
network:
  version: 2
  renderer: networkd
  ethernets:
    eth0:
      addresses:
      - 192.168.1.5/24
      gateway4: 192.168.1.1
"""

EMPTY = "network:\n  ethernets: {}\n"


def read_yaml(path):
    return yaml.safe_load(path.read_text())


class TestSet:
    """Tests for replacing interface settings."""

    def test_set_static(self, engine, write_config, runner):
        path = write_config("01-netcfg.yaml", STATIC)

        result = engine.set("eth1", InterfaceView(
            addresses=["10.0.0.5/24"],
            nameservers=["8.8.8.8"],
        ))

        assert result.primary == path
        assert read_yaml(path)["network"]["ethernets"]["eth1"] == {
            "addresses": ["10.0.0.5/24"],
            "nameservers": {"addresses": ["8.8.8.8"]},
        }
        assert runner.calls == [("netplan", "apply")]

    def test_set_overwrites_existing_settings(self, engine, write_config):
        path = write_config("01-netcfg.yaml", STATIC)

        engine.set("eth0", InterfaceView(addresses=["192.168.1.9/24"]))

        assert read_yaml(path)["network"]["ethernets"]["eth0"] == {"addresses": ["192.168.1.9/24"]}

    def test_set_keeps_other_interfaces_and_globals(self, engine, write_config):
        path = write_config("01-netcfg.yaml", STATIC)

        engine.set("eth1", InterfaceView(dhcp4=True))

        network = read_yaml(path)["network"]
        assert network["version"] == 2
        assert network["renderer"] == "networkd"
        assert network["ethernets"]["eth0"]["gateway4"] == "192.168.1.1"

    def test_set_merges_all_files_into_primary(self, engine, write_config, netplan_dir):
        write_config("01-netcfg.yaml", STATIC)
        write_config("50-cloud-init.yaml", "network:\n  ethernets:\n    eth2:\n      dhcp4: true\n")

        result = engine.set("eth1", InterfaceView(dhcp4=True))

        assert [p.name for p in result.removed] == ["50-cloud-init.yaml"]
        assert sorted(p.name for p in netplan_dir.iterdir()) == ["01-netcfg.yaml"]
        ethernets = read_yaml(result.primary)["network"]["ethernets"]
        assert list(ethernets) == ["eth0", "eth1", "eth2"]

    def test_sort_order_on_disk(self, engine, write_config):
        """Interfaces are written in name order regardless of edit order."""
        path = write_config("01-netcfg.yaml", EMPTY)

        engine.set("zzz", InterfaceView(dhcp4=True))
        engine.set("aaa", InterfaceView(dhcp4=True))

        text = path.read_text()
        assert text.index("aaa:") < text.index("zzz:")

    def test_second_gateway_is_rejected(self, engine, write_config, runner):
        path = write_config("01-netcfg.yaml", STATIC)
        before = path.read_bytes()

        with pytest.raises(GatewayConflict) as exc:
            engine.set("eth1", InterfaceView(addresses=["10.0.0.5/24"], gateway4="10.0.0.1"))

        assert exc.value.owner == "eth0"
        assert path.read_bytes() == before
        assert runner.calls == []

    def test_gateway_can_move_after_removal(self, engine, write_config):
        """At most one gateway: removing it frees the default route."""
        write_config("01-netcfg.yaml", STATIC)

        engine.delete("eth0", InterfaceView(gateway4="192.168.1.1"))
        engine.set("eth1", InterfaceView(addresses=["10.0.0.5/24"], gateway4="10.0.0.1"))

        gateways = [
            name for name, view in engine.get() if view.gateway4
        ]
        assert gateways == ["eth1"]

    def test_dhcp_with_static_address_is_rejected(self, engine, write_config, runner, settings):
        path = write_config("01-netcfg.yaml", STATIC)
        before = path.read_bytes()

        with pytest.raises(ConflictingAddressMode):
            engine.set("eth0", InterfaceView(dhcp4=True, addresses=["10.0.0.1/24"]))

        assert path.read_bytes() == before
        assert list(settings.staging_dir.iterdir()) == []
        assert runner.calls == []

    def test_invalid_address_is_rejected(self, engine, write_config):
        write_config("01-netcfg.yaml", STATIC)

        with pytest.raises(InvalidAddress) as exc:
            engine.set("eth1", InterfaceView(addresses=["10.0.0.500/24"]))

        assert exc.value.value == "10.0.0.500/24"
        assert exc.value.interface == "eth1"

    def test_netmask_suffix_is_rejected_before_writing(self, engine, write_config, runner, settings):
        path = write_config("01-netcfg.yaml", STATIC)
        write_config("50-cloud-init.yaml", "network:\n  ethernets:\n    eth2:\n      dhcp4: true\n")
        before = path.read_bytes()

        with pytest.raises(InvalidAddress):
            engine.set("eth0", InterfaceView(addresses=["10.0.0.1/255.255.255.0"]))

        assert path.read_bytes() == before
        assert (settings.netplan_dir / "50-cloud-init.yaml").exists()
        assert list(settings.staging_dir.iterdir()) == []
        assert runner.calls == []

    def test_set_without_configuration(self, engine):
        with pytest.raises(ConfigNotFound):
            engine.set("eth0", InterfaceView(dhcp4=True))

    def test_validate_reports_without_raising(self, engine, write_config):
        write_config("01-netcfg.yaml", STATIC)

        result = engine.validate("eth1", InterfaceView(gateway4="10.0.0.1"))

        assert not result.valid
        assert isinstance(result.errors[0], GatewayConflict)


class TestGet:
    """Tests for reading interface settings."""

    def test_get_all(self, engine, write_config):
        write_config("01-netcfg.yaml", STATIC)
        write_config("02-dhcp.yaml", "network:\n  ethernets:\n    eth1:\n      dhcp4: true\n")

        found = engine.get()

        assert [name for name, _ in found] == ["eth0", "eth1"]
        assert found[0][1] == InterfaceView(addresses=["192.168.1.5/24"], gateway4="192.168.1.1")
        assert found[1][1] == InterfaceView(dhcp4=True)

    def test_get_one(self, engine, write_config):
        write_config("01-netcfg.yaml", STATIC)

        assert engine.get("eth0") == [
            ("eth0", InterfaceView(addresses=["192.168.1.5/24"], gateway4="192.168.1.1")),
        ]

    def test_get_missing_interface(self, engine, write_config):
        """A missing interface is not an error."""
        write_config("01-netcfg.yaml", STATIC)
        assert engine.get("eth7") is None

    def test_get_hides_search_domains(self, engine, write_config):
        write_config("01-netcfg.yaml", """
network:
  ethernets:
    eth0:
      nameservers:
        search: [lan]
        addresses: [1.1.1.1]
""")
        assert engine.get("eth0")[0][1].nameservers == ["1.1.1.1"]

    def test_get_is_read_only(self, engine, write_config, runner, netplan_dir):
        write_config("01-netcfg.yaml", STATIC)
        write_config("02-dhcp.yaml", "network:\n  ethernets:\n    eth1:\n      dhcp4: true\n")

        engine.get()

        assert sorted(p.name for p in netplan_dir.iterdir()) == ["01-netcfg.yaml", "02-dhcp.yaml"]
        assert runner.calls == []


class TestDelete:
    """Tests for removing individual settings."""

    def test_delete_address_and_gateway(self, engine, write_config, runner):
        """Removing everything leaves an empty interface entry on disk."""
        path = write_config("01-netcfg.yaml", STATIC)

        engine.delete("eth0", InterfaceView(
            addresses=["192.168.1.5/24"],
            gateway4="192.168.1.1",
        ))

        text = path.read_text()
        assert "eth0: {}" in text
        assert "addresses" not in text
        assert "gateway4" not in text
        assert read_yaml(path)["network"]["ethernets"] == {"eth0": {}}
        assert runner.calls == [
            ("netplan", "apply"),
            ("ip", "addr", "del", "192.168.1.5/24", "dev", "eth0"),
        ]

    def test_delete_ignores_running_address_errors(self, settings, write_config):
        path = write_config("01-netcfg.yaml", STATIC)
        runner = FakeRunner(fail=lambda cmd: cmd[0] == "ip")
        engine = NetplanEngine(settings, runner=runner, interfaces=fake_interfaces)

        engine.delete("eth0", InterfaceView(addresses=["192.168.1.5/24"]))

        assert read_yaml(path)["network"]["ethernets"]["eth0"] == {"gateway4": "192.168.1.1"}

    def test_delete_mismatched_gateway_keeps_it(self, engine, write_config):
        path = write_config("01-netcfg.yaml", STATIC)

        engine.delete("eth0", InterfaceView(gateway4="10.9.9.9"))

        assert read_yaml(path)["network"]["ethernets"]["eth0"]["gateway4"] == "192.168.1.1"

    def test_delete_nameserver(self, engine, write_config):
        path = write_config("01-netcfg.yaml", """
network:
  ethernets:
    eth0:
      nameservers:
        addresses: [8.8.8.8, 1.1.1.1]
""")
        engine.delete("eth0", InterfaceView(nameservers=["8.8.8.8"]))

        assert read_yaml(path)["network"]["ethernets"]["eth0"] == {
            "nameservers": {"addresses": ["1.1.1.1"]},
        }

    def test_delete_unknown_interface(self, engine, write_config, runner):
        path = write_config("01-netcfg.yaml", STATIC)
        before = path.read_bytes()

        with pytest.raises(InterfaceNotFound):
            engine.delete("eth9", InterfaceView(addresses=["10.0.0.5/24"]))

        assert path.read_bytes() == before
        assert runner.calls == []


class TestInit:
    """Tests for resetting an interface."""

    def test_init_clears_and_resets_running_interface(self, engine, write_config, runner):
        path = write_config("01-netcfg.yaml", STATIC)

        engine.init("eth0")

        assert read_yaml(path)["network"]["ethernets"]["eth0"] == {}
        assert runner.calls == [
            ("netplan", "apply"),
            ("ifconfig", "eth0", "0.0.0.0"),
            ("ifconfig", "eth0", "up"),
        ]

    def test_init_adds_unconfigured_live_interface(self, engine, write_config):
        path = write_config("01-netcfg.yaml", STATIC)

        engine.init("eno3")

        assert list(read_yaml(path)["network"]["ethernets"]) == ["eno3", "eth0"]

    def test_init_unknown_live_interface(self, engine, write_config, runner):
        path = write_config("01-netcfg.yaml", STATIC)
        before = path.read_bytes()

        with pytest.raises(InterfaceNotFound) as exc:
            engine.init("wlan9")

        assert "live interfaces" in str(exc.value)
        assert path.read_bytes() == before
        assert runner.calls == []

    def test_init_reset_failure_is_an_error(self, settings, write_config):
        """Unlike delete, a failing ifconfig reset is reported."""
        path = write_config("01-netcfg.yaml", STATIC)
        runner = FakeRunner(fail=lambda cmd: cmd[0] == "ifconfig")
        engine = NetplanEngine(settings, runner=runner, interfaces=fake_interfaces)

        with pytest.raises(CommandError):
            engine.init("eth0")

        # The configuration was already committed
        assert read_yaml(path)["network"]["ethernets"]["eth0"] == {}

    def test_init_apply_failure(self, settings, write_config):
        write_config("01-netcfg.yaml", STATIC)
        runner = FakeRunner(fail=lambda cmd: cmd[0] == "netplan")
        engine = NetplanEngine(settings, runner=runner, interfaces=fake_interfaces)

        with pytest.raises(CommitFailure):
            engine.init("eth0")

        assert ("ifconfig", "eth0", "0.0.0.0") not in runner.calls


class TestListInterfaces:
    """Tests for live interface enumeration."""

    def test_list_all(self, engine):
        assert engine.list_interfaces() == ["eth0", "eth1", "eno3", "lo"]

    def test_list_prefix(self, engine):
        assert engine.list_interfaces("eth") == ["eth0", "eth1"]

    def test_list_needs_no_configuration(self, engine, netplan_dir):
        assert list(netplan_dir.iterdir()) == []
        assert engine.list_interfaces("en") == ["eno3"]


class TestAudit:
    """Mutating operations leave an audit record."""

    @pytest.fixture
    def audit_file(self, tmp_path):
        return setup_audit_logging(tmp_path / "audit")

    def test_successful_set_is_recorded(self, engine, write_config, audit_file):
        write_config("01-netcfg.yaml", STATIC)

        engine.set("eth0", InterfaceView(addresses=["192.168.1.9/24"]))

        record = get_recent_changes(audit_file)[0]
        assert record.operation == "set"
        assert record.interface == "eth0"
        assert record.success is True
        assert record.before_state["addresses"] == ["192.168.1.5/24"]
        assert record.after_state["addresses"] == ["192.168.1.9/24"]

    def test_failed_set_is_recorded(self, engine, write_config, audit_file):
        write_config("01-netcfg.yaml", STATIC)

        with pytest.raises(GatewayConflict):
            engine.set("eth1", InterfaceView(gateway4="10.0.0.1"))

        record = get_recent_changes(audit_file)[0]
        assert record.success is False
        assert "only one interface can have gateway" in record.error

    def test_get_is_not_recorded(self, engine, write_config, audit_file):
        write_config("01-netcfg.yaml", STATIC)
        engine.get()
        assert get_recent_changes(audit_file) == []
