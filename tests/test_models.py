"""Tests for the canonical port/device model."""
import pytest

from portgrid.models import (
    DeviceWithPorts,
    EnrichedPort,
    as_int,
    copy_inventory,
    inventory_to_dict,
    normalize_status,
    sort_devices,
    sort_ports,
)


def _port(name: str, admin: str = "up", oper: str = "up") -> EnrichedPort:
    return EnrichedPort(
        port_id=1,
        device_id=1,
        device_name="sw1",
        if_name=name,
        if_alias=None,
        if_descr="",
        admin_status=admin,
        oper_status=oper,
    )


class TestNormalizeStatus:
    """Anything but the literal 'up' collapses to 'down'."""

    @pytest.mark.parametrize("raw,expected", [
        ("up", "up"),
        ("down", "down"),
        ("UP", "down"),
        ("lowerLayerDown", "down"),
        ("testing", "down"),
        ("", "down"),
        (None, "down"),
        (1, "down"),
    ])
    def test_values(self, raw, expected):
        assert normalize_status(raw) == expected


class TestAsInt:
    """Only plain ASCII integers are accepted."""

    @pytest.mark.parametrize("raw,expected", [
        (5, 5),
        ("20", 20),
        (" 7 ", 7),
        ("-3", -3),
        ("--5", None),
        ("-", None),
        ("\u00b2", None),
        ("\u0663", None),
        ("1.5", None),
        ("trunk", None),
        ("", None),
        (True, None),
        (None, None),
    ])
    def test_values(self, raw, expected):
        assert as_int(raw) == expected


class TestCopyInventory:
    def test_devices_and_ports_are_new_objects(self):
        original = [DeviceWithPorts(device_id=1, hostname="sw1", ports=[_port("eth0")])]

        copied = copy_inventory(original)
        copied[0].ports[0].if_name = "eth9"
        copied[0].ports.clear()

        assert copied[0] == DeviceWithPorts(device_id=1, hostname="sw1", ports=[])
        assert [p.if_name for p in original[0].ports] == ["eth0"]


class TestOrdering:
    """Devices by hostname, ports by ifName."""

    def test_devices_sorted_case_insensitively(self):
        devices = [
            DeviceWithPorts(device_id=3, hostname="edge-1"),
            DeviceWithPorts(device_id=1, hostname="Core-2"),
            DeviceWithPorts(device_id=2, hostname="core-1"),
        ]
        assert [d.hostname for d in sort_devices(devices)] == ["core-1", "Core-2", "edge-1"]

    def test_ports_sorted_by_name(self):
        ports = [_port("Gi1/0/2"), _port("eth0"), _port("Gi1/0/10")]
        assert [p.if_name for p in sort_ports(ports)] == ["eth0", "Gi1/0/10", "Gi1/0/2"]

    def test_case_tie_breaks_lowercase_first(self):
        ports = [_port("A1"), _port("a1")]
        assert [p.if_name for p in sort_ports(ports)] == ["a1", "A1"]


class TestPortState:
    """admin/oper semantics."""

    def test_admin_down_is_not_a_fault(self):
        port = _port("eth0", admin="down", oper="down")
        assert port.is_disabled
        assert not port.is_faulty

    def test_admin_up_oper_down_is_a_fault(self):
        port = _port("eth0", admin="up", oper="down")
        assert not port.is_disabled
        assert port.is_faulty


class TestSerialization:
    """JSON response shape."""

    def test_inventory_to_dict(self):
        device = DeviceWithPorts(device_id=7, hostname="sw7", ports=[_port("eth0")])
        payload = inventory_to_dict([device])
        assert list(payload) == ["devices"]
        port = payload["devices"][0]["ports"][0]
        assert payload["devices"][0]["device_id"] == 7
        assert set(port) == {
            "port_id",
            "device_id",
            "deviceName",
            "ifName",
            "ifAlias",
            "ifDescr",
            "ifAdminStatus",
            "ifOperStatus",
            "ifVlan",
            "ifPhysAddress",
            "neighbor",
        }
        assert port["ifAdminStatus"] == "up"
