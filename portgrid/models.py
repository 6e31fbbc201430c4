import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

UP = "up"
DOWN = "down"


_INT_RE = re.compile(r"-?[0-9]+")


def as_int(value: object) -> Optional[int]:
    """Coerce an upstream integer field; anything but plain ASCII digits gives None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
        return int(value.strip())
    return None


def as_str(value: object) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def normalize_status(value: object) -> str:
    """Collapse any raw admin/oper status into "up" or "down".

    Only the literal string "up" counts as up.
    """
    return UP if value == UP else DOWN


def name_sort_key(name: str) -> Tuple[str, str]:
    """Case-insensitive ordering with a case-sensitive tie-break (lowercase first)."""
    return (name.casefold(), name.swapcase())


@dataclass
class EnrichedPort:
    """
    Canonical switch port.

    oper_status is only meaningful while admin_status is "up"; a port that is
    administratively down reports "down" for both and is not a fault.
    """

    port_id: int
    device_id: int
    device_name: str
    if_name: str
    if_alias: Optional[str]
    if_descr: str
    admin_status: str
    oper_status: str
    vlan: Optional[int] = None
    mac: Optional[str] = None
    neighbor: Optional[str] = None

    @property
    def is_disabled(self) -> bool:
        return self.admin_status != UP

    @property
    def is_faulty(self) -> bool:
        return self.admin_status == UP and self.oper_status != UP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "port_id": self.port_id,
            "device_id": self.device_id,
            "deviceName": self.device_name,
            "ifName": self.if_name,
            "ifAlias": self.if_alias,
            "ifDescr": self.if_descr,
            "ifAdminStatus": self.admin_status,
            "ifOperStatus": self.oper_status,
            "ifVlan": self.vlan,
            "ifPhysAddress": self.mac,
            "neighbor": self.neighbor,
        }


@dataclass
class DeviceWithPorts:
    """A device and its ports, ordered by ifName."""

    device_id: int
    hostname: str
    ports: List[EnrichedPort] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "hostname": self.hostname,
            "ports": [p.to_dict() for p in self.ports],
        }


Inventory = List[DeviceWithPorts]


def sort_ports(ports: Iterable[EnrichedPort]) -> List[EnrichedPort]:
    return sorted(ports, key=lambda p: name_sort_key(p.if_name))


def sort_devices(devices: Iterable[DeviceWithPorts]) -> Inventory:
    return sorted(devices, key=lambda d: name_sort_key(d.hostname))


def copy_inventory(devices: Iterable[DeviceWithPorts]) -> Inventory:
    """Copy devices and their ports so callers can mutate the result freely."""
    return [replace(d, ports=[replace(p) for p in d.ports]) for d in devices]


def inventory_to_dict(devices: Sequence[DeviceWithPorts]) -> Dict[str, Any]:
    """Serialize an inventory into the `{"devices": [...]}` response shape."""
    return {"devices": [d.to_dict() for d in devices]}
