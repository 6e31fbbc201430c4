import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

from .aggregator import DEFAULT_TIMEOUT, UpstreamSource
from .errors import RecordParseError, UpstreamError
from .models import (
    DeviceWithPorts,
    EnrichedPort,
    Inventory,
    as_int,
    as_str,
    normalize_status,
    sort_devices,
    sort_ports,
)
from .patterns import DeviceFilter

logger = logging.getLogger(__name__)

PORT_COLUMNS = (
    "port_id",
    "device_id",
    "ifName",
    "ifAlias",
    "ifDescr",
    "ifAdminStatus",
    "ifOperStatus",
    "ifVlan",
    "ifPhysAddress",
)
DEVICE_COLUMNS = ("device_id", "hostname", "ip")


def fallback_hostname(device_id: int) -> str:
    return f"Device {device_id}"


def parse_port(raw: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """Validate a raw LibreNMS port record and fill safe defaults.

    Returns:
        (fields, defaulted): canonical port fields (without device name and
        neighbor) and the names of the fields that had to be defaulted.

    Raises:
        RecordParseError: port_id or device_id is not an integer; without them
            the port cannot be placed anywhere.
    """
    port_id = as_int(raw.get("port_id"))
    if port_id is None:
        raise RecordParseError("port_id", raw.get("port_id"))
    device_id = as_int(raw.get("device_id"))
    if device_id is None:
        raise RecordParseError("device_id", raw.get("device_id"))

    defaulted: List[str] = []

    if_name = as_str(raw.get("ifName"))
    if if_name is None:
        if_name = f"port-{port_id}"
        defaulted.append("ifName")

    if_descr = as_str(raw.get("ifDescr"))
    if if_descr is None:
        if_descr = ""
        defaulted.append("ifDescr")

    vlan = as_int(raw.get("ifVlan"))
    if vlan is None and raw.get("ifVlan") not in (None, ""):
        defaulted.append("ifVlan")

    fields = {
        "port_id": port_id,
        "device_id": device_id,
        "if_name": if_name,
        "if_alias": as_str(raw.get("ifAlias")),
        "if_descr": if_descr,
        "admin_status": normalize_status(raw.get("ifAdminStatus")),
        "oper_status": normalize_status(raw.get("ifOperStatus")),
        "vlan": vlan,
        "mac": as_str(raw.get("ifPhysAddress")),
    }
    return fields, defaulted


class LibreNMSSource(UpstreamSource):
    """Inventory adapter for the LibreNMS v0 REST API (X-Auth-Token auth)."""

    source_name = "librenms"

    def __init__(
        self,
        base_url: Optional[str],
        api_token: Optional[str],
        *,
        device_filter: Optional[DeviceFilter] = None,
        timeout: int = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
    ):
        super().__init__(base_url, api_token, timeout=timeout, verify_ssl=verify_ssl)
        self.device_filter = device_filter or DeviceFilter()

    def _auth_headers(self, credential: str) -> Dict[str, str]:
        return {"X-Auth-Token": credential}

    def _get_list(self, endpoint: str, key: str, params: Optional[dict] = None) -> List[Any]:
        """GET endpoint and return the list stored under key.

        Raises:
            UpstreamError: the body is not an object, or key holds something
                other than a list.
        """
        data = self._get(endpoint, params=params)
        if data is None:
            return []
        if not isinstance(data, dict):
            raise UpstreamError(self.source_name, endpoint, detail="unexpected payload shape")
        items = data.get(key)
        if items is None:
            return []
        if not isinstance(items, list):
            raise UpstreamError(self.source_name, endpoint, detail="unexpected payload shape")
        return items

    def _get_ports(self) -> List[dict]:
        return self._get_list("/api/v0/ports", "ports", params={"columns": ",".join(PORT_COLUMNS)})

    def _get_devices(self) -> List[dict]:
        return self._get_list("/api/v0/devices", "devices", params={"columns": ",".join(DEVICE_COLUMNS)})

    def _get_neighbor_map(self) -> Dict[int, str]:
        """local port id -> remote hostname. Topology is optional; failures give {}."""
        try:
            links = self._get_list("/api/v0/links", "links")
        except UpstreamError as exc:
            self.logger.info("Links endpoint not available, continuing without neighbor data: %s", exc)
            return {}

        neighbors: Dict[int, str] = {}
        for link in links:
            if not isinstance(link, dict):
                continue
            local_port_id = as_int(link.get("local_port_id"))
            remote = as_str(link.get("remote_hostname"))
            if local_port_id is not None and remote:
                neighbors[local_port_id] = remote
        return neighbors

    def fetch_inventory(self) -> Inventory:
        self.logger.info("Fetching inventory from LibreNMS: %s", self.base_url)

        # Ports and devices are both required; an UpstreamError from either propagates.
        with ThreadPoolExecutor(max_workers=2) as executor:
            ports_future = executor.submit(self._get_ports)
            devices_future = executor.submit(self._get_devices)
            raw_ports = ports_future.result()
            raw_devices = devices_future.result()

        neighbor_map = self._get_neighbor_map()

        self.logger.info(
            "LibreNMS returned %s devices, %s ports, %s links",
            len(raw_devices),
            len(raw_ports),
            len(neighbor_map),
        )

        hostnames: Dict[int, str] = {}
        ips: Dict[int, Optional[str]] = {}
        for d in raw_devices:
            if not isinstance(d, dict):
                continue
            device_id = as_int(d.get("device_id"))
            if device_id is None:
                self.logger.warning("Skipping LibreNMS device without device_id: %s", d)
                continue
            hostnames[device_id] = as_str(d.get("hostname")) or fallback_hostname(device_id)
            ips[device_id] = as_str(d.get("ip"))

        allowed: Dict[int, bool] = {}

        def _allowed(device_id: int) -> bool:
            if device_id not in allowed:
                hostname = hostnames.get(device_id) or fallback_hostname(device_id)
                allowed[device_id] = self.device_filter.allows(hostname, ips.get(device_id))
            return allowed[device_id]

        grouped: Dict[int, List[EnrichedPort]] = {}
        skipped = 0
        for raw in raw_ports:
            if not isinstance(raw, dict):
                skipped += 1
                continue
            try:
                fields, defaulted = parse_port(raw)
            except RecordParseError as exc:
                self.logger.warning("Skipping malformed LibreNMS port record: %s", exc)
                skipped += 1
                continue

            device_id = fields["device_id"]
            if not _allowed(device_id):
                continue
            if defaulted:
                self.logger.debug("Port %s: defaulted fields %s", fields["port_id"], defaulted)

            grouped.setdefault(device_id, []).append(
                EnrichedPort(
                    device_name=hostnames.get(device_id) or fallback_hostname(device_id),
                    neighbor=neighbor_map.get(fields["port_id"]),
                    **fields,
                )
            )

        if skipped:
            self.logger.warning("Skipped %s malformed LibreNMS port records", skipped)
        if self.device_filter.active:
            self.logger.info(
                "Device filter kept %s of %s devices with ports",
                sum(1 for ok in allowed.values() if ok),
                len(allowed),
            )

        return sort_devices(
            DeviceWithPorts(
                device_id=device_id,
                hostname=hostnames.get(device_id) or fallback_hostname(device_id),
                ports=sort_ports(ports),
            )
            for device_id, ports in grouped.items()
        )
