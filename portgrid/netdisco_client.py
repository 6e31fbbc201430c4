import hashlib
import ipaddress
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Iterator, List, Optional, Sequence, Tuple
from urllib.parse import quote

from .aggregator import DEFAULT_TIMEOUT, UpstreamSource
from .errors import PortgridError, UpstreamError
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

DEFAULT_BATCH_SIZE = 5

# Port ids are device_id * PORT_ID_STRIDE + index within the device.
PORT_ID_STRIDE = 10000

# Non-IPv4 identities hash into [2**32, 2**32 + 2**39): disjoint from every IPv4
# id and small enough that port ids stay below 2**53 for JSON consumers.
_HASHED_ID_OFFSET = 2**32
_HASHED_ID_BITS = 39


def device_id_for(identity: str) -> int:
    """Derive a stable numeric device id from a NetDisco device identity.

    IPv4 addresses pack into their 32-bit integer value, so distinct addresses
    never collide. Anything else (IPv6, hostnames) uses a SHA-256 based hash
    outside the IPv4 range.
    """
    try:
        return int(ipaddress.IPv4Address(identity.strip()))
    except ValueError:
        pass
    digest = hashlib.sha256(identity.strip().lower().encode("utf-8")).digest()
    folded = int.from_bytes(digest[:8], "big") % (2**_HASHED_ID_BITS)
    return _HASHED_ID_OFFSET + folded


def chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


class NetDiscoSource(UpstreamSource):
    """Inventory adapter for the NetDisco v1 REST API (Bearer auth).

    Devices are listed once; ports and neighbors are then fetched per device in
    fixed-size batches. A device whose calls fail keeps an empty port list or
    loses its neighbor data, never the whole inventory.
    """

    source_name = "netdisco"

    def __init__(
        self,
        base_url: Optional[str],
        api_key: Optional[str],
        *,
        device_filter: Optional[DeviceFilter] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout: int = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
    ):
        super().__init__(base_url, api_key, timeout=timeout, verify_ssl=verify_ssl)
        self.device_filter = device_filter or DeviceFilter()
        self.batch_size = max(1, int(batch_size))

    def _auth_headers(self, credential: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {credential}"}

    def _device_endpoint(self, ip: str, leaf: str) -> str:
        return f"/api/v1/object/device/{quote(ip, safe='')}/{leaf}"

    def _get_records(self, endpoint: str) -> List[dict]:
        """GET an endpoint that answers a JSON array and keep its object entries."""
        data = self._get(endpoint)
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamError(self.source_name, endpoint, detail="unexpected payload shape")
        return [r for r in data if isinstance(r, dict)]

    def get_devices(self) -> List[dict]:
        return [d for d in self._get_records("/api/v1/search/device") if as_str(d.get("ip"))]

    def get_ports(self, ip: str) -> List[dict]:
        return self._get_records(self._device_endpoint(ip, "ports"))

    def get_neighbors(self, ip: str) -> List[dict]:
        return self._get_records(self._device_endpoint(ip, "neighbors"))

    @staticmethod
    def _neighbor_map(neighbors: List[dict]) -> Dict[str, str]:
        """local port name -> remote device name."""
        mapping: Dict[str, str] = {}
        for n in neighbors:
            remote = as_str(n.get("remote_device")) or as_str(n.get("remote_name"))
            local_port = as_str(n.get("port")) or as_str(n.get("remote_port"))
            if remote and local_port:
                mapping[local_port] = remote
        return mapping

    def _build_device(
        self,
        device: dict,
        ports_future: "Future[List[dict]]",
        neighbors_future: "Future[List[dict]]",
    ) -> DeviceWithPorts:
        ip = as_str(device.get("ip")) or ""
        device_id = device_id_for(ip)
        hostname = as_str(device.get("dns")) or as_str(device.get("name")) or ip

        try:
            raw_ports = ports_future.result()
        except PortgridError as exc:
            self.logger.warning("No ports available for device %s: %s", ip, exc)
            raw_ports = []

        try:
            neighbor_map = self._neighbor_map(neighbors_future.result())
        except PortgridError as exc:
            self.logger.info("No neighbor data for device %s: %s", ip, exc)
            neighbor_map = {}

        ports: List[EnrichedPort] = []
        for index, p in enumerate(raw_ports):
            port_id = device_id * PORT_ID_STRIDE + index
            if_name = as_str(p.get("port")) or f"port-{port_id}"
            ports.append(
                EnrichedPort(
                    port_id=port_id,
                    device_id=device_id,
                    device_name=hostname,
                    if_name=if_name,
                    if_alias=as_str(p.get("name")),
                    if_descr=as_str(p.get("descr")) or if_name,
                    admin_status=normalize_status(p.get("up_admin")),
                    oper_status=normalize_status(p.get("up")),
                    vlan=as_int(p.get("vlan")),
                    mac=as_str(p.get("mac")),
                    neighbor=neighbor_map.get(if_name),
                )
            )

        return DeviceWithPorts(device_id=device_id, hostname=hostname, ports=sort_ports(ports))

    def _fetch_batch(self, batch: Sequence[dict]) -> List[DeviceWithPorts]:
        """Fetch ports and neighbors for every device of a batch concurrently.

        Returns only after every call in the batch has finished.
        """
        with ThreadPoolExecutor(max_workers=2 * len(batch)) as executor:
            pending: List[Tuple[dict, Future, Future]] = [
                (
                    device,
                    executor.submit(self.get_ports, as_str(device.get("ip"))),
                    executor.submit(self.get_neighbors, as_str(device.get("ip"))),
                )
                for device in batch
            ]

        results: List[DeviceWithPorts] = []
        for device, ports_future, neighbors_future in pending:
            try:
                results.append(self._build_device(device, ports_future, neighbors_future))
            except Exception as exc:  # noqa: BLE001
                self.logger.error("Failed to build device data for %s: %s", device.get("ip"), exc)
        return results

    def fetch_inventory(self) -> Inventory:
        self.logger.info("Fetching inventory from NetDisco: %s", self.base_url)

        devices = self.get_devices()
        self.logger.info("Found %s devices in NetDisco", len(devices))

        if self.device_filter.active:
            devices = [
                d
                for d in devices
                if self.device_filter.allows(
                    as_str(d.get("dns")) or as_str(d.get("name")) or as_str(d.get("ip")),
                    as_str(d.get("ip")),
                )
            ]
            self.logger.info("Device filter kept %s devices", len(devices))

        results: List[DeviceWithPorts] = []
        for batch in chunked(devices, self.batch_size):
            results.extend(self._fetch_batch(batch))

        return sort_devices(results)
