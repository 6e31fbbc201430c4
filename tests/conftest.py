"""
Shared fixtures for the inventory pipeline tests.

- make_response: fake requests.Response
- route_session: replaces an adapter's session.get with an endpoint router
- fake_clock: controllable time source for the inventory cache
"""
import threading
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest

from portgrid.models import DeviceWithPorts, EnrichedPort


def _make_response(payload: Any = None, status: int = 200, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 400
    resp.text = text
    resp.json.return_value = payload
    return resp


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def route_session():
    """
    Install a fake session.get on an adapter.

    Routes map endpoint paths (base URL stripped) to a response or an
    exception instance to raise. Unknown endpoints answer 404. Returns the
    list of recorded (endpoint, params, kwargs) calls.
    """

    def _install(source, routes: Dict[str, Any]):
        calls = []
        lock = threading.Lock()

        def fake_get(url: str, params: Optional[dict] = None, **kwargs):
            endpoint = url[len(source.base_url):]
            with lock:
                calls.append((endpoint, params, kwargs))
            result = routes.get(endpoint)
            if result is None:
                return _make_response(status=404, text="not found")
            if isinstance(result, Exception):
                raise result
            return result

        source.session.get = MagicMock(side_effect=fake_get)
        return calls

    return _install


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sample_inventory():
    def _port(port_id: int, device_id: int, name: str, hostname: str) -> EnrichedPort:
        return EnrichedPort(
            port_id=port_id,
            device_id=device_id,
            device_name=hostname,
            if_name=name,
            if_alias=None,
            if_descr=name,
            admin_status="up",
            oper_status="up",
        )

    return [
        DeviceWithPorts(device_id=1, hostname="core-1", ports=[_port(10, 1, "eth0", "core-1")]),
        DeviceWithPorts(device_id=2, hostname="edge-1", ports=[_port(20, 2, "eth0", "edge-1")]),
    ]
