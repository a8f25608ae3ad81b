"""
Shared pytest fixtures for XPlane-Arduino-Bridge tests
"""
import asyncio
import json
import os
import tempfile

import pytest
import requests

from xplane_arduino_bridge.core.mappings import MappingRegistry, TOGGLE_DATAREF
from xplane_arduino_bridge.core.pipeline import TransformKind
from xplane_arduino_bridge.core.resolver import IdentifierResolver

REST_URL = "http://localhost:8086/api/v2"


class FakeResponse:
    """Minimal stand-in for requests.Response"""
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")

    def json(self):
        return self.payload


class FakeXPlaneAPI:
    """
    Fake requests.Session answering X-Plane REST lookups and value reads.
    """
    def __init__(self, datarefs=None, commands=None, values=None):
        self.tables = {
            "datarefs": dict(datarefs or {}),
            "commands": dict(commands or {}),
        }
        self.values = dict(values or {})
        self.calls = []
        self.fail = False

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        if self.fail:
            raise requests.ConnectionError("X-Plane is not running")

        if url.endswith("/value"):
            identifier = int(url.split("/")[-2])
            if identifier not in self.values:
                return FakeResponse({"error_code": "dataref_not_found"}, 404)
            return FakeResponse({"data": self.values[identifier]})

        category = url.rsplit("/", 1)[-1]
        name = params["filter[name]"]
        table = self.tables[category]
        if name not in table:
            return FakeResponse({"data": []})
        return FakeResponse({"data": [{"id": table[name], "name": name}]})

    def lookup_count(self, name):
        return sum(1 for _, params in self.calls if params and params.get("filter[name]") == name)


class FakeWebSocket:
    """
    Fake X-Plane WebSocket connection.
    Frames pushed with feed() are yielded by async iteration;
    drop() ends the iteration like a closed socket.
    """
    def __init__(self):
        self.sent = []
        self.closed = False
        self.incoming = asyncio.Queue()

    async def send(self, data):
        self.sent.append(json.loads(data))

    async def close(self):
        self.closed = True
        self.incoming.put_nowait(None)

    def feed(self, message):
        self.incoming.put_nowait(json.dumps(message))

    def drop(self):
        self.incoming.put_nowait(None)

    def sent_of_type(self, message_type):
        return [m for m in self.sent if m["type"] == message_type]

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.incoming.get()
        if item is None:
            raise StopAsyncIteration
        return item


@pytest.fixture
def temp_config_file():
    """Create a temporary config file for testing"""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        f.write('{}')
        temp_path = f.name

    yield temp_path

    # Cleanup
    if os.path.exists(temp_path):
        os.remove(temp_path)


@pytest.fixture
def registry():
    """Registry with a small MCP-like panel"""
    registry = MappingRegistry()
    registry.add_dataref('sim/cockpit/autopilot/altitude', 'set_altitude',
                         threshold=100, transform=TransformKind.ROUND)
    registry.add_dataref('sim/cockpit/autopilot/heading_mag', 'set_heading',
                         threshold=1, transform=TransformKind.ROUND)
    registry.add_boolean_dataref('sim/cockpit2/autopilot/heading_status', 'heading_led')
    registry.add_value_map_dataref('sim/cockpit2/engine/actuators/throttle_mode', 'thr_mode',
                                   {2: "IDLE", 3: "CLB"})

    registry.add_rotary_encoder_commands('altitude_encoder',
                                         'sim/autopilot/altitude_up',
                                         'sim/autopilot/altitude_down')
    registry.add_rotary_encoder_commands('course_encoder',
                                         ['sim/radios/obs1_up', 'sim/radios/obs2_up'],
                                         ['sim/radios/obs1_down', 'sim/radios/obs2_down'])
    registry.add_momentary_switch_command('heading_hold', 'sim/autopilot/heading', duration=0.1)
    registry.add_toggle_switch_dataref('beacon', 'sim/cockpit2/switches/beacon_on')
    registry.add_momentary_switch_dataref('strobe_button', 'sim/cockpit2/switches/strobe_lights_on',
                                          TOGGLE_DATAREF)
    return registry


@pytest.fixture
def xplane_api():
    """Fake X-Plane REST API knowing the registry fixture's names"""
    return FakeXPlaneAPI(
        datarefs={
            'sim/cockpit/autopilot/altitude': 101,
            'sim/cockpit/autopilot/heading_mag': 102,
            'sim/cockpit2/autopilot/heading_status': 103,
            'sim/cockpit2/engine/actuators/throttle_mode': 104,
            'sim/cockpit2/switches/beacon_on': 105,
            'sim/cockpit2/switches/strobe_lights_on': 106,
        },
        commands={
            'sim/autopilot/altitude_up': 201,
            'sim/autopilot/altitude_down': 202,
            'sim/radios/obs1_up': 203,
            'sim/radios/obs2_up': 204,
            'sim/radios/obs1_down': 205,
            'sim/radios/obs2_down': 206,
            'sim/autopilot/heading': 207,
        },
        values={105: 0, 106: 1},
    )


@pytest.fixture
def resolver(xplane_api):
    return IdentifierResolver(REST_URL, session=xplane_api)


@pytest.fixture
def make_websocket():
    """Factory for fake X-Plane WebSocket connections"""
    return FakeWebSocket


@pytest.fixture
def make_response():
    """Factory for fake REST responses"""
    return FakeResponse
