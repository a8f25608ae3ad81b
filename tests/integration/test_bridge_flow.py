"""
Integration tests for data flow between X-Plane and the Arduino panel
"""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from xplane_arduino_bridge.core.bridge import Bridge
from xplane_arduino_bridge.core.session import SessionState
from xplane_arduino_bridge.core.settings import Settings
from xplane_arduino_bridge.io.serial_link import SerialLink


class RecordingPort:
    """Open serial port recording every line written to it"""
    def __init__(self):
        self.is_open = True
        self.lines = []

    def write(self, data):
        self.lines.append(json.loads(data.decode('utf-8')))

    def close(self):
        self.is_open = False


class TestBridgeFlow:
    """Integration tests for the complete bridge"""

    @pytest.fixture
    def serial_link(self):
        link = SerialLink(port='/dev/ttyACM0')
        link.serial_conn = RecordingPort()
        link.start_reading = MagicMock(return_value=True)
        return link

    @pytest.fixture
    def settings(self, temp_config_file):
        settings = Settings(temp_config_file)
        settings.set('xplane', 'reconnect_delay', 0.01)
        return settings

    @pytest.mark.asyncio
    async def test_xplane_values_reach_panel(self, settings, registry, resolver, serial_link, make_websocket):
        """Dataref updates are transformed, filtered and written to the serial port"""
        ws = make_websocket()
        bridge = Bridge(settings, registry=registry, resolver=resolver, serial_link=serial_link)

        with patch('websockets.connect', new=AsyncMock(return_value=ws)):
            await bridge.start()
            await bridge.connect_task

            ws.feed({"type": "result", "request_id": 1, "success": True})
            ws.feed({"type": "dataref_update_values",
                     "data": {"101": 10000.0, "102": 269.6, "103": 1.0, "104": 2.0}})
            ws.feed({"type": "dataref_update_values", "data": {"101": 10040.0}})
            ws.feed({"type": "dataref_update_values", "data": {"101": 10100.0, "104": 3.0}})
            await asyncio.sleep(0.1)

            assert bridge.session.state is SessionState.STREAMING
            await bridge.stop()

        assert serial_link.serial_conn.lines == [
            {"cmd": "set_altitude", "value": 10000},
            {"cmd": "set_heading", "value": 270},
            {"cmd": "heading_led", "value": 1},
            {"cmd": "thr_mode", "value": "IDLE"},
            {"cmd": "set_altitude", "value": 10100},
            {"cmd": "thr_mode", "value": "CLB"},
        ]

    @pytest.mark.asyncio
    async def test_panel_inputs_reach_xplane(self, settings, registry, resolver, serial_link, make_websocket):
        """Lines read from the Arduino become X-Plane requests"""
        ws = make_websocket()
        bridge = Bridge(settings, registry=registry, resolver=resolver, serial_link=serial_link)

        with patch('websockets.connect', new=AsyncMock(return_value=ws)):
            await bridge.start()
            await bridge.connect_task
            serial_link.loop = asyncio.get_running_loop()

            serial_link._handle_line('{"user_input": "altitude_encoder_increment"}')
            serial_link._handle_line('Arduino booting...')
            serial_link._handle_line('{"user_input": "unknown_button"}')
            serial_link._handle_line('{"user_input": "beacon_on"}')
            await asyncio.sleep(0.1)

            await bridge.stop()

        assert len(ws.sent) == 3
        assert ws.sent_of_type("command_set_is_active")[0]["params"]["commands"][0]["id"] == 201
        assert ws.sent_of_type("dataref_set_values")[0]["params"]["datarefs"] == [{"id": 105, "value": 1}]
        assert bridge.unknown_inputs == 1
        assert serial_link.ignored_lines == 1

    @pytest.mark.asyncio
    async def test_reconnect_refreshes_panel(self, settings, registry, resolver, xplane_api,
                                             serial_link, make_websocket):
        """After X-Plane restarts every value is sent to the panel again"""
        first, second = make_websocket(), make_websocket()
        connect = AsyncMock(side_effect=[first, second])
        bridge = Bridge(settings, registry=registry, resolver=resolver, serial_link=serial_link)

        with patch('websockets.connect', new=connect):
            await bridge.start()
            await bridge.connect_task
            first.feed({"type": "dataref_update_values", "data": {"101": 5000}})
            await asyncio.sleep(0.05)

            first.drop()
            await asyncio.sleep(0.2)

            second.feed({"type": "dataref_update_values", "data": {"101": 5000}})
            await asyncio.sleep(0.05)
            await bridge.stop()

        assert connect.call_count == 2
        assert second.sent_of_type("dataref_subscribe_values")[0]["params"] == \
            first.sent_of_type("dataref_subscribe_values")[0]["params"]
        # Ids come from the cache on the second subscription
        assert xplane_api.lookup_count('sim/cockpit/autopilot/altitude') == 1
        assert serial_link.serial_conn.lines == [
            {"cmd": "set_altitude", "value": 5000},
            {"cmd": "set_altitude", "value": 5000},
        ]
