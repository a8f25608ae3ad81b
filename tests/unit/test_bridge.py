"""
Unit tests for the Bridge orchestrator
"""
import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from xplane_arduino_bridge.core.bridge import Bridge
from xplane_arduino_bridge.core.mappings import InputKind
from xplane_arduino_bridge.core.session import SessionState
from xplane_arduino_bridge.core.settings import Settings


@pytest.fixture
def settings(temp_config_file):
    settings = Settings(temp_config_file)
    settings.set('serial', 'enabled', False)
    return settings


@pytest.fixture
def bridge(settings, registry, resolver):
    return Bridge(settings, registry=registry, resolver=resolver, serial_link=MagicMock())


async def connect(bridge, ws):
    with patch('websockets.connect', new=AsyncMock(return_value=ws)):
        await bridge.session.connect()


class TestBridgeSetup:
    """Tests for building the bridge"""

    def test_loads_aircraft_from_settings(self, settings):
        bridge = Bridge(settings, serial_link=MagicMock())

        assert bridge.aircraft == 'zibo_737'
        assert bridge.registry.outbound('laminar/B738/autopilot/mcp_alt_dial').target_command == 'set_altitude'
        assert bridge.registry.inbound('heading_hold').kind is InputKind.COMMAND

    def test_aircraft_argument_overrides_settings(self, settings):
        bridge = Bridge(settings, aircraft='ff_757', serial_link=MagicMock())

        assert bridge.aircraft == 'ff_757'
        assert bridge.registry.inbound('altitude_encoder_increment').actions == ['1-sim/comm/AP/altUP']

    def test_unknown_aircraft(self, settings):
        with pytest.raises(KeyError):
            Bridge(settings, aircraft='concorde', serial_link=MagicMock())

    def test_session_uses_settings(self, settings):
        settings.set('xplane', 'host', 'sim-pc')
        bridge = Bridge(settings, serial_link=MagicMock())

        assert bridge.session.url == "ws://sim-pc:8086/api/v2"
        assert bridge.resolver.rest_url == "http://sim-pc:8086/api/v2"

    def test_serial_callback_is_installed(self, bridge):
        assert bridge.serial_link.message_callback == bridge._on_device_message


class TestDeviceMessages:
    """Tests for messages coming from the Arduino"""

    @pytest.mark.asyncio
    async def test_unknown_input_sends_nothing(self, bridge, make_websocket):
        ws = make_websocket()
        await connect(bridge, ws)
        sent_before = len(ws.sent)

        assert await bridge.handle_device_message({"user_input": "no_such_switch"}) is False

        assert len(ws.sent) == sent_before
        assert bridge.unknown_inputs == 1
        await bridge.session.close()

    @pytest.mark.asyncio
    async def test_malformed_messages(self, bridge, make_websocket):
        ws = make_websocket()
        await connect(bridge, ws)
        sent_before = len(ws.sent)

        assert await bridge.handle_device_message({"user_input": 5}) is False
        assert await bridge.handle_device_message({"cmd": "x"}) is False
        assert await bridge.handle_device_message("beacon_on") is False

        assert len(ws.sent) == sent_before
        await bridge.session.close()

    @pytest.mark.asyncio
    async def test_encoder_executes_command(self, bridge, make_websocket):
        ws = make_websocket()
        await connect(bridge, ws)

        assert await bridge.handle_device_message({"user_input": "altitude_encoder_increment"}) is True

        message = ws.sent_of_type("command_set_is_active")[0]
        assert message["params"] == {"commands": [{"id": 201, "is_active": True, "duration": 0}]}
        await bridge.session.close()

    @pytest.mark.asyncio
    async def test_momentary_switch_uses_duration(self, bridge, make_websocket):
        ws = make_websocket()
        await connect(bridge, ws)

        await bridge.handle_device_message({"user_input": "heading_hold"})

        message = ws.sent_of_type("command_set_is_active")[0]
        assert message["params"]["commands"] == [{"id": 207, "is_active": True, "duration": 0.1}]
        await bridge.session.close()

    @pytest.mark.asyncio
    async def test_toggle_switch_writes_dataref(self, bridge, make_websocket):
        ws = make_websocket()
        await connect(bridge, ws)

        await bridge.handle_device_message({"user_input": "beacon_on"})
        await bridge.handle_device_message({"user_input": "beacon_off"})

        messages = ws.sent_of_type("dataref_set_values")
        assert [m["params"] for m in messages] == [
            {"datarefs": [{"id": 105, "value": 1}]},
            {"datarefs": [{"id": 105, "value": 0}]},
        ]
        await bridge.session.close()

    @pytest.mark.asyncio
    async def test_toggle_button_inverts_dataref(self, bridge, make_websocket):
        ws = make_websocket()
        await connect(bridge, ws)

        await bridge.handle_device_message({"user_input": "strobe_button"})

        message = ws.sent_of_type("dataref_set_values")[0]
        assert message["params"] == {"datarefs": [{"id": 106, "value": 0}]}
        await bridge.session.close()

    @pytest.mark.asyncio
    async def test_serial_messages_are_dispatched(self, bridge, make_websocket):
        ws = make_websocket()
        await connect(bridge, ws)

        bridge._on_device_message({"user_input": "course_encoder_decrement"})
        await asyncio.sleep(0.1)

        message = ws.sent_of_type("command_set_is_active")[0]
        assert [c["id"] for c in message["params"]["commands"]] == [205, 206]
        assert not bridge.dispatch_tasks
        await bridge.session.close()

    @pytest.mark.asyncio
    async def test_session_errors_are_contained(self, bridge):
        bridge.session.execute_commands = AsyncMock(side_effect=RuntimeError("boom"))

        assert await bridge.handle_device_message({"user_input": "heading_hold"}) is False
        assert bridge.error_count == 1


class TestValueForwarding:
    """Tests for values going to the Arduino"""

    @pytest.mark.asyncio
    async def test_values_are_sent_to_device(self, bridge, make_websocket):
        ws = make_websocket()
        await connect(bridge, ws)

        await bridge.session.handle_message(
            '{"type": "dataref_update_values", "data": {"101": 35000.2, "104": 3}}'
        )

        bridge.serial_link.send_command.assert_any_call('set_altitude', 35000)
        bridge.serial_link.send_command.assert_any_call('thr_mode', "CLB")
        await bridge.session.close()


class TestBridgeLifecycle:
    """Tests for starting and stopping the bridge"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self, bridge, make_websocket):
        ws = make_websocket()

        with patch('websockets.connect', new=AsyncMock(return_value=ws)):
            await bridge.start()
            await bridge.connect_task
            assert bridge.running
            assert bridge.session.connected

            status = bridge.get_status()
            assert status['aircraft'] == 'zibo_737'
            assert status['serial'] is None
            assert status['xplane']['state'] == 'subscribe_pending'

            await bridge.stop()

        assert not bridge.running
        assert bridge.session.state is SessionState.CLOSED
        assert ws.closed
        bridge.serial_link.start_reading.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_with_serial_enabled(self, settings, registry, resolver, make_websocket):
        settings.set('serial', 'enabled', True)
        serial_link = MagicMock()
        bridge = Bridge(settings, registry=registry, resolver=resolver, serial_link=serial_link)

        with patch('websockets.connect', new=AsyncMock(return_value=make_websocket())):
            await bridge.start()
            await bridge.stop()

        serial_link.start_reading.assert_called_once()
        serial_link.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_check_components_reconnects_serial(self, settings, registry, resolver):
        settings.set('serial', 'enabled', True)
        serial_link = MagicMock()
        serial_link.is_connected.return_value = False
        serial_link.auto_reconnect = AsyncMock(return_value=True)
        bridge = Bridge(settings, registry=registry, resolver=resolver, serial_link=serial_link)

        await bridge._check_components()

        serial_link.auto_reconnect.assert_awaited_once()

    def test_log_status_summary(self, bridge, caplog):
        caplog.set_level(logging.INFO, logger='bridge')

        bridge._log_status()

        records = [r for r in caplog.records if r.getMessage().startswith("Bridge Status")]
        assert len(records) == 1
        assert records[0].levelno == logging.INFO
        assert "X-Plane disconnected" in records[0].getMessage()
        assert "Arduino disconnected" in records[0].getMessage()
