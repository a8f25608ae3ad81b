#!/usr/bin/env python3

"""
Zibo 737-800 mappings.
MCP displays, encoders, light switches, mode buttons and their LEDs.

Part of the XPlane-Arduino-Bridge project.
"""

from xplane_arduino_bridge import constants
from xplane_arduino_bridge.core.mappings import MappingRegistry
from xplane_arduino_bridge.core.pipeline import TransformKind

AP = 'laminar/B738/autopilot'


def initialize_mappings(registry: MappingRegistry) -> None:
    # DISPLAYS
    registry.add_dataref(f'{AP}/mcp_speed_dial_kts', 'set_speed',
                         threshold=1, transform=TransformKind.ROUND)
    registry.add_dataref(f'{AP}/mcp_hdg_dial', 'set_heading',
                         threshold=1, transform=TransformKind.ROUND)
    registry.add_dataref(f'{AP}/mcp_alt_dial', 'set_altitude',
                         threshold=100, transform=TransformKind.ROUND)
    # The V/S display shows the captain's course
    registry.add_dataref(f'{AP}/course_pilot', 'set_vertical_speed',
                         threshold=1, transform=TransformKind.ROUND)

    # ENCODERS
    registry.add_rotary_encoder_commands(
        'speed_encoder',
        'sim/autopilot/airspeed_up',
        'sim/autopilot/airspeed_down',
    )
    registry.add_rotary_encoder_commands(
        'heading_encoder',
        f'{AP}/heading_up',
        f'{AP}/heading_dn',
    )
    registry.add_rotary_encoder_commands(
        'altitude_encoder',
        f'{AP}/altitude_up',
        f'{AP}/altitude_dn',
    )
    registry.add_rotary_encoder_commands(
        'vertical_speed_encoder',
        [f'{AP}/course_pilot_up', f'{AP}/course_copilot_up'],
        [f'{AP}/course_pilot_dn', f'{AP}/course_copilot_dn'],
    )

    # SWITCHES
    registry.add_toggle_switch_commands('at_arm', f'{AP}/autothrottle_arm_toggle')
    registry.add_toggle_switch_commands('flight_director', f'{AP}/flight_director_toggle')
    registry.add_toggle_switch_dataref('landing_l', 'laminar/B738/switch/land_lights_left_pos')
    registry.add_toggle_switch_dataref('landing_r', 'laminar/B738/switch/land_lights_right_pos')
    registry.add_toggle_switch_dataref('runway_l', 'laminar/B738/toggle_switch/rwy_light_left')
    registry.add_toggle_switch_dataref('runway_r', 'laminar/B738/toggle_switch/rwy_light_right')
    registry.add_toggle_switch_commands('taxi', 'laminar/B738/toggle_switch/taxi_light_brigh_toggle')
    registry.add_toggle_switch_commands(
        'position_strobe',
        'laminar/B738/toggle_switch/position_light_up',
        'laminar/B738/toggle_switch/position_light_down',
    )
    registry.add_toggle_switch_commands(
        'position_steady',
        'laminar/B738/toggle_switch/position_light_down',
        'laminar/B738/toggle_switch/position_light_up',
    )
    registry.add_toggle_switch_dataref('anti_col', 'sim/cockpit2/switches/beacon_on')
    registry.add_toggle_switch_dataref('wing', 'laminar/B738/toggle_switch/wing_light')
    registry.add_toggle_switch_dataref('logo', 'laminar/B738/toggle_switch/logo_light')
    registry.add_toggle_switch_commands('disengage', f'{AP}/disconnect_toggle')

    # MOMENTARY SWITCHES
    for switch, command in (
            ('speed_hold', 'speed_press'),
            ('heading_hold', 'hdg_sel_press'),
            ('l_nav', 'lnav_press'),
            ('v_nav', 'vnav_press'),
            ('altitude_hold', 'alt_hld_press'),
            ('vertical_speed_hold', 'vs_press'),
            ('app', 'app_press'),
            ('loc', 'vorloc_press'),
            ('cmd', 'cmd_a_press'),
    ):
        registry.add_momentary_switch_command(switch, f'{AP}/{command}',
                                              duration=constants.MOMENTARY_PRESS_DURATION)

    # LEDS
    registry.add_boolean_dataref(f'{AP}/hdg_sel_status', 'heading_led')
    registry.add_boolean_dataref(f'{AP}/alt_hld_status', 'altitude_led')
    registry.add_boolean_dataref(f'{AP}/vs_status', 'vertical_speed_led')
    registry.add_boolean_dataref(f'{AP}/lnav_status', 'l_nav_led')
    registry.add_boolean_dataref(f'{AP}/vnav_status1', 'v_nav_led')
    registry.add_boolean_dataref(f'{AP}/vorloc_status', 'loc_led')
    registry.add_boolean_dataref(f'{AP}/app_status', 'app_led')
    registry.add_boolean_dataref(f'{AP}/cmd_a_status', 'cmd_led')
