"""
Constants for the CEC control service.

This module defines constants used throughout the pycecctl package.
"""

# Transceiver executable
CEC_CTL_COMMAND = "cec-ctl"
CEC_CTL_PARAMS = "-s --cec-version-1.4"  # single command mode, pin CEC 1.4

# Volume convergence defaults (what works for a typical AV receiver)
DEFAULT_VOLUME_STEP = 0.5
DEFAULT_COMMAND_DELAY_MS = 50

# Watchdogs
DEFAULT_COMMAND_TIMEOUT = 10.0  # seconds
DEFAULT_TEARDOWN_TIMEOUT = 15.0  # seconds

# cec-ctl arguments
ARG_CLEAR = "--clear"
ARG_PLAYBACK = "--playback"
ARG_GET_CEC_VERSION = "--get-cec-version"
ARG_GIVE_AUDIO_STATUS = "--give-audio-status"
ARG_USER_CONTROL_PRESSED = "--user-control-pressed"
ARG_USER_CONTROL_RELEASED = "--user-control-released"
ARG_ACTIVE_SOURCE = "--active-source"
ARG_STANDBY = "--standby"
ARG_IMAGE_VIEW_ON = "--image-view-on"
ARG_TARGET = "-t"

# User control (remote key) codes
UI_CMD_VOLUME_UP = "volume-up"
UI_CMD_VOLUME_DOWN = "volume-down"
UI_CMD_MUTE = "mute"

# Telemetry markers
VERSION_MARKER = "cec-version"
MUTE_MARKER = "aud-mute-status"
VOLUME_MARKER = "aud-vol-status"

# Transport defaults
DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 3000
WEBSOCKET_PATH = "/socket"

# Values accepted as "true" for mute requests
TRUTHY_VALUES = ("1", "true", "on", "yes")
FALSY_VALUES = ("0", "false", "off", "no")
