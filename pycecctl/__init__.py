"""
Python service for controlling HDMI-CEC devices through cec-ctl.

This package drives an AV receiver or TV over the CEC bus: volume, mute, active
source and power, with an absolute volume setting built from up/down pulses.
"""

from .cec_types import AudioStatus, CecConfig, CecResult, ProtocolVersion
from .controller import CecController
from .exceptions import CecError

__version__ = "0.1.0"
__all__ = ["CecController", "CecError", "CecConfig", "CecResult", "AudioStatus", "ProtocolVersion"]
