"""
Telemetry parser for cec-ctl output.

cec-ctl prints the messages it sends and receives as indented text, e.g. for
``--give-audio-status``::

    Transmit from Playback Device 2 to Audio System (8 to 5):
    GIVE_AUDIO_STATUS (0x71)
        Received from Audio System (5):
        REPORT_AUDIO_STATUS (0x7a):
            aud-mute-status: off (0x00)
            aud-vol-status: 40 (0x28)

The parser pulls the interesting fields out of that text. It is tolerant:
missing or malformed fields come back as None rather than raising.
"""

import re

from .cec_types import AudioStatus, ProtocolVersion
from .constants import MUTE_MARKER, VERSION_MARKER, VOLUME_MARKER

_VERSION_RE = re.compile(rf"{VERSION_MARKER}: (\S+)")  # cec-version: version-1-4 (0x05)
_MUTE_RE = re.compile(rf"{MUTE_MARKER}: (\w+)")  # aud-mute-status: off (0x00)
_VOLUME_RE = re.compile(rf"{VOLUME_MARKER}: (\d+)")  # aud-vol-status: 40 (0x28)


class TelemetryParser:
    """Extracts typed values from cec-ctl output."""

    @staticmethod
    def parse_version(text: str) -> ProtocolVersion:
        """
        Extract the CEC version reported by a device.

        Args:
            text: Raw cec-ctl output

        Returns:
            ProtocolVersion: Version tag, or None when the marker is missing
        """
        match = _VERSION_RE.search(text or "")
        return ProtocolVersion(match.group(1) if match else None)

    @staticmethod
    def parse_audio_status(text: str) -> AudioStatus:
        """
        Extract the mute flag and volume level reported by an audio system.

        The two markers are read independently. Only ``on`` counts as muted,
        so a missing mute marker reads as not muted. A missing or non-numeric
        volume marker gives a level of None.

        Args:
            text: Raw cec-ctl output

        Returns:
            AudioStatus: Parsed status
        """
        text = text or ""
        mute = _MUTE_RE.search(text)
        volume = _VOLUME_RE.search(text)
        return AudioStatus(
            muted=bool(mute) and mute.group(1) == "on",
            volume_level=int(volume.group(1)) if volume else None,
        )
