"""
Audio Module

- frames: LegacyBlobFrame | PcmFrame wire union
- pcm: float <-> int16 sample conversion (numpy)
- relay: AudioRelay fan-out

Usage:
    from walky.services.audio import AudioRelay, parse_frame
    from walky.services.audio.pcm import encode_pcm_base64
"""
from .frames import AudioFrame, LegacyBlobFrame, PcmFrame, parse_frame
from .relay import AudioRelay

__all__ = [
    "AudioFrame",
    "LegacyBlobFrame",
    "PcmFrame",
    "parse_frame",
    "AudioRelay",
]
