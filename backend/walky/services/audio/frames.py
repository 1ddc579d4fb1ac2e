"""
Audio Frames

An inbound `audio-data` message carries exactly one of two wire formats:
- LegacyBlobFrame: `audioBlob`, an opaque encoded blob from older clients
- PcmFrame: `audioData` (base64 little-endian int16 samples) plus the
  declared `sampleRate` / `channelCount`

The relay forwards either one verbatim. Nothing here decodes or transcodes
audio; the declared rate and channel count are trusted as sent.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from walky.services.exceptions import InvalidArgumentError

LEGACY_FORMAT = "legacy"
PCM_FORMAT = "pcm"


@dataclass(frozen=True)
class LegacyBlobFrame:
    blob: Any

    format = LEGACY_FORMAT

    def to_payload(self) -> Dict[str, Any]:
        return {"audioBlob": self.blob}


@dataclass(frozen=True)
class PcmFrame:
    samples: Any
    sample_rate: Optional[int] = None
    channel_count: Optional[int] = None

    format = PCM_FORMAT

    def to_payload(self) -> Dict[str, Any]:
        payload = {"audioData": self.samples}
        if self.sample_rate is not None:
            payload["sampleRate"] = self.sample_rate
        if self.channel_count is not None:
            payload["channelCount"] = self.channel_count
        return payload


AudioFrame = Union[LegacyBlobFrame, PcmFrame]


def parse_frame(message: Dict[str, Any]) -> AudioFrame:
    """
    Build a frame from an inbound audio-data message.

    `audioData` wins when both fields are present. `channels` is accepted as
    an alias of `channelCount`.

    Raises:
        InvalidArgumentError if the message carries no audio
    """
    audio_data = message.get("audioData")
    if audio_data:
        channel_count = message.get("channelCount")
        if channel_count is None:
            channel_count = message.get("channels")
        return PcmFrame(
            samples=audio_data,
            sample_rate=message.get("sampleRate"),
            channel_count=channel_count,
        )

    audio_blob = message.get("audioBlob")
    if audio_blob:
        return LegacyBlobFrame(blob=audio_blob)

    raise InvalidArgumentError("No audio data found in message")
