"""
PCM Sample Conversion

Float samples in [-1.0, 1.0] <-> signed 16-bit integers, and the base64
little-endian byte layout PCM frames use on the wire.

Encoding clips to [-1.0, 1.0], scales by 32767 and truncates toward zero, so
-1.0 -> -32767 and 1.0 -> 32767. Out-of-range input saturates at +/-32767;
-32768 is never produced. Decoding divides by 32767.0, so an encode/decode
round-trip of the extremes is exact.

The relay never calls this; it exists for clients, tooling and tests.
"""
import base64
from typing import Sequence, Union

import numpy as np

from walky.config.constants import PCM_DECODE_SCALE, PCM_ENCODE_SCALE

SampleInput = Union[Sequence[float], np.ndarray]


def float_to_int16(samples: SampleInput) -> np.ndarray:
    audio = np.nan_to_num(np.asarray(samples, dtype=np.float64), nan=0.0)
    audio = np.clip(audio, -1.0, 1.0)
    return np.trunc(audio * PCM_ENCODE_SCALE).astype(np.int16)


def int16_to_float(samples: Union[Sequence[int], np.ndarray]) -> np.ndarray:
    return np.asarray(samples, dtype=np.int16).astype(np.float32) / PCM_DECODE_SCALE


def encode_pcm_base64(samples: SampleInput) -> str:
    """Float samples -> base64 of little-endian int16 bytes."""
    pcm = float_to_int16(samples).astype("<i2")
    return base64.b64encode(pcm.tobytes()).decode("ascii")


def decode_pcm_base64(data: str) -> np.ndarray:
    """base64 little-endian int16 bytes -> float samples."""
    raw = base64.b64decode(data)
    if len(raw) % 2:
        raise ValueError("PCM payload has an odd number of bytes")
    return int16_to_float(np.frombuffer(raw, dtype="<i2"))
