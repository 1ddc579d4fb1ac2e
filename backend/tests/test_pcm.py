import base64

import numpy as np
import pytest

from walky.services.audio.pcm import (
    decode_pcm_base64,
    encode_pcm_base64,
    float_to_int16,
    int16_to_float,
)


def test_extremes_map_to_plus_minus_32767():
    assert float_to_int16([-1.0, 0.0, 1.0]).tolist() == [-32767, 0, 32767]


def test_out_of_range_saturates_and_never_produces_min_int16():
    out = float_to_int16([-5.0, -1.0000001, 1.5, 7.0])
    assert out.tolist() == [-32767, -32767, 32767, 32767]
    assert out.dtype == np.int16


def test_encode_truncates_toward_zero():
    # 0.5 * 32767 = 16383.5 ; -0.5 * 32767 = -16383.5
    assert float_to_int16([0.5, -0.5]).tolist() == [16383, -16383]


def test_nan_becomes_silence():
    assert float_to_int16([float("nan")]).tolist() == [0]


def test_decode_divides_by_32767():
    out = int16_to_float([32767, -32767, 0])
    assert out.tolist() == pytest.approx([1.0, -1.0, 0.0])


def test_base64_layout_is_little_endian_int16():
    encoded = encode_pcm_base64([1.0, -1.0])
    assert base64.b64decode(encoded) == b"\xff\x7f\x01\x80"
    assert decode_pcm_base64(encoded).tolist() == pytest.approx([1.0, -1.0])


def test_decode_rejects_odd_byte_count():
    with pytest.raises(ValueError):
        decode_pcm_base64(base64.b64encode(b"\x00\x01\x02").decode())
