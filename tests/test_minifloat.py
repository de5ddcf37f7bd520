import math

import numpy as np
import pytest

from fpstudy.minifloat import (
    DEFAULT_LAYOUT,
    MinifloatLayout,
    decode,
    decode_array,
    encode,
    encode_array,
)


def test_default_layout_codes():
    L = DEFAULT_LAYOUT
    assert L.n_bits == 8
    assert L.nan_code == 0xFF
    assert L.pos_inf_code == 0x7F
    assert L.neg_inf_code == 0xFE
    assert L.max_finite_code == 0x6F
    assert L.max_finite == 15.5
    assert L.min_normal == 0.25


@pytest.mark.parametrize(
    "value, code",
    [
        (1.0, 0x30),
        (1.5, 0x38),
        (-2.0, 0xC0),
        (0.25, 0x10),
        (15.5, 0x6F),
        (-15.5, 0xEF),
    ],
)
def test_exact_values(value, code):
    assert encode(value) == code
    assert decode(code) == value


def test_special_values_round_trip():
    assert math.isnan(decode(encode(float("nan"))))
    assert decode(encode(math.inf)) == math.inf
    assert decode(encode(-math.inf)) == -math.inf
    assert encode(math.inf) != encode(-math.inf)


def test_signed_zero():
    assert encode(0.0) == 0x00
    assert encode(-0.0) == 0x80
    z = decode(0x80)
    assert z == 0.0 and math.copysign(1.0, z) == -1.0


def test_zero_exponent_field_decodes_to_zero_regardless_of_mantissa():
    for m in range(16):
        assert decode(m) == 0.0
        neg = decode(0x80 | m)
        assert neg == 0.0 and math.copysign(1.0, neg) == -1.0


def test_underflow_flushes_to_signed_zero():
    assert encode(0.2) == 0x00
    assert encode(1e-30) == 0x00
    assert encode(-0.1) == 0x80
    back = decode(encode(-0.1))
    assert back == 0.0 and math.copysign(1.0, back) == -1.0


def test_overflow_saturates_instead_of_infinity():
    for big in (16.0, 100.0, 1e6, 1e300):
        assert encode(big) == 0x6F
        assert encode(-big) == 0xEF
        assert decode(encode(big)) == 15.5
        assert decode(encode(-big)) == -15.5
        assert math.isfinite(decode(encode(-big)))


def test_rounding_carry_into_exponent_saturates():
    # 15.9 rounds to 16.0, one binade above the largest exponent
    assert encode(15.9) == 0x6F
    # 1.99 rounds up to 2.0 (mantissa carry)
    assert decode(encode(1.99)) == 2.0


def test_mantissa_rounds_half_away_from_zero():
    # 1 + 1/32 is halfway between 1.0 and 1.0625
    assert decode(encode(1.03125)) == 1.0625
    assert decode(encode(-1.03125)) == -1.0625


def test_round_trip_within_one_ulp():
    for v in np.linspace(0.25, 15.5, 997):
        back = decode(encode(v))
        ulp = math.ldexp(1.0, math.frexp(v)[1] - 1 - DEFAULT_LAYOUT.mantissa_bits)
        assert abs(back - v) <= ulp
        assert decode(encode(-v)) == -back


def test_finite_inputs_never_hit_sentinels():
    sentinels = {DEFAULT_LAYOUT.nan_code, DEFAULT_LAYOUT.pos_inf_code, DEFAULT_LAYOUT.neg_inf_code}
    for v in np.concatenate([np.linspace(-1e4, 1e4, 2001), [-1e308, 1e308, -15.99, 15.99]]):
        assert encode(v) not in sentinels


def test_decode_rejects_out_of_range_code():
    with pytest.raises(ValueError):
        decode(256)
    with pytest.raises(ValueError):
        decode(-1)


def test_invalid_layout():
    with pytest.raises(ValueError):
        MinifloatLayout(exponent_bits=1)
    with pytest.raises(ValueError):
        MinifloatLayout(mantissa_bits=0)


def test_e4m3_like_layout():
    L = MinifloatLayout(exponent_bits=4, mantissa_bits=3, exponent_bias=7)
    assert L.n_bits == 8
    assert encode(1.0, L) == 0x38
    assert L.max_finite == 240.0
    assert decode(encode(1e4, L), L) == 240.0
    assert decode(encode(-1e4, L), L) == -240.0


def test_half_precision_like_layout():
    # 1-5-10 with bias 15 lines up with IEEE half for normal numbers
    L = MinifloatLayout(exponent_bits=5, mantissa_bits=10, exponent_bias=15)
    assert L.n_bits == 16
    assert encode(1.0, L) == 0x3C00
    assert L.max_finite == 65504.0
    assert L.nan_code == 0xFFFF
    assert decode(encode(np.pi, L), L) == float(np.float16(np.pi))


def test_array_helpers():
    codes = encode_array([1.0, float("nan"), -2.0, 100.0])
    assert codes.dtype == np.uint8
    assert codes.tolist() == [0x30, 0xFF, 0xC0, 0x6F]
    back = decode_array(codes)
    assert back[0] == 1.0 and np.isnan(back[1]) and back[2] == -2.0 and back[3] == 15.5

    wide = MinifloatLayout(exponent_bits=5, mantissa_bits=10, exponent_bias=15)
    assert encode_array([1.0], wide).dtype == np.uint16
