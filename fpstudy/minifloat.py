"""
minifloat.py: bit-level codec for the 8-bit "p3109" minifloat.

Layout (default): 1 sign | 3 exponent | 4 mantissa, exponent bias 3.

Rules, in plain words:
- NaN, +inf and -inf get their own reserved codes (see MinifloatLayout).
- Exponent field 0 means zero. There are no subnormals: anything smaller than
  the smallest normal flushes to a signed zero.
- Too-large magnitudes saturate to the largest finite value (not infinity).
- Mantissas round half away from zero.

Everything is derived from the layout, so other widths work too.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import cached_property

import numpy as np


@dataclass(frozen=True)
class MinifloatLayout:
    exponent_bits: int = 3
    mantissa_bits: int = 4
    exponent_bias: int = 3

    def __post_init__(self):
        # need at least one normal exponent plus the reserved all-ones field
        if self.exponent_bits < 2:
            raise ValueError(f"exponent_bits must be >= 2, got {self.exponent_bits}")
        if self.mantissa_bits < 1:
            raise ValueError(f"mantissa_bits must be >= 1, got {self.mantissa_bits}")

    @cached_property
    def n_bits(self) -> int:
        return 1 + self.exponent_bits + self.mantissa_bits

    @cached_property
    def sign_bit(self) -> int:
        return 1 << (self.exponent_bits + self.mantissa_bits)

    @cached_property
    def mantissa_mask(self) -> int:
        return (1 << self.mantissa_bits) - 1

    @cached_property
    def exponent_mask(self) -> int:
        return (1 << self.exponent_bits) - 1

    @cached_property
    def max_exp(self) -> int:
        # the all-ones exponent field is reserved for inf/nan
        return self.exponent_mask - 1

    @cached_property
    def nan_code(self) -> int:
        return (1 << self.n_bits) - 1

    @cached_property
    def pos_inf_code(self) -> int:
        return self.nan_code ^ self.sign_bit

    @cached_property
    def neg_inf_code(self) -> int:
        return self.nan_code - 1

    @cached_property
    def max_finite_code(self) -> int:
        return (self.max_exp << self.mantissa_bits) | self.mantissa_mask

    @cached_property
    def max_finite(self) -> float:
        return decode(self.max_finite_code, self)

    @cached_property
    def min_normal(self) -> float:
        return math.ldexp(1.0, 1 - self.exponent_bias)


DEFAULT_LAYOUT = MinifloatLayout()


def _saturate(negative: bool, layout: MinifloatLayout) -> int:
    return (layout.sign_bit if negative else 0) | layout.max_finite_code


def encode(value: float, layout: MinifloatLayout = DEFAULT_LAYOUT) -> int:
    """Round `value` to the nearest minifloat code (see module notes for the policy)."""
    value = float(value)
    if math.isnan(value):
        return layout.nan_code
    if math.isinf(value):
        return layout.pos_inf_code if value > 0 else layout.neg_inf_code

    negative = math.copysign(1.0, value) < 0
    sign = layout.sign_bit if negative else 0
    abs_v = abs(value)
    if abs_v == 0.0:
        return sign

    mant, exp = math.frexp(abs_v)           # abs_v = mant * 2**exp, mant in [0.5, 1)
    exp_val = exp + layout.exponent_bias - 1

    if exp_val > layout.max_exp:
        return _saturate(negative, layout)
    if exp_val < 1:
        return sign                         # flush to zero

    scaled = mant * 2.0 - 1.0               # [0.5, 1) -> [0, 1)
    mantissa = int(math.floor(scaled * (layout.mantissa_mask + 1) + 0.5))
    if mantissa > layout.mantissa_mask:
        # rounding carried out of the field: 1.111.. -> 10.000..
        mantissa = 0
        exp_val += 1
        if exp_val > layout.max_exp:
            return _saturate(negative, layout)

    return sign | (exp_val << layout.mantissa_bits) | mantissa


def decode(code: int, layout: MinifloatLayout = DEFAULT_LAYOUT) -> float:
    code = int(code)
    if code < 0 or code > layout.nan_code:
        raise ValueError(f"code {code:#x} does not fit in {layout.n_bits} bits")
    if code == layout.nan_code:
        return math.nan
    if code == layout.pos_inf_code:
        return math.inf
    if code == layout.neg_inf_code:
        return -math.inf

    negative = bool(code & layout.sign_bit)
    exponent = (code >> layout.mantissa_bits) & layout.exponent_mask
    mantissa = code & layout.mantissa_mask

    if exponent == 0:
        return -0.0 if negative else 0.0

    mant = 1.0 + mantissa / (layout.mantissa_mask + 1)
    value = math.ldexp(mant, exponent - layout.exponent_bias)
    return -value if negative else value


def encode_array(x, layout: MinifloatLayout = DEFAULT_LAYOUT) -> np.ndarray:
    """Element-wise encode; returns uint8 for layouts up to 8 bits, else uint16."""
    flat = np.asarray(x, dtype=np.float64).ravel()
    dtype = np.uint8 if layout.n_bits <= 8 else np.uint16
    codes = np.fromiter((encode(v, layout) for v in flat), dtype=dtype, count=flat.size)
    return codes.reshape(np.shape(x))


def decode_array(codes, layout: MinifloatLayout = DEFAULT_LAYOUT) -> np.ndarray:
    flat = np.asarray(codes).ravel()
    out = np.fromiter((decode(c, layout) for c in flat), dtype=np.float64, count=flat.size)
    return out.reshape(np.shape(codes))
