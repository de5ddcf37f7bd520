"""
precision.py: one arithmetic "backend" per Precision.

Every backend exposes the same small capability set so a kernel can be written
once and run over any format:

    zero, add, sub, mul, div, neg,
    to_double, from_double, is_nan, is_inf, is_zero,
    cast_vector, to_double_vector

Element types:
    fp64     -> numpy.float64
    fp32     -> numpy.float32
    tf32/bf16-> numpy.float32 already rounded to 10/7 fraction bits
    p3109_8  -> int code (see minifloat.py)

Reduced formats work like real hardware would: widen to float32, do the op,
round the result back onto the reduced grid. The minifloat decodes, operates
in float32 and re-encodes.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

import numpy as np

from .formats import Precision, fraction_bits, precision_from_string
from .minifloat import DEFAULT_LAYOUT, MinifloatLayout, decode, encode


def _quantize_mantissa(x, frac_bits: int) -> np.ndarray:
    """Round values to `frac_bits` fraction bits (ties-to-even), as float32.

    Rounds once, on the float64 bit pattern, so a double input never picks up
    a second rounding through float32. A carry out of the mantissa bumps the
    exponent (and the largest values round up to inf, like real RNE). The
    final cast to float32 is exact inside float32's normal range.
    """
    x64 = np.asarray(x, dtype=np.float64)
    shape = x64.shape
    flat = np.ascontiguousarray(x64.reshape(-1))
    shift = 52 - frac_bits
    u = flat.view(np.uint64)
    round_bit = np.uint64(1 << (shift - 1))
    lsb = (u >> np.uint64(shift)) & np.uint64(1)
    # add half-ulp minus one, plus the kept LSB: ties go to the even neighbour
    u_r = u + (round_bit - np.uint64(1)) + lsb
    u_q = (u_r >> np.uint64(shift)) << np.uint64(shift)
    out = u_q.view(np.float64)
    # NaN payloads can live in the dropped bits; keep NaN a NaN
    out = np.where(np.isnan(flat), flat, out)
    with np.errstate(over="ignore"):
        return out.astype(np.float32).reshape(shape)


def quantize_tf32(x) -> np.ndarray:
    return _quantize_mantissa(x, 10)


def quantize_bfloat16(x) -> np.ndarray:
    return _quantize_mantissa(x, 7)


# ---------- backends ----------

class Arithmetic:
    """Capability interface. Subclasses hold no mutable state."""

    precision: Precision

    def zero(self):
        return self.from_double(0.0)

    def add(self, a, b):
        raise NotImplementedError

    def sub(self, a, b):
        raise NotImplementedError

    def mul(self, a, b):
        raise NotImplementedError

    def div(self, a, b):
        raise NotImplementedError

    def neg(self, a):
        raise NotImplementedError

    def to_double(self, a) -> float:
        raise NotImplementedError

    def from_double(self, v: float):
        raise NotImplementedError

    def is_nan(self, a) -> bool:
        return bool(np.isnan(self.to_double(a)))

    def is_inf(self, a) -> bool:
        return bool(np.isinf(self.to_double(a)))

    def is_zero(self, a) -> bool:
        return self.to_double(a) == 0.0

    def cast_vector(self, values) -> list:
        """Convert doubles (any array-like, flattened row-major) into elements."""
        flat = np.asarray(values, dtype=np.float64).ravel()
        return [self.from_double(v) for v in flat]

    def to_double_vector(self, elems: Iterable) -> np.ndarray:
        return np.array([self.to_double(e) for e in elems], dtype=np.float64)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.precision.value})"


class _NumpyScalarArithmetic(Arithmetic):
    dtype = np.float64

    def add(self, a, b):
        return a + b

    def sub(self, a, b):
        return a - b

    def mul(self, a, b):
        return a * b

    def div(self, a, b):
        return a / b

    def neg(self, a):
        return -a

    def to_double(self, a) -> float:
        return float(a)

    def from_double(self, v: float):
        return self.dtype(v)


class Float64Arithmetic(_NumpyScalarArithmetic):
    precision = Precision.FP64
    dtype = np.float64


class Float32Arithmetic(_NumpyScalarArithmetic):
    precision = Precision.FP32
    dtype = np.float32


class ReducedArithmetic(Arithmetic):
    """float32 exponent range, mantissa rounded to `frac_bits` after every op."""

    def __init__(self, precision: Precision, frac_bits: int):
        self.precision = precision
        self.frac_bits = int(frac_bits)

    def _round(self, v) -> np.float32:
        return _quantize_mantissa(v, self.frac_bits)[()]

    def add(self, a, b):
        return self._round(np.float32(a) + np.float32(b))

    def sub(self, a, b):
        return self._round(np.float32(a) - np.float32(b))

    def mul(self, a, b):
        return self._round(np.float32(a) * np.float32(b))

    def div(self, a, b):
        return self._round(np.float32(a) / np.float32(b))

    def neg(self, a):
        return np.float32(-a)

    def to_double(self, a) -> float:
        return float(a)

    def from_double(self, v: float):
        # straight from double, one rounding
        return self._round(float(v))

    def cast_vector(self, values) -> list:
        q = _quantize_mantissa(np.asarray(values, dtype=np.float64).ravel(), self.frac_bits)
        return list(q)


class MinifloatArithmetic(Arithmetic):
    """Elements are codes; every op is decode -> float32 op -> encode."""

    precision = Precision.MINIFLOAT8

    def __init__(self, layout: MinifloatLayout = DEFAULT_LAYOUT):
        self.layout = layout

    def _f32(self, code) -> np.float32:
        return np.float32(decode(code, self.layout))

    def _enc(self, v32) -> int:
        return encode(float(v32), self.layout)

    def add(self, a, b):
        return self._enc(self._f32(a) + self._f32(b))

    def sub(self, a, b):
        return self._enc(self._f32(a) - self._f32(b))

    def mul(self, a, b):
        return self._enc(self._f32(a) * self._f32(b))

    def div(self, a, b):
        return self._enc(self._f32(a) / self._f32(b))

    def neg(self, a):
        return self._enc(-self._f32(a))

    def to_double(self, a) -> float:
        return decode(a, self.layout)

    def from_double(self, v: float) -> int:
        return encode(v, self.layout)

    def is_nan(self, a) -> bool:
        return int(a) == self.layout.nan_code

    def is_inf(self, a) -> bool:
        return int(a) in (self.layout.pos_inf_code, self.layout.neg_inf_code)


_BACKENDS = {
    Precision.FP64: Float64Arithmetic(),
    Precision.FP32: Float32Arithmetic(),
    Precision.TF32: ReducedArithmetic(Precision.TF32, fraction_bits(Precision.TF32)),
    Precision.BF16: ReducedArithmetic(Precision.BF16, fraction_bits(Precision.BF16)),
    Precision.MINIFLOAT8: MinifloatArithmetic(),
}


def get_arithmetic(precision) -> Arithmetic:
    """Precision (or its name) -> shared, stateless backend."""
    if isinstance(precision, Arithmetic):
        return precision
    return _BACKENDS[precision_from_string(precision)]


def quantize(x, precision) -> np.ndarray:
    """Round doubles onto `precision`'s grid and hand them back as float64."""
    arith = get_arithmetic(precision)
    x = np.asarray(x, dtype=np.float64)
    return arith.to_double_vector(arith.cast_vector(x)).reshape(x.shape)


def convert(values: Sequence, src, dst) -> List:
    """Convert elements between two precisions (always through double)."""
    a, b = get_arithmetic(src), get_arithmetic(dst)
    return [b.from_double(a.to_double(v)) for v in values]
