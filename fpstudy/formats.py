"""
formats.py: the five precisions we study, their names, and a few helpers.

- Precision.FP64      "fp64"     native double (the truth run)
- Precision.FP32      "fp32"     native single
- Precision.TF32      "tf32"     19-bit: single's 8-bit exponent, 10 fraction bits
- Precision.BF16      "bf16"     16-bit: single's 8-bit exponent, 7 fraction bits
- Precision.MINIFLOAT8 "p3109_8" 8-bit minifloat (see minifloat.py)

precision_from_string("bfloat16") -> Precision.BF16   # aliases are accepted
split_fmt("bf16-fp32") -> (Precision.BF16, Accumulation.SINGLE)
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple


class Precision(str, Enum):
    FP64 = "fp64"
    FP32 = "fp32"
    TF32 = "tf32"
    BF16 = "bf16"
    MINIFLOAT8 = "p3109_8"

    # descriptive aliases for the two reduced-mantissa formats
    REDUCED_19x8 = "tf32"
    REDUCED_8MANT = "bf16"

    def __str__(self) -> str:
        return self.value


_ALIASES = {
    "fp64": Precision.FP64,
    "float64": Precision.FP64,
    "double": Precision.FP64,
    "fp32": Precision.FP32,
    "float32": Precision.FP32,
    "single": Precision.FP32,
    "tf32": Precision.TF32,
    "tensorfloat32": Precision.TF32,
    "bf16": Precision.BF16,
    "bfloat16": Precision.BF16,
    "p3109": Precision.MINIFLOAT8,
    "p3109_8": Precision.MINIFLOAT8,
    "minifloat8": Precision.MINIFLOAT8,
    "fp8": Precision.MINIFLOAT8,
}

# Fraction (stored mantissa) bits per format.
_FBITS = {
    Precision.FP64: 52,
    Precision.FP32: 23,
    Precision.TF32: 10,
    Precision.BF16: 7,
    Precision.MINIFLOAT8: 4,
}


def precision_from_string(name) -> Precision:
    if isinstance(name, Precision):
        return name
    key = str(name).strip().lower()
    if key not in _ALIASES:
        raise ValueError(f"Unknown precision '{name}' (expected one of {sorted(_ALIASES)})")
    return _ALIASES[key]


def precision_to_string(p: Precision) -> str:
    return Precision(p).value


def all_precisions() -> list[Precision]:
    return [Precision.FP64, Precision.FP32, Precision.TF32, Precision.BF16, Precision.MINIFLOAT8]


def fraction_bits(p) -> int:
    return _FBITS[precision_from_string(p)]


def split_fmt(fmt_pair: str) -> Tuple[Precision, "Accumulation"]:
    """'bf16-fp32' -> (Precision.BF16, Accumulation.SINGLE)  (element format, accumulation)"""
    from .ops import accumulation_from_string

    a, b = fmt_pair.rsplit("-", 1)
    return precision_from_string(a), accumulation_from_string(b)


def tol_for(p) -> float:
    """Default Newton tolerances per format (roughly a few ULPs at |f| ~ 1)."""
    return {
        Precision.FP64: 1e-10,
        Precision.FP32: 1e-6,
        Precision.TF32: 1e-3,
        Precision.BF16: 5e-3,
        Precision.MINIFLOAT8: 2e-1,
    }[precision_from_string(p)]
