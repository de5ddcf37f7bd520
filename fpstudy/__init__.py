"""
Reduced-precision arithmetic study.

Entry point: python -m fpstudy.main --config config.yaml
"""

from .formats import Precision, precision_from_string
from .minifloat import DEFAULT_LAYOUT, MinifloatLayout, decode, encode
from .ops import Accumulation, AccumulationPolicy, KernelResult, Outcome
from .precision import get_arithmetic

__all__ = [
    "Precision",
    "precision_from_string",
    "MinifloatLayout",
    "DEFAULT_LAYOUT",
    "encode",
    "decode",
    "Accumulation",
    "AccumulationPolicy",
    "KernelResult",
    "Outcome",
    "get_arithmetic",
]
