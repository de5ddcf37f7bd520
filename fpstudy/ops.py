# fpstudy/ops.py
# Pieces shared by the kernels: the accumulation policy + summation loop used
# by matmul / FIR / dot, and the result type of the iterative kernels.
#
# Two knobs, passed per call (never global):
#   accumulation = ELEMENT : products and the running sum live in the element
#                            format T (so every add rounds back onto T's grid)
#   accumulation = SINGLE  : operands are widened to float32, products and the
#                            running sum stay in float32, and we round into T
#                            once at the very end
#   compensated  = True    : Kahan summation in whichever scratch is active
#
# Terms are always summed left to right in the order given.

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence, Tuple

import numpy as np

from .precision import Arithmetic, get_arithmetic


class Accumulation(str, Enum):
    ELEMENT = "element"
    SINGLE = "single"


_ACCUM_NAMES = {
    "element": Accumulation.ELEMENT,
    "small": Accumulation.ELEMENT,
    "direct": Accumulation.ELEMENT,
    "single": Accumulation.SINGLE,
    "fp32": Accumulation.SINGLE,
}


def accumulation_from_string(name) -> Accumulation:
    if isinstance(name, Accumulation):
        return name
    key = str(name).strip().lower()
    if key not in _ACCUM_NAMES:
        raise ValueError(f"Unknown accumulation mode '{name}' (expected one of {sorted(_ACCUM_NAMES)})")
    return _ACCUM_NAMES[key]


@dataclass(frozen=True)
class AccumulationPolicy:
    accumulation: Accumulation = Accumulation.ELEMENT
    compensated: bool = False

    @classmethod
    def from_flags(cls, accumulate_in_fp32: bool = False, kahan: bool = False) -> "AccumulationPolicy":
        acc = Accumulation.SINGLE if accumulate_in_fp32 else Accumulation.ELEMENT
        return cls(accumulation=acc, compensated=bool(kahan))

    @property
    def label(self) -> str:
        return f"{self.accumulation.value}{'+kahan' if self.compensated else ''}"


DEFAULT_POLICY = AccumulationPolicy()


def _accumulate_element(pairs, arith: Arithmetic, compensated: bool):
    total = arith.zero()
    comp = arith.zero()
    for a, b in pairs:
        prod = arith.mul(a, b)
        if compensated:
            y = arith.sub(prod, comp)
            t = arith.add(total, y)
            comp = arith.sub(arith.sub(t, total), y)
            total = t
        else:
            total = arith.add(total, prod)
    return total


def _accumulate_single(pairs, arith: Arithmetic, compensated: bool):
    total = np.float32(0.0)
    comp = np.float32(0.0)
    for a, b in pairs:
        prod = np.float32(arith.to_double(a)) * np.float32(arith.to_double(b))
        if compensated:
            y = prod - comp
            t = total + y
            comp = (t - total) - y
            total = t
        else:
            total = total + prod
    return arith.from_double(float(total))


def accumulate(pairs: Iterable[Tuple], arith: Arithmetic, policy: AccumulationPolicy = DEFAULT_POLICY):
    """Sum a*b over `pairs` under `policy`; returns an element of `arith`'s format."""
    arith = get_arithmetic(arith)
    if policy.accumulation is Accumulation.SINGLE:
        return _accumulate_single(pairs, arith, policy.compensated)
    return _accumulate_element(pairs, arith, policy.compensated)


def dot(a: Sequence, b: Sequence, arith: Arithmetic, policy: AccumulationPolicy = DEFAULT_POLICY):
    arith = get_arithmetic(arith)
    if len(a) != len(b):
        raise ValueError(f"dot: length mismatch ({len(a)} vs {len(b)})")
    return accumulate(zip(a, b), arith, policy)


# ---------- iterative kernel results ----------

class Outcome(str, Enum):
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    DERIVATIVE_ZERO = "derivative_zero"


@dataclass(frozen=True)
class KernelResult:
    """What an iterative kernel hands back. None of the outcomes is an error."""

    values: list
    iterations: int
    outcome: Outcome

    @property
    def converged(self) -> bool:
        return self.outcome is Outcome.CONVERGED
