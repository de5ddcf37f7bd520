# fpstudy/newton.py
# Newton's method in any of our formats.
#
#   x <- x - f(x) / f'(x)        (all arithmetic in the element format T)
#
# Stops with:
#   CONVERGED        |f(x)| (as a double) < tol
#   DERIVATIVE_ZERO  f'(x) is exactly zero -> no step possible, not converged
#   MAX_ITERATIONS   ran out of budget
# The zero-derivative case is checked up front; we never divide by zero.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import numpy as np

from .ops import KernelResult, Outcome
from .precision import get_arithmetic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NewtonOptions:
    max_iters: int = 100
    tol: float = 1e-8


# -------- functions we support (name -> (f, f')), evaluated in float64
def _x3_minus_2(x: float) -> float:
    return x * x * x - 2.0

def _d_x3_minus_2(x: float) -> float:
    return 3.0 * x * x

def _x3_minus_7(x: float) -> float:
    return x * x * x - 7.0

def _d_x3_minus_7(x: float) -> float:
    return 3.0 * x * x

def _sinx_minus_x2(x: float) -> float:
    # sin(x) - x/2
    return float(np.sin(x)) - 0.5 * x

def _d_sinx_minus_x2(x: float) -> float:
    return float(np.cos(x)) - 0.5

FUNCTIONS = {
    "x3_minus_2":    (_x3_minus_2,    _d_x3_minus_2),
    "x3_minus_7":    (_x3_minus_7,    _d_x3_minus_7),
    "sinx_minus_x2": (_sinx_minus_x2, _d_sinx_minus_x2),
}


def get_function(name: str):
    if name not in FUNCTIONS:
        raise ValueError(f"Unknown function '{name}'. Options: {list(FUNCTIONS.keys())}")
    return FUNCTIONS[name]


def lift(fn: Callable[[float], float], arith) -> Callable:
    """Turn a float64 function into a T -> T one: evaluate in double, round into T."""
    arith = get_arithmetic(arith)

    def lifted(x):
        return arith.from_double(fn(arith.to_double(x)))

    return lifted


def newton_raphson(
    x0,
    f: Callable,
    df: Callable,
    arith,
    options: NewtonOptions = NewtonOptions(),
) -> KernelResult:
    """x0 is an element of T; f and df map T -> T."""
    arith = get_arithmetic(arith)
    x = x0
    for it in range(int(options.max_iters)):
        fx = f(x)
        dfx = df(x)
        if abs(arith.to_double(fx)) < options.tol:
            logger.debug("newton %r converged after %d steps", arith, it)
            return KernelResult(values=[x], iterations=it, outcome=Outcome.CONVERGED)
        if arith.is_zero(dfx):
            logger.debug("newton %r: zero derivative at step %d", arith, it)
            return KernelResult(values=[x], iterations=it, outcome=Outcome.DERIVATIVE_ZERO)
        x = arith.sub(x, arith.div(fx, dfx))

    logger.debug("newton %r hit max_iters=%d", arith, options.max_iters)
    return KernelResult(values=[x], iterations=int(options.max_iters), outcome=Outcome.MAX_ITERATIONS)
