# fpstudy/gd.py
# Gradient descent on the quadratic  f(x) = 1/2 x^T Q x + b^T x.
#
# - Q is a flat row-major dim x dim buffer, b and x0 have dim entries, all in
#   the element format T.
# - Each step: g = Q x + b (direct summation in T), x <- x - eta * g (in T).
# - The stopping test uses ||g||_2 accumulated in float64, whatever T is.
# - The test runs before each step; `iterations` counts steps taken.

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from .ops import KernelResult, Outcome
from .precision import get_arithmetic

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GradientDescentOptions:
    step_size: float = 1e-2
    max_iters: int = 1000
    tol: float = 1e-6


def _gradient(Q, b, x, dim, arith):
    g = []
    for i in range(dim):
        acc = arith.zero()
        for j in range(dim):
            acc = arith.add(acc, arith.mul(Q[i * dim + j], x[j]))
        g.append(arith.add(acc, b[i]))
    return g


def _norm_in_double(g, arith) -> float:
    s = 0.0
    for gi in g:
        d = arith.to_double(gi)
        s += d * d
    return math.sqrt(s)


def gradient_descent_quadratic(
    Q: Sequence,
    b: Sequence,
    x0: Sequence,
    dim: int,
    arith,
    options: GradientDescentOptions = GradientDescentOptions(),
) -> KernelResult:
    arith = get_arithmetic(arith)
    dim = int(dim)
    if len(Q) != dim * dim:
        raise ValueError(f"gd: Q has {len(Q)} elements, expected {dim}x{dim}")
    if len(b) != dim or len(x0) != dim:
        raise ValueError(f"gd: b/x0 must have {dim} elements (got {len(b)}, {len(x0)})")

    eta = arith.from_double(options.step_size)
    x = list(x0)
    for it in range(int(options.max_iters)):
        g = _gradient(Q, b, x, dim, arith)
        grad_norm = _norm_in_double(g, arith)
        if grad_norm < options.tol:
            logger.debug("gd %r converged after %d steps (|g|=%.3e)", arith, it, grad_norm)
            return KernelResult(values=x, iterations=it, outcome=Outcome.CONVERGED)
        x = [arith.sub(xi, arith.mul(eta, gi)) for xi, gi in zip(x, g)]

    logger.debug("gd %r hit max_iters=%d", arith, options.max_iters)
    return KernelResult(values=x, iterations=int(options.max_iters), outcome=Outcome.MAX_ITERATIONS)
