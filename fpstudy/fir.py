# fpstudy/fir.py
# Causal FIR filter:  y[n] = sum_k h[k] * x[n-k]
# x is zero-padded on the left (terms with n-k < 0 are skipped, not added as
# zeros, so they cannot perturb the rounding). k runs in ascending order.
# Output has the same length as x.

from __future__ import annotations

import logging
from typing import List, Sequence

from .ops import DEFAULT_POLICY, AccumulationPolicy, accumulate
from .precision import get_arithmetic

logger = logging.getLogger(__name__)


def fir_filter(
    h: Sequence,
    x: Sequence,
    arith,
    policy: AccumulationPolicy = DEFAULT_POLICY,
) -> List:
    arith = get_arithmetic(arith)
    M = len(h)
    N = len(x)
    if M == 0:
        # every output is an empty sum
        return [arith.zero() for _ in range(N)]

    y = []
    for n in range(N):
        terms = ((h[k], x[n - k]) for k in range(min(M, n + 1)))
        y.append(accumulate(terms, arith, policy))
    logger.debug("fir taps=%d samples=%d %r policy=%s", M, N, arith, policy.label)
    return y
