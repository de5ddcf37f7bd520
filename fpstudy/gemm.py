# fpstudy/gemm.py
# Square dense matrix product, written once for every precision.
#
# A and B are flat row-major buffers of n*n elements already converted to the
# target format (arith.cast_vector does that). Each output cell C[i, j] is one
# dot product over k = 0..n-1 in ascending order, cells are filled row by row,
# so results are reproducible bit for bit.

from __future__ import annotations

import logging
from typing import List, Sequence

from .ops import DEFAULT_POLICY, AccumulationPolicy, accumulate
from .precision import get_arithmetic

logger = logging.getLogger(__name__)


def _check_square(name: str, buf: Sequence, n: int) -> None:
    if len(buf) != n * n:
        raise ValueError(f"matmul: {name} has {len(buf)} elements, expected {n}x{n}={n * n}")


def matmul_square(
    A: Sequence,
    B: Sequence,
    n: int,
    arith,
    policy: AccumulationPolicy = DEFAULT_POLICY,
) -> List:
    """C = A @ B for n x n row-major buffers; returns a flat list of n*n elements."""
    arith = get_arithmetic(arith)
    n = int(n)
    _check_square("A", A, n)
    _check_square("B", B, n)

    C = []
    for i in range(n):
        row = A[i * n:(i + 1) * n]
        for j in range(n):
            col = B[j::n]
            C.append(accumulate(zip(row, col), arith, policy))
    logger.debug("matmul n=%d %r policy=%s", n, arith, policy.label)
    return C
