"""
metrics.py: compare a reduced-precision run against the float64 truth run.

    rel_error = ||truth - approx||_2 / max(||truth||_2, eps),  eps = 1e-12

NaN / inf entries are counted separately; a single NaN makes rel_error NaN,
which is what we want to see in the results table.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

import numpy as np

EPS = 1e-12


@dataclass(frozen=True)
class RunMetrics:
    relative_error: float = 0.0
    iterations: int = 0
    converged: bool = False
    nan_count: int = 0
    inf_count: int = 0
    elapsed_ms: float = 0.0

    def to_row(self) -> dict:
        return asdict(self)


def _as_doubles(v) -> np.ndarray:
    return np.asarray(v, dtype=np.float64).ravel()


def relative_error(truth: Sequence[float], approx: Sequence[float], eps: float = EPS) -> float:
    truth = _as_doubles(truth)
    approx = _as_doubles(approx)
    if truth.size != approx.size:
        raise ValueError(f"relative_error: size mismatch ({truth.size} vs {approx.size})")
    with np.errstate(invalid="ignore", over="ignore"):
        num = np.linalg.norm(truth - approx)
        den = np.linalg.norm(truth)
    return float(num / max(den, eps))


def count_nan(values) -> int:
    return int(np.count_nonzero(np.isnan(_as_doubles(values))))


def count_inf(values) -> int:
    return int(np.count_nonzero(np.isinf(_as_doubles(values))))


def evaluate(
    truth: Sequence[float],
    approx: Sequence[float],
    iterations: int = 0,
    converged: bool = True,
    elapsed_ms: float = 0.0,
) -> RunMetrics:
    """Build the RunMetrics snapshot for one kernel call (approx already in float64)."""
    return RunMetrics(
        relative_error=relative_error(truth, approx),
        iterations=int(iterations),
        converged=bool(converged),
        nan_count=count_nan(approx),
        inf_count=count_inf(approx),
        elapsed_ms=float(elapsed_ms),
    )
