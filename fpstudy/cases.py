# fpstudy/cases.py
# Random inputs for the experiments. Everything is float64 (the driver
# converts to each precision) and driven by an explicit numpy Generator so
# a (seed, trial) pair always rebuilds the same case.

from __future__ import annotations

import numpy as np


def make_rng(seed: int) -> np.random.Generator:
    return np.random.default_rng(int(seed))


def random_vector(n: int, rng: np.random.Generator, scale: float = 1.0) -> np.ndarray:
    return rng.normal(0.0, scale, size=int(n))


def random_matrix(rows: int, cols: int, rng: np.random.Generator, ill_conditioned: bool = False) -> np.ndarray:
    """Standard normal entries; ill_conditioned shrinks the first column by 1e-6."""
    M = rng.standard_normal((int(rows), int(cols)))
    if ill_conditioned and cols > 0:
        M[:, 0] *= 1e-6
    return M


def spd_matrix(dim: int, rng: np.random.Generator, ill_conditioned: bool = False) -> np.ndarray:
    """Q = M^T M + 0.1*dim*I  (symmetric positive definite, so GD has a unique minimum)."""
    M = random_matrix(dim, dim, rng, ill_conditioned)
    return M.T @ M + 0.1 * dim * np.eye(dim)


def conditioned_matrix(n: int, kappa: float, rng: np.random.Generator) -> np.ndarray:
    """
    n x n matrix with condition number ~kappa: U diag(s) V^T with singular
    values spaced geometrically from 1 down to 1/kappa.
    """
    Q1, _ = np.linalg.qr(rng.standard_normal((n, n)))
    Q2, _ = np.linalg.qr(rng.standard_normal((n, n)))
    s = np.geomspace(1.0, 1.0 / float(kappa), num=n)
    return (Q1 * s) @ Q2.T


def lowpass_taps(m: int) -> np.ndarray:
    """Normalized Hann-window moving average: m positive taps summing to 1."""
    if m == 1:
        return np.ones(1)
    w = np.hanning(m + 2)[1:-1]
    return w / w.sum()


def noisy_signal(n: int, rng: np.random.Generator, noise: float = 0.1) -> np.ndarray:
    t = np.arange(int(n))
    return np.sin(2 * np.pi * t / 32.0) + noise * rng.standard_normal(int(n))
