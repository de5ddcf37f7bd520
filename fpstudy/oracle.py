import numpy as np
import mpmath as mp

def _dps(bits: int) -> int:
    return int(bits * 0.30103)  # bits -> decimal digits approx.

def exact_dot(a, b, bits=200) -> float:
    """Dot product of two float64 vectors, summed at `bits` of precision, rounded once to double."""
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.size != b.size:
        raise ValueError(f"exact_dot: length mismatch ({a.size} vs {b.size})")
    with mp.workdps(_dps(bits)):
        s = mp.fsum(mp.mpf(float(x)) * mp.mpf(float(y)) for x, y in zip(a, b))
        return float(s)

def exact_cbrt(c: float, bits=200) -> float:
    """Real cube root of c, correctly rounded to double (reference for Newton on x^3 - c)."""
    with mp.workdps(_dps(bits)):
        # mp.cbrt gives the principal complex root for c < 0
        root = mp.cbrt(abs(mp.mpf(c)))
        return float(-root if c < 0 else root)
