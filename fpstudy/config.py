from pathlib import Path

import yaml

from .formats import precision_from_string, split_fmt
from .ops import AccumulationPolicy

_CFG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

ALGOS = ("matmul", "fir", "gd_quadratic", "newton", "dot")


def load_config(path=None):
    path = Path(path) if path is not None else _CFG_PATH
    with open(path, "r") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    require_field(cfg, "experiments")
    for exp in cfg["experiments"]:
        algo = require_field(exp, "algo")
        if algo not in ALGOS:
            raise ValueError(f"Unknown algo '{algo}' (expected one of {list(ALGOS)})")
    return cfg


def require_field(obj, key):
    if not isinstance(obj, dict) or key not in obj:
        raise ValueError(f"Missing required field: {key}")
    return obj[key]


def _as_list(x):
    """Ensure a config value is always a list."""
    if x is None:
        return []
    return list(x) if isinstance(x, (list, tuple)) else [x]


# --- helpers that keep both config styles working ----------------------------

def get_runs(exp):
    """
    (precision, policy) pairs to run for one experiment. Supports either:
     (A) fmts: ["bf16-fp32", "p3109_8-element", ...]
     (B) precisions: [fp32, bf16, ...] + accumulate_in_fp32: [false, true]
    `kahan: true` turns on compensated summation for all of them.
    """
    kahan = bool(exp.get("kahan", False))
    if "fmts" in exp:
        runs = []
        for pair in _as_list(exp["fmts"]):
            prec, acc = split_fmt(str(pair))
            runs.append((prec, AccumulationPolicy(accumulation=acc, compensated=kahan)))
        return runs
    precisions = [precision_from_string(p) for p in _as_list(require_field(exp, "precisions"))]
    flags = [bool(f) for f in _as_list(exp.get("accumulate_in_fp32", [False]))] or [False]
    return [
        (prec, AccumulationPolicy.from_flags(accumulate_in_fp32=flag, kahan=kahan))
        for flag in flags
        for prec in precisions
    ]


def get_matmul_cfg(exp):
    return {
        "sizes": [int(n) for n in _as_list(require_field(exp, "sizes"))],
        "trials": int(exp.get("trials", 1)),
        "kappa": float(exp["kappa"]) if "kappa" in exp else None,
        "ill_conditioned": bool(exp.get("ill_conditioned", False)),
        "runs": get_runs(exp),
    }


def get_fir_cfg(exp):
    return {
        "taps": [int(m) for m in _as_list(exp.get("taps", [8]))],
        "lengths": [int(n) for n in _as_list(require_field(exp, "lengths"))],
        "trials": int(exp.get("trials", 1)),
        "runs": get_runs(exp),
    }


def get_dot_cfg(exp):
    return {
        "lengths": [int(n) for n in _as_list(require_field(exp, "lengths"))],
        "trials": int(exp.get("trials", 1)),
        "oracle_bits": int(exp.get("oracle_bits", 200)),
        "runs": get_runs(exp),
    }


def get_gd_cfg(exp):
    return {
        "dim": int(require_field(exp, "dim")),
        "trials": int(exp.get("trials", 1)),
        "step_size": float(exp.get("step_size", 1e-2)),
        "max_iters": int(exp.get("max_iters", 1000)),
        "tol": float(exp.get("tol", 1e-6)),
        "ill_conditioned": bool(exp.get("ill_conditioned", False)),
        "precisions": [precision_from_string(p) for p in _as_list(require_field(exp, "precisions"))],
    }


def get_newton_cfg(exp):
    return {
        "function": str(require_field(exp, "function")),
        "initials": [float(x) for x in _as_list(require_field(exp, "initials"))],
        "max_iters": int(exp.get("max_iters", 100)),
        # None -> per-precision default from formats.tol_for
        "tol": float(exp["tol"]) if "tol" in exp else None,
        "precisions": [precision_from_string(p) for p in _as_list(require_field(exp, "precisions"))],
    }
