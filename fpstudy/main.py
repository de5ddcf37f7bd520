# fpstudy/main.py
# Experiment driver:
# - Reads config.yaml (see config.py for the schema)
# - For every case: one float64 "truth" run, then the same kernel in each
#   precision / accumulation policy
# - Logs one CSV row per run into results/ and prints concise progress
#
#   python -m fpstudy.main --config config.yaml [--out results/runs.csv] [-v]

from __future__ import annotations

import argparse
import json
import logging
import time

import numpy as np

from . import cases
from .config import (
    get_dot_cfg,
    get_fir_cfg,
    get_gd_cfg,
    get_matmul_cfg,
    get_newton_cfg,
    load_config,
)
from .fir import fir_filter
from .formats import Precision, tol_for
from .gd import GradientDescentOptions, gradient_descent_quadratic
from .gemm import matmul_square
from .logging_utils import CSV_HEADER, start_csv, write_row
from .metrics import RunMetrics, evaluate
from .newton import NewtonOptions, get_function, lift, newton_raphson
from .ops import AccumulationPolicy, dot
from .oracle import exact_dot
from .precision import get_arithmetic

logger = logging.getLogger(__name__)

FP64 = get_arithmetic(Precision.FP64)


def _timed(fn, *args, **kwargs):
    """Run fn with IEEE warnings silenced (special values are counted, not warned about)."""
    t0 = time.perf_counter()
    with np.errstate(all="ignore"):
        out = fn(*args, **kwargs)
    return out, (time.perf_counter() - t0) * 1e3


def _emit(out_csv, algo, size, precision, seed, params, truth, approx,
          iterations=0, converged=True, elapsed_ms=0.0) -> RunMetrics:
    metrics = evaluate(truth, approx, iterations, converged, elapsed_ms)
    params = dict(params, precision=str(precision))
    write_row(out_csv, CSV_HEADER, [
        algo,
        size,
        str(precision),
        int(seed),
        json.dumps(params, sort_keys=True, separators=(",", ":")),
        f"{metrics.relative_error:.6e}",
        metrics.iterations,
        int(metrics.converged),
        metrics.nan_count,
        metrics.inf_count,
        f"{metrics.elapsed_ms:.3f}",
    ])
    return metrics


def _policy_params(policy: AccumulationPolicy) -> dict:
    return {"accumulation": policy.accumulation.value, "kahan": policy.compensated}


# =========================
# MatMul
# =========================

def run_matmul(exp, out_csv, base_seed):
    cfg = get_matmul_cfg(exp)
    kahan = bool(exp.get("kahan", False))
    truth_policy = AccumulationPolicy(compensated=kahan)
    print(f"[MatMul] sizes={cfg['sizes']}, trials={cfg['trials']}, runs={len(cfg['runs'])}")
    out = []
    for n in cfg["sizes"]:
        for trial in range(cfg["trials"]):
            seed = base_seed + n * 997 + trial
            rng = cases.make_rng(seed)
            if cfg["kappa"] is not None:
                A = cases.conditioned_matrix(n, cfg["kappa"], rng)
                B = cases.conditioned_matrix(n, cfg["kappa"], rng)
            else:
                A = cases.random_matrix(n, n, rng, cfg["ill_conditioned"])
                B = cases.random_matrix(n, n, rng, cfg["ill_conditioned"])
            truth = FP64.to_double_vector(
                matmul_square(FP64.cast_vector(A), FP64.cast_vector(B), n, FP64, truth_policy))

            for prec, policy in cfg["runs"]:
                arith = get_arithmetic(prec)
                At, Bt = arith.cast_vector(A), arith.cast_vector(B)
                print(f"  matmul n={n} trial={trial} {prec}-{policy.label}")
                C, ms = _timed(matmul_square, At, Bt, n, arith, policy)
                params = {"size": n, "trial": trial, **_policy_params(policy)}
                if cfg["kappa"] is not None:
                    params["kappa"] = cfg["kappa"]
                out.append(_emit(out_csv, "matmul", n, prec, seed, params, truth,
                                 arith.to_double_vector(C), elapsed_ms=ms))
    return out


# =========================
# FIR
# =========================

def run_fir(exp, out_csv, base_seed):
    cfg = get_fir_cfg(exp)
    kahan = bool(exp.get("kahan", False))
    truth_policy = AccumulationPolicy(compensated=kahan)
    print(f"[FIR] taps={cfg['taps']}, lengths={cfg['lengths']}, trials={cfg['trials']}")
    out = []
    for m in cfg["taps"]:
        h = cases.lowpass_taps(m)
        for n in cfg["lengths"]:
            for trial in range(cfg["trials"]):
                seed = base_seed + n * 389 + trial
                x = cases.noisy_signal(n, cases.make_rng(seed))
                truth = FP64.to_double_vector(
                    fir_filter(FP64.cast_vector(h), FP64.cast_vector(x), FP64, truth_policy))

                for prec, policy in cfg["runs"]:
                    arith = get_arithmetic(prec)
                    print(f"  fir taps={m} n={n} trial={trial} {prec}-{policy.label}")
                    y, ms = _timed(fir_filter, arith.cast_vector(h), arith.cast_vector(x), arith, policy)
                    params = {"taps": m, "length": n, "trial": trial, **_policy_params(policy)}
                    out.append(_emit(out_csv, "fir", n, prec, seed, params, truth,
                                     arith.to_double_vector(y), elapsed_ms=ms))
    return out


# =========================
# Dot product (accumulation study, exact oracle)
# =========================

def run_dot(exp, out_csv, base_seed):
    cfg = get_dot_cfg(exp)
    print(f"[Dot] lengths={cfg['lengths']}, trials={cfg['trials']}, oracle_bits={cfg['oracle_bits']}")
    out = []
    for n in cfg["lengths"]:
        for trial in range(cfg["trials"]):
            seed = base_seed + n * 211 + trial
            rng = cases.make_rng(seed)
            a = cases.random_vector(n, rng)
            b = cases.random_vector(n, rng)
            truth = [exact_dot(a, b, bits=cfg["oracle_bits"])]

            for prec, policy in cfg["runs"]:
                arith = get_arithmetic(prec)
                s, ms = _timed(dot, arith.cast_vector(a), arith.cast_vector(b), arith, policy)
                params = {"length": n, "trial": trial, **_policy_params(policy)}
                out.append(_emit(out_csv, "dot", n, prec, seed, params, truth,
                                 [arith.to_double(s)], elapsed_ms=ms))
    return out


# =========================
# Gradient descent on a quadratic
# =========================

def run_gd(exp, out_csv, base_seed):
    cfg = get_gd_cfg(exp)
    dim = cfg["dim"]
    opts = GradientDescentOptions(step_size=cfg["step_size"], max_iters=cfg["max_iters"], tol=cfg["tol"])
    print(f"[GD] dim={dim}, trials={cfg['trials']}, step={opts.step_size:g}, tol={opts.tol:g}")
    out = []
    for trial in range(cfg["trials"]):
        seed = base_seed + dim * 577 + trial * 31
        rng = cases.make_rng(seed)
        Q = cases.spd_matrix(dim, rng, cfg["ill_conditioned"])
        b = cases.random_vector(dim, rng)
        x0 = np.zeros(dim)

        truth_res, truth_ms = _timed(gradient_descent_quadratic, FP64.cast_vector(Q), FP64.cast_vector(b),
                                     FP64.cast_vector(x0), dim, FP64, opts)
        truth = FP64.to_double_vector(truth_res.values)
        params = {"dim": dim, "trial": trial, "step_size": opts.step_size, "tol": opts.tol,
                  "max_iters": opts.max_iters, "ill_conditioned": cfg["ill_conditioned"]}

        for prec in cfg["precisions"]:
            arith = get_arithmetic(prec)
            if prec is Precision.FP64:
                res, ms = truth_res, truth_ms
            else:
                res, ms = _timed(gradient_descent_quadratic, arith.cast_vector(Q), arith.cast_vector(b),
                                 arith.cast_vector(x0), dim, arith, opts)
            print(f"  gd dim={dim} trial={trial} {prec}: iters={res.iterations} {res.outcome.value}")
            out.append(_emit(out_csv, "gd_quadratic", dim, prec, seed, params, truth,
                             arith.to_double_vector(res.values), res.iterations, res.converged, ms))
    return out


# =========================
# Newton (1D roots)
# =========================

def _newton_tol(cfg, prec) -> float:
    return cfg["tol"] if cfg["tol"] is not None else tol_for(prec)


def run_newton(exp, out_csv, base_seed):
    cfg = get_newton_cfg(exp)
    f, df = get_function(cfg["function"])
    print(f"[Newton] function={cfg['function']}, initials={cfg['initials']}, precisions={[str(p) for p in cfg['precisions']]}")
    out = []
    for x0 in cfg["initials"]:
        seed = base_seed + int(x0 * 101)
        truth_opts = NewtonOptions(max_iters=cfg["max_iters"], tol=_newton_tol(cfg, Precision.FP64))
        truth_res, truth_ms = _timed(newton_raphson, FP64.from_double(x0), lift(f, FP64), lift(df, FP64),
                                     FP64, truth_opts)
        truth = FP64.to_double_vector(truth_res.values)

        for prec in cfg["precisions"]:
            arith = get_arithmetic(prec)
            opts = NewtonOptions(max_iters=cfg["max_iters"], tol=_newton_tol(cfg, prec))
            if prec is Precision.FP64:
                res, ms = truth_res, truth_ms
            else:
                res, ms = _timed(newton_raphson, arith.from_double(x0), lift(f, arith), lift(df, arith),
                                 arith, opts)
            params = {"function": cfg["function"], "initial": x0, "tol": opts.tol, "max_iters": opts.max_iters}
            print(f"  newton x0={x0:g} {prec}: iters={res.iterations} {res.outcome.value}")
            out.append(_emit(out_csv, "newton", 1, prec, seed, params, truth,
                             arith.to_double_vector(res.values), res.iterations, res.converged, ms))
    return out


RUNNERS = {
    "matmul": run_matmul,
    "fir": run_fir,
    "dot": run_dot,
    "gd_quadratic": run_gd,
    "newton": run_newton,
}


def run_config(cfg, out_csv=None):
    """Run every experiment in a loaded config; returns {algo: [RunMetrics, ...]}."""
    out_csv = out_csv or cfg.get("out_csv", "results/runs.csv")
    seed = int(cfg.get("seed", 42))
    start_csv(out_csv)

    results = {}
    for exp in cfg["experiments"]:
        algo = exp["algo"]
        metrics = RUNNERS[algo](exp, out_csv, seed)
        logger.debug("%s: %d runs", algo, len(metrics))
        results.setdefault(algo, []).extend(metrics)
    print(f"Wrote {out_csv}")
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(description="Reduced-precision kernel study")
    parser.add_argument("-c", "--config", default=None, help="YAML config (default: ./config.yaml next to the package)")
    parser.add_argument("-o", "--out", default=None, help="override out_csv from the config")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging from the kernels")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = load_config(args.config)
    run_config(cfg, args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
