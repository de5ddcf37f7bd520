import numpy as np
import pytest

from fpstudy.cases import make_rng, random_matrix
from fpstudy.gemm import matmul_square
from fpstudy.metrics import relative_error
from fpstudy.ops import (
    Accumulation,
    AccumulationPolicy,
    accumulate,
    accumulation_from_string,
    dot,
)
from fpstudy.oracle import exact_dot
from fpstudy.precision import get_arithmetic

ELEMENT = AccumulationPolicy(Accumulation.ELEMENT)
ELEMENT_KAHAN = AccumulationPolicy(Accumulation.ELEMENT, compensated=True)
SINGLE = AccumulationPolicy(Accumulation.SINGLE)
SINGLE_KAHAN = AccumulationPolicy(Accumulation.SINGLE, compensated=True)


def _dot_error(arith, a, b, policy):
    # truth is the exact dot of the already-rounded inputs, so only summation error shows
    truth = exact_dot(arith.to_double_vector(a), arith.to_double_vector(b))
    return relative_error([truth], [arith.to_double(dot(a, b, arith, policy))])


@pytest.fixture
def long_positive_vectors():
    rng = make_rng(7)
    return rng.uniform(0.0, 1.0, 1000), rng.uniform(0.0, 1.0, 1000)


@pytest.mark.parametrize("prec", ["tf32", "bf16"])
def test_single_scratch_beats_element_sum(prec, long_positive_vectors):
    a = get_arithmetic(prec)
    x, y = (a.cast_vector(v) for v in long_positive_vectors)
    assert _dot_error(a, x, y, SINGLE) <= _dot_error(a, x, y, ELEMENT)


@pytest.mark.parametrize("prec", ["tf32", "bf16"])
def test_kahan_beats_naive_sum(prec, long_positive_vectors):
    a = get_arithmetic(prec)
    x, y = (a.cast_vector(v) for v in long_positive_vectors)
    assert _dot_error(a, x, y, ELEMENT_KAHAN) <= _dot_error(a, x, y, ELEMENT)


@pytest.mark.parametrize("prec", ["fp32", "tf32", "bf16"])
def test_kahan_beats_naive_sum_in_single_scratch(prec, long_positive_vectors):
    a = get_arithmetic(prec)
    x, y = (a.cast_vector(v) for v in long_positive_vectors)
    assert _dot_error(a, x, y, SINGLE_KAHAN) <= _dot_error(a, x, y, SINGLE)


def test_kahan_in_single_scratch_recovers_lost_bits(long_positive_vectors):
    # fp32 elements: the final rounding is exact, so only the running sum differs
    a = get_arithmetic("fp32")
    x, y = (a.cast_vector(v) for v in long_positive_vectors)
    naive = _dot_error(a, x, y, SINGLE)
    assert naive > 0.0
    assert _dot_error(a, x, y, SINGLE_KAHAN) < naive


def test_minifloat_products_below_min_normal():
    # 0.5 * 0.375 = 0.1875 flushes to zero when rounded per product;
    # the float32 scratch keeps it and only the final 24.0 saturates
    m = get_arithmetic("p3109_8")
    a = m.cast_vector([0.5] * 128)
    b = m.cast_vector([0.375] * 128)
    assert m.to_double(dot(a, b, m, ELEMENT)) == 0.0
    assert m.to_double(dot(a, b, m, SINGLE)) == 15.5
    assert _dot_error(m, a, b, ELEMENT) == pytest.approx(1.0)
    assert _dot_error(m, a, b, SINGLE) == pytest.approx(8.5 / 24.0)


def test_policy_is_per_call():
    bf16 = get_arithmetic("bf16")
    a = bf16.cast_vector([1.0] * 600)
    b = bf16.cast_vector([1.0] * 600)
    # bf16 holds 8 significant bits: counting by one stalls at 256
    assert bf16.to_double(dot(a, b, bf16, ELEMENT)) == 256.0
    assert bf16.to_double(dot(a, b, bf16, SINGLE)) == 600.0
    assert bf16.to_double(dot(a, b, bf16, ELEMENT)) == 256.0


def test_accumulate_empty_is_zero():
    for prec in ("fp64", "bf16", "p3109_8"):
        a = get_arithmetic(prec)
        for policy in (ELEMENT, SINGLE, ELEMENT_KAHAN):
            assert a.is_zero(accumulate([], a, policy))


def test_dot_length_mismatch():
    a = get_arithmetic("fp32")
    with pytest.raises(ValueError):
        dot(a.cast_vector([1, 2]), a.cast_vector([1]), a)


def test_policy_flags_and_names():
    p = AccumulationPolicy.from_flags(accumulate_in_fp32=True, kahan=True)
    assert p.accumulation is Accumulation.SINGLE and p.compensated
    assert p.label == "single+kahan"
    assert AccumulationPolicy().label == "element"
    assert accumulation_from_string("fp32") is Accumulation.SINGLE
    assert accumulation_from_string("direct") is Accumulation.ELEMENT
    with pytest.raises(ValueError):
        accumulation_from_string("fp16")


def test_error_grows_as_precision_shrinks():
    n = 8
    fp64 = get_arithmetic("fp64")
    errors = {p: [] for p in ("fp32", "tf32", "bf16", "p3109_8")}
    for seed in range(5):
        rng = make_rng(100 + seed)
        A = random_matrix(n, n, rng)
        B = random_matrix(n, n, rng)
        truth = fp64.to_double_vector(
            matmul_square(fp64.cast_vector(A), fp64.cast_vector(B), n, fp64))
        for prec in errors:
            a = get_arithmetic(prec)
            with np.errstate(all="ignore"):
                C = matmul_square(a.cast_vector(A), a.cast_vector(B), n, a, ELEMENT)
            errors[prec].append(relative_error(truth, a.to_double_vector(C)))

    mean = {p: float(np.mean(e)) for p, e in errors.items()}
    assert mean["p3109_8"] >= mean["bf16"] >= mean["tf32"] >= mean["fp32"]
