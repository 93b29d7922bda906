import numpy as np
import pytest
from pydantic import ValidationError

from yashe.Rq import Rq
from yashe.conf import FQ79, TINY_POLY, PolyConf
from yashe.errors import IncompatibleRingError
from yashe.mul import (
    MUL_STRATEGIES, cross_check_mul, flat_karatsuba_mul, naive_cyclotomic_mul,
    rec_karatsuba_mul,
)
from yashe.utils import discrete_uniform

SMALL_Q_POLY = PolyConf(n=64, q=12289)
BIG_Q_POLY = PolyConf(n=64, q=FQ79, rec_karatsuba_min_degree=4)
CONFS = [TINY_POLY, SMALL_Q_POLY, BIG_Q_POLY]
STRATEGIES = [naive_cyclotomic_mul, rec_karatsuba_mul, flat_karatsuba_mul]


def random_poly(conf, rng):
    return Rq(discrete_uniform(conf.n, conf.q, rng=rng), conf)


def assert_canonical(p):
    assert p.coeffs.size == 0 or p.coeffs[-1] != 0
    assert p.coeffs.size <= p.conf.n


class TestCanonicalForm:

    def test_trailing_zeros_trimmed(self):
        p = Rq([1, 2, 0, 0], TINY_POLY)
        assert p.coeffs.tolist() == [1, 2]
        assert p.degree == 1

    def test_zero_polynomial_is_empty(self):
        assert Rq([0, 0, 0], TINY_POLY).coeffs.size == 0
        assert Rq.zero(TINY_POLY).is_zero()
        assert Rq.zero(TINY_POLY).degree == 0

    def test_negative_coefficients_reduced(self):
        p = Rq([-1, -2], TINY_POLY)
        assert p.coeffs.tolist() == [TINY_POLY.q - 1, TINY_POLY.q - 2]

    def test_cancelling_sum_is_zero(self, rng):
        p = random_poly(TINY_POLY, rng)
        assert (p - p).is_zero()
        assert (p + (-p)).is_zero()

    def test_scale_by_zero_is_zero(self, rng):
        p = random_poly(TINY_POLY, rng)
        assert p.scale(0).is_zero()
        assert p.scale(TINY_POLY.q).is_zero()

    def test_operations_keep_canonical_form(self, rng):
        conf = SMALL_Q_POLY
        a, b = random_poly(conf, rng), random_poly(conf, rng)
        for p in [a + b, a - b, -a, a.scale(3), a * b, a.mul_xn(5), 7 * a]:
            assert_canonical(p)

    def test_getitem_past_degree_reads_zero(self):
        p = Rq([5, 6], TINY_POLY)
        assert p[1] == 6
        assert p[7] == 0
        with pytest.raises(IndexError):
            p[-1]

    def test_equality_and_hash(self):
        a = Rq([1, 2, 3, 0], TINY_POLY)
        b = Rq([1, 2, 3], TINY_POLY)
        assert a == b
        assert hash(a) == hash(b)
        assert a != Rq([1, 2, 3], SMALL_Q_POLY)


class TestReduction:

    def test_xn_wraps_to_minus_one(self):
        conf = TINY_POLY
        assert Rq.xn(conf.n, conf) == Rq([conf.q - 1], conf)
        assert Rq.xn(2 * conf.n, conf) == Rq.one(conf)

    def test_fold_negates_odd_blocks(self):
        conf = TINY_POLY
        coeffs = list(range(1, 2 * conf.n))
        p = Rq(coeffs, conf, reduce=False)
        assert not p.is_reduced()
        r = p.reduce_mod_cyclotomic()
        expected = [(coeffs[i] - (coeffs[i + conf.n] if i + conf.n < len(coeffs) else 0)) % conf.q
                    for i in range(conf.n)]
        assert r.padded().tolist() == expected

    def test_reduce_is_idempotent(self, rng):
        a, b = random_poly(TINY_POLY, rng), random_poly(TINY_POLY, rng)
        r = a.naive_mul(b).reduce_mod_cyclotomic()
        assert r.reduce_mod_cyclotomic() == r

    def test_reduce_can_zero_leading_coefficient(self):
        conf = TINY_POLY
        # x^n + 1 ≡ 0
        assert conf.poly_modulus().reduce_mod_cyclotomic().is_zero()

    def test_poly_modulus_is_built_once(self):
        conf = PolyConf(n=16, q=12289)
        first = conf.poly_modulus()
        assert conf.poly_modulus() is first
        assert first.degree == 16
        assert first[0] == 1 and first[16] == 1


class TestSplitting:

    def test_split_half(self):
        p = Rq([1, 2, 3, 4, 5, 6, 7, 8], TINY_POLY)
        low, high = p.split_half(8)
        assert low.coeffs.tolist() == [1, 2, 3, 4]
        assert high.coeffs.tolist() == [5, 6, 7, 8]
        assert low + high.mul_xn(4) == p

    def test_split_into_chunks(self):
        p = Rq([1, 2, 3, 0, 0, 6], TINY_POLY)
        chunks = p.split(2)
        assert len(chunks) == 4
        assert [c.coeffs.tolist() for c in chunks] == [[1, 2], [3], [], [6]]

    def test_div_xn(self):
        p = Rq([1, 2, 3, 4], TINY_POLY)
        quotient, remainder = p.div_xn(1)
        assert quotient.coeffs.tolist() == [2, 3, 4]
        assert remainder.coeffs.tolist() == [1]


class TestMultiplication:

    @pytest.mark.parametrize("conf", CONFS, ids=["tiny", "small_q", "big_q"])
    def test_strategies_agree(self, conf, rng):
        for _ in range(5):
            a, b = random_poly(conf, rng), random_poly(conf, rng)
            res = cross_check_mul(a, b)
            assert_canonical(res)

    @pytest.mark.parametrize("strategy", STRATEGIES)
    def test_degree_zero_operands(self, strategy, rng):
        conf = SMALL_Q_POLY
        a = random_poly(conf, rng)
        assert strategy(a, Rq([3], conf)) == a.scale(3)
        assert strategy(Rq.one(conf), a) == a
        assert strategy(a, Rq.zero(conf)).is_zero()

    @pytest.mark.parametrize("strategy", STRATEGIES)
    @pytest.mark.parametrize("conf", CONFS, ids=["tiny", "small_q", "big_q"])
    def test_cyclotomic_wraparound(self, strategy, conf, rng):
        n, q = conf.n, conf.q
        p = random_poly(conf, rng)
        res = strategy(p, Rq.xn(n - 1, conf))
        for i in range(n - 1):
            assert res[i] == (-p[i + 1]) % q
        assert res[n - 1] == p[0]

    @pytest.mark.parametrize("strategy", STRATEGIES)
    def test_max_degree_identity(self, strategy):
        conf = TINY_POLY
        minus_one = Rq([conf.q - 1], conf)
        for i in range(conf.n + 1):
            assert strategy(Rq.xn(i, conf), Rq.xn(conf.n - i, conf)) == minus_one

    @pytest.mark.parametrize("conf", CONFS, ids=["tiny", "small_q", "big_q"])
    def test_strategies_agree_on_unreduced_operands(self, conf, rng):
        a, b, c = (random_poly(conf, rng) for _ in range(3))
        unreduced = a.naive_mul(b)
        assert not unreduced.is_reduced()
        expected = naive_cyclotomic_mul(unreduced.reduce_mod_cyclotomic(), c)
        for strategy in STRATEGIES:
            assert strategy(unreduced, c) == expected
            assert strategy(c, unreduced) == expected
        assert cross_check_mul(unreduced, unreduced) == cross_check_mul(
            unreduced.reduce_mod_cyclotomic(), unreduced.reduce_mod_cyclotomic())

    def test_configured_strategy_is_used(self, rng):
        for name in MUL_STRATEGIES:
            conf = PolyConf(n=32, q=12289, mul_strategy=name)
            a, b = random_poly(conf, rng), random_poly(conf, rng)
            assert a * b == naive_cyclotomic_mul(a, b)

    def test_flat_karatsuba_with_executor(self, rng):
        from concurrent.futures import ThreadPoolExecutor

        conf = SMALL_Q_POLY
        a, b = random_poly(conf, rng), random_poly(conf, rng)
        with ThreadPoolExecutor(max_workers=4) as executor:
            assert flat_karatsuba_mul(a, b, executor=executor) == naive_cyclotomic_mul(a, b)

    def test_flat_karatsuba_single_layer(self, rng):
        conf = PolyConf(n=16, q=12289, flat_karatsuba_initial_layer=4)
        a, b = random_poly(conf, rng), random_poly(conf, rng)
        assert flat_karatsuba_mul(a, b) == naive_cyclotomic_mul(a, b)

    def test_power(self, rng):
        a = random_poly(TINY_POLY, rng)
        assert a ** 0 == Rq.one(TINY_POLY)
        assert a ** 3 == a * a * a

    def test_scalar_multiplication(self):
        p = Rq([1, 2], TINY_POLY)
        assert 3 * p == Rq([3, 6], TINY_POLY)
        assert p * np.int64(3) == Rq([3, 6], TINY_POLY)


class TestDivision:

    def test_divmod(self, rng):
        conf = SMALL_Q_POLY
        a = random_poly(conf, rng)
        b = Rq(discrete_uniform(10, conf.q, rng=rng), conf)
        quotient, remainder = divmod(a, b)
        assert remainder.degree < b.degree or remainder.is_zero()
        assert quotient.naive_mul(b) + remainder == a

    def test_divide_by_zero(self):
        with pytest.raises(ZeroDivisionError):
            divmod(Rq.one(TINY_POLY), Rq.zero(TINY_POLY))


class TestConf:

    def test_incompatible_rings_rejected(self):
        with pytest.raises(IncompatibleRingError):
            Rq.one(TINY_POLY) + Rq.one(SMALL_Q_POLY)
        with pytest.raises(IncompatibleRingError):
            Rq.one(TINY_POLY) * Rq.one(BIG_Q_POLY)

    def test_same_ring_different_strategy_is_compatible(self):
        other = PolyConf(n=8, q=12289, mul_strategy="naive", flat_karatsuba_initial_layer=2)
        assert Rq([1, 2], TINY_POLY) + Rq([1], other) == Rq([2, 2], TINY_POLY)

    @pytest.mark.parametrize("kwargs", [
        dict(n=6, q=12289),
        dict(n=8, q=12288),
        dict(n=8, q=15),
        dict(n=8, q=12289, rec_karatsuba_min_degree=3),
        dict(n=8, q=12289, flat_karatsuba_initial_layer=1),
        dict(n=8, q=12289, flat_karatsuba_initial_layer=4),
        dict(n=8, q=12289, mul_strategy="ntt"),
    ])
    def test_invalid_poly_conf(self, kwargs):
        with pytest.raises(ValidationError):
            PolyConf(**kwargs)

    def test_conf_equality(self):
        assert PolyConf(n=64, q=12289) == SMALL_Q_POLY
        assert hash(PolyConf(n=64, q=12289)) == hash(SMALL_Q_POLY)
        with pytest.raises(ValidationError):
            SMALL_Q_POLY.n = 128
