import logging

import numpy as np
from numba import njit

from .errors import KeyGenerationError

logger = logging.getLogger(__name__)

# Below this modulus every partial sum of a schoolbook product fits in int64.
INT64_SAFE_MODULUS = 1 << 31

_LIMB_BITS = 62


def crange(coeffs, q):
    """Center coefficients to range (−q/2, q/2]."""
    coeffs = np.asarray(coeffs, dtype=object) % q
    return np.where(coeffs <= q // 2, coeffs, coeffs - q)


def to_signed(c: int, q: int) -> int:
    c = int(c) % q
    return c if c <= q // 2 else c - q


def from_signed(v: int, q: int) -> int:
    return int(v) % q


def field_inverse(c: int, q: int) -> int:
    """Inverse of c in Z_q; raises ZeroDivisionError for c ≡ 0."""
    c = int(c) % q
    if c == 0:
        raise ZeroDivisionError("0 has no inverse mod q")
    return pow(c, -1, q)


@njit(cache=True)
def schoolbook_int64(a: np.ndarray, b: np.ndarray, q: int) -> np.ndarray:
    """Plain product of two int64 coefficient arrays mod q (no x^n + 1 reduction)."""
    res = np.zeros(a.size + b.size - 1, dtype=np.int64)
    for i in range(a.size):
        ai = a[i]
        if ai == 0:
            continue
        for j in range(b.size):
            res[i + j] = (res[i + j] + ai * b[j]) % q
    return res


def schoolbook(a, b, q):
    """Plain product of two object-dtype coefficient arrays mod q."""
    if a.size == 0 or b.size == 0:
        return np.zeros(0, dtype=object)
    if q < INT64_SAFE_MODULUS:
        res = schoolbook_int64(a.astype(np.int64), b.astype(np.int64), q)
        return res.astype(object)
    if a.size > b.size:
        a, b = b, a
    res = np.zeros(a.size + b.size - 1, dtype=object)
    for i, ai in enumerate(a):
        if ai:
            res[i:i + b.size] += ai * b
    return res % q


# TODO: key material should come from a CSPRNG-backed bit generator rather
# than PCG64 once a vetted numpy adapter is chosen.
def _rng(rng):
    return np.random.default_rng() if rng is None else rng


def discrete_gaussian(n, q, std=1.0, rng=None):
    """Rounded normal samples, returned as residues mod q."""
    rng = _rng(rng)
    return np.round(std * rng.standard_normal(n)).astype(np.int64).astype(object) % q


def discrete_uniform(n, q, rng=None):
    """Uniform residues in [0, q), for moduli of any size."""
    rng = _rng(rng)
    if q <= np.iinfo(np.int64).max:
        return rng.integers(0, q, size=n, dtype=np.int64).astype(object)
    # combine enough 62-bit limbs to leave a negligible modulo bias
    limbs = (q.bit_length() + 64) // _LIMB_BITS + 1
    res = np.zeros(n, dtype=object)
    for _ in range(limbs):
        limb = rng.integers(0, 1 << _LIMB_BITS, size=n, dtype=np.int64).astype(object)
        res = (res << _LIMB_BITS) | limb
    return res % q


def discrete_range(n, low, high, rng=None):
    """Uniform integers in [low, high)."""
    rng = _rng(rng)
    return rng.integers(low, high, size=n, dtype=np.int64).astype(object)


def resample_until(sample, attempt, retry_on, max_attempts=None):
    """
    Draw candidates from sample() until attempt(candidate) returns without
    raising one of retry_on. Returns (result, attempts).

    max_attempts=None retries forever; otherwise KeyGenerationError is raised
    once the limit is spent, which points at a degenerate configuration.
    """
    attempts = 0
    while max_attempts is None or attempts < max_attempts:
        attempts += 1
        candidate = sample()
        try:
            return attempt(candidate), attempts
        except retry_on as err:
            logger.debug("Attempt %d rejected: %s", attempts, err)
            if attempts % 100 == 0:
                logger.warning("%d candidates rejected so far, check the configuration", attempts)
    raise KeyGenerationError(f"no valid candidate after {max_attempts} attempts")
