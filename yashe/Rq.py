import numpy as np

from .errors import IncompatibleRingError
from .utils import crange, field_inverse, schoolbook


def _canonical(coeffs):
    # trim trailing zeros; the zero polynomial stores nothing
    nonzero = np.flatnonzero(coeffs)
    if nonzero.size == 0:
        return coeffs[:0]
    return coeffs[:nonzero[-1] + 1]


def _fold(coeffs, n, q):
    """Fold index i >= n onto i mod n, negated when i // n is odd (x^n ≡ −1)."""
    res = coeffs[:n].copy()
    for start in range(n, coeffs.size, n):
        block = coeffs[start:start + n]
        if (start // n) % 2:
            res[:block.size] -= block
        else:
            res[:block.size] += block
    return res % q


def _add(a, b):
    if a.size < b.size:
        a, b = b, a
    res = a.copy()
    res[:b.size] += b
    return res


def _as_object_array(coeffs):
    arr = np.asarray(coeffs)
    if arr.dtype != object:
        # numpy ints and bools become Python ints here
        return arr.reshape(-1).astype(object)
    return np.array([int(c) for c in arr.reshape(-1)], dtype=object)


class Rq:
    """
    Element of R_q = Z_q[x] / (x^n + 1).

    Coefficients are stored lowest degree first as Python ints in [0, q),
    with trailing zeros trimmed. Every operation returns a new instance.

    Addition, subtraction and scaling act on the stored polynomial as is, so
    an unreduced polynomial (degree >= n) stays unreduced until
    reduce_mod_cyclotomic() or a ring product is applied.
    """

    def __init__(self, coeffs, conf, reduce=True):
        self._set(_as_object_array(coeffs), conf, reduce)

    @classmethod
    def _wrap(cls, coeffs, conf, reduce=False):
        poly = cls.__new__(cls)
        poly._set(coeffs, conf, reduce)
        return poly

    def _set(self, coeffs, conf, reduce):
        coeffs = coeffs % conf.q
        if reduce and coeffs.size > conf.n:
            coeffs = _fold(coeffs, conf.n, conf.q)
        self.conf = conf
        self.coeffs = _canonical(coeffs)

    # constructors

    @classmethod
    def zero(cls, conf):
        return cls._wrap(np.zeros(0, dtype=object), conf)

    @classmethod
    def one(cls, conf):
        return cls._wrap(np.ones(1, dtype=object), conf)

    @classmethod
    def xn(cls, k, conf):
        """Monomial x^k, reduced into the ring."""
        coeffs = np.zeros(k + 1, dtype=object)
        coeffs[k] = 1
        return cls._wrap(coeffs, conf, reduce=True)

    @classmethod
    def new_unreduced_poly_modulus(cls, conf):
        """x^n + 1 as a plain polynomial of degree n."""
        coeffs = np.zeros(conf.n + 1, dtype=object)
        coeffs[0] = coeffs[conf.n] = 1
        return cls._wrap(coeffs, conf)

    # inspection

    @property
    def degree(self) -> int:
        """Degree of the polynomial; the zero polynomial reports 0."""
        return max(self.coeffs.size - 1, 0)

    def is_zero(self) -> bool:
        return self.coeffs.size == 0

    def is_one(self) -> bool:
        return self.coeffs.size == 1 and self.coeffs[0] == 1

    def is_reduced(self) -> bool:
        return self.coeffs.size <= self.conf.n

    def __getitem__(self, i):
        if i < 0:
            raise IndexError(f"negative coefficient index {i}")
        return self.coeffs[i] if i < self.coeffs.size else 0

    def padded(self, length=None):
        """Coefficients zero-padded to length (default n)."""
        length = self.conf.n if length is None else length
        res = np.zeros(max(length, self.coeffs.size), dtype=object)
        res[:self.coeffs.size] = self.coeffs
        return res

    def to_signed(self):
        """Coefficients centered into (−q/2, q/2]."""
        return crange(self.coeffs, self.conf.q)

    def check_compatible(self, other):
        if not isinstance(other, Rq):
            raise TypeError(f"expected Rq, got {type(other).__name__}")
        if self.conf.ring_key != other.conf.ring_key:
            raise IncompatibleRingError(
                f"ring mismatch: (n={self.conf.n}, q={self.conf.q}) vs "
                f"(n={other.conf.n}, q={other.conf.q})"
            )

    def __repr__(self):
        return f"Rq({self.coeffs.tolist()}, mod {self.conf.q})"

    def __eq__(self, other):
        if not isinstance(other, Rq):
            return NotImplemented
        return (self.conf.ring_key == other.conf.ring_key
                and self.coeffs.tolist() == other.coeffs.tolist())

    def __hash__(self):
        return hash((self.conf.ring_key, tuple(self.coeffs.tolist())))

    # coefficient-wise arithmetic

    def __add__(self, other):
        self.check_compatible(other)
        return Rq._wrap(_add(self.coeffs, other.coeffs), self.conf)

    def __sub__(self, other):
        self.check_compatible(other)
        return Rq._wrap(_add(self.coeffs, -other.coeffs), self.conf)

    def __neg__(self):
        return Rq._wrap(-self.coeffs, self.conf)

    def scale(self, c):
        """Multiply every coefficient by the field element c."""
        return Rq._wrap(self.coeffs * (int(c) % self.conf.q), self.conf)

    def __rmul__(self, scalar):
        if isinstance(scalar, (int, np.integer)):
            return self.scale(scalar)
        return NotImplemented

    # products

    def __mul__(self, other):
        if isinstance(other, Rq):
            from .mul import mul_poly
            return mul_poly(self, other)
        if isinstance(other, (int, np.integer)):
            return self.scale(other)
        return NotImplemented

    def __pow__(self, exp):
        if exp < 0:
            raise ValueError("negative exponents need inverse() first")
        result = Rq.one(self.conf)
        for _ in range(exp):
            result = result * self
        return result

    def naive_mul(self, other):
        """Schoolbook product, not reduced mod x^n + 1."""
        self.check_compatible(other)
        return Rq._wrap(schoolbook(self.coeffs, other.coeffs, self.conf.q), self.conf)

    def reduce_mod_cyclotomic(self):
        if self.is_reduced():
            return self
        return Rq._wrap(self.coeffs, self.conf, reduce=True)

    def mul_xn(self, k):
        """Ring product with x^k: shift up by k, then reduce."""
        if self.is_zero():
            return self
        shifted = np.concatenate([np.zeros(k, dtype=object), self.coeffs])
        return Rq._wrap(shifted, self.conf, reduce=True)

    def div_xn(self, k):
        """(quotient, remainder) of plain division by x^k."""
        return (Rq._wrap(self.coeffs[k:], self.conf),
                Rq._wrap(self.coeffs[:k], self.conf))

    def split_half(self, chunk):
        """(low, high) halves of a polynomial with degree bound chunk."""
        high, low = self.div_xn(chunk // 2)
        return low, high

    def split(self, chunk_size):
        """n / chunk_size zero-padded chunks of chunk_size coefficients, lowest first."""
        coeffs = self.padded()
        return [Rq._wrap(coeffs[i:i + chunk_size], self.conf)
                for i in range(0, self.conf.n, chunk_size)]

    def __divmod__(self, divisor):
        """Plain polynomial long division over Z_q."""
        self.check_compatible(divisor)
        if divisor.is_zero():
            raise ZeroDivisionError("polynomial division by the zero polynomial")
        q = self.conf.q
        d = divisor.coeffs
        if self.coeffs.size < d.size:
            return Rq.zero(self.conf), self

        lead_inv = field_inverse(d[-1], q)
        rem = self.coeffs.copy()
        quot = np.zeros(rem.size - d.size + 1, dtype=object)
        for i in range(quot.size - 1, -1, -1):
            coeff = rem[i + d.size - 1] * lead_inv % q
            if coeff:
                quot[i] = coeff
                rem[i:i + d.size] = (rem[i:i + d.size] - coeff * d) % q
        return Rq._wrap(quot, self.conf), Rq._wrap(rem, self.conf)

    def inverse(self):
        from .inv import inverse
        return inverse(self)
