# yashe/conf.py
import threading
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, PrivateAttr, field_validator, model_validator

MulStrategy = Literal["naive", "rec_karatsuba", "flat_karatsuba"]

# 79-bit prime
FQ79 = 495925933090739208380417
# 123-bit prime
FQ123 = 5825476135918962761812038067936663553


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


class PolyConf(BaseModel):
    """
    Fixed parameters of R_q = Z_q[x] / (x^n + 1).

    Polynomials from configurations with a different (n, q) are never
    compatible operands. The multiplication tuning fields only select how
    products are computed, not which ring they live in.
    """

    model_config = ConfigDict(frozen=True)

    n: int
    q: int
    rec_karatsuba_min_degree: int = 8
    flat_karatsuba_initial_layer: int = 3
    mul_strategy: MulStrategy = "rec_karatsuba"

    _poly_modulus = PrivateAttr(default=None)
    _poly_modulus_lock = PrivateAttr(default_factory=threading.Lock)

    @field_validator("n")
    @classmethod
    def check_n(cls, n):
        if n < 2 or not is_power_of_two(n):
            raise ValueError(f"n must be a power of two >= 2, got {n}")
        return n

    @field_validator("q")
    @classmethod
    def check_q(cls, q):
        # Fermat base 2: rejects even moduli and almost every composite
        if q < 3 or q % 2 == 0 or pow(2, q - 1, q) != 1:
            raise ValueError(f"q must be an odd prime, got {q}")
        return q

    @field_validator("rec_karatsuba_min_degree")
    @classmethod
    def check_min_degree(cls, d):
        if not is_power_of_two(d):
            raise ValueError(f"rec_karatsuba_min_degree must be a power of two, got {d}")
        return d

    @model_validator(mode="after")
    def check_initial_layer(self):
        layer = self.flat_karatsuba_initial_layer
        if not 1 < layer <= self.log_n:
            raise ValueError(
                f"flat_karatsuba_initial_layer must be in (1, {self.log_n}], got {layer}"
            )
        return self

    @property
    def log_n(self) -> int:
        return self.n.bit_length() - 1

    @property
    def ring_key(self):
        return (self.n, self.q)

    def poly_modulus(self):
        """
        Unreduced x^n + 1 for this ring.

        Built once on first use and shared read-only afterwards.
        """
        if self._poly_modulus is None:
            with self._poly_modulus_lock:
                if self._poly_modulus is None:
                    from .Rq import Rq
                    self._poly_modulus = Rq.new_unreduced_poly_modulus(self)
        return self._poly_modulus

    def __eq__(self, other):
        if not isinstance(other, PolyConf):
            return NotImplemented
        return self.model_dump() == other.model_dump()

    def __hash__(self):
        return hash(tuple(self.model_dump().values()))


class YasheConf(BaseModel):
    """Ring plus plaintext modulus t and the key/noise standard deviations."""

    model_config = ConfigDict(frozen=True)

    poly: PolyConf
    t: int
    key_std: float
    err_std: float
    max_keygen_attempts: Optional[int] = None

    @field_validator("key_std", "err_std")
    @classmethod
    def check_std(cls, std):
        if std <= 0:
            raise ValueError(f"standard deviation must be positive, got {std}")
        return std

    @field_validator("max_keygen_attempts")
    @classmethod
    def check_attempts(cls, attempts):
        if attempts is not None and attempts < 1:
            raise ValueError(f"max_keygen_attempts must be positive, got {attempts}")
        return attempts

    @model_validator(mode="after")
    def check_t(self):
        if not 2 <= self.t < self.poly.q:
            raise ValueError(f"t must satisfy 2 <= t < q, got t={self.t}, q={self.poly.q}")
        return self


# Small enough to read failing test output by hand
TINY_POLY = PolyConf(n=8, q=12289, rec_karatsuba_min_degree=2, flat_karatsuba_initial_layer=2)
TINY_YASHE = YasheConf(poly=TINY_POLY, t=2, key_std=1.0, err_std=1.0)

MIDDLE_POLY = PolyConf(n=256, q=FQ79)
MIDDLE_YASHE = YasheConf(poly=MIDDLE_POLY, t=256, key_std=1.0, err_std=3.2)

FULL_POLY = PolyConf(n=2048, q=FQ79)
FULL_YASHE = YasheConf(poly=FULL_POLY, t=4096, key_std=1.0, err_std=3.2)

LARGE_POLY = PolyConf(n=2048, q=FQ123)
