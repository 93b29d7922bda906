import logging
from dataclasses import dataclass, field
from time import perf_counter

import numpy as np

from .Rq import Rq
from .errors import IncompatibleRingError, InversionError
from .utils import (
    crange, discrete_gaussian, discrete_range, discrete_uniform, from_signed, resample_until,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PrivateKey:
    """
    f is small and invertible; scaled_key = t·f + 1 is what decryption uses.
    Secret polynomials are kept out of repr().
    """
    f: Rq = field(repr=False)
    f_inverse: Rq = field(repr=False)
    scaled_key: Rq = field(repr=False)
    scaled_key_inverse: Rq = field(repr=False)


@dataclass(frozen=True)
class PublicKey:
    h: Rq


@dataclass(frozen=True)
class Message:
    """Plaintext polynomial, coefficients in [0, t)."""
    m: Rq


@dataclass(frozen=True)
class Ciphertext:
    c: Rq


class YASHE:
    """
    YASHE helper:
      - keygen(rng) → (private_key, public_key)
      - encrypt(message, public_key, rng) → c = h·s + t·e + m
      - decrypt(ciphertext, private_key) → [scaled_key·c]_q mod t
      - ciphertext_add / ciphertext_sub / ciphertext_mul
      - decrypt_mul(ciphertext, private_key) → [scaled_key²·c]_q mod t

    Decryption is only correct while the noise stays below about q / (2t);
    nothing checks this, an exhausted noise budget just decrypts to garbage.
    """

    def __init__(self, conf):
        self.conf = conf
        self.poly = conf.poly
        self.n = conf.poly.n
        self.q = conf.poly.q
        self.t = conf.t

    # sampling

    def sample_key(self, rng=None) -> Rq:
        return Rq(discrete_gaussian(self.n, self.q, std=self.conf.key_std, rng=rng), self.poly)

    def sample_err(self, rng=None) -> Rq:
        return Rq(discrete_gaussian(self.n, self.q, std=self.conf.err_std, rng=rng), self.poly)

    def sample_uniform_coeff(self, rng=None) -> Rq:
        return Rq(discrete_uniform(self.n, self.q, rng=rng), self.poly)

    def sample_message(self, rng=None) -> Message:
        return Message(Rq(discrete_range(self.n, 0, self.t, rng=rng), self.poly))

    def sample_binary_message(self, rng=None) -> Message:
        return Message(Rq(discrete_range(self.n, 0, 2, rng=rng), self.poly))

    def sample_ternary_message(self, rng=None) -> Message:
        return Message(Rq(discrete_range(self.n, -1, 2, rng=rng) % self.t, self.poly))

    def constant_message(self, c) -> Message:
        return Message(Rq([from_signed(c, self.t)], self.poly))

    def zero_message(self) -> Message:
        return Message(Rq.zero(self.poly))

    def encode_message(self, poly: Rq) -> Message:
        """Map a ring polynomial with small signed coefficients into [0, t)."""
        return Message(Rq(crange(poly.coeffs, self.q) % self.t, self.poly))

    def decode_message(self, message: Message):
        """Signed coefficients of a message, centered mod t."""
        return crange(message.m.padded(), self.t)

    # keys

    def generate_private_key(self, rng=None) -> PrivateKey:
        """Resample f until both f and t·f + 1 are invertible."""
        rng = np.random.default_rng() if rng is None else rng
        key, attempts = resample_until(
            lambda: self.sample_key(rng),
            self.private_key_from,
            retry_on=InversionError,
            max_attempts=self.conf.max_keygen_attempts,
        )
        logger.debug("Private key accepted after %d attempt(s)", attempts)
        return key

    def private_key_from(self, f: Rq) -> PrivateKey:
        """Raises InversionError if f or t·f + 1 has no inverse."""
        f_inverse = f.inverse()
        scaled_key = f.scale(self.t) + Rq.one(self.poly)
        return PrivateKey(f, f_inverse, scaled_key, scaled_key.inverse())

    def generate_public_key(self, private_key: PrivateKey, rng=None) -> PublicKey:
        """h = t·g·scaled_key⁻¹ for a fresh small g."""
        g = self.sample_key(rng)
        return PublicKey(g.scale(self.t) * private_key.scaled_key_inverse)

    def keygen(self, rng=None):
        rng = np.random.default_rng() if rng is None else rng
        t0 = perf_counter()
        private_key = self.generate_private_key(rng)
        public_key = self.generate_public_key(private_key, rng)
        t1 = perf_counter()
        logger.info("Time for keygen: %.6f s", t1 - t0)
        return private_key, public_key

    # encryption

    def encrypt(self, message: Message, public_key: PublicKey, rng=None) -> Ciphertext:
        m = message.m
        if m.conf.ring_key != self.poly.ring_key:
            raise IncompatibleRingError("message was built over a different ring")
        if any(c >= self.t for c in m.coeffs):
            raise ValueError(f"message coefficients must lie in [0, {self.t})")

        rng = np.random.default_rng() if rng is None else rng
        t0 = perf_counter()
        s = self.sample_err(rng)
        e = self.sample_err(rng)
        c = public_key.h * s + e.scale(self.t) + m
        logger.debug("Time for encrypt: %.6f s", perf_counter() - t0)
        return Ciphertext(c)

    def decrypt(self, ciphertext: Ciphertext, private_key: PrivateKey) -> Message:
        t0 = perf_counter()
        res = private_key.scaled_key * ciphertext.c
        message = self._lift_mod_t(res)
        logger.debug("Time for decrypt: %.6f s", perf_counter() - t0)
        return message

    def decrypt_mul(self, ciphertext: Ciphertext, private_key: PrivateKey) -> Message:
        """Decrypt the product of exactly two ciphertexts."""
        t0 = perf_counter()
        scaled_key = private_key.scaled_key
        res = scaled_key * (scaled_key * ciphertext.c)
        message = self._lift_mod_t(res)
        logger.debug("Time for decrypt_mul: %.6f s", perf_counter() - t0)
        return message

    def _lift_mod_t(self, res: Rq) -> Message:
        # center into (−q/2, q/2] before reducing, or the q wrap leaks into mod t
        return Message(Rq(crange(res.coeffs, self.q) % self.t, self.poly))

    # homomorphic operations

    def ciphertext_add(self, c1: Ciphertext, c2: Ciphertext) -> Ciphertext:
        return Ciphertext(c1.c + c2.c)

    def ciphertext_sub(self, c1: Ciphertext, c2: Ciphertext) -> Ciphertext:
        return Ciphertext(c1.c - c2.c)

    def ciphertext_mul(self, c1: Ciphertext, c2: Ciphertext) -> Ciphertext:
        return Ciphertext(c1.c * c2.c)

    # plaintext reference operations

    def plaintext_add(self, m1: Message, m2: Message) -> Message:
        res = m1.m + m2.m
        return Message(Rq(res.coeffs % self.t, self.poly))

    def plaintext_mul(self, m1: Message, m2: Message) -> Message:
        return self._lift_mod_t(m1.m * m2.m)
