"""
Hamming distance of two binary messages with a single homomorphic multiply.

With m_rev[i] = m[size - 1 - i], coefficient size - 1 of
(m1 - m2)·(m1_rev - m2_rev) is Σ (m1[i] - m2[i])², the Hamming distance.
"""
from dataclasses import dataclass

import numpy as np

from .Rq import Rq
from .YASHE import YASHE, Ciphertext, Message, PrivateKey, PublicKey


def _reverse(m: Rq, size: int) -> Rq:
    return Rq(m.padded(size)[:size][::-1], m.conf)


def _check_size(ctx: YASHE, size: int):
    if not 0 < size <= ctx.n:
        raise ValueError(f"size must be in (0, {ctx.n}], got {size}")
    if size >= ctx.t:
        raise ValueError(f"size {size} must be below t={ctx.t} to read distances exactly")


class SimpleHammingEncoding:
    """A binary message of `size` bits together with its reversal."""

    def __init__(self, m: Message, size: int):
        if m.m.degree >= size:
            raise ValueError(f"message has bits beyond size {size}")
        if any(c > 1 for c in m.m.coeffs):
            raise ValueError("message must be binary")
        self.size = size
        self.m = m
        self.m_rev = Message(_reverse(m.m, size))

    @classmethod
    def sample(cls, ctx: YASHE, size: int, rng=None):
        _check_size(ctx, size)
        rng = np.random.default_rng() if rng is None else rng
        bits = rng.integers(0, 2, size=size, dtype=np.int64)
        return cls(Message(Rq(bits, ctx.poly)), size)

    def bits(self):
        return [int(b) for b in self.m.m.padded(self.size)[:self.size]]

    def hamming_distance(self, other) -> int:
        return sum(a != b for a, b in zip(self.bits(), other.bits()))

    def encrypt(self, ctx: YASHE, public_key: PublicKey, rng=None):
        _check_size(ctx, self.size)
        rng = np.random.default_rng() if rng is None else rng
        return SimpleHammingEncodingCiphertext(
            ctx.encrypt(self.m, public_key, rng),
            ctx.encrypt(self.m_rev, public_key, rng),
            self.size,
        )


@dataclass(frozen=True)
class SimpleHammingEncodingCiphertext:
    c: Ciphertext
    c_rev: Ciphertext
    size: int

    def decrypt(self, ctx: YASHE, private_key: PrivateKey) -> SimpleHammingEncoding:
        return SimpleHammingEncoding(ctx.decrypt(self.c, private_key), self.size)

    def homomorphic_hamming_distance(self, ctx: YASHE, other) -> Ciphertext:
        if self.size != other.size:
            raise ValueError(f"size mismatch: {self.size} != {other.size}")
        diff = ctx.ciphertext_sub(self.c, other.c)
        diff_rev = ctx.ciphertext_sub(self.c_rev, other.c_rev)
        return ctx.ciphertext_mul(diff, diff_rev)


def decrypt_hamming_distance(ctx: YASHE, ciphertext: Ciphertext, private_key: PrivateKey,
                             size: int) -> int:
    return int(ctx.decrypt_mul(ciphertext, private_key).m[size - 1])
