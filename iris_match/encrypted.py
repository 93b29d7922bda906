import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Tuple

import numpy as np

from yashe.YASHE import YASHE, Ciphertext, PrivateKey, PublicKey
from yashe.utils import to_signed
from iris_match.constants import MatchConf

logger = logging.getLogger(__name__)


class MatchError(Exception):
    """Encrypted matching produced a value outside the range the encoding allows."""


@dataclass(frozen=True)
class EncryptedPolyCode:
    """Encrypted blocks of a stored iris code and its mask."""
    data: Tuple[Ciphertext, ...]
    masks: Tuple[Ciphertext, ...]


@dataclass(frozen=True)
class EncryptedPolyQuery:
    """Encrypted blocks of a query iris code and its mask."""
    data: Tuple[Ciphertext, ...]
    masks: Tuple[Ciphertext, ...]


def _encrypt_blocks(ctx, polys, public_key, rng):
    return tuple(ctx.encrypt(ctx.encode_message(p), public_key, rng) for p in polys)


def encrypt_code(ctx: YASHE, data_polys, mask_polys, public_key: PublicKey,
                 rng=None) -> EncryptedPolyCode:
    """Encrypt encoded code blocks. Coefficients are small signed residues mod q."""
    rng = np.random.default_rng() if rng is None else rng
    return EncryptedPolyCode(
        _encrypt_blocks(ctx, data_polys, public_key, rng),
        _encrypt_blocks(ctx, mask_polys, public_key, rng),
    )


def encrypt_query(ctx: YASHE, data_polys, mask_polys, public_key: PublicKey,
                  rng=None) -> EncryptedPolyQuery:
    rng = np.random.default_rng() if rng is None else rng
    return EncryptedPolyQuery(
        _encrypt_blocks(ctx, data_polys, public_key, rng),
        _encrypt_blocks(ctx, mask_polys, public_key, rng),
    )


def coeff_to_int(coeff, t: int, bound: int) -> int:
    """
    Signed value of a plaintext coefficient in [0, t), with t/2 and below
    read as non-negative. Values outside [-bound, bound] raise MatchError.
    """
    coeff = int(coeff)
    if not 0 <= coeff < t:
        raise MatchError(f"coefficient {coeff} is outside [0, {t})")
    value = to_signed(coeff, t)
    if abs(value) > bound:
        raise MatchError(f"inner product {value} is outside [-{bound}, {bound}]")
    return value


def accumulate_inner_products(ctx: YASHE, private_key: PrivateKey, a_cts, b_cts,
                              conf: MatchConf):
    """
    Sum, over all blocks, the inner products of a and b at every rotation.
    Returns one signed total per rotation, from -rotation_limit upwards.
    """
    a_cts, b_cts = list(a_cts), list(b_cts)
    if len(a_cts) != len(b_cts):
        raise MatchError(f"block count mismatch: {len(a_cts)} != {len(b_cts)}")

    start = conf.first_inner_product_index
    totals = [0] * conf.rotation_comparisons
    for a, b in zip(a_cts, b_cts):
        product = ctx.ciphertext_mul(a, b)
        decrypted = ctx.decrypt_mul(product, private_key).m
        for r in range(conf.rotation_comparisons):
            totals[r] += coeff_to_int(decrypted[start + r], ctx.t, conf.block_bit_len)
    return totals


def is_match(ctx: YASHE, private_key: PrivateKey, query: EncryptedPolyQuery,
             code: EncryptedPolyCode, conf: MatchConf) -> bool:
    """
    True if, at some rotation, at most match_numerator / match_denominator of
    the bits visible in both masks differ.
    """
    conf.check_fits(ctx.conf)
    t0 = perf_counter()

    match_counts = accumulate_inner_products(ctx, private_key, query.data, code.data, conf)
    mask_counts = accumulate_inner_products(ctx, private_key, query.masks, code.masks, conf)

    # matches - differences = match_count, matches + differences = mask_count
    result = any(
        (total - matches) * conf.match_denominator <= 2 * total * conf.match_numerator
        for matches, total in zip(match_counts, mask_counts)
    )
    t1 = perf_counter()
    logger.info("Time for encrypted match: %.6f s", t1 - t0)
    return result
