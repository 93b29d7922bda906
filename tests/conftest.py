import numpy as np
import pytest

from yashe.Rq import Rq
from yashe.YASHE import YASHE
from yashe.conf import FQ79, MIDDLE_YASHE, TINY_YASHE, PolyConf, YasheConf
from iris_match.constants import MatchConf

# Block products for MATCH_CONF fit in n=64 without wrapping
MATCH_POLY = PolyConf(n=64, q=FQ79)
MATCH_YASHE = YasheConf(poly=MATCH_POLY, t=64, key_std=1.0, err_std=3.2)
MATCH_CONF = MatchConf(columns=8, rows=4, rows_per_block=2, rotation_limit=2)


@pytest.fixture
def rng():
    return np.random.default_rng(20241018)


@pytest.fixture(scope="session")
def tiny_ctx():
    return YASHE(TINY_YASHE)


@pytest.fixture(scope="session")
def tiny_keys(tiny_ctx):
    return tiny_ctx.keygen(np.random.default_rng(1))


@pytest.fixture(scope="session")
def middle_ctx():
    return YASHE(MIDDLE_YASHE)


@pytest.fixture(scope="session")
def middle_keys(middle_ctx):
    return middle_ctx.keygen(np.random.default_rng(2))


@pytest.fixture(scope="session")
def match_ctx():
    return YASHE(MATCH_YASHE)


@pytest.fixture(scope="session")
def match_keys(match_ctx):
    return match_ctx.keygen(np.random.default_rng(3))


def _bit_value(bits, mask, row, col):
    # visible 1 bit → −1, visible 0 bit → +1, masked → 0
    if not mask[row][col]:
        return 0
    return -1 if bits[row][col] else 1


def encode_query(bits, mask, conf: MatchConf, poly_conf):
    """Query blocks: each row is written with rotation_limit columns of wraparound padding on both sides."""
    k, v, s, width = conf.columns, conf.rotation_limit, conf.rows_per_block, conf.num_cols_and_pads
    data, masks = [], []
    for block in range(conf.num_blocks):
        d = [0] * (s * width)
        m = [0] * (s * width)
        for i in range(s):
            row = block * s + i
            for j in range(width):
                col = (j - v) % k
                d[width * i + j] = _bit_value(bits, mask, row, col)
                m[width * i + j] = 1 if mask[row][col] else 0
        data.append(Rq(d, poly_conf))
        masks.append(Rq(m, poly_conf))
    return data, masks


def encode_code(bits, mask, conf: MatchConf, poly_conf):
    """Code blocks: rows in reverse order, columns reversed, no padding."""
    k, s, width = conf.columns, conf.rows_per_block, conf.num_cols_and_pads
    data, masks = [], []
    for block in range(conf.num_blocks):
        d = [0] * (s * width)
        m = [0] * (s * width)
        for i in range(s):
            row = block * s + s - 1 - i
            for j in range(k):
                col = k - 1 - j
                d[width * i + j] = _bit_value(bits, mask, row, col)
                m[width * i + j] = 1 if mask[row][col] else 0
        data.append(Rq(d, poly_conf))
        masks.append(Rq(m, poly_conf))
    return data, masks


def plaintext_counts(query_bits, query_mask, code_bits, code_mask, conf: MatchConf):
    """(matches - differences, visible) per rotation, straight from the bits."""
    k, v = conf.columns, conf.rotation_limit
    signed, visible = [], []
    for r in range(-v, v + 1):
        total = seen = 0
        for row in range(conf.rows):
            for col in range(k):
                qcol = (col + r) % k
                if query_mask[row][qcol] and code_mask[row][col]:
                    seen += 1
                    total += 1 if query_bits[row][qcol] == code_bits[row][col] else -1
        signed.append(total)
        visible.append(seen)
    return signed, visible
