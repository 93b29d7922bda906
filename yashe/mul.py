"""
Ring products in Z_q[x] / (x^n + 1).

Three strategies compute the same canonical result:
  - naive_cyclotomic_mul: schoolbook product, then one reduction
  - rec_karatsuba_mul: recursive Karatsuba down to conf.rec_karatsuba_min_degree
  - flat_karatsuba_mul: the same recursion unrolled into bottom-up layers
"""
from .Rq import Rq


def poly_split(a: Rq, chunk_size: int):
    return a.split(chunk_size)


def poly_split_half(a: Rq, chunk: int):
    return a.split_half(chunk)


def naive_cyclotomic_mul(a: Rq, b: Rq) -> Rq:
    return a.naive_mul(b).reduce_mod_cyclotomic()


def rec_karatsuba_mul(a: Rq, b: Rq) -> Rq:
    a.check_compatible(b)
    return _rec_karatsuba_mul(a, b, a.conf.n).reduce_mod_cyclotomic()


def _rec_karatsuba_mul(a, b, chunk):
    min_degree = a.conf.rec_karatsuba_min_degree
    if a.degree <= min_degree or b.degree <= min_degree:
        return a.naive_mul(b)

    al, ar = poly_split_half(a, chunk)
    bl, br = poly_split_half(b, chunk)

    albl = _rec_karatsuba_mul(al, bl, chunk // 2)
    arbr = _rec_karatsuba_mul(ar, br, chunk // 2)
    # (al + ar)(bl + br) = albl + albr + arbl + arbr
    y = _rec_karatsuba_mul(al + ar, bl + br, chunk // 2)

    # albl + (y - albl - arbr) x^(chunk/2) + arbr x^chunk
    # At the top level x^chunk is x^n, so mul_xn wraps with a sign flip.
    res = arbr.mul_xn(chunk)
    res = res + (y - albl - arbr).mul_xn(chunk // 2)
    return res + albl


def flat_karatsuba_mul(a: Rq, b: Rq, executor=None) -> Rq:
    """
    Layered Karatsuba. Chunk pairs within a layer are independent, so an
    executor with a map() method (e.g. ThreadPoolExecutor) can combine them
    in parallel.
    """
    a.check_compatible(b)
    # split() only sees the first n coefficients
    a, b = a.reduce_mod_cyclotomic(), b.reduce_mod_cyclotomic()
    conf = a.conf
    map_fn = map if executor is None else executor.map

    layer = conf.flat_karatsuba_initial_layer
    chunk_size = 1 << (layer - 1)

    # first layer: both sub-products come from naive multiplication
    current = _combine_layer(poly_split(a, chunk_size), poly_split(b, chunk_size),
                             None, chunk_size, map_fn)
    chunk_size *= 2

    while layer < conf.log_n:
        # current[2j], current[2j + 1] already hold albl and arbr for pair j
        current = _combine_layer(poly_split(a, chunk_size), poly_split(b, chunk_size),
                                 current, chunk_size, map_fn)
        layer += 1
        chunk_size *= 2

    return current[0].reduce_mod_cyclotomic()


def _combine_layer(a_chunks, b_chunks, products, chunk_size, map_fn):
    def combine(j):
        al, ar = a_chunks[2 * j], a_chunks[2 * j + 1]
        bl, br = b_chunks[2 * j], b_chunks[2 * j + 1]
        if products is None:
            albl, arbr = al.naive_mul(bl), ar.naive_mul(br)
        else:
            albl, arbr = products[2 * j], products[2 * j + 1]
        y = (al + ar).naive_mul(bl + br)
        res = albl + (y - albl - arbr).mul_xn(chunk_size)
        return res + arbr.mul_xn(2 * chunk_size)

    return list(map_fn(combine, range(len(a_chunks) // 2)))


MUL_STRATEGIES = {
    "naive": naive_cyclotomic_mul,
    "rec_karatsuba": rec_karatsuba_mul,
    "flat_karatsuba": flat_karatsuba_mul,
}


def mul_poly(a: Rq, b: Rq) -> Rq:
    """Ring product using the strategy selected by a.conf.mul_strategy."""
    return MUL_STRATEGIES[a.conf.mul_strategy](a, b)


def cross_check_mul(a: Rq, b: Rq) -> Rq:
    """Run every strategy and fail loudly if any two disagree. Debug/test only."""
    results = {name: fn(a, b) for name, fn in MUL_STRATEGIES.items()}
    expected = results["naive"]
    for name, res in results.items():
        if res != expected:
            raise AssertionError(f"{name} product {res!r} != naive product {expected!r}")
    return expected
