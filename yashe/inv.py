from .Rq import Rq
from .errors import NonInvertibleError, ZeroPolynomialError
from .utils import field_inverse


def extended_gcd(a: Rq, b: Rq):
    """
    Extended Euclid over Z_q[x] on plain (unreduced) polynomials.

    Returns (x, y, d) with a·x + b·y = d, d being the last non-zero
    remainder. d is a gcd of a and b up to a constant factor.
    """
    a.check_compatible(b)
    conf = a.conf
    r_prev, x_prev, y_prev = a, Rq.one(conf), Rq.zero(conf)
    r_cur, x_cur, y_cur = b, Rq.zero(conf), Rq.one(conf)

    # invariant: a·x_prev + b·y_prev = r_prev, a·x_cur + b·y_cur = r_cur
    while not r_cur.is_zero():
        quotient, remainder = divmod(r_prev, r_cur)
        r_prev, r_cur = r_cur, remainder
        x_prev, x_cur = x_cur, _update_diophantine(x_prev, x_cur, quotient)
        y_prev, y_cur = y_cur, _update_diophantine(y_prev, y_cur, quotient)

    return x_prev, y_prev, r_prev


def _update_diophantine(prev, cur, quotient):
    return prev - cur.naive_mul(quotient)


def inverse(a: Rq) -> Rq:
    """Multiplicative inverse of a in Z_q[x] / (x^n + 1)."""
    a = a.reduce_mod_cyclotomic()
    if a.is_zero():
        raise ZeroPolynomialError("can't invert the zero polynomial")

    _, y, d = extended_gcd(a.conf.poly_modulus(), a)

    if d.is_zero():
        raise ZeroPolynomialError("can't invert the zero polynomial")
    if d.degree > 0:
        raise NonInvertibleError(
            f"non-invertible polynomial: gcd with x^{a.conf.n} + 1 has degree {d.degree}"
        )

    # d is a non-zero constant: scale y so that a·y = 1
    return y.scale(field_inverse(d[0], a.conf.q)).reduce_mod_cyclotomic()
