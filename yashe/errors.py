class YasheError(Exception):
    """Base class for ring and scheme errors."""


class IncompatibleRingError(YasheError, TypeError):
    """Operands were built over different (n, q) rings."""


class InversionError(YasheError, ArithmeticError):
    pass


class ZeroPolynomialError(InversionError):
    pass


class NonInvertibleError(InversionError):
    pass


class KeyGenerationError(YasheError):
    """The configured retry limit was hit before a usable key was sampled."""
