"""
Arithmetic in the finite field GF(2^8).

Each secret byte is shared independently, so the field has exactly one
element per byte value. Elements are the integers 0..255 read as
polynomials over GF(2), reduced modulo the AES/Rijndael polynomial
x^8 + x^4 + x^3 + x + 1.

Field operations:
    - Addition and subtraction are both XOR (characteristic 2, no carries)
    - Multiplication uses log/antilog tables over the generator 3
    - The inverse of a is a^254, since a^255 = 1 for every non-zero a

Reference:
    FIPS 197, Section 4: Mathematical Preliminaries.
"""

from ..core.errors import DivisionByZero


# Irreducible reduction polynomial (0x11B).
REDUCTION_POLYNOMIAL = 0x11B

# Primitive element used to build the log tables.
GENERATOR = 0x03

# Number of elements in the field.
ORDER = 256


def _multiply_slow(a: int, b: int) -> int:
    """
    Carry-less "Russian peasant" multiplication modulo the reduction
    polynomial. Only used to build the lookup tables.
    """
    result = 0
    while b:
        if b & 1:
            result ^= a
        a <<= 1
        if a & 0x100:
            a ^= REDUCTION_POLYNOMIAL
        b >>= 1
    return result


def _build_tables() -> tuple[list[int], list[int]]:
    # EXP is doubled so that EXP[log a + log b] never needs a modulo.
    exp = [0] * 512
    log = [0] * ORDER

    x = 1
    for i in range(255):
        exp[i] = x
        log[x] = i
        x = _multiply_slow(x, GENERATOR)

    for i in range(255, 512):
        exp[i] = exp[i - 255]

    return exp, log


EXP, LOG = _build_tables()


def add(a: int, b: int) -> int:
    """Field addition (XOR)."""
    return a ^ b


def sub(a: int, b: int) -> int:
    """Field subtraction, identical to addition in characteristic 2."""
    return a ^ b


def mul(a: int, b: int) -> int:
    """
    Field multiplication using log/antilog tables.

    a * b = g^(log a + log b)
    """
    if a == 0 or b == 0:
        return 0
    return EXP[LOG[a] + LOG[b]]


def inv(a: int) -> int:
    """
    Multiplicative inverse.

    a^(-1) = g^(255 - log a)

    Raises:
        DivisionByZero: If a is zero
    """
    if a == 0:
        raise DivisionByZero()
    return EXP[255 - LOG[a]]


def div(a: int, b: int) -> int:
    """
    Field division a / b.

    Raises:
        DivisionByZero: If b is zero
    """
    if b == 0:
        raise DivisionByZero()
    if a == 0:
        return 0
    return EXP[LOG[a] + 255 - LOG[b]]
