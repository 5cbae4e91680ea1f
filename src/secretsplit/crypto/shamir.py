"""
Shamir Secret Sharing (SSS) over GF(2^8).

This module implements (t, n) threshold secret sharing where:
- A secret S is split into n shares
- Any t shares can reconstruct S
- Fewer than t shares reveal no information about S

Every byte of the secret is shared with its own random polynomial over
GF(256), so a share holds one field element per secret byte.

Mathematical Basis:
    1. Secret byte S_b becomes the constant term (a_0) of a polynomial
    2. Polynomial: f_b(x) = a_0 + a_1*x + a_2*x^2 + ... + a_{t-1}*x^{t-1}
    3. Share x holds the bytes f_b(x) for every b
    4. Reconstruction uses Lagrange interpolation to recover f_b(0) = S_b

Reference:
    Shamir, A. (1979). "How to share a secret". Communications of the ACM.
"""

import os
from dataclasses import dataclass
from typing import Callable, Union

from . import gf256
from ..core.errors import (
    DuplicateShareIndex,
    InvalidShareCount,
    InvalidThreshold,
    MalformedShare,
    NotEnoughShares,
    ShareCountTooSmall,
    ThresholdTooSmall,
)


# Bounds of the u8 range thresholds and share counts are encoded in.
MAX_ENCODABLE = 255

# Scheme minimums. A threshold of 1 would hand the secret to every holder.
MIN_THRESHOLD = 2
MIN_SHARES = 2

# GF(256) has 255 non-zero evaluation points.
MAX_THRESHOLD = 255
MAX_SHARES = 255

# Source of cryptographically secure random bytes: rng(n) -> n bytes.
RandomSource = Callable[[int], bytes]

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class RawShare:
    """
    One evaluation point of every per-byte polynomial.

    Attributes:
        x: The x-coordinate (evaluation point), 1..255. Never zero.
        y: f_b(x) for each secret byte b, one byte per secret byte.
    """

    x: int
    y: bytes


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_parameters(threshold: int, n_shares: int) -> None:
    """
    Check threshold and share count, threshold first.

    A value outside 0..255 is invalid outright; a value inside that range
    but below the scheme minimum (or a share count below the threshold)
    is "too small".

    Raises:
        InvalidThreshold, ThresholdTooSmall,
        InvalidShareCount, ShareCountTooSmall
    """
    if not _is_int(threshold) or not 0 <= threshold <= MAX_ENCODABLE:
        raise InvalidThreshold(threshold)
    if threshold < MIN_THRESHOLD:
        raise ThresholdTooSmall(threshold, MIN_THRESHOLD)

    if not _is_int(n_shares) or not 0 <= n_shares <= MAX_ENCODABLE:
        raise InvalidShareCount(n_shares)
    if n_shares < max(threshold, MIN_SHARES):
        raise ShareCountTooSmall(n_shares, max(threshold, MIN_SHARES))


def _evaluate_polynomial(coefficients, x: int) -> int:
    """
    Evaluate polynomial at point x using Horner's method.

    f(x) = a_0 + x*(a_1 + x*(a_2 + ...))

    Args:
        coefficients: Polynomial coefficients [a_0, a_1, ..., a_{t-1}]
        x: Point at which to evaluate

    Returns:
        f(x) in GF(256)
    """
    result = 0

    # Process coefficients in reverse order (highest degree first)
    for coeff in reversed(coefficients):
        result = gf256.add(gf256.mul(result, x), coeff)

    return result


def generate_shares(
    secret: BytesLike,
    n_shares: int,
    threshold: int,
    rng: RandomSource = os.urandom,
) -> list[RawShare]:
    """
    Split a secret into n shares with threshold t.

    Args:
        secret: The bytes to split. Only read, never copied.
        n_shares: Total number of shares to generate
        threshold: Minimum shares needed for reconstruction
        rng: Random byte source for the polynomial coefficients. A
            bytearray it returns is zeroed once the shares are computed.

    Returns:
        List of RawShare objects at x = 1..n_shares

    Raises:
        SecretSharingError: If parameters are invalid
    """
    validate_parameters(threshold, n_shares)

    degree = threshold - 1
    needed = len(secret) * degree
    randomness = rng(needed)
    if not isinstance(randomness, bytearray):
        randomness = bytearray(randomness)
    if len(randomness) != needed:
        raise ValueError(
            f"Random source returned {len(randomness)} bytes, expected {needed}"
        )

    outputs = [bytearray(len(secret)) for _ in range(n_shares)]
    coefficients = bytearray(threshold)

    try:
        for b, secret_byte in enumerate(secret):
            coefficients[0] = secret_byte
            for j in range(degree):
                coefficients[j + 1] = randomness[b * degree + j]

            # x = 0 is avoided because f(0) = secret
            for i in range(n_shares):
                outputs[i][b] = _evaluate_polynomial(coefficients, i + 1)
    finally:
        for i in range(len(coefficients)):
            coefficients[i] = 0
        for i in range(len(randomness)):
            randomness[i] = 0

    return [RawShare(x=i + 1, y=bytes(out)) for i, out in enumerate(outputs)]


def lagrange_coefficients(xs: list[int]) -> list[int]:
    """
    Lagrange basis polynomials evaluated at x = 0.

    L_i(0) = product_{j != i} x_j / (x_i - x_j)

    (Signs vanish in characteristic 2.)

    Raises:
        DivisionByZero: If two x values coincide
    """
    coefficients = []
    for i, xi in enumerate(xs):
        numerator = 1
        denominator = 1
        for j, xj in enumerate(xs):
            if i == j:
                continue
            numerator = gf256.mul(numerator, xj)
            denominator = gf256.mul(denominator, gf256.sub(xi, xj))
        coefficients.append(gf256.div(numerator, denominator))
    return coefficients


def reconstruct_secret(shares: list[RawShare], threshold: int) -> bytes:
    """
    Reconstruct secret from shares using Lagrange interpolation.

    Only the first ``threshold`` shares take part in interpolation; any
    further shares are ignored here.

    The formula, per byte b, is:
        S_b = sum_{i} y_i[b] * L_i(0)

    Args:
        shares: List of RawShare objects (at least threshold shares)
        threshold: Number of shares the secret was split for

    Returns:
        Reconstructed secret bytes

    Raises:
        DuplicateShareIndex: If two shares have the same x value
        NotEnoughShares: If fewer than threshold shares are given
        MalformedShare: If shares have different lengths
    """
    # Check for duplicate x values (would cause division by zero)
    seen: set[int] = set()
    for share in shares:
        if share.x in seen:
            raise DuplicateShareIndex(share.x)
        seen.add(share.x)

    if len(shares) < threshold:
        raise NotEnoughShares(required=threshold, provided=len(shares))

    used = shares[:threshold]
    length = len(used[0].y)
    for share in used:
        if len(share.y) != length:
            raise MalformedShare(
                f"expected {length} data bytes, got {len(share.y)}",
                share_index=share.x,
            )

    basis = lagrange_coefficients([s.x for s in used])

    secret = bytearray(length)
    for share, coeff in zip(used, basis):
        for b, y in enumerate(share.y):
            secret[b] ^= gf256.mul(y, coeff)

    result = bytes(secret)
    secret[:] = bytes(length)
    return result
