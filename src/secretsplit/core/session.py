"""
End-to-end splitting and recovery.

Split pipeline:
    validate parameters -> check secret size -> draw session id ->
    share every byte (one polynomial per byte) -> [sign] -> encode

Recovery pipeline:
    decode all -> check signature mode -> [verify every share] ->
    group by session -> reject duplicates -> interpolate from the first
    ``threshold`` shares -> [unwrap envelope]

Parameter validation happens before any randomness is drawn. The secret
is copied into bytearrays that are zeroed before split returns; a str
secret also leaves behind the immutable UTF-8 encoding made on entry. Nothing is
kept between calls, so any number of operations can run concurrently as
long as the random source is safe to share (os.urandom is).

Two variants are exposed: the plain one shares the secret bytes as given,
the enveloped one shares a serialized Envelope so that a metadata tag and
a format version travel with the secret.
"""

import logging
import os
from typing import Iterable, Union

from ..crypto.shamir import (
    MIN_THRESHOLD,
    RandomSource,
    RawShare,
    generate_shares,
    reconstruct_secret,
    validate_parameters,
)
from .envelope import Envelope, RecoveredSecret, normalize_tag, wrap_secret
from .errors import (
    EmptySecret,
    MalformedShare,
    NotEnoughShares,
    SecretTooLarge,
    ShareGroupMismatch,
    SignatureModeMismatch,
)
from .share import SESSION_ID_SIZE, Share, group_shares
from .signing import sign_shares, verify_shares


logger = logging.getLogger(__name__)

# Upper bound on the bytes fed to the polynomial engine.
MAX_SECRET_SIZE = 65536

SecretLike = Union[bytes, bytearray, memoryview, str]


def _to_buffer(secret: SecretLike) -> bytearray:
    if isinstance(secret, str):
        return bytearray(secret.encode("utf-8"))
    if isinstance(secret, (bytes, bytearray, memoryview)):
        return bytearray(secret)
    raise TypeError(f"Secret must be bytes or str, got {type(secret).__name__}")


def _scrub(buffer: bytearray) -> None:
    buffer[:] = bytes(len(buffer))


def _split(
    threshold: int,
    share_count: int,
    secret: SecretLike,
    sign: bool,
    rng: RandomSource,
    envelope: bool,
    metadata_tag: Union[bytes, str, None] = None,
) -> list[str]:
    validate_parameters(threshold, share_count)

    plain = _to_buffer(secret)
    try:
        if not plain:
            raise EmptySecret()

        if envelope:
            tag = normalize_tag(metadata_tag)
            payload = wrap_secret(plain, tag)
        else:
            payload = plain

        try:
            if len(payload) > MAX_SECRET_SIZE:
                raise SecretTooLarge(len(payload), MAX_SECRET_SIZE)

            session_id = bytes(rng(SESSION_ID_SIZE))
            if len(session_id) != SESSION_ID_SIZE:
                raise ValueError(
                    f"Random source returned {len(session_id)} bytes, "
                    f"expected {SESSION_ID_SIZE}"
                )

            raw = generate_shares(payload, share_count, threshold, rng=rng)
        finally:
            _scrub(payload)
    finally:
        _scrub(plain)

    shares = [
        Share(threshold=threshold, index=r.x, session_id=session_id, data=r.y)
        for r in raw
    ]
    if sign:
        shares = sign_shares(shares)

    logger.info(
        "Split secret into %d shares (threshold=%d, signed=%s)",
        share_count,
        threshold,
        sign,
    )
    return [share.encode() for share in shares]


def _decode_all(shares: Iterable[str]) -> list[Share]:
    if isinstance(shares, str):
        raise TypeError("Expected a list of share strings, got a single string")

    decoded = []
    for position, text in enumerate(shares):
        try:
            decoded.append(Share.decode(text))
        except MalformedShare as e:
            raise e.at(position) from None
    return decoded


def _recover(shares: Iterable[str], verify: bool) -> bytes:
    decoded = _decode_all(shares)
    logger.debug("Decoded %d shares", len(decoded))

    if not decoded:
        raise NotEnoughShares(required=MIN_THRESHOLD, provided=0)

    for share in decoded:
        if share.signed != bool(verify):
            raise SignatureModeMismatch(share.index, signed=share.signed)

    if verify:
        verify_shares(decoded)

    groups = group_shares(decoded)
    if len(groups) > 1:
        logger.warning("Shares span %d incompatible groups", len(groups))
        raise ShareGroupMismatch(groups)

    threshold = decoded[0].threshold
    secret = reconstruct_secret(
        [RawShare(x=s.index, y=s.data) for s in decoded], threshold
    )

    logger.info(
        "Recovered secret from %d shares (threshold=%d, verified=%s)",
        len(decoded),
        threshold,
        verify,
    )
    return secret


def split_secret(
    threshold: int,
    share_count: int,
    secret: SecretLike,
    sign: bool = False,
    *,
    rng: RandomSource = os.urandom,
) -> list[str]:
    """
    Split ``secret`` into ``share_count`` shares, any ``threshold`` of which
    recover it.

    Args:
        threshold: Shares needed for recovery, 2..255
        share_count: Shares to emit, threshold..255
        secret: Secret bytes (str is encoded as UTF-8)
        sign: Bind the shares together with a Merkle commitment
        rng: Random byte source, ``rng(n) -> bytes``

    Returns:
        Share strings ``"<threshold>-<index>-<base64>"`` for indices 1..n

    Raises:
        InvalidThreshold, ThresholdTooSmall, InvalidShareCount,
        ShareCountTooSmall, EmptySecret, SecretTooLarge

    Example:
        >>> shares = split_secret(2, 3, b"hunter2")
        >>> recover_secret(shares[1:])
        b'hunter2'
    """
    return _split(threshold, share_count, secret, sign, rng, envelope=False)


def recover_secret(shares: Iterable[str], verify: bool = False) -> bytes:
    """
    Recover a secret split by :func:`split_secret`.

    All supplied shares are decoded, checked for consistency and, with
    ``verify``, signature-checked; the first ``threshold`` of them are then
    used for interpolation.

    Args:
        shares: Share strings, in any order
        verify: Must be True for signed shares and False otherwise

    Raises:
        MalformedShare, SignatureModeMismatch, InvalidSignature,
        ShareGroupMismatch, DuplicateShareIndex, NotEnoughShares
    """
    return _recover(shares, verify)


def split_wrapped_secret(
    threshold: int,
    share_count: int,
    secret: SecretLike,
    metadata_tag: Union[bytes, str, None] = None,
    sign: bool = False,
    *,
    rng: RandomSource = os.urandom,
) -> list[str]:
    """
    Like :func:`split_secret`, with an optional metadata tag (for example a
    MIME type) stored next to the secret.

    The tag has no effect on parameter validation.
    """
    return _split(
        threshold,
        share_count,
        secret,
        sign,
        rng,
        envelope=True,
        metadata_tag=metadata_tag,
    )


def recover_wrapped_secret(
    shares: Iterable[str], verify: bool = False
) -> RecoveredSecret:
    """
    Recover a secret split by :func:`split_wrapped_secret`.

    Returns:
        RecoveredSecret with the format version, secret and metadata tag

    Raises:
        Everything :func:`recover_secret` raises, plus MalformedEnvelope
    """
    data = _recover(shares, verify)
    return RecoveredSecret.from_envelope(Envelope.from_bytes(data))
