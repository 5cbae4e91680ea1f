"""
Threshold secret sharing with optional share signing.

A secret is split into n shares such that any k of them recover it and
k - 1 of them reveal nothing. Signed shares additionally embed a Merkle
commitment over the whole share set, so altered shares and shares from
different sessions are detected on recovery.

    >>> from secretsplit import split_secret, recover_secret
    >>> shares = split_secret(3, 5, b"correct horse", sign=True)
    >>> recover_secret(shares[:3], verify=True)
    b'correct horse'
"""

from .core.envelope import FormatVersion, RecoveredSecret
from .core.errors import (
    DivisionByZero,
    DuplicateShareIndex,
    EmptySecret,
    ErrorKind,
    InvalidShareCount,
    InvalidSignature,
    InvalidThreshold,
    MalformedEnvelope,
    MalformedShare,
    NotEnoughShares,
    SecretSharingError,
    SecretTooLarge,
    ShareCountTooSmall,
    ShareGroup,
    ShareGroupMismatch,
    SignatureModeMismatch,
    ThresholdTooSmall,
)
from .core.session import (
    MAX_SECRET_SIZE,
    recover_secret,
    recover_wrapped_secret,
    split_secret,
    split_wrapped_secret,
)

__all__ = [
    "split_secret",
    "recover_secret",
    "split_wrapped_secret",
    "recover_wrapped_secret",
    "RecoveredSecret",
    "FormatVersion",
    "MAX_SECRET_SIZE",
    "ErrorKind",
    "ShareGroup",
    "SecretSharingError",
    "InvalidThreshold",
    "ThresholdTooSmall",
    "InvalidShareCount",
    "ShareCountTooSmall",
    "EmptySecret",
    "SecretTooLarge",
    "MalformedShare",
    "MalformedEnvelope",
    "NotEnoughShares",
    "DuplicateShareIndex",
    "ShareGroupMismatch",
    "InvalidSignature",
    "SignatureModeMismatch",
    "DivisionByZero",
]
