"""
Error taxonomy for secret splitting and recovery.

Every failure is raised as a subclass of SecretSharingError. Callers can
branch on the exception class or on its ``kind`` attribute; the extra
attributes carry the data needed to report which parameter or which share
was at fault. Messages are for humans only.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class ErrorKind(Enum):
    """Distinguishable failure kinds."""

    INVALID_THRESHOLD = auto()
    THRESHOLD_TOO_SMALL = auto()
    INVALID_SHARE_COUNT = auto()
    SHARE_COUNT_TOO_SMALL = auto()
    EMPTY_SECRET = auto()
    SECRET_TOO_LARGE = auto()
    MALFORMED_SHARE = auto()
    MALFORMED_ENVELOPE = auto()
    NOT_ENOUGH_SHARES = auto()
    DUPLICATE_SHARE_INDEX = auto()
    SHARE_GROUP_MISMATCH = auto()
    INVALID_SIGNATURE = auto()
    SIGNATURE_MODE_MISMATCH = auto()
    DIVISION_BY_ZERO = auto()


@dataclass(frozen=True)
class ShareGroup:
    """
    A set of shares that agree with each other.

    Attributes:
        threshold: Threshold shared by every member
        session_id: Split session the members come from
        root: Commitment root, or None for unsigned shares
        secret_length: Number of data bytes each member carries
        indices: Sorted share indices in this group
    """

    threshold: int
    session_id: bytes
    root: Optional[bytes]
    secret_length: int
    indices: tuple[int, ...]


class SecretSharingError(ValueError):
    """Base class for all splitting and recovery failures."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidThreshold(SecretSharingError):
    """Threshold is outside the representable range 0..255."""

    kind = ErrorKind.INVALID_THRESHOLD

    def __init__(self, value: int):
        super().__init__(f"Invalid threshold: {value}")
        self.value = value


class ThresholdTooSmall(SecretSharingError):
    """Threshold is representable but below the scheme minimum."""

    kind = ErrorKind.THRESHOLD_TOO_SMALL

    def __init__(self, value: int, minimum: int):
        super().__init__(f"Threshold is too small: {value} < {minimum}")
        self.value = value
        self.minimum = minimum


class InvalidShareCount(SecretSharingError):
    """Share count is outside the representable range 0..255."""

    kind = ErrorKind.INVALID_SHARE_COUNT

    def __init__(self, value: int):
        super().__init__(f"Invalid shares count: {value}")
        self.value = value


class ShareCountTooSmall(SecretSharingError):
    """Share count is below the threshold or the scheme minimum."""

    kind = ErrorKind.SHARE_COUNT_TOO_SMALL

    def __init__(self, value: int, minimum: int):
        super().__init__(f"Number of shares is too small: {value} < {minimum}")
        self.value = value
        self.minimum = minimum


class EmptySecret(SecretSharingError):
    kind = ErrorKind.EMPTY_SECRET

    def __init__(self):
        super().__init__("Secret must not be empty")


class SecretTooLarge(SecretSharingError):
    kind = ErrorKind.SECRET_TOO_LARGE

    def __init__(self, size: int, maximum: int):
        super().__init__(f"Secret is too large: {size} bytes > {maximum}")
        self.size = size
        self.maximum = maximum


class MalformedShare(SecretSharingError):
    """
    A share string could not be parsed.

    ``position`` is the share's offset in the list passed to recovery and
    ``share_index`` the index parsed from it, when either is known.
    """

    kind = ErrorKind.MALFORMED_SHARE

    def __init__(
        self,
        reason: str,
        share_index: Optional[int] = None,
        position: Optional[int] = None,
    ):
        where = []
        if position is not None:
            where.append(f"position {position}")
        if share_index is not None:
            where.append(f"share {share_index}")
        prefix = f"Malformed share ({', '.join(where)})" if where else "Malformed share"
        super().__init__(f"{prefix}: {reason}")
        self.reason = reason
        self.share_index = share_index
        self.position = position

    def at(self, position: int) -> "MalformedShare":
        """Return a copy annotated with the share's input position."""
        return MalformedShare(self.reason, self.share_index, position)


class MalformedEnvelope(SecretSharingError):
    """The recovered bytes do not hold a valid metadata envelope."""

    kind = ErrorKind.MALFORMED_ENVELOPE

    def __init__(self, reason: str):
        super().__init__(f"Malformed envelope: {reason}")
        self.reason = reason


class NotEnoughShares(SecretSharingError):
    kind = ErrorKind.NOT_ENOUGH_SHARES

    def __init__(self, required: int, provided: int):
        super().__init__(
            f"Not enough shares provided: need {required}, got {provided}"
        )
        self.required = required
        self.provided = provided


class DuplicateShareIndex(SecretSharingError):
    kind = ErrorKind.DUPLICATE_SHARE_INDEX

    def __init__(self, share_index: int):
        super().__init__(f"Share index {share_index} was provided more than once")
        self.share_index = share_index


class ShareGroupMismatch(SecretSharingError):
    """
    The supplied shares come from more than one split session.

    ``groups`` lists every group observed so callers can tell the user
    exactly which shares belong together.
    """

    kind = ErrorKind.SHARE_GROUP_MISMATCH

    def __init__(self, groups: tuple[ShareGroup, ...]):
        listing = "; ".join(
            f"{{{', '.join(str(i) for i in g.indices)}}}" for g in groups
        )
        super().__init__(
            f"Shares belong to {len(groups)} incompatible groups: {listing}"
        )
        self.groups = groups

    @property
    def share_groups(self) -> list[list[int]]:
        """Share indices per group, as plain lists."""
        return [list(g.indices) for g in self.groups]


class InvalidSignature(SecretSharingError):
    kind = ErrorKind.INVALID_SIGNATURE

    def __init__(self, share_index: int):
        super().__init__(f"Share {share_index} has an invalid signature")
        self.share_index = share_index


class SignatureModeMismatch(SecretSharingError):
    """
    The ``verify`` flag disagrees with whether a share is signed.

    ``signed`` tells whether the offending share carries signature data.
    """

    kind = ErrorKind.SIGNATURE_MODE_MISMATCH

    def __init__(self, share_index: int, signed: bool):
        if signed:
            message = (
                f"Share {share_index} is signed but signature verification "
                "was not requested"
            )
        else:
            message = (
                f"Share {share_index} is not signed but signature verification "
                "was requested"
            )
        super().__init__(message)
        self.share_index = share_index
        self.signed = signed


class DivisionByZero(SecretSharingError, ZeroDivisionError):
    """Zero has no multiplicative inverse in the field."""

    kind = ErrorKind.DIVISION_BY_ZERO

    def __init__(self):
        super().__init__("Cannot compute inverse of zero")
