"""
Metadata envelope carried alongside a secret.

The enveloped API shares the serialized envelope instead of the raw
secret, so the tag is protected by the same threshold as the secret and
needs no field of its own in the share format.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union

from .errors import MalformedEnvelope


# Tag length is stored in two bytes.
MAX_TAG_SIZE = 0xFFFF


class FormatVersion(Enum):
    """Envelope format versions."""

    INITIAL_RELEASE = auto()


@dataclass(frozen=True)
class Envelope:
    """
    A secret with its optional metadata tag.

    Attributes:
        secret: The secret bytes
        metadata_tag: Opaque label such as b"text/plain", or None
        version: Format version the envelope was written with
    """

    secret: bytes
    metadata_tag: Optional[bytes] = None
    version: FormatVersion = FormatVersion.INITIAL_RELEASE

    def to_bytes(self) -> bytes:
        """Serialize to binary format (see wrap_secret)."""
        return bytes(wrap_secret(self.secret, self.metadata_tag, self.version))

    @classmethod
    def from_bytes(cls, data: bytes) -> "Envelope":
        """
        Deserialize from binary format.

        Raises:
            MalformedEnvelope: If the data is truncated or uses an unknown
                version
        """
        if len(data) < 4:
            raise MalformedEnvelope(f"data too short: {len(data)} bytes")

        try:
            version = FormatVersion(data[0])
        except ValueError:
            raise MalformedEnvelope(f"unknown version {data[0]}")

        has_tag = data[1]
        if has_tag not in (0, 1):
            raise MalformedEnvelope(f"invalid tag flag {has_tag}")

        tag_len = int.from_bytes(data[2:4], byteorder="big")
        if not has_tag and tag_len:
            raise MalformedEnvelope("tag length set without a tag")
        if len(data) < 4 + tag_len:
            raise MalformedEnvelope("truncated metadata tag")

        tag = data[4 : 4 + tag_len] if has_tag else None
        return cls(secret=data[4 + tag_len :], metadata_tag=tag, version=version)


@dataclass(frozen=True)
class RecoveredSecret:
    """
    Result of recovering an enveloped secret.

    Attributes:
        version: Format version the shares were produced with
        secret: The reconstructed secret
        metadata_tag: The tag given at split time, or None
    """

    version: FormatVersion
    secret: bytes
    metadata_tag: Optional[bytes]

    @classmethod
    def from_envelope(cls, envelope: Envelope) -> "RecoveredSecret":
        return cls(
            version=envelope.version,
            secret=envelope.secret,
            metadata_tag=envelope.metadata_tag,
        )


def normalize_tag(tag: Union[bytes, str, None]) -> Optional[bytes]:
    """
    Accept a tag as bytes or text; text is stored as UTF-8.

    Raises:
        TypeError: For any other type
        ValueError: If the tag does not fit the envelope
    """
    if tag is None:
        return None
    if isinstance(tag, str):
        tag = tag.encode("utf-8")
    elif isinstance(tag, (bytes, bytearray, memoryview)):
        tag = bytes(tag)
    else:
        raise TypeError(f"Metadata tag must be bytes or str, got {type(tag).__name__}")

    if len(tag) > MAX_TAG_SIZE:
        raise ValueError(f"Metadata tag too long: {len(tag)} > {MAX_TAG_SIZE}")
    return tag


def wrap_secret(
    secret,
    metadata_tag: Optional[bytes] = None,
    version: FormatVersion = FormatVersion.INITIAL_RELEASE,
) -> bytearray:
    """
    Serialize an envelope into a new buffer owned by the caller.

    The buffer is allocated at its final size and the secret is copied in
    once, so zeroing the returned bytearray removes every copy made here.

    Format:
        - 1 byte: version
        - 1 byte: tag present flag
        - 2 bytes: tag length (big-endian, 0 when absent)
        - N bytes: tag
        - remaining: secret
    """
    tag = metadata_tag or b""
    offset = 4 + len(tag)

    buffer = bytearray(offset + len(secret))
    buffer[0] = version.value
    buffer[1] = 0 if metadata_tag is None else 1
    buffer[2:4] = len(tag).to_bytes(2, byteorder="big")
    buffer[4:offset] = tag
    buffer[offset:] = secret
    return buffer
