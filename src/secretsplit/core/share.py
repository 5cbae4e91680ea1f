"""
Textual share format.

A share is written as ``<threshold>-<index>-<body>`` where ``body`` is the
unpadded standard base64 encoding of the binary share body:

    - 1 byte: flags (bit 0 = signed)
    - 16 bytes: session identifier
    - 4 bytes: data length L (big-endian)
    - L bytes: data (one GF(256) element per secret byte)
    - [signed only] Merkle proof (see MerkleProof.to_bytes)

Decoding checks structure only. Whether a set of shares belongs together
is decided during recovery.
"""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional

from ..crypto.merkle import MerkleProof
from ..crypto.shamir import MAX_SHARES, MAX_THRESHOLD, MIN_THRESHOLD
from .errors import MalformedShare, ShareGroup


# Random identifier drawn once per split session.
SESSION_ID_SIZE = 16

FLAG_SIGNED = 0x01

_HEADER_SIZE = 1 + SESSION_ID_SIZE + 4
# Canonical decimal: no sign, no leading zeros.
_NUMBER = re.compile(r"0|[1-9][0-9]{0,2}")
_BASE64 = re.compile(r"[A-Za-z0-9+/]+={0,2}")


@dataclass(frozen=True)
class Share:
    """
    A single encoded share.

    Attributes:
        threshold: Shares needed to recover the secret
        index: Evaluation point, 1..255
        session_id: Identifier of the split session that produced the share
        data: Polynomial values, one byte per secret byte
        proof: Merkle membership proof, present only for signed shares
    """

    threshold: int
    index: int
    session_id: bytes
    data: bytes
    proof: Optional[MerkleProof] = None

    @property
    def signed(self) -> bool:
        return self.proof is not None

    def signing_bytes(self) -> bytes:
        """
        Leaf content committed to by the session's Merkle tree.

        Format: threshold (1) + index (1) + session_id (16) + data
        """
        return bytes([self.threshold, self.index]) + self.session_id + self.data

    def to_bytes(self) -> bytes:
        """Serialize the share body (everything after the second dash)."""
        flags = FLAG_SIGNED if self.signed else 0

        result = bytearray()
        result.append(flags)
        result.extend(self.session_id)
        result.extend(len(self.data).to_bytes(4, byteorder="big"))
        result.extend(self.data)
        if self.proof is not None:
            result.extend(self.proof.to_bytes())
        return bytes(result)

    @classmethod
    def from_bytes(cls, threshold: int, index: int, data: bytes) -> "Share":
        """
        Deserialize a share body.

        Raises:
            MalformedShare: If the body is truncated or inconsistent
        """
        if len(data) < _HEADER_SIZE:
            raise MalformedShare(
                f"body too short: {len(data)} bytes", share_index=index
            )

        flags = data[0]
        if flags & ~FLAG_SIGNED:
            raise MalformedShare(f"unknown flags 0x{flags:02x}", share_index=index)

        session_id = data[1 : 1 + SESSION_ID_SIZE]
        length = int.from_bytes(data[1 + SESSION_ID_SIZE : _HEADER_SIZE], "big")
        if length == 0:
            raise MalformedShare("empty share data", share_index=index)

        end = _HEADER_SIZE + length
        if len(data) < end:
            raise MalformedShare(
                f"truncated data: expected {length} bytes, got {len(data) - _HEADER_SIZE}",
                share_index=index,
            )
        values = data[_HEADER_SIZE:end]
        rest = data[end:]

        proof = None
        if flags & FLAG_SIGNED:
            try:
                proof = MerkleProof.from_bytes(rest)
            except ValueError as e:
                raise MalformedShare(f"bad signature data: {e}", share_index=index)
        elif rest:
            raise MalformedShare(
                f"{len(rest)} trailing bytes after data", share_index=index
            )

        return cls(
            threshold=threshold,
            index=index,
            session_id=session_id,
            data=values,
            proof=proof,
        )

    def encode(self) -> str:
        """Encode as ``<threshold>-<index>-<base64 body>``."""
        body = base64.b64encode(self.to_bytes()).decode("ascii").rstrip("=")
        return f"{self.threshold}-{self.index}-{body}"

    @classmethod
    def decode(cls, text: str) -> "Share":
        """
        Parse a share string.

        Raises:
            MalformedShare: For any structural violation
        """
        if not isinstance(text, str):
            raise MalformedShare(f"expected a string, got {type(text).__name__}")

        parts = text.strip().split("-")
        if len(parts) != 3:
            raise MalformedShare(f"expected 3 dash-separated parts, got {len(parts)}")
        threshold_str, index_str, body_str = parts

        if not _NUMBER.fullmatch(threshold_str):
            raise MalformedShare(f"threshold is not a number: {threshold_str!r}")
        threshold = int(threshold_str)
        if not MIN_THRESHOLD <= threshold <= MAX_THRESHOLD:
            raise MalformedShare(f"threshold out of range: {threshold}")

        if not _NUMBER.fullmatch(index_str):
            raise MalformedShare(f"index is not a number: {index_str!r}")
        index = int(index_str)
        if not 1 <= index <= MAX_SHARES:
            raise MalformedShare(f"index out of range: {index}", share_index=index)

        if not _BASE64.fullmatch(body_str):
            raise MalformedShare("body is not valid base64", share_index=index)
        unpadded = body_str.rstrip("=")
        try:
            body = base64.b64decode(
                unpadded + "=" * (-len(unpadded) % 4), validate=True
            )
        except (binascii.Error, ValueError):
            raise MalformedShare("body is not valid base64", share_index=index)

        return cls.from_bytes(threshold, index, body)


def group_shares(shares: list[Share]) -> tuple[ShareGroup, ...]:
    """
    Partition shares into groups that can be combined together.

    Shares belong to the same group when they agree on threshold, session,
    commitment root and data length. Groups are returned in order of first
    appearance.
    """
    members: dict[tuple, list[int]] = {}
    for share in shares:
        root = share.proof.root if share.proof is not None else None
        key = (share.threshold, share.session_id, root, len(share.data))
        members.setdefault(key, []).append(share.index)

    return tuple(
        ShareGroup(
            threshold=threshold,
            session_id=session_id,
            root=root,
            secret_length=length,
            indices=tuple(sorted(indices)),
        )
        for (threshold, session_id, root, length), indices in members.items()
    )
