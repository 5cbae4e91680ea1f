"""
Merkle tree commitments over the shares of one split session.

The tree is stored as a flat array in heap order: node 1 is the root and
the children of node i are 2i and 2i + 1. The leaf for position p sits at
``width + p``, where ``width`` is the number of leaves rounded up to a power
of two. Unused leaf slots hold a fixed padding hash.

Hashing is domain separated so a leaf can never be replayed as an inner
node:
    leaf(d)    = SHA-256(0x00 || d)
    node(l, r) = SHA-256(0x01 || l || r)
    padding    = SHA-256(0x02)

Reference:
    Merkle, R. (1987). "A Digital Signature Based on a Conventional
    Encryption Function". CRYPTO '87.
"""

import hashlib
from dataclasses import dataclass

from cryptography.hazmat.primitives import constant_time


# SHA-256 digest size.
HASH_SIZE = 32

# Deepest tree needed for 255 leaves (width 256).
MAX_DEPTH = 8

_LEAF_PREFIX = b"\x00"
_NODE_PREFIX = b"\x01"
_PADDING_PREFIX = b"\x02"


def leaf_hash(data: bytes) -> bytes:
    return hashlib.sha256(_LEAF_PREFIX + data).digest()


def node_hash(left: bytes, right: bytes) -> bytes:
    return hashlib.sha256(_NODE_PREFIX + left + right).digest()


PADDING_HASH = hashlib.sha256(_PADDING_PREFIX).digest()


@dataclass(frozen=True)
class MerkleProof:
    """
    Membership proof for one leaf.

    Attributes:
        root: Root hash of the tree the leaf belongs to
        path: Sibling hashes from the leaf level up to just below the root
    """

    root: bytes
    path: tuple[bytes, ...]

    def to_bytes(self) -> bytes:
        """
        Serialize to binary format.

        Format:
            - 32 bytes: root
            - 1 byte: depth (number of path entries)
            - depth * 32 bytes: sibling hashes, leaf level first
        """
        return self.root + bytes([len(self.path)]) + b"".join(self.path)

    @classmethod
    def from_bytes(cls, data: bytes) -> "MerkleProof":
        """
        Deserialize from binary format.

        Raises:
            ValueError: If the data is truncated, has trailing bytes, or
                describes a deeper tree than any session can produce
        """
        if len(data) < HASH_SIZE + 1:
            raise ValueError(f"Proof data too short: {len(data)}")

        root = data[:HASH_SIZE]
        depth = data[HASH_SIZE]
        if depth > MAX_DEPTH:
            raise ValueError(f"Proof depth {depth} exceeds {MAX_DEPTH}")

        expected = HASH_SIZE + 1 + depth * HASH_SIZE
        if len(data) != expected:
            raise ValueError(f"Proof must be {expected} bytes, got {len(data)}")

        offset = HASH_SIZE + 1
        path = tuple(
            data[offset + i * HASH_SIZE : offset + (i + 1) * HASH_SIZE]
            for i in range(depth)
        )
        return cls(root=root, path=path)


class MerkleTree:
    """
    Complete binary hash tree over an ordered list of leaves.

    Args:
        leaves: Leaf contents in position order (at least one)
    """

    def __init__(self, leaves: list[bytes]):
        if not leaves:
            raise ValueError("At least one leaf required")

        width = 1
        while width < len(leaves):
            width *= 2

        self.width = width
        self.size = len(leaves)
        self.nodes = [PADDING_HASH] * (2 * width)

        for position, data in enumerate(leaves):
            self.nodes[width + position] = leaf_hash(data)

        for i in range(width - 1, 0, -1):
            self.nodes[i] = node_hash(self.nodes[2 * i], self.nodes[2 * i + 1])

    @property
    def root(self) -> bytes:
        # A single-leaf tree has width 1 and its root is the leaf itself.
        return self.nodes[1]

    def proof(self, position: int) -> MerkleProof:
        """Membership proof for the leaf at ``position``."""
        if not 0 <= position < self.size:
            raise IndexError(f"Leaf position {position} out of range")

        path = []
        i = self.width + position
        while i > 1:
            path.append(self.nodes[i ^ 1])
            i //= 2

        return MerkleProof(root=self.root, path=tuple(path))


def verify_proof(data: bytes, position: int, proof: MerkleProof) -> bool:
    """
    Check that ``data`` is the leaf at ``position`` under ``proof.root``.

    The position bits select, level by level, whether the running hash is
    the left or the right child, so a proof only verifies at the position
    it was issued for.
    """
    if position < 0 or position >= 1 << len(proof.path):
        return False

    current = leaf_hash(data)
    i = position
    for sibling in proof.path:
        if i & 1:
            current = node_hash(sibling, current)
        else:
            current = node_hash(current, sibling)
        i >>= 1

    return constant_time.bytes_eq(current, proof.root)
