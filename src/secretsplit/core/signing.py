"""
Binding the shares of one session together.

Signing builds a Merkle tree over every share of the session, in index
order, and attaches to each share the root plus its own membership proof.
Verification checks each proof against the root embedded in the same share
and then requires all shares to agree on that root: a share whose proof
fails was altered, while two roots that each verify mean two sessions.
"""

import logging
from dataclasses import replace

from ..crypto.merkle import MerkleTree, verify_proof
from .errors import InvalidSignature, ShareGroupMismatch, SignatureModeMismatch
from .share import Share, group_shares


logger = logging.getLogger(__name__)


def sign_shares(shares: list[Share]) -> list[Share]:
    """
    Attach commitment data to every share of a session.

    Payloads are left untouched; only the proof is added.

    Args:
        shares: All shares of the session, ordered by index 1..n

    Returns:
        New Share objects carrying Merkle proofs
    """
    tree = MerkleTree([share.signing_bytes() for share in shares])
    logger.debug("Built commitment over %d shares", len(shares))

    return [
        replace(share, proof=tree.proof(share.index - 1)) for share in shares
    ]


def verify_shares(shares: list[Share]) -> None:
    """
    Verify signed shares and their agreement on a single root.

    Every supplied share is checked, not only the ones needed to recover.

    Raises:
        SignatureModeMismatch: If a share carries no signature data
        InvalidSignature: If a share's proof does not match its contents
        ShareGroupMismatch: If the shares verify against different roots
    """
    for share in shares:
        if share.proof is None:
            raise SignatureModeMismatch(share.index, signed=False)

        if not verify_proof(share.signing_bytes(), share.index - 1, share.proof):
            logger.warning("Share %d failed signature verification", share.index)
            raise InvalidSignature(share.index)

    groups = group_shares(shares)
    if len(groups) > 1:
        logger.warning("Signed shares span %d commitment roots", len(groups))
        raise ShareGroupMismatch(groups)
