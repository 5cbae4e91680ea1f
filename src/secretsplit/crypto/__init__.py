"""Primitives: GF(256) arithmetic, Shamir polynomials and Merkle commitments."""
