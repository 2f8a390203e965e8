"""Deterministic test identities.

Each identity is the BLAKE3 digest of its label, so fixtures stay stable
across runs and machines.
"""

from __future__ import annotations

from .crypto.hash_algorithms import blake3_hash


def identity(label: str) -> bytes:
    return blake3_hash(b"htlc-escrow/test-account/" + label.encode())


# Named 32-byte identities
DEPLOYER = identity("deployer")
ALICE = identity("alice")
BOB = identity("bob")
CAROL = identity("carol")
DAVE = identity("dave")
EVE = identity("eve")
