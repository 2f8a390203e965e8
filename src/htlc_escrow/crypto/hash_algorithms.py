"""Hash algorithms for secret commitments and state digests."""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass

from blake3 import blake3

from ..config import HASH_BLAKE3, HASH_SHA3_256, HASH_SHA256


@dataclass(frozen=True)
class HashAssignment:
    purpose: str
    algorithm: str
    output_size: int
    input_spec: str


ASSIGNMENTS = [
    HashAssignment("secret_commitment", "SHA-256 (default) | SHA3-256 | BLAKE3", 32, "secret preimage bytes"),
    HashAssignment("state_digest", "BLAKE3", 32, "canonical snapshot bytes"),
    HashAssignment("test_identity", "BLAKE3", 32, "account label bytes"),
]


def sha256_hash(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def sha3_256_hash(data: bytes) -> bytes:
    return hashlib.sha3_256(data).digest()


def blake3_hash(data: bytes) -> bytes:
    return blake3(data).digest()


_HASHERS = {
    HASH_SHA256: sha256_hash,
    HASH_SHA3_256: sha3_256_hash,
    HASH_BLAKE3: blake3_hash,
}


def hash_secret(secret: bytes, algorithm: str) -> bytes:
    """Commitment for a secret preimage under the deployment's algorithm."""
    try:
        hasher = _HASHERS[algorithm]
    except KeyError:
        raise ValueError(f"unsupported hash algorithm: {algorithm}") from None
    return hasher(bytes(secret))


def secret_matches(secret: bytes, secret_hash: bytes, algorithm: str) -> bool:
    return hmac.compare_digest(hash_secret(secret, algorithm), secret_hash)
