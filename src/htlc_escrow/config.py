"""HTLC escrow configuration constants and deployment settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

# Sizes
IDENTITY_SIZE = 32
HASH_SIZE = 32
MAX_SECRET_SIZE = 32  # fixed preimage buffer

# Integer bounds
U64_MAX = (1 << 64) - 1

# Identifiers
FIRST_ESCROW_ID = 1

# Hash algorithms accepted for secret commitments
HASH_SHA256 = "sha256"
HASH_SHA3_256 = "sha3_256"
HASH_BLAKE3 = "blake3"
SUPPORTED_HASH_ALGORITHMS = (HASH_SHA256, HASH_SHA3_256, HASH_BLAKE3)
DEFAULT_HASH_ALGORITHM = HASH_SHA256

# Accounts
NULL_IDENTITY = bytes(IDENTITY_SIZE)
DEFAULT_HOLDING_ACCOUNT = b"\xff" * IDENTITY_SIZE

# Env settings
_TRUE_VALUES = ("true", "1", "yes")


def _identity_from_hex(value: str, name: str) -> bytes:
    v = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        raw = bytes.fromhex(v)
    except ValueError as exc:
        raise ValueError(f"{name} is not valid hex") from exc
    if len(raw) != IDENTITY_SIZE:
        raise ValueError(f"{name} must be {IDENTITY_SIZE} bytes, got {len(raw)}")
    return raw


@dataclass
class EscrowConfig:
    """Settings of a single escrow deployment."""
    owner: bytes = NULL_IDENTITY
    holding_account: bytes = DEFAULT_HOLDING_ACCOUNT
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    initial_height: int = 0

    def __post_init__(self) -> None:
        for name in ("owner", "holding_account"):
            value = getattr(self, name)
            if not isinstance(value, bytes) or len(value) != IDENTITY_SIZE:
                raise ValueError(f"{name} must be {IDENTITY_SIZE} bytes")
        if self.hash_algorithm not in SUPPORTED_HASH_ALGORITHMS:
            raise ValueError(f"unsupported hash algorithm: {self.hash_algorithm}")
        if self.initial_height < 0:
            raise ValueError("initial_height must be >= 0")

    @classmethod
    def from_env(cls) -> "EscrowConfig":
        """Load configuration from environment variables."""
        config = cls()

        owner = os.environ.get("HTLC_OWNER")
        if owner:
            config.owner = _identity_from_hex(owner, "HTLC_OWNER")

        holding = os.environ.get("HTLC_HOLDING_ACCOUNT")
        if holding:
            config.holding_account = _identity_from_hex(holding, "HTLC_HOLDING_ACCOUNT")

        algorithm = os.environ.get("HTLC_HASH_ALGORITHM", DEFAULT_HASH_ALGORITHM).lower()
        if algorithm not in SUPPORTED_HASH_ALGORITHMS:
            raise ValueError(f"unsupported hash algorithm: {algorithm}")
        config.hash_algorithm = algorithm

        config.initial_height = int(os.environ.get("HTLC_INITIAL_HEIGHT", "0"))
        if config.initial_height < 0:
            raise ValueError("HTLC_INITIAL_HEIGHT must be >= 0")

        return config


def env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in _TRUE_VALUES
