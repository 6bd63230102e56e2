"""
Coordinator constants.

This module centralizes:
- Domain separation tags for beacon message hashing
- Fee arithmetic denominators
- Default operational knobs (mirrored by `beaconvrf.config` defaults)
- Default drand beacon parameters (the BN254 "evmnet" chain)

Networks override operational knobs via `beaconvrf.config.CoordinatorConfig`,
but code that needs stable compile-time defaults can import from here.
"""

from __future__ import annotations

# -----------------------------
# Domain separation (bytes tags)
# -----------------------------
# Keep these stable; changing them invalidates every beacon signature.
BLS_DST_G1: bytes = b"BLS_SIG_BN254G1_XMD:KECCAK-256_SVDW_RO_NUL_"

# Keccak-256 block size ("rate") in bytes, used by expand_message_xmd
KECCAK256_BLOCK_BYTES: int = 136
KECCAK256_DIGEST_BYTES: int = 32

# hash_to_field output length per element for BN254: ceil((254 + 128) / 8)
HASH_TO_FIELD_L: int = 48

# -----------------------------
# Fees
# -----------------------------
BPS_DENOM: int = 10_000  # basis-points denominator (100% = 10_000)

DEFAULT_PREMIUM_MULTIPLIER_BPS: int = 150_00  # 1.5x (50% premium on top)
DEFAULT_MAX_FEE_PER_GAS: int = 30 * 10**9  # 30 gwei gas lane
DEFAULT_MAX_CALLBACK_GAS_LIMIT: int = 7_500_000
DEFAULT_MAX_DEADLINE_DELTA: int = 5 * 60  # seconds
# Gas spent by the coordinator itself per fulfillment (pairing check,
# commitment bookkeeping, event emission) on top of the callback budget.
DEFAULT_FULFILLMENT_OVERHEAD_GAS: int = 120_000

# -----------------------------
# drand "evmnet" beacon (BN254, G1 signatures, 3s period)
# -----------------------------
DRAND_DEFAULT_URL: str = "https://api.drand.sh"
DRAND_EVMNET_NAME: str = "evmnet"
DRAND_EVMNET_GENESIS: int = 1_713_244_728
DRAND_EVMNET_PERIOD: int = 3

__all__ = [
    "BLS_DST_G1",
    "KECCAK256_BLOCK_BYTES",
    "KECCAK256_DIGEST_BYTES",
    "HASH_TO_FIELD_L",
    "BPS_DENOM",
    "DEFAULT_PREMIUM_MULTIPLIER_BPS",
    "DEFAULT_MAX_FEE_PER_GAS",
    "DEFAULT_MAX_CALLBACK_GAS_LIMIT",
    "DEFAULT_MAX_DEADLINE_DELTA",
    "DEFAULT_FULFILLMENT_OVERHEAD_GAS",
    "DRAND_DEFAULT_URL",
    "DRAND_EVMNET_NAME",
    "DRAND_EVMNET_GENESIS",
    "DRAND_EVMNET_PERIOD",
]
