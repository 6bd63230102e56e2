"""
Coordinator configuration.

This file defines typed configuration objects and helpers for:
- Economic knobs (premium, fee cap, callback gas cap, overhead)
- Deadline bounds
- The randomness beacon (public key, genesis, period, relay)
- The storage backend

It provides:
- Dataclass-based configs with validation
- Loading from environment variables (prefix configurable)
- Loading from a JSON or YAML file
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import yaml

from .constants import (
    DEFAULT_FULFILLMENT_OVERHEAD_GAS,
    DEFAULT_MAX_CALLBACK_GAS_LIMIT,
    DEFAULT_MAX_DEADLINE_DELTA,
    DEFAULT_MAX_FEE_PER_GAS,
    DEFAULT_PREMIUM_MULTIPLIER_BPS,
    DRAND_DEFAULT_URL,
    DRAND_EVMNET_GENESIS,
    DRAND_EVMNET_NAME,
    DRAND_EVMNET_PERIOD,
)
from .utils.bytes import to_address

_ZERO_ADDRESS = "0x" + "00" * 20

# -------------------------
# Sub-configs
# -------------------------


@dataclass
class BeaconConfig:
    """
    The beacon new requests are bound to.

    public_key: four integers (x.c0, x.c1, y.c0, y.c1) of the G2 group key.
                None means "not configured"; fetch it from the relay's
                /info endpoint (`beaconvrf round --show-key`) and set it.
    genesis_timestamp / period: round clock (round 1 at genesis).
    drand_url / chain_name: relay used by fulfillers and the CLI.
    """

    public_key: Optional[List[int]] = None
    genesis_timestamp: int = DRAND_EVMNET_GENESIS
    period: int = DRAND_EVMNET_PERIOD
    drand_url: str = DRAND_DEFAULT_URL
    chain_name: str = DRAND_EVMNET_NAME

    def validate(self) -> None:
        if self.public_key is not None:
            if len(self.public_key) != 4:
                raise ValueError("beacon.public_key must have exactly 4 limbs")
            for v in self.public_key:
                if isinstance(v, bool) or not isinstance(v, int) or v < 0:
                    raise ValueError("beacon.public_key limbs must be non-negative ints")
        if self.genesis_timestamp <= 0:
            raise ValueError("beacon.genesis_timestamp must be > 0")
        if self.period <= 0:
            raise ValueError("beacon.period must be > 0")
        u = urlparse(self.drand_url)
        if u.scheme not in {"http", "https"}:
            raise ValueError("beacon.drand_url must be http(s)")
        if not self.chain_name:
            raise ValueError("beacon.chain_name must be non-empty")

    def public_key_limbs(self) -> Tuple[int, int, int, int]:
        if self.public_key is None:
            raise ValueError("beacon.public_key is not configured")
        a, b, c, d = self.public_key
        return (a, b, c, d)


@dataclass
class StorageConfig:
    """
    uri:
      - memory://             in-process (lost on exit)
      - sqlite:///path/to.db  durable SQLite file
    """

    uri: str = "memory://"

    def validate(self) -> None:
        if self.uri not in {"memory://", "memory"} and not self.uri.startswith("sqlite:///"):
            raise ValueError("storage.uri must be memory:// or sqlite:///<path>")


# -------------------------
# Top-level config
# -------------------------


@dataclass
class CoordinatorConfig:
    """
    Identity:
      - chain_id: bound into every derived random word
      - coordinator_address: identity callbacks see as their caller
      - owner_address: may withdraw accrued fees

    Economics:
      - premium_multiplier_bps: multiplier on raw cost (15000 = 1.5x)
      - max_fee_per_gas: fee-per-gas cap used for pricing
      - max_callback_gas_limit: largest callback budget a request may ask for
      - fulfillment_overhead_gas: gas the fulfillment itself costs

    Deadlines:
      - max_deadline_delta: how far ahead (seconds) a deadline may be

    Beacon / Storage: nested sub-configs
    """

    chain_id: int = 1
    coordinator_address: str = _ZERO_ADDRESS
    owner_address: str = _ZERO_ADDRESS

    premium_multiplier_bps: int = DEFAULT_PREMIUM_MULTIPLIER_BPS
    max_fee_per_gas: int = DEFAULT_MAX_FEE_PER_GAS
    max_callback_gas_limit: int = DEFAULT_MAX_CALLBACK_GAS_LIMIT
    max_deadline_delta: int = DEFAULT_MAX_DEADLINE_DELTA
    fulfillment_overhead_gas: int = DEFAULT_FULFILLMENT_OVERHEAD_GAS

    beacon: BeaconConfig = field(default_factory=BeaconConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def validate(self) -> None:
        if self.chain_id <= 0:
            raise ValueError("chain_id must be > 0")
        for name in ("coordinator_address", "owner_address"):
            try:
                to_address(getattr(self, name), name=name)
            except (TypeError, ValueError) as e:
                raise ValueError(f"{name} must be a 20-byte 0x-hex address") from e
        if self.premium_multiplier_bps <= 0:
            raise ValueError("premium_multiplier_bps must be > 0")
        if self.max_fee_per_gas <= 0:
            raise ValueError("max_fee_per_gas must be > 0")
        if self.max_callback_gas_limit <= 0:
            raise ValueError("max_callback_gas_limit must be > 0")
        if self.fulfillment_overhead_gas < 0:
            raise ValueError("fulfillment_overhead_gas must be >= 0")
        if self.max_deadline_delta <= self.beacon.period:
            raise ValueError(
                "max_deadline_delta must exceed beacon.period "
                f"({self.max_deadline_delta} <= {self.beacon.period}); no deadline could be valid"
            )

        self.beacon.validate()
        self.storage.validate()

    @property
    def coordinator(self) -> bytes:
        return to_address(self.coordinator_address)

    @property
    def owner(self) -> bytes:
        return to_address(self.owner_address)

    # -------------------------
    # Serialization helpers
    # -------------------------

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    # -------------------------
    # Loaders
    # -------------------------

    @staticmethod
    def from_env(prefix: str = "BEACONVRF_") -> "CoordinatorConfig":
        """
        Load configuration from environment variables. All variables are optional.

        Supported keys (examples):
          - BEACONVRF_CHAIN_ID=8453
          - BEACONVRF_COORDINATOR_ADDRESS=0x…
          - BEACONVRF_OWNER_ADDRESS=0x…
          - BEACONVRF_PREMIUM_MULTIPLIER_BPS=15000
          - BEACONVRF_MAX_FEE_PER_GAS=30000000000
          - BEACONVRF_MAX_CALLBACK_GAS_LIMIT=7500000
          - BEACONVRF_MAX_DEADLINE_DELTA=300
          - BEACONVRF_FULFILLMENT_OVERHEAD_GAS=120000

          - BEACONVRF_BEACON_PUBLIC_KEY=<x.c0>,<x.c1>,<y.c0>,<y.c1>  (decimal or 0x-hex)
          - BEACONVRF_BEACON_GENESIS=1713244728
          - BEACONVRF_BEACON_PERIOD=3
          - BEACONVRF_DRAND_URL=https://api.drand.sh
          - BEACONVRF_DRAND_CHAIN=evmnet

          - BEACONVRF_STORAGE_URI=sqlite:///./data/beaconvrf.db
        """

        def _get(name: str, cast: Any, default: Any) -> Any:
            key = prefix + name
            raw = os.getenv(key)
            if raw is None:
                return default
            try:
                return cast(raw)
            except Exception as e:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from e

        cfg = CoordinatorConfig(
            chain_id=_get("CHAIN_ID", _int, 1),
            coordinator_address=_get("COORDINATOR_ADDRESS", str, _ZERO_ADDRESS),
            owner_address=_get("OWNER_ADDRESS", str, _ZERO_ADDRESS),
            premium_multiplier_bps=_get("PREMIUM_MULTIPLIER_BPS", _int, DEFAULT_PREMIUM_MULTIPLIER_BPS),
            max_fee_per_gas=_get("MAX_FEE_PER_GAS", _int, DEFAULT_MAX_FEE_PER_GAS),
            max_callback_gas_limit=_get("MAX_CALLBACK_GAS_LIMIT", _int, DEFAULT_MAX_CALLBACK_GAS_LIMIT),
            max_deadline_delta=_get("MAX_DEADLINE_DELTA", _int, DEFAULT_MAX_DEADLINE_DELTA),
            fulfillment_overhead_gas=_get(
                "FULFILLMENT_OVERHEAD_GAS", _int, DEFAULT_FULFILLMENT_OVERHEAD_GAS
            ),
            beacon=BeaconConfig(
                public_key=_get("BEACON_PUBLIC_KEY", _limbs, None),
                genesis_timestamp=_get("BEACON_GENESIS", _int, DRAND_EVMNET_GENESIS),
                period=_get("BEACON_PERIOD", _int, DRAND_EVMNET_PERIOD),
                drand_url=_get("DRAND_URL", str, DRAND_DEFAULT_URL),
                chain_name=_get("DRAND_CHAIN", str, DRAND_EVMNET_NAME),
            ),
            storage=StorageConfig(uri=_get("STORAGE_URI", str, "memory://")),
        )
        cfg.validate()
        return cfg

    @staticmethod
    def from_file(path: str) -> "CoordinatorConfig":
        """
        Load configuration from a JSON or YAML file. Keys mirror the dataclass
        structure. Example (YAML):

            chain_id: 8453
            coordinator_address: "0x…"
            owner_address: "0x…"
            premium_multiplier_bps: 15000
            beacon:
              public_key: [123…, 456…, 789…, 101…]
              genesis_timestamp: 1713244728
              period: 3
            storage:
              uri: "sqlite:///./data/beaconvrf.db"
        """
        data = _parse_json_or_yaml(_read_text(path), path)
        return CoordinatorConfig.from_dict(data)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CoordinatorConfig":
        data = dict(data or {})

        def _pop(d: Dict[str, Any], key: str, default: Any) -> Any:
            return d.pop(key, default) if isinstance(d, dict) else default

        beacon_d = dict(_pop(data, "beacon", {}) or {})
        storage_d = dict(_pop(data, "storage", {}) or {})

        pk = _pop(beacon_d, "public_key", None)
        cfg = CoordinatorConfig(
            chain_id=_int(_pop(data, "chain_id", 1)),
            coordinator_address=_pop(data, "coordinator_address", _ZERO_ADDRESS),
            owner_address=_pop(data, "owner_address", _ZERO_ADDRESS),
            premium_multiplier_bps=_int(
                _pop(data, "premium_multiplier_bps", DEFAULT_PREMIUM_MULTIPLIER_BPS)
            ),
            max_fee_per_gas=_int(_pop(data, "max_fee_per_gas", DEFAULT_MAX_FEE_PER_GAS)),
            max_callback_gas_limit=_int(
                _pop(data, "max_callback_gas_limit", DEFAULT_MAX_CALLBACK_GAS_LIMIT)
            ),
            max_deadline_delta=_int(_pop(data, "max_deadline_delta", DEFAULT_MAX_DEADLINE_DELTA)),
            fulfillment_overhead_gas=_int(
                _pop(data, "fulfillment_overhead_gas", DEFAULT_FULFILLMENT_OVERHEAD_GAS)
            ),
            beacon=BeaconConfig(
                public_key=None if pk is None else _limbs(pk),
                genesis_timestamp=_int(_pop(beacon_d, "genesis_timestamp", DRAND_EVMNET_GENESIS)),
                period=_int(_pop(beacon_d, "period", DRAND_EVMNET_PERIOD)),
                drand_url=_pop(beacon_d, "drand_url", DRAND_DEFAULT_URL),
                chain_name=_pop(beacon_d, "chain_name", DRAND_EVMNET_NAME),
            ),
            storage=StorageConfig(uri=_pop(storage_d, "uri", "memory://")),
        )
        cfg.validate()
        return cfg


# -------------------------
# Utilities
# -------------------------


def _int(v: Any) -> int:
    """Accept ints, decimal strings and 0x-hex strings."""
    if isinstance(v, bool):
        raise ValueError("expected an integer, got a bool")
    if isinstance(v, int):
        return v
    s = str(v).strip().replace("_", "")
    return int(s, 16) if s.lower().startswith("0x") else int(s)


def _limbs(v: Any) -> List[int]:
    parts = v.split(",") if isinstance(v, str) else list(v)
    out = [_int(p) for p in parts]
    if len(out) != 4:
        raise ValueError("public key needs exactly 4 limbs")
    return out


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _parse_json_or_yaml(text: str, path_hint: str) -> Dict[str, Any]:
    # First try JSON
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse {path_hint!r} as JSON or YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path_hint!r}: top-level config must be a mapping")
    return data


__all__ = [
    "BeaconConfig",
    "StorageConfig",
    "CoordinatorConfig",
]
