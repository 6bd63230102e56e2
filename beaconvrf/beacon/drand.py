"""
beaconvrf.beacon.drand
======================

Minimal HTTP client for a drand relay (``/v2`` API).

Endpoints used
--------------
- ``GET {base}/v2/beacons/{name}/info``          chain info (public key, genesis, period)
- ``GET {base}/v2/beacons/{name}/rounds/{n}``    signature for round n
- ``GET {base}/v2/beacons/{name}/rounds/latest`` most recent round

Encodings (BN254 "evmnet" scheme, big-endian 32-byte limbs)
-----------------------------------------------------------
- G1 signature: 64 bytes, ``x || y``
- G2 public key: 128 bytes, ``x.c1 || x.c0 || y.c1 || y.c0`` (imaginary limb first)

Typical usage
-------------
    client = DrandClient()                 # api.drand.sh, evmnet
    info = client.info()
    beacon_round = client.round(12_345)
    sig = beacon_round.signature_point     # -> G1Point
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from ..constants import DRAND_DEFAULT_URL, DRAND_EVMNET_NAME
from ..types.core import G1Point, G2Point
from ..utils.bytes import from_hex

logger = logging.getLogger(__name__)

JsonDict = Dict[str, Any]


class DrandError(RuntimeError):
    """Transport failure, non-200 response, or malformed payload from a relay."""


def decode_g1(hex_str: str) -> G1Point:
    raw = from_hex(hex_str)
    if len(raw) != 64:
        raise DrandError(f"G1 point must be 64 bytes, got {len(raw)}")
    return G1Point(int.from_bytes(raw[:32], "big"), int.from_bytes(raw[32:], "big"))


def decode_g2(hex_str: str) -> G2Point:
    raw = from_hex(hex_str)
    if len(raw) != 128:
        raise DrandError(f"G2 point must be 128 bytes, got {len(raw)}")
    x_c1, x_c0, y_c1, y_c0 = (int.from_bytes(raw[i : i + 32], "big") for i in range(0, 128, 32))
    return G2Point(x=(x_c0, x_c1), y=(y_c0, y_c1))


@dataclass(frozen=True)
class ChainInfo:
    public_key: G2Point
    genesis_time: int
    period: int
    scheme: Optional[str] = None
    chain_hash: Optional[str] = None


@dataclass(frozen=True)
class BeaconRound:
    round: int
    signature: str

    @property
    def signature_point(self) -> G1Point:
        return decode_g1(self.signature)


class DrandClient:
    """
    Parameters
    ----------
    base_url : str
        Relay base URL (default ``https://api.drand.sh``).
    chain : str
        Beacon id on the relay (default ``evmnet``).
    timeout_s : float
        Per-request timeout.
    session : requests.Session | None
        Optional custom session (tests inject a stub).
    """

    def __init__(
        self,
        base_url: str = DRAND_DEFAULT_URL,
        chain: str = DRAND_EVMNET_NAME,
        *,
        timeout_s: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.chain = chain
        self.timeout_s = timeout_s
        self._session = session or requests.Session()

    def _url(self, suffix: str) -> str:
        return f"{self.base_url}/v2/beacons/{self.chain}/{suffix}"

    def _get(self, suffix: str) -> JsonDict:
        url = self._url(suffix)
        try:
            r = self._session.get(url, timeout=self.timeout_s)
        except requests.RequestException as e:
            raise DrandError(f"GET {url} failed: {e}") from e
        if r.status_code != 200:
            raise DrandError(f"GET {url}: HTTP {r.status_code}: {r.text[:200]}")
        try:
            data = r.json()
        except ValueError as e:
            raise DrandError(f"GET {url}: response is not JSON") from e
        if not isinstance(data, dict):
            raise DrandError(f"GET {url}: expected a JSON object")
        return data

    def info(self) -> ChainInfo:
        data = self._get("info")
        try:
            return ChainInfo(
                public_key=decode_g2(data["public_key"]),
                genesis_time=int(data["genesis_time"]),
                period=int(data["period"]),
                scheme=data.get("scheme") or data.get("schemeID"),
                chain_hash=data.get("chain_hash") or data.get("hash"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DrandError(f"malformed chain info: {e}") from e

    def round(self, n: int) -> BeaconRound:
        if n < 1:
            raise ValueError("drand rounds start at 1")
        return self._parse_round(self._get(f"rounds/{n}"), expected=n)

    def latest(self) -> BeaconRound:
        return self._parse_round(self._get("rounds/latest"))

    def signature(self, n: int) -> G1Point:
        """Fetch and decode the G1 signature for round ``n``."""
        sig = self.round(n).signature_point
        logger.debug("fetched drand signature", extra={"round": n, "chain": self.chain})
        return sig

    @staticmethod
    def _parse_round(data: JsonDict, expected: Optional[int] = None) -> BeaconRound:
        try:
            got = int(data["round"])
            sig = str(data["signature"])
        except (KeyError, TypeError, ValueError) as e:
            raise DrandError(f"malformed round payload: {e}") from e
        if expected is not None and got != expected:
            raise DrandError(f"relay returned round {got}, asked for {expected}")
        return BeaconRound(round=got, signature=sig)


__all__ = ["DrandClient", "DrandError", "ChainInfo", "BeaconRound", "decode_g1", "decode_g2"]
