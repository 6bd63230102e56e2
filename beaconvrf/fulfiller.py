"""
Permissionless fulfiller.

Scans ``RandomnessRequested`` events for requests that are still Pending and
whose beacon round has been published, obtains the round signature from a
:class:`SignatureSource` and submits it through ``Coordinator.consume``.

Outcomes per request:
  * fulfilled: this fulfiller won
  * lost race: another caller consumed it first (InvalidRequestState)
  * bad signature: the source returned a signature that does not verify; the
    request stays Pending and is retried on the next pass
  * not ready: round in the future, or the source has not seen it yet
  * unknown beacon: the request is bound to a key this process has not
    registered (e.g. after a key rotation); it is skipped, not fatal
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

from . import logging as vlog
from .beacon.drand import DrandClient, DrandError
from .coordinator.engine import Coordinator, FulfillmentResult
from .crypto.bls import KeyPair
from .errors import InvalidRequestState, InvalidSignature, UnknownBeacon
from .types.core import G1Point, RequestState
from .types.events import RequestCreated

logger = logging.getLogger(__name__)


class SignatureSource(Protocol):
    def signature(self, round: int) -> Optional[G1Point]:
        """Signature for ``round``, or None if not (yet) available."""
        ...


class DrandSignatureSource:
    """Signatures from a drand relay; transport errors count as 'not available'."""

    def __init__(self, client: DrandClient) -> None:
        self.client = client

    def signature(self, round: int) -> Optional[G1Point]:
        try:
            return self.client.signature(round)
        except (DrandError, ValueError) as e:
            logger.info("drand round unavailable", extra={"round": round, "error": str(e)})
            return None


class LocalSignatureSource:
    """Signs rounds with a local key pair (devnets and tests)."""

    def __init__(self, keypair: KeyPair) -> None:
        self.keypair = keypair

    def signature(self, round: int) -> Optional[G1Point]:
        return self.keypair.sign_round(round)


@dataclass
class PassReport:
    fulfilled: List[FulfillmentResult] = field(default_factory=list)
    lost_race: List[int] = field(default_factory=list)
    bad_signature: List[int] = field(default_factory=list)
    not_ready: List[int] = field(default_factory=list)
    unknown_beacon: List[int] = field(default_factory=list)


class Fulfiller:
    def __init__(
        self,
        coordinator: Coordinator,
        source: SignatureSource,
        *,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.coordinator = coordinator
        self.source = source
        self.clock = clock or coordinator.clock
        self._stop = threading.Event()
        self._next_seq = 0
        self._open: Dict[int, RequestCreated] = {}

    def pending(self) -> List[RequestCreated]:
        """
        Requests still Pending, in creation order. Only events appended since
        the previous call are read; requests that left Pending are forgotten.
        """
        for seq, ev in self.coordinator.event_log.since(self._next_seq):
            if isinstance(ev, RequestCreated):
                self._open[ev.request_id] = ev
            self._next_seq = seq + 1
        for rid in list(self._open):
            if self.coordinator.get_state(rid) is not RequestState.PENDING:
                del self._open[rid]
        return list(self._open.values())

    def run_once(self, *, now: Optional[int] = None) -> PassReport:
        ts = int(self.clock()) if now is None else now
        report = PassReport()
        for ev in self.pending():
            try:
                beacon = self.coordinator.registry.get(ev.beacon_key_hash)
            except UnknownBeacon:
                logger.warning(
                    "request bound to an unregistered beacon",
                    extra={"request_id": ev.request_id, "beacon_key_hash": ev.beacon_key_hash},
                )
                report.unknown_beacon.append(ev.request_id)
                continue
            if not self.coordinator.mapper(beacon).is_available(ev.round, now=ts):
                report.not_ready.append(ev.request_id)
                continue
            sig = self.source.signature(ev.round)
            if sig is None:
                report.not_ready.append(ev.request_id)
                continue
            with vlog.trace_scope(component="fulfiller"):
                try:
                    res = self.coordinator.consume(
                        request_id=ev.request_id,
                        requester=ev.requester,
                        beacon_key_hash=ev.beacon_key_hash,
                        round=ev.round,
                        callback_gas_limit=ev.callback_gas_limit,
                        signature=sig,
                    )
                except InvalidRequestState:
                    report.lost_race.append(ev.request_id)
                    continue
                except InvalidSignature as e:
                    logger.warning(
                        "signature source returned an invalid signature",
                        extra={"request_id": ev.request_id, "round": ev.round, "reason": e.reason},
                    )
                    report.bad_signature.append(ev.request_id)
                    continue
            report.fulfilled.append(res)
        return report

    def run_forever(self, *, interval_s: float = 3.0) -> None:
        """Poll until :meth:`stop` is called. A failing pass is logged and retried."""
        logger.info("fulfiller started", extra={"interval_s": interval_s})
        while not self._stop.is_set():
            try:
                report = self.run_once()
            except Exception:
                logger.exception("fulfillment pass failed")
            else:
                if report.fulfilled:
                    logger.info("fulfillment pass", extra={"fulfilled": len(report.fulfilled)})
            self._stop.wait(interval_s)
        logger.info("fulfiller stopped")

    def stop(self) -> None:
        self._stop.set()


__all__ = [
    "SignatureSource",
    "DrandSignatureSource",
    "LocalSignatureSource",
    "Fulfiller",
    "PassReport",
]
