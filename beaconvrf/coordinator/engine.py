"""
Coordinator - the request/fulfillment protocol engine.

Wires the components together and exposes the public operations:

    quote(callback_gas_limit)                         -> Quote
    create(requester, deadline, callback_gas_limit, payment)   -> request id
    consume(request_id, requester, beacon_key_hash, round,
            callback_gas_limit, signature)            -> FulfillmentResult
    get_state(request_id)                             -> RequestState

Order inside ``consume`` (checks, then effects, then the external call):

    1. state Pending and commitment match         (read-only, cheap)
    2. beacon signature verifies                  (pairing)
    3. zero commitment, Pending → Fulfilled       (one CAS transaction)
    4. derive randomness
    5. dispatch callback under its gas budget     (isolated, may fail)
    6. Fulfilled → Failed if the callback failed; emit events

Every rejection in steps 1–3 raises a :class:`CoordinatorError` before
anything is written. Nothing after step 3 can undo it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .. import logging as vlog
from ..beacon.registry import BeaconRegistry
from ..beacon.schedule import DeadlineRoundMapper
from ..beacon.verifier import SignatureVerifier
from ..config import CoordinatorConfig
from ..errors import CoordinatorError, IncorrectPayment, OverGasLimit
from ..fees.engine import FeeConfig, FeeEngine, Quote
from ..fees.gas_station import GasStation
from ..store import KeyValue, open_store
from ..types.core import Beacon, G1Point, G2Point, RequestParams, RequestState
from ..types.events import CallbackFailed, Event, RequestCreated, RequestFulfilled
from ..utils.bytes import to_address, to_hash32
from .derive import RandomnessDeriver
from .dispatch import CallbackDispatcher, ReceiverRegistry
from .events import EventLog
from .ledger import FeeLedger, Transfer, reject_transfers
from .requests import RequestStore

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class FulfillmentResult:
    request_id: int
    randomness: int
    callback_success: bool
    actual_gas_used: int
    state: RequestState


class Coordinator:
    def __init__(
        self,
        config: CoordinatorConfig,
        *,
        kv: KeyValue,
        registry: BeaconRegistry,
        gas_station: GasStation,
        receivers: Optional[ReceiverRegistry] = None,
        transfer: Transfer = reject_transfers,
        clock: Clock = time.time,
        verifier: Optional[SignatureVerifier] = None,
    ) -> None:
        config.validate()
        self.config = config
        self.kv = kv
        self.registry = registry
        self.clock = clock
        self.address = config.coordinator

        self.fees = FeeEngine(
            gas_station,
            FeeConfig(
                premium_multiplier_bps=config.premium_multiplier_bps,
                max_fee_per_gas=config.max_fee_per_gas,
                fulfillment_overhead_gas=config.fulfillment_overhead_gas,
            ),
        )
        self.verifier = verifier or SignatureVerifier()
        self.requests = RequestStore(kv)
        self.deriver = RandomnessDeriver(chain_id=config.chain_id, coordinator=self.address)
        self.receivers = receivers or ReceiverRegistry()
        self.dispatcher = CallbackDispatcher(self.receivers, self.address)
        self.event_log = EventLog(kv)
        self.ledger = FeeLedger(kv, owner=config.owner, transfer=transfer)

    @classmethod
    def from_config(
        cls,
        config: CoordinatorConfig,
        *,
        gas_station: GasStation,
        receivers: Optional[ReceiverRegistry] = None,
        transfer: Transfer = reject_transfers,
        clock: Clock = time.time,
    ) -> "Coordinator":
        """Open the configured store and register the configured beacon as current."""
        config.validate()
        registry = BeaconRegistry()
        registry.register(
            G2Point.from_limbs(config.beacon.public_key_limbs()),
            genesis_timestamp=config.beacon.genesis_timestamp,
            period=config.beacon.period,
        )
        return cls(
            config,
            kv=open_store(config.storage.uri),
            registry=registry,
            gas_station=gas_station,
            receivers=receivers,
            transfer=transfer,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _now(self, now: Optional[int]) -> int:
        return int(self.clock()) if now is None else int(now)

    def mapper(self, beacon: Optional[Beacon] = None) -> DeadlineRoundMapper:
        b = beacon or self.registry.current()
        return DeadlineRoundMapper(
            genesis=b.genesis_timestamp,
            period=b.period,
            max_deadline_delta=self.config.max_deadline_delta,
        )

    def quote(self, callback_gas_limit: int) -> Quote:
        return self.fees.quote(callback_gas_limit)

    def get_state(self, request_id: int) -> RequestState:
        return self.requests.get_state(request_id)

    def next_request_id(self) -> int:
        return self.requests.next_request_id()

    def current_beacon_key_hash(self) -> Optional[bytes]:
        return self.registry.current_key_hash()

    @property
    def max_callback_gas_limit(self) -> int:
        return self.config.max_callback_gas_limit

    @property
    def max_deadline_delta(self) -> int:
        return self.config.max_deadline_delta

    def current_round(self, now: Optional[int] = None) -> int:
        return self.mapper().current_round(self._now(now))

    def events(
        self,
        *,
        kind: Optional[str] = None,
        request_id: Optional[int] = None,
        requester: Optional[bytes] = None,
        limit: Optional[int] = None,
    ) -> List[Event]:
        return self.event_log.query(kind=kind, request_id=request_id, requester=requester, limit=limit)

    def balance(self) -> int:
        return self.ledger.balance()

    def params(self) -> Dict[str, Any]:
        key_hash = self.current_beacon_key_hash()
        return {
            "chain_id": self.config.chain_id,
            "coordinator": "0x" + self.address.hex(),
            "premium_multiplier_bps": self.config.premium_multiplier_bps,
            "max_fee_per_gas": self.config.max_fee_per_gas,
            "max_callback_gas_limit": self.max_callback_gas_limit,
            "max_deadline_delta": self.max_deadline_delta,
            "fulfillment_overhead_gas": self.config.fulfillment_overhead_gas,
            "current_beacon_key_hash": None if key_hash is None else "0x" + key_hash.hex(),
            "next_request_id": self.next_request_id(),
        }

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(
        self,
        *,
        requester: bytes | str,
        deadline: int,
        callback_gas_limit: int,
        payment: int,
        now: Optional[int] = None,
    ) -> int:
        """
        Commit to a future randomness request bound to the current beacon.

        Raises InvalidDeadline, IncorrectPayment, OverGasLimit or UnknownBeacon
        without writing anything.
        """
        requester_b = to_address(requester, name="requester")
        ts = self._now(now)
        try:
            beacon = self.registry.current()
            round_ = self.mapper(beacon).round_for_deadline(deadline, now=ts)
            q = self.fees.quote(callback_gas_limit)
            if payment != q.total_price:
                raise IncorrectPayment(expected=q.total_price, received=payment)
            if callback_gas_limit > self.config.max_callback_gas_limit:
                raise OverGasLimit(
                    callback_gas_limit=callback_gas_limit,
                    max_callback_gas_limit=self.config.max_callback_gas_limit,
                )
        except CoordinatorError as e:
            logger.info("request rejected", extra={"code": e.code, "requester": requester_b})
            raise

        with self.kv.transaction():
            params = self.requests.create(
                requester=requester_b,
                beacon_key_hash=beacon.public_key_hash,
                round=round_,
                callback_gas_limit=callback_gas_limit,
            )
            self.ledger.credit(payment)
            self.event_log.emit(
                RequestCreated(
                    request_id=params.request_id,
                    requester=requester_b,
                    beacon_key_hash=beacon.public_key_hash,
                    round=round_,
                    callback_gas_limit=callback_gas_limit,
                    fee_paid=payment,
                    effective_fee_per_gas=q.effective_fee_per_gas,
                )
            )
        logger.info(
            "randomness requested",
            extra={
                "request_id": params.request_id,
                "requester": requester_b,
                "round": round_,
                "callback_gas_limit": callback_gas_limit,
                "fee_paid": payment,
            },
        )
        return params.request_id

    def consume(
        self,
        *,
        request_id: int,
        requester: bytes | str,
        beacon_key_hash: bytes | str,
        round: int,
        callback_gas_limit: int,
        signature: G1Point,
    ) -> FulfillmentResult:
        """
        Fulfill a pending request with the beacon signature for its round.
        Permissionless; the first valid call wins and every later call fails
        with InvalidRequestState.
        """
        params = RequestParams(
            request_id=request_id,
            requester=to_address(requester, name="requester"),
            beacon_key_hash=to_hash32(beacon_key_hash, name="beacon_key_hash"),
            round=round,
            callback_gas_limit=callback_gas_limit,
        )
        with vlog.trace_scope(request_id=request_id, round=round):
            try:
                self.requests.check(params)
                beacon = self.registry.get(params.beacon_key_hash)
                self.verifier.verify(params.round, beacon.public_key, signature)
                self.requests.begin_consume(params)
            except CoordinatorError as e:
                logger.info("fulfillment rejected", extra={"code": e.code})
                raise

            randomness = self.deriver.derive(signature, params.request_id, params.requester)
            result = self.dispatcher.dispatch(
                requester=params.requester,
                request_id=params.request_id,
                random_word=randomness,
                gas_limit=params.callback_gas_limit,
            )
            state = self.requests.finalize(params.request_id, callback_success=result.success)

            with self.kv.transaction():
                if not result.success:
                    self.event_log.emit(
                        CallbackFailed(
                            request_id=params.request_id,
                            retdata=result.retdata,
                            gas_limit=params.callback_gas_limit,
                            actual_gas_used=result.gas_used,
                        )
                    )
                self.event_log.emit(
                    RequestFulfilled(
                        request_id=params.request_id,
                        randomness=randomness,
                        callback_success=result.success,
                        actual_gas_used=result.gas_used,
                    )
                )
            logger.info(
                "randomness fulfilled",
                extra={
                    "callback_success": result.success,
                    "actual_gas_used": result.gas_used,
                    "state": state.label,
                },
            )
        if result.interrupt is not None:
            raise result.interrupt
        return FulfillmentResult(
            request_id=params.request_id,
            randomness=randomness,
            callback_success=result.success,
            actual_gas_used=result.gas_used,
            state=state,
        )

    def withdraw(self, *, caller: bytes | str, recipient: bytes | str, amount: int) -> int:
        return self.ledger.withdraw(
            caller=to_address(caller, name="caller"),
            recipient=to_address(recipient, name="recipient"),
            amount=amount,
        )


__all__ = ["Coordinator", "FulfillmentResult"]
