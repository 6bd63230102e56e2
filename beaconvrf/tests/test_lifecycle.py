import asyncio
import threading
from typing import Any, Dict, List

import pytest

from beaconvrf.beacon.registry import BeaconRegistry
from beaconvrf.consumer import RECEIVE_BASE_GAS, STORE_WORD_GAS, RandomnessConsumer
from beaconvrf.coordinator import Coordinator, RandomnessDeriver, Revert
from beaconvrf.crypto.bls import negate
from beaconvrf.errors import (
    InvalidDeadline,
    InvalidRequestHash,
    InvalidRequestState,
    InvalidSignature,
    NotOwner,
    TransferFailed,
    UnknownBeacon,
)
from beaconvrf.types.core import G1Point, RequestState
from beaconvrf.types.events import CallbackFailed, RequestCreated, RequestFulfilled

from .conftest import (
    CB_GAS,
    CHAIN_ID,
    COORDINATOR,
    FEE_PER_GAS,
    NOW,
    OTHER,
    OWNER,
    REQUESTER,
)

STRANGER = bytes.fromhex("33" * 20)


def fulfill_args(coordinator: Coordinator, rid: int) -> Dict[str, Any]:
    ev = coordinator.events(kind=RequestCreated.kind, request_id=rid)[0]
    assert isinstance(ev, RequestCreated)
    return dict(
        request_id=rid,
        requester=ev.requester,
        beacon_key_hash=ev.beacon_key_hash,
        round=ev.round,
        callback_gas_limit=ev.callback_gas_limit,
    )


class Throwing:
    def receive_randomness(self, ctx, request_id, random_word):
        ctx.gas.debit(1_234)
        raise RuntimeError("boom")


# --- create --------------------------------------------------------------------


def test_create_records_commitment_and_event(coordinator, new_request):
    rid = new_request()
    assert rid == 1
    assert coordinator.get_state(rid) is RequestState.PENDING
    assert coordinator.requests.commitment(rid) is not None
    assert coordinator.next_request_id() == 2

    (ev,) = coordinator.events()
    assert isinstance(ev, RequestCreated)
    assert ev.request_id == rid
    assert ev.requester == REQUESTER
    assert ev.beacon_key_hash == coordinator.current_beacon_key_hash()
    # now is on a period boundary: 20 rounds of 3 s after the last published one
    assert ev.round == coordinator.current_round() - 1 + 20
    assert ev.callback_gas_limit == CB_GAS
    assert ev.fee_paid == coordinator.quote(CB_GAS).total_price
    assert ev.effective_fee_per_gas == FEE_PER_GAS
    assert coordinator.balance() == ev.fee_paid


def test_create_rejects_bad_deadline_without_writing(coordinator):
    price = coordinator.quote(CB_GAS).total_price
    for deadline in (NOW, NOW + 3, NOW + coordinator.max_deadline_delta + 1):
        with pytest.raises(InvalidDeadline):
            coordinator.create(requester=REQUESTER, deadline=deadline, callback_gas_limit=CB_GAS, payment=price)
    assert coordinator.next_request_id() == 1
    assert coordinator.events() == []


def test_create_without_current_beacon(config, memory_kv, gas_station):
    c = Coordinator(config, kv=memory_kv, registry=BeaconRegistry(), gas_station=gas_station, clock=lambda: NOW)
    with pytest.raises(UnknownBeacon):
        c.create(requester=REQUESTER, deadline=NOW + 60, callback_gas_limit=CB_GAS, payment=0)


def test_request_ids_are_sequential(coordinator, new_request):
    assert [new_request() for _ in range(3)] == [1, 2, 3]
    assert coordinator.get_state(4) is RequestState.NONEXISTENT


@pytest.mark.parametrize("rid", [-1, 2**256, 2**300])
def test_ids_outside_uint256_are_nonexistent(coordinator, rid):
    assert coordinator.get_state(rid) is RequestState.NONEXISTENT
    assert coordinator.requests.commitment(rid) is None


# --- consume -------------------------------------------------------------------


def test_round_trip(coordinator, new_request, consumers, sign):
    rid = new_request()
    args = fulfill_args(coordinator, rid)
    sig = sign(args["round"])

    res = coordinator.consume(**args, signature=sig)

    assert res.callback_success
    assert res.state is RequestState.FULFILLED
    assert coordinator.get_state(rid) is RequestState.FULFILLED
    assert coordinator.requests.commitment(rid) is None
    assert res.actual_gas_used == RECEIVE_BASE_GAS + STORE_WORD_GAS

    expected = RandomnessDeriver(chain_id=CHAIN_ID, coordinator=COORDINATOR).derive(sig, rid, REQUESTER)
    assert res.randomness == expected
    assert consumers[REQUESTER].received == {rid: expected}

    fulfilled = coordinator.events(kind=RequestFulfilled.kind)
    assert fulfilled == [
        RequestFulfilled(
            request_id=rid,
            randomness=expected,
            callback_success=True,
            actual_gas_used=res.actual_gas_used,
        )
    ]

    # identical second submission fails cleanly, nothing else is emitted
    with pytest.raises(InvalidRequestState) as ei:
        coordinator.consume(**args, signature=sig)
    assert ei.value.state == "Fulfilled"
    assert len(coordinator.events()) == 2
    assert consumers[REQUESTER].received == {rid: expected}


@pytest.mark.parametrize(
    "field,value",
    [
        ("requester", OTHER),
        ("beacon_key_hash", b"\x01" * 32),
        ("round", "+1"),
        ("callback_gas_limit", "+1"),
    ],
)
def test_tampered_field_rejected(coordinator, new_request, field, value):
    rid = new_request()
    args = fulfill_args(coordinator, rid)
    args[field] = args[field] + 1 if value == "+1" else value
    # the commitment check runs before any pairing, so the signature is irrelevant
    with pytest.raises(InvalidRequestHash):
        coordinator.consume(**args, signature=G1Point(1, 2))
    assert coordinator.get_state(rid) is RequestState.PENDING
    assert coordinator.requests.commitment(rid) is not None


def test_request_id_swap_rejected(coordinator, new_request):
    first, second = new_request(), new_request(OTHER)
    args = fulfill_args(coordinator, first)
    args["request_id"] = second
    with pytest.raises(InvalidRequestHash):
        coordinator.consume(**args, signature=G1Point(1, 2))
    args["request_id"] = 99
    with pytest.raises(InvalidRequestState) as ei:
        coordinator.consume(**args, signature=G1Point(1, 2))
    assert ei.value.state == "Nonexistent"


def test_invalid_signature_leaves_request_pending(coordinator, new_request, sign):
    rid = new_request()
    args = fulfill_args(coordinator, rid)

    with pytest.raises(InvalidSignature) as ei:
        coordinator.consume(**args, signature=sign(args["round"] + 1))
    assert ei.value.reason == "pairing"
    assert coordinator.get_state(rid) is RequestState.PENDING

    with pytest.raises(InvalidSignature):
        coordinator.consume(**args, signature=G1Point(3, 4))
    assert coordinator.get_state(rid) is RequestState.PENDING
    assert coordinator.events(kind=RequestFulfilled.kind) == []

    # anyone can still fulfill with the right signature
    assert coordinator.consume(**args, signature=sign(args["round"])).callback_success


def test_negated_signature_rejected(coordinator, new_request, sign):
    rid = new_request()
    args = fulfill_args(coordinator, rid)
    with pytest.raises(InvalidSignature):
        coordinator.consume(**args, signature=negate(sign(args["round"])))
    assert coordinator.get_state(rid) is RequestState.PENDING


# --- callback outcomes -----------------------------------------------------------


def test_throwing_callback_marks_failed_and_keeps_randomness(coordinator, new_request, receivers, sign):
    receivers.register(STRANGER, Throwing())
    rid = new_request(STRANGER)
    fee = coordinator.balance()
    args = fulfill_args(coordinator, rid)
    sig = sign(args["round"])

    res = coordinator.consume(**args, signature=sig)

    assert not res.callback_success
    assert res.state is RequestState.FAILED
    assert coordinator.get_state(rid) is RequestState.FAILED
    assert coordinator.requests.commitment(rid) is None
    assert res.actual_gas_used == 1_234
    assert res.randomness == RandomnessDeriver(CHAIN_ID, COORDINATOR).derive(sig, rid, STRANGER)

    failed, fulfilled = coordinator.events(request_id=rid)[1:]
    assert isinstance(failed, CallbackFailed)
    assert failed.retdata == b"RuntimeError: boom"
    assert failed.gas_limit == CB_GAS
    assert failed.actual_gas_used == 1_234
    assert isinstance(fulfilled, RequestFulfilled)
    assert fulfilled.randomness == res.randomness
    assert not fulfilled.callback_success
    # no refund
    assert coordinator.balance() == fee

    with pytest.raises(InvalidRequestState):
        coordinator.consume(**args, signature=sig)


class Cancelled:
    def receive_randomness(self, ctx, request_id, random_word):
        ctx.gas.debit(500)
        raise asyncio.CancelledError()


def test_cancelled_callback_is_recorded_as_failed(coordinator, new_request, receivers, sign):
    receivers.register(STRANGER, Cancelled())
    rid = new_request(STRANGER)
    args = fulfill_args(coordinator, rid)

    res = coordinator.consume(**args, signature=sign(args["round"]))

    assert not res.callback_success
    assert coordinator.get_state(rid) is RequestState.FAILED
    (failed,) = coordinator.events(kind=CallbackFailed.kind)
    assert failed.retdata == b"CancelledError"
    assert failed.actual_gas_used == 500
    (fulfilled,) = coordinator.events(kind=RequestFulfilled.kind)
    assert fulfilled.randomness == res.randomness


def test_keyboard_interrupt_propagates_after_outcome_is_stored(coordinator, new_request, receivers, sign):
    class Interrupted:
        def receive_randomness(self, ctx, request_id, random_word):
            raise KeyboardInterrupt

    receivers.register(STRANGER, Interrupted())
    rid = new_request(STRANGER)
    args = fulfill_args(coordinator, rid)
    sig = sign(args["round"])

    with pytest.raises(KeyboardInterrupt):
        coordinator.consume(**args, signature=sig)

    assert coordinator.get_state(rid) is RequestState.FAILED
    assert coordinator.requests.commitment(rid) is None
    (fulfilled,) = coordinator.events(kind=RequestFulfilled.kind)
    assert fulfilled.randomness == RandomnessDeriver(CHAIN_ID, COORDINATOR).derive(sig, rid, STRANGER)
    assert coordinator.events(kind=CallbackFailed.kind)[0].retdata == b"KeyboardInterrupt"


def test_callback_out_of_gas(coordinator, new_request, consumers, sign):
    rid = new_request(gas=10_000)
    args = fulfill_args(coordinator, rid)
    res = coordinator.consume(**args, signature=sign(args["round"]))
    assert not res.callback_success
    # an overdraft burns the whole budget
    assert res.actual_gas_used == 10_000
    (failed,) = coordinator.events(kind=CallbackFailed.kind)
    assert failed.retdata == b"out of gas"
    assert rid not in consumers[REQUESTER].received


def test_missing_receiver_is_a_failed_callback(coordinator, new_request, sign):
    rid = new_request(STRANGER)
    args = fulfill_args(coordinator, rid)
    res = coordinator.consume(**args, signature=sign(args["round"]))
    assert not res.callback_success
    assert res.actual_gas_used == 0
    assert coordinator.events(kind=CallbackFailed.kind)[0].retdata == b"no receiver"


def test_consumer_only_accepts_its_coordinator(coordinator, new_request, receivers, sign):
    receivers.register(STRANGER, RandomnessConsumer(STRANGER, OTHER))
    rid = new_request(STRANGER)
    args = fulfill_args(coordinator, rid)
    res = coordinator.consume(**args, signature=sign(args["round"]))
    assert not res.callback_success
    assert coordinator.events(kind=CallbackFailed.kind)[0].retdata == b"OnlyCoordinatorCanFulfill"


def test_reentrant_consume_fails(coordinator, new_request, receivers, sign):
    seen: Dict[str, Any] = {}

    class Reentrant:
        def receive_randomness(self, ctx, request_id, random_word):
            seen["state"] = coordinator.get_state(request_id)
            seen["commitment"] = coordinator.requests.commitment(request_id)
            try:
                coordinator.consume(**args, signature=sig)
            except InvalidRequestState as e:
                seen["error"] = e

    receivers.register(STRANGER, Reentrant())
    rid = new_request(STRANGER)
    args = fulfill_args(coordinator, rid)
    sig = sign(args["round"])

    res = coordinator.consume(**args, signature=sig)

    assert res.callback_success
    assert seen["state"] is RequestState.FULFILLED
    assert seen["commitment"] is None
    assert isinstance(seen["error"], InvalidRequestState)
    assert len(coordinator.events(kind=RequestFulfilled.kind)) == 1


def test_revert_with_custom_return_data(coordinator, new_request, receivers, sign):
    class Picky:
        def receive_randomness(self, ctx, request_id, random_word):
            raise Revert("nope", return_data=b"\xde\xad" * 200)

    receivers.register(STRANGER, Picky())
    rid = new_request(STRANGER)
    args = fulfill_args(coordinator, rid)
    coordinator.consume(**args, signature=sign(args["round"]))
    (failed,) = coordinator.events(kind=CallbackFailed.kind)
    # revert data is truncated
    assert failed.retdata == (b"\xde\xad" * 200)[:256]


# --- concurrency -----------------------------------------------------------------


def test_racing_fulfillers_exactly_one_wins(coordinator, new_request, consumers, sign):
    rid = new_request()
    args = fulfill_args(coordinator, rid)
    sig = sign(args["round"])
    barrier = threading.Barrier(2)
    wins: List[Any] = []
    losses: List[Exception] = []

    def worker() -> None:
        barrier.wait()
        try:
            wins.append(coordinator.consume(**args, signature=sig))
        except InvalidRequestState as e:
            losses.append(e)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=120)

    assert len(wins) == 1 and len(losses) == 1
    assert coordinator.get_state(rid) is RequestState.FULFILLED
    assert len(coordinator.events(kind=RequestFulfilled.kind)) == 1
    assert list(consumers[REQUESTER].received) == [rid]


def test_lifecycle_on_each_backend(any_coordinator, sign):
    c = any_coordinator
    q = c.quote(CB_GAS)
    rid = c.create(requester=REQUESTER, deadline=NOW + 60, callback_gas_limit=CB_GAS, payment=q.total_price)
    args = fulfill_args(c, rid)
    res = c.consume(**args, signature=sign(args["round"]))
    assert res.callback_success
    assert c.get_state(rid) is RequestState.FULFILLED
    assert [type(e) for e in c.events()] == [RequestCreated, RequestFulfilled]
    assert c.balance() == q.total_price
    assert c.next_request_id() == 2


# --- views -------------------------------------------------------------------------


def test_event_queries(coordinator, new_request):
    a = new_request()
    b = new_request(OTHER)
    c = new_request()
    assert [e.request_id for e in coordinator.events(requester=REQUESTER)] == [a, c]
    assert [e.request_id for e in coordinator.events(requester=OTHER)] == [b]
    assert [e.request_id for e in coordinator.events(kind=RequestCreated.kind, limit=2)] == [a, b]
    assert coordinator.events(kind=RequestFulfilled.kind) == []


def test_params_view(coordinator):
    p = coordinator.params()
    assert p["chain_id"] == CHAIN_ID
    assert p["coordinator"] == "0x" + COORDINATOR.hex()
    assert p["max_deadline_delta"] == coordinator.max_deadline_delta
    assert p["current_beacon_key_hash"] == "0x" + coordinator.current_beacon_key_hash().hex()
    assert p["next_request_id"] == 1


def test_randomness_binds_context():
    sig = G1Point(1, 2)
    d = RandomnessDeriver(chain_id=1, coordinator=COORDINATOR)
    base = d.derive(sig, 1, REQUESTER)
    assert 0 <= base < 2**256
    assert base == d.derive(sig, 1, REQUESTER)
    others = {
        d.derive(sig, 2, REQUESTER),
        d.derive(sig, 1, OTHER),
        d.derive(G1Point(1, 3), 1, REQUESTER),
        RandomnessDeriver(chain_id=2, coordinator=COORDINATOR).derive(sig, 1, REQUESTER),
        RandomnessDeriver(chain_id=1, coordinator=OTHER).derive(sig, 1, REQUESTER),
    }
    assert base not in others
    assert len(others) == 5


# --- fees ----------------------------------------------------------------------------


def test_withdraw(coordinator, new_request, transfers):
    new_request()
    bal = coordinator.balance()
    assert bal > 0

    with pytest.raises(NotOwner):
        coordinator.withdraw(caller=REQUESTER, recipient=REQUESTER, amount=1)
    with pytest.raises(ValueError):
        coordinator.withdraw(caller=OWNER, recipient=OWNER, amount=0)
    with pytest.raises(TransferFailed):
        coordinator.withdraw(caller=OWNER, recipient=OWNER, amount=bal + 1)
    assert coordinator.balance() == bal

    left = coordinator.withdraw(caller=OWNER, recipient=OTHER, amount=bal - 10)
    assert left == 10 == coordinator.balance()
    assert transfers.sent == [(OTHER, bal - 10)]


def test_failed_transfer_keeps_balance(coordinator, new_request, transfers):
    new_request()
    bal = coordinator.balance()
    transfers.ok = False
    with pytest.raises(TransferFailed) as ei:
        coordinator.withdraw(caller=OWNER, recipient=OWNER, amount=bal)
    assert ei.value.reason == "rejected"
    assert coordinator.balance() == bal


def test_raising_transfer_keeps_balance(config, memory_kv, registry, gas_station, receivers):
    def explode(recipient: bytes, amount: int) -> bool:
        raise ConnectionError("payout queue down")

    c = Coordinator(
        config, kv=memory_kv, registry=registry, gas_station=gas_station,
        receivers=receivers, transfer=explode, clock=lambda: NOW,
    )
    c.create(requester=REQUESTER, deadline=NOW + 60, callback_gas_limit=CB_GAS,
             payment=c.quote(CB_GAS).total_price)
    bal = c.balance()
    with pytest.raises(TransferFailed) as ei:
        c.withdraw(caller=OWNER, recipient=OWNER, amount=1)
    assert "payout queue down" in ei.value.reason
    assert c.balance() == bal


def test_default_transfer_adapter_rejects(config, memory_kv, registry, gas_station):
    c = Coordinator(config, kv=memory_kv, registry=registry, gas_station=gas_station, clock=lambda: NOW)
    c.create(requester=REQUESTER, deadline=NOW + 60, callback_gas_limit=CB_GAS,
             payment=c.quote(CB_GAS).total_price)
    with pytest.raises(TransferFailed):
        c.withdraw(caller=OWNER, recipient=OWNER, amount=1)
