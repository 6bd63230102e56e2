import pytest
from hypothesis import given
from hypothesis import strategies as st

from beaconvrf.errors import IncorrectPayment, OverGasLimit
from beaconvrf.fees import CallableGasStation, FeeConfig, FeeEngine, StaticGasStation
from beaconvrf.types.core import RequestState

from .conftest import CB_GAS, FEE_PER_GAS, NOW, REQUESTER


def test_premium_applies_to_raw_cost():
    gas_price = 7
    station = CallableGasStation(lambda: gas_price, cost_fn=lambda units, fee: 21_000 * fee)
    eng = FeeEngine(station, FeeConfig(premium_multiplier_bps=15_000, max_fee_per_gas=30))
    q = eng.quote(100_000)
    raw = 21_000 * gas_price
    assert q.total_price == raw * 3 // 2
    assert q.effective_fee_per_gas == gas_price
    assert not q.capped


def test_fee_spike_is_capped():
    eng = FeeEngine(StaticGasStation(50), FeeConfig(max_fee_per_gas=30))
    q = eng.quote(100_000)
    assert q.effective_fee_per_gas == 30
    assert q.total_price == 30 * 100_000
    assert q.capped


def test_fee_at_cap_is_not_capped():
    eng = FeeEngine(StaticGasStation(30), FeeConfig(max_fee_per_gas=30, fulfillment_overhead_gas=0))
    q = eng.quote(1_000)
    assert not q.capped
    assert q.total_price == 30 * 1_000 * 15_000 // 10_000


def test_overhead_is_priced_in():
    eng = FeeEngine(StaticGasStation(2), FeeConfig(premium_multiplier_bps=10_000, fulfillment_overhead_gas=500))
    assert eng.quote(1_000).total_price == 2 * 1_500


def test_premium_division_floors():
    eng = FeeEngine(StaticGasStation(1), FeeConfig(premium_multiplier_bps=10_001, fulfillment_overhead_gas=0))
    assert eng.quote(9_999).total_price == 9_999 * 10_001 // 10_000


def test_negative_inputs_rejected():
    with pytest.raises(ValueError):
        FeeEngine(StaticGasStation(1)).quote(-1)
    with pytest.raises(ValueError):
        StaticGasStation(-1)
    with pytest.raises(ValueError):
        FeeConfig(premium_multiplier_bps=-1)
    with pytest.raises(ValueError):
        FeeEngine(CallableGasStation(lambda: -5)).quote(1)


@given(
    fee=st.integers(min_value=0, max_value=10**12),
    gas=st.integers(min_value=0, max_value=10_000_000),
)
def test_quote_is_deterministic_and_monotonic_in_gas(fee: int, gas: int):
    eng = FeeEngine(StaticGasStation(fee))
    a = eng.quote(gas)
    assert a == eng.quote(gas)
    assert eng.quote(gas + 1).total_price >= a.total_price


# --- exact payment through the coordinator ----------------------------------------


def test_create_requires_exact_payment(coordinator):
    price = coordinator.quote(CB_GAS).total_price
    for bad in (price - 1, price + 1, 0):
        with pytest.raises(IncorrectPayment) as ei:
            coordinator.create(requester=REQUESTER, deadline=NOW + 60, callback_gas_limit=CB_GAS, payment=bad)
        assert ei.value.expected == price
        assert ei.value.received == bad
    assert coordinator.get_state(1) is RequestState.NONEXISTENT
    assert coordinator.next_request_id() == 1
    assert coordinator.balance() == 0
    assert coordinator.events() == []


def test_payment_tracks_live_fee(coordinator, gas_station):
    before = coordinator.quote(CB_GAS).total_price
    gas_station.fee = FEE_PER_GAS * 2
    after = coordinator.quote(CB_GAS).total_price
    assert after == before * 2
    with pytest.raises(IncorrectPayment):
        coordinator.create(requester=REQUESTER, deadline=NOW + 60, callback_gas_limit=CB_GAS, payment=before)
    rid = coordinator.create(requester=REQUESTER, deadline=NOW + 60, callback_gas_limit=CB_GAS, payment=after)
    assert coordinator.balance() == after
    assert coordinator.get_state(rid) is RequestState.PENDING


def test_over_gas_limit(coordinator):
    limit = coordinator.max_callback_gas_limit
    price = coordinator.quote(limit + 1).total_price
    with pytest.raises(OverGasLimit) as ei:
        coordinator.create(requester=REQUESTER, deadline=NOW + 60, callback_gas_limit=limit + 1, payment=price)
    assert ei.value.max_callback_gas_limit == limit
    assert coordinator.next_request_id() == 1
    # exactly at the limit is fine
    rid = coordinator.create(
        requester=REQUESTER,
        deadline=NOW + 60,
        callback_gas_limit=limit,
        payment=coordinator.quote(limit).total_price,
    )
    assert coordinator.get_state(rid) is RequestState.PENDING
