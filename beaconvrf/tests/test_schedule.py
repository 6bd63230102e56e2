import pytest
from hypothesis import given
from hypothesis import strategies as st

from beaconvrf.beacon.schedule import DeadlineRoundMapper, current_round, round_timestamp
from beaconvrf.errors import InvalidDeadline

GENESIS = 1_713_244_728
PERIOD = 3


def mk(max_delta: int = 300, genesis: int = GENESIS, period: int = PERIOD) -> DeadlineRoundMapper:
    return DeadlineRoundMapper(genesis=genesis, period=period, max_deadline_delta=max_delta)


def test_current_round_counts_from_one_at_genesis():
    assert current_round(GENESIS - 1, genesis=GENESIS, period=PERIOD) == 0
    assert current_round(GENESIS, genesis=GENESIS, period=PERIOD) == 1
    assert current_round(GENESIS + 2, genesis=GENESIS, period=PERIOD) == 1
    assert current_round(GENESIS + 3, genesis=GENESIS, period=PERIOD) == 2


def test_round_timestamp_inverse_of_current_round():
    for r in (1, 2, 17, 10_000):
        ts = round_timestamp(r, genesis=GENESIS, period=PERIOD)
        assert current_round(ts, genesis=GENESIS, period=PERIOD) == r
        assert current_round(ts - 1, genesis=GENESIS, period=PERIOD) == r - 1
    with pytest.raises(ValueError):
        round_timestamp(0, genesis=GENESIS, period=PERIOD)


def test_deadline_sixty_seconds_out_on_period_boundary():
    m = mk()
    now = GENESIS + 3 * 5_000
    assert m.current_round(now) == 5_001
    # 20 periods ahead of the last published round
    assert m.round_for_deadline(now + 60, now=now) == m.current_round(now) - 1 + 20


def test_deadline_rounds_up_to_the_next_round():
    m = mk()
    now = GENESIS + 3 * 100
    assert m.round_for_deadline(now + 4, now=now) == 102
    assert m.round_for_deadline(now + 5, now=now) == 102
    assert m.round_for_deadline(now + 6, now=now) == 102
    assert m.round_for_deadline(now + 7, now=now) == 103


@pytest.mark.parametrize(
    "offset,ok",
    [
        (2, False),  # less than a period of lead time
        (3, False),  # exactly one period: rejected (strict)
        (4, True),
        (300, True),  # exactly max delta: accepted
        (301, False),
    ],
)
def test_deadline_bounds(offset: int, ok: bool):
    m = mk(max_delta=300)
    now = GENESIS + 1_000
    if ok:
        assert m.round_for_deadline(now + offset, now=now) >= m.minimum_future_round(now)
    else:
        with pytest.raises(InvalidDeadline) as ei:
            m.round_for_deadline(now + offset, now=now)
        assert ei.value.earliest == now + 3
        assert ei.value.latest == now + 300
        assert ei.value.to_dict()["code"] == "INVALID_DEADLINE"


def test_deadline_at_or_before_genesis_rejected():
    m = mk(max_delta=10_000)
    now = GENESIS - 5_000
    with pytest.raises(InvalidDeadline):
        m.round_for_deadline(GENESIS, now=now)
    assert m.round_for_deadline(GENESIS + 1, now=now) == 1


def test_mapper_rejects_bad_parameters():
    with pytest.raises(ValueError):
        mk(period=0)
    with pytest.raises(ValueError):
        mk(max_delta=0)


def test_is_available():
    m = mk()
    ts = m.round_timestamp(42)
    assert not m.is_available(42, now=ts - 1)
    assert m.is_available(42, now=ts)
    assert not m.is_available(0, now=ts)


@given(
    now_off=st.integers(min_value=0, max_value=10**8),
    lead=st.integers(min_value=PERIOD + 1, max_value=300),
)
def test_mapped_round_is_strictly_future_and_published_by_deadline(now_off: int, lead: int):
    m = mk()
    now = GENESIS + now_off
    deadline = now + lead
    r = m.round_for_deadline(deadline, now=now)
    assert r >= m.minimum_future_round(now)
    assert not m.is_available(r, now=now)
    assert deadline - PERIOD <= m.round_timestamp(r) < deadline


@given(
    now_off=st.integers(min_value=0, max_value=10**6),
    a=st.integers(min_value=PERIOD + 1, max_value=300),
    b=st.integers(min_value=PERIOD + 1, max_value=300),
)
def test_round_mapping_is_monotonic(now_off: int, a: int, b: int):
    m = mk()
    now = GENESIS + now_off
    lo, hi = sorted((a, b))
    assert m.round_for_deadline(now + lo, now=now) <= m.round_for_deadline(now + hi, now=now)
