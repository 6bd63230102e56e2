"""
beaconvrf.beacon.schedule
=========================

Deadline → beacon round arithmetic.

drand numbers rounds from 1: round 1 is published at ``genesis``, round r at
``genesis + (r - 1) * period``. A request that must be fulfilled no later than
``deadline`` is pinned to

    round = ceil((deadline - genesis) / period)

which is always strictly in the future once the lead-time check
(``deadline > now + period``) has passed.

Typical usage
-------------
    mapper = DeadlineRoundMapper(genesis=G, period=3, max_deadline_delta=300)
    rnd = mapper.round_for_deadline(deadline, now=int(time.time()))

The math is purely arithmetic on epoch seconds; callers decide what "now"
means (wall clock vs. latest block timestamp).
"""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InvalidDeadline


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def current_round(now: int, *, genesis: int, period: int) -> int:
    """Latest round published at or before ``now`` (0 before genesis)."""
    if now < genesis:
        return 0
    return (now - genesis) // period + 1


def round_timestamp(round: int, *, genesis: int, period: int) -> int:
    """UNIX time at which ``round`` becomes available."""
    if round < 1:
        raise ValueError("drand rounds start at 1")
    return genesis + (round - 1) * period


@dataclass(frozen=True)
class DeadlineRoundMapper:
    """Pure deadline validation and round mapping for one beacon."""

    genesis: int
    period: int
    max_deadline_delta: int

    def __post_init__(self) -> None:
        if self.period <= 0:
            raise ValueError("period must be > 0")
        if self.max_deadline_delta <= 0:
            raise ValueError("max_deadline_delta must be > 0")

    def bounds(self, now: int) -> tuple[int, int]:
        """(earliest, latest): valid deadlines satisfy earliest < d <= latest."""
        return now + self.period, now + self.max_deadline_delta

    def round_for_deadline(self, deadline: int, *, now: int) -> int:
        """
        Validate ``deadline`` against ``now`` and return its beacon round.

        Raises
        ------
        InvalidDeadline
            If the deadline leaves less than one full period of lead time,
            is further than ``max_deadline_delta`` away, or does not fall after
            genesis (which would map to round 0).
        """
        earliest, latest = self.bounds(now)
        if deadline <= earliest or deadline > latest or deadline <= self.genesis:
            raise InvalidDeadline(deadline=deadline, earliest=earliest, latest=latest)
        return _ceil_div(deadline - self.genesis, self.period)

    def current_round(self, now: int) -> int:
        return current_round(now, genesis=self.genesis, period=self.period)

    def minimum_future_round(self, now: int) -> int:
        return self.current_round(now) + 1

    def round_timestamp(self, round: int) -> int:
        return round_timestamp(round, genesis=self.genesis, period=self.period)

    def is_available(self, round: int, *, now: int) -> bool:
        """Whether the beacon has published ``round`` by ``now``."""
        return round >= 1 and self.round_timestamp(round) <= now


__all__ = ["DeadlineRoundMapper", "current_round", "round_timestamp"]
