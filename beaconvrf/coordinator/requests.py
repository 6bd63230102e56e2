"""
RequestStore - the commitment ledger and request state machine.

    Nonexistent ──create──▶ Pending ──begin_consume──▶ Fulfilled ──finalize(False)──▶ Failed

Storage per request id:
  * commitment (32 bytes): present iff the request is Pending
  * state byte (0..3):     kept forever so ``get_state`` works after consumption

``begin_consume`` is the single point where a request leaves Pending. It runs
as one transaction that re-reads the state, checks the commitment, zeroes it
and compare-and-swaps the state byte Pending → Fulfilled. Any concurrent or
re-entrant attempt on the same id observes a non-Pending state and fails with
``InvalidRequestState``; nothing it did is written.
"""

from __future__ import annotations

import logging

from ..errors import InvalidRequestHash, InvalidRequestState
from ..store import KeyValue
from ..store.kv import META_NEXT_REQUEST_ID, Buckets, from_u256, u256
from ..types.core import RequestParams, RequestState
from ..utils.bytes import consteq
from ..utils.hash import UINT256_MAX
from .commitment import request_commitment

logger = logging.getLogger(__name__)

_FIRST_REQUEST_ID = 1


def _state_byte(state: RequestState) -> bytes:
    return bytes([int(state)])


class RequestStore:
    def __init__(self, kv: KeyValue) -> None:
        self.kv = kv
        self.buckets = Buckets(kv)

    # --- reads ---------------------------------------------------------------

    def next_request_id(self) -> int:
        return from_u256(self.buckets.get_meta(META_NEXT_REQUEST_ID), _FIRST_REQUEST_ID)

    def get_state(self, request_id: int) -> RequestState:
        # ids outside uint256 can never have been allocated
        if not 0 <= request_id <= UINT256_MAX:
            return RequestState.NONEXISTENT
        raw = self.buckets.get_state(request_id)
        if not raw:
            return RequestState.NONEXISTENT
        return RequestState(raw[0])

    def commitment(self, request_id: int) -> bytes | None:
        if not 0 <= request_id <= UINT256_MAX:
            return None
        return self.buckets.get_commitment(request_id)

    def check(self, params: RequestParams) -> None:
        """
        Read-only validation of fulfillment parameters (state, then commitment).
        Used to reject stale or tampered fulfillments before spending a pairing.
        """
        state = self.get_state(params.request_id)
        if state is not RequestState.PENDING:
            raise InvalidRequestState(request_id=params.request_id, state=state.label)
        stored = self.commitment(params.request_id) or b""
        got = request_commitment(params)
        if not consteq(stored, got):
            raise InvalidRequestHash(request_id=params.request_id, expected=stored, got=got)

    # --- writes --------------------------------------------------------------

    def create(
        self,
        *,
        requester: bytes,
        beacon_key_hash: bytes,
        round: int,
        callback_gas_limit: int,
    ) -> RequestParams:
        """
        Allocate the next id and persist the commitment with state Pending.
        Joins the caller's transaction when one is open.
        """
        with self.kv.transaction():
            request_id = self.next_request_id()
            params = RequestParams(
                request_id=request_id,
                requester=requester,
                beacon_key_hash=beacon_key_hash,
                round=round,
                callback_gas_limit=callback_gas_limit,
            )
            self.kv.put(self.buckets.key_commitment(request_id), request_commitment(params))
            self.kv.put(self.buckets.key_state(request_id), _state_byte(RequestState.PENDING))
            self.buckets.put_meta(META_NEXT_REQUEST_ID, u256(request_id + 1))
        return params

    def begin_consume(self, params: RequestParams) -> None:
        """
        Atomically move a request out of Pending: verify state and commitment,
        zero the commitment, set state Fulfilled. Raises without writing when
        the request is not Pending or the parameters do not match.
        """
        state_key = self.buckets.key_state(params.request_id)
        with self.kv.transaction():
            self.check(params)
            swapped = self.kv.compare_and_swap(
                state_key,
                _state_byte(RequestState.PENDING),
                _state_byte(RequestState.FULFILLED),
            )
            if not swapped:
                # unreachable while the transaction holds the writer lock
                raise InvalidRequestState(
                    request_id=params.request_id, state=self.get_state(params.request_id).label
                )
            self.kv.delete(self.buckets.key_commitment(params.request_id))

    def finalize(self, request_id: int, *, callback_success: bool) -> RequestState:
        """Record the callback outcome. Only a Fulfilled request may be marked Failed."""
        if callback_success:
            return RequestState.FULFILLED
        swapped = self.kv.compare_and_swap(
            self.buckets.key_state(request_id),
            _state_byte(RequestState.FULFILLED),
            _state_byte(RequestState.FAILED),
        )
        if not swapped:
            raise InvalidRequestState(
                request_id=request_id,
                state=self.get_state(request_id).label,
                expected=RequestState.FULFILLED.label,
            )
        return RequestState.FAILED


__all__ = ["RequestStore"]
