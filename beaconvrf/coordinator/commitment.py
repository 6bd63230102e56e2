"""
Request commitments.

    commitment = keccak256(word(id) || word(requester) || beaconKeyHash
                           || word(round) || word(callbackGasLimit))

The commitment is the only persisted form of a pending request. A fulfiller
re-supplies all five fields and they must hash to the stored value, so none of
them can be substituted after creation.
"""

from __future__ import annotations

from ..types.core import RequestParams
from ..utils.hash import keccak_words


def request_commitment(params: RequestParams) -> bytes:
    return keccak_words(
        params.request_id,
        params.requester,
        params.beacon_key_hash,
        params.round,
        params.callback_gas_limit,
    )


__all__ = ["request_commitment"]
