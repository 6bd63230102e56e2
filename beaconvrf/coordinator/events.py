"""
Append-only event log over the KV store.

Events are stored as compact JSON under a monotonic sequence number, so
iteration order is emission order. Writes made inside a store transaction
are rolled back with it.
"""

from __future__ import annotations

import json
from typing import Iterator, List, Optional, Set, Tuple

from ..store import KeyValue
from ..store.kv import Buckets
from ..types.events import Event, RequestCreated, event_from_dict


class EventLog:
    def __init__(self, kv: KeyValue) -> None:
        self.buckets = Buckets(kv)

    def emit(self, event: Event) -> int:
        blob = json.dumps(event.to_dict(), separators=(",", ":"), sort_keys=True).encode("utf-8")
        return self.buckets.append_event(blob)

    def __iter__(self) -> Iterator[Event]:
        for _, blob in self.buckets.iter_events():
            yield event_from_dict(json.loads(blob))

    def since(self, seq: int) -> Iterator[Tuple[int, Event]]:
        """Events with sequence number >= ``seq``, as ``(seq, event)`` pairs."""
        kv = self.buckets.kv
        while True:
            blob = kv.get(self.buckets.key_event(seq))
            if blob is None:
                return
            yield seq, event_from_dict(json.loads(blob))
            seq += 1

    def query(
        self,
        *,
        kind: Optional[str] = None,
        request_id: Optional[int] = None,
        requester: Optional[bytes] = None,
        limit: Optional[int] = None,
    ) -> List[Event]:
        """
        Filter the log. ``kind`` is an event kind name (e.g.
        ``"RandomnessRequested"``). ``requester`` matches creation events by
        field and later events through the ids that requester created.
        """
        owned: Set[int] = set()
        out: List[Event] = []
        for ev in self:
            if isinstance(ev, RequestCreated) and ev.requester == requester:
                owned.add(ev.request_id)
            if kind is not None and ev.kind != kind:
                continue
            if request_id is not None and ev.request_id != request_id:
                continue
            if requester is not None and ev.request_id not in owned:
                continue
            out.append(ev)
            if limit is not None and len(out) >= limit:
                break
        return out


__all__ = ["EventLog"]
