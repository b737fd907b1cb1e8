# -*- coding: utf-8 -*-
"""
relay_allowance.ledger.events
=============================

Event records and the append-only log a ledger emits into.

Every mutation that succeeds appends exactly one event and then notifies
subscribers in registration order. A subscriber that raises does not undo the
mutation; the exception propagates to the caller of the mutating operation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterator, List, Mapping, Optional

log = logging.getLogger(__name__)

Subscriber = Callable[["Event"], None]


@dataclass(frozen=True)
class Event:
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", MappingProxyType(dict(self.args)))

    def to_dict(self) -> dict:
        out = {}
        for k, v in self.args.items():
            out[k] = "0x" + v.hex() if isinstance(v, (bytes, bytearray)) else v
        return {"name": self.name, "args": out}


class EventLog:
    def __init__(self) -> None:
        self._events: List[Event] = []
        self._subscribers: List[Subscriber] = []

    def emit(self, name: str, args: Mapping[str, Any]) -> Event:
        ev = Event(name=name, args=args)
        self._events.append(ev)
        log.debug("event %s %s", name, ev.to_dict()["args"])
        for cb in list(self._subscribers):
            cb(ev)
        return ev

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def named(self, name: str) -> List[Event]:
        return [e for e in self._events if e.name == name]

    def last(self, name: Optional[str] = None) -> Optional[Event]:
        for e in reversed(self._events):
            if name is None or e.name == name:
                return e
        return None

    def since(self, index: int) -> List[Event]:
        return self._events[index:]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))


__all__ = ["Event", "EventLog", "Subscriber"]
