from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = ['EventBus', 'Event', 'STATE_CHANGED']

STATE_CHANGED = "STATE_CHANGED"


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[Event], None]]] = {}

    def subscribe(self, name: str, handler: Callable[[Event], None]) -> None:
        if name not in self._subscribers:
            self._subscribers[name] = []
        self._subscribers[name].append(handler)

    def publish(self, name: str, payload: dict) -> Event:
        event = Event(
            name=name,
            ts=datetime.now().isoformat(),
            payload=payload
        )
        for handler in list(self._subscribers.get(name, [])):
            handler(event)
        return event

    def unsubscribe(self, name: str, handler: Callable[[Event], None]) -> None:
        if name in self._subscribers:
            if handler in self._subscribers[name]:
                self._subscribers[name].remove(handler)
