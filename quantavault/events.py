"""
quantavault.events
Change notifications owned by a PasswordService instance.
"""

from typing import Any, Callable, Dict, List

SAVED = "saved"
DELETED = "deleted"
IMPORTED = "imported"

EVENTS = (SAVED, DELETED, IMPORTED)

Callback = Callable[[Any], None]


class ChangeNotifier:
    def __init__(self):
        self._subscribers: Dict[str, List[Callback]] = {e: [] for e in EVENTS}

    def subscribe(self, event: str, callback: Callback) -> Callable[[], None]:
        """Register callback for event; returns a function that unsubscribes it."""
        if event not in self._subscribers:
            raise ValueError(f"unknown event: {event!r}")
        self._subscribers[event].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[event]:
                self._subscribers[event].remove(callback)

        return unsubscribe

    def publish(self, event: str, payload: Any = None) -> None:
        # copy so a callback may unsubscribe itself
        for callback in list(self._subscribers.get(event, ())):
            callback(payload)

    def clear(self) -> None:
        for subs in self._subscribers.values():
            subs.clear()
