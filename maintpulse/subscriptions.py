"""
Explicit subscription handles.

Listeners registered on the session store, the push channel and the alert
presenter get a Subscription back. Calling unsubscribe() (or leaving the
``with`` block) removes the listener; it is safe to call more than once.
"""
import logging
import threading

log = logging.getLogger("maintpulse.subscriptions")


class Subscription:
    def __init__(self, registry: "ListenerRegistry", callback):
        self._registry = registry
        self.callback = callback
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.active = False
            self._registry._remove(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.unsubscribe()


class ListenerRegistry:
    """
    Ordered set of callbacks fired with the same arguments.

    A listener that raises is logged and skipped so one bad consumer can
    never stop delivery to the others.
    """

    def __init__(self, name: str):
        self.name = name
        self._subs: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, callback) -> Subscription:
        sub = Subscription(self, callback)
        with self._lock:
            self._subs.append(sub)
        return sub

    def _remove(self, sub: Subscription):
        with self._lock:
            self._subs = [s for s in self._subs if s is not sub]

    def clear(self):
        with self._lock:
            subs, self._subs = self._subs, []
        for s in subs:
            s.active = False

    def __len__(self):
        with self._lock:
            return len(self._subs)

    def fire(self, *args):
        with self._lock:
            subs = list(self._subs)
        for sub in subs:
            if not sub.active:
                continue
            try:
                sub.callback(*args)
            except Exception as exc:
                log.warning("%s listener raised: %s", self.name, exc)
