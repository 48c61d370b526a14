"""
Intake for pushed notifications.

Turns a raw Socket.IO payload into a NotificationEvent, gives it an id when
the server sent none, and hands it to the alert presenter. Intake only
appends; removal belongs to the presenter.

Delivery is at-least-once: nothing here reconciles pushes with the durable
store, so a notification pushed now and fetched later from /notifications
shows up in both places. Set dedupe=True to drop repeated server ids.
"""
import logging
import time
import uuid
from collections import OrderedDict

from maintpulse.alerts import AlertPresenter
from maintpulse.models import NotificationEvent
from maintpulse.subscriptions import Subscription

log = logging.getLogger("maintpulse.notifications")

_MAX_SEEN = 500   # server ids remembered for dedupe


class NotificationIntake:

    def __init__(self, presenter: AlertPresenter, id_strategy: str = "time",
                 dedupe: bool = False, clock=None):
        self.presenter = presenter
        self.id_strategy = id_strategy
        self.dedupe = dedupe
        self._clock = clock or time.time
        self._seen: OrderedDict[str, None] = OrderedDict()

    def attach(self, channel) -> Subscription:
        """Subscribe to a PushChannel; unsubscribe the handle to detach."""
        return channel.subscribe(self.on_push)

    def on_push(self, payload) -> NotificationEvent | None:
        if not isinstance(payload, dict):
            log.warning("Dropping malformed push payload: %r", payload)
            return None
        event = NotificationEvent.from_dict(payload)

        if event.id is None:
            event.id = self._local_id()
        elif self.dedupe:
            if event.id in self._seen:
                log.debug("Dropping duplicate push %s", event.id)
                return None
            self._seen[event.id] = None
            if len(self._seen) > _MAX_SEEN:
                self._seen.popitem(last=False)

        log.info("Notification received: [%s] %s", event.type, event.title)
        self.presenter.show(event)
        return event

    def _local_id(self) -> str:
        # Millisecond timestamps can collide under bursts; "uuid" cannot.
        if self.id_strategy == "uuid":
            return uuid.uuid4().hex
        return str(int(self._clock() * 1000))
