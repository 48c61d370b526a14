"""
Transient alerts ("toasts") for pushed notifications.

An alert stays visible for a fixed lifetime (10 s by default). When the
lifetime runs out it is flagged as exiting for a short transition (300 ms)
and then removed. dismiss() removes it straight away. Whichever path gets
there first wins; the other finds nothing to remove.

The presenter does not care where alerts come from: intake calls show()
with a NotificationEvent and the presenter owns the active list from then on.
"""
import logging
import threading
import time

from maintpulse.models import AlertCategory, NotificationEvent, PresentedAlert
from maintpulse.subscriptions import ListenerRegistry, Subscription

log = logging.getLogger("maintpulse.alerts")

DEFAULT_DURATION_MS = 10000
EXIT_TRANSITION_MS = 300

CATEGORIES: dict[str, AlertCategory] = {
    "overdue":  AlertCategory(icon="alert-circle",   css_class="toast-overdue"),
    "downtime": AlertCategory(icon="alert-triangle", css_class="toast-downtime"),
    "assigned": AlertCategory(icon="bell",           css_class="toast-assigned"),
    "pm_due":   AlertCategory(icon="clock",          css_class="toast-pm-due"),
    "done":     AlertCategory(icon="check-circle",   css_class="toast-done"),
}
DEFAULT_CATEGORY = AlertCategory(icon="bell", css_class="toast-default")


def category_for(notif_type) -> AlertCategory:
    """Icon and style for a notification type. Unknown types get the default."""
    if not isinstance(notif_type, str):
        return DEFAULT_CATEGORY
    return CATEGORIES.get(notif_type, DEFAULT_CATEGORY)


class AlertPresenter:
    """
    Owns the active alert list and the timers that expire it.

    Thread-safety: _alerts and _timers are guarded by _lock. Timers run on
    their own threads and go through the same removal path as dismiss().
    """

    def __init__(self, duration_ms: int = DEFAULT_DURATION_MS,
                 exit_ms: int = EXIT_TRANSITION_MS, timer_factory=None, clock=None):
        self.duration_ms = duration_ms
        self.exit_ms = exit_ms
        self._timer_factory = timer_factory or threading.Timer
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._alerts: list[PresentedAlert] = []
        self._timers: dict[int, object] = {}   # id(alert) -> pending timer
        self._closed = False
        self._changed = ListenerRegistry("alerts-changed")
        self._removed = ListenerRegistry("alert-removed")

    # ── Public API ────────────────────────────────────────────

    def subscribe(self, callback) -> Subscription:
        """Call callback(presenter) whenever the active list changes."""
        return self._changed.subscribe(callback)

    def on_removed(self, callback) -> Subscription:
        """Call callback(alert) once for every alert that leaves the list."""
        return self._removed.subscribe(callback)

    def show(self, event: NotificationEvent, duration_ms: int | None = None) -> PresentedAlert:
        duration = self.duration_ms if duration_ms is None else duration_ms
        alert = PresentedAlert(
            event=event,
            category=category_for(event.type),
            duration_ms=duration,
            shown_at=self._clock(),
        )
        with self._lock:
            if self._closed:
                log.debug("Presenter closed, dropping alert %s", alert.id)
                return alert
            self._alerts.append(alert)
            self._schedule(alert, duration, self._expire)
        log.debug("Showing alert %s (%s) for %d ms", alert.id, event.type, duration)
        self._changed.fire(self)
        return alert

    def dismiss(self, alert_id: str) -> int:
        """Remove every active alert with this id. Returns how many went."""
        with self._lock:
            matching = [a for a in self._alerts if a.id == alert_id]
            removed = [a for a in matching if self._remove_locked(a)]
        self._after_removal(removed)
        return len(removed)

    def alerts(self) -> list[PresentedAlert]:
        with self._lock:
            return list(self._alerts)

    def snapshot(self) -> list[dict]:
        now = self._clock()
        return [a.to_dict(now) for a in self.alerts()]

    def close(self):
        """Cancel every timer and drop every alert."""
        with self._lock:
            self._closed = True
            timers = list(self._timers.values())
            self._timers.clear()
            dropped = len(self._alerts)
            self._alerts.clear()
        for t in timers:
            t.cancel()
        if dropped:
            log.debug("Presenter closed with %d active alert(s)", dropped)
            self._changed.fire(self)

    # ── Timers ────────────────────────────────────────────────

    def _schedule(self, alert: PresentedAlert, delay_ms: int, fn):
        timer = self._timer_factory(delay_ms / 1000.0, fn, args=(alert,))
        timer.daemon = True
        self._timers[id(alert)] = timer
        timer.start()

    def _expire(self, alert: PresentedAlert):
        with self._lock:
            if self._closed or not any(a is alert for a in self._alerts):
                return
            alert.exiting = True
            self._schedule(alert, self.exit_ms, self._finish_exit)
        self._changed.fire(self)

    def _finish_exit(self, alert: PresentedAlert):
        with self._lock:
            removed = [alert] if self._remove_locked(alert) else []
        self._after_removal(removed)

    # ── Removal ───────────────────────────────────────────────

    def _remove_locked(self, alert: PresentedAlert) -> bool:
        for i, a in enumerate(self._alerts):
            if a is alert:
                del self._alerts[i]
                timer = self._timers.pop(id(alert), None)
                if timer is not None:
                    timer.cancel()
                return True
        return False

    def _after_removal(self, removed: list[PresentedAlert]):
        if not removed:
            return
        for alert in removed:
            self._removed.fire(alert)
        self._changed.fire(self)
