import logging
import threading
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)


@dataclass
class OrderEvent:
    order_id: str
    user_id: str
    status: str
    amount: str

    def to_dict(self) -> dict:
        return asdict(self)


class OrderEventBus:
    """Fan-out of committed order status changes to interested listeners.

    One instance lives on ``app.state``; callbacks run on the publishing
    thread and must not block.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers = []

    def subscribe(self, callback):
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: OrderEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Order event subscriber failed for %s", event.order_id)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
