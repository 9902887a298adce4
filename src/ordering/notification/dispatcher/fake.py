"""Fake dispatcher: records notifications instead of delivering them."""

from dataclasses import dataclass

from ordering.notification.dispatcher.port import NotificationDispatcher


@dataclass(frozen=True)
class SentNotification:
    event_kind: str
    order_id: str
    order_number: str
    customer_id: str
    status: str


class FakeDispatcher(NotificationDispatcher):
    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Dispatcher unavailable"
        self.sent: list[SentNotification] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Dispatcher unavailable"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def notify(self, event_kind: str, order) -> None:
        if not self.should_succeed:
            raise ConnectionError(self.failure_reason)
        self.sent.append(
            SentNotification(
                event_kind=event_kind,
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(order.customer_id),
                status=order.status,
            )
        )

    def kinds_for(self, order_id) -> list[str]:
        return [n.event_kind for n in self.sent if n.order_id == str(order_id)]
