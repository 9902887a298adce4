"""Application tests for lifecycle notifications."""

from ordering import services
from structlog.testing import capture_logs


class TestLifecycleNotifications:
    def test_each_transition_notifies_once(self, place_order, dispatcher):
        order = place_order(payment_method="cod")
        services.confirm_cod(order.id)
        for status in ("processing", "shipped", "delivered", "returned"):
            services.transition_status(order.id, status, actor="admin")

        assert dispatcher.kinds_for(order.id) == [
            "order.created",
            "order.confirmed",
            "order.processing",
            "order.shipped",
            "order.delivered",
            "order.returned",
        ]

    def test_cancellation(self, place_order, dispatcher):
        order = place_order()
        services.cancel_order(order.id, actor="customer")
        assert dispatcher.kinds_for(order.id)[-1] == "order.cancelled"

    def test_notification_carries_current_status(self, place_order, dispatcher):
        order = place_order(payment_method="cod")
        services.confirm_cod(order.id)
        assert dispatcher.sent[-1].status == "confirmed"
        assert dispatcher.sent[-1].order_number == order.order_number

    def test_dispatcher_failure_does_not_undo_transition(self, place_order, dispatcher):
        order = place_order(payment_method="cod")
        dispatcher.configure(should_succeed=False)

        with capture_logs() as logs:
            confirmed = services.confirm_cod(order.id)

        assert confirmed.status == "confirmed"
        assert services.fetch_order(order.id).status == "confirmed"
        assert any(entry["event"] == "Notification dispatch failed" for entry in logs)
