"""Notification dispatcher registry. Uses FakeDispatcher by default."""

from ordering.notification.dispatcher.port import NotificationDispatcher

_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        from ordering.notification.dispatcher.fake import FakeDispatcher

        _dispatcher = FakeDispatcher()
    return _dispatcher


def set_dispatcher(dispatcher: NotificationDispatcher) -> None:
    global _dispatcher
    _dispatcher = dispatcher


def reset_dispatcher() -> None:
    global _dispatcher
    _dispatcher = None
