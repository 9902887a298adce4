"""Notification dispatcher port.

Email/SMS delivery happens behind this interface; ordering only reports
which lifecycle event happened to which order.
"""

from abc import ABC, abstractmethod


class NotificationDispatcher(ABC):
    @abstractmethod
    def notify(self, event_kind: str, order) -> None:
        """Hand a lifecycle event over for delivery. Fire and forget."""
        ...
