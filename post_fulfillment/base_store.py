"""Abstract base class for order stores."""

from abc import ABC, abstractmethod

from post_fulfillment.models import HistoryEntry, Order


class OrderStore(ABC):
    """Persistence collaborator that shipment and tracking runs work against."""

    @abstractmethod
    def get_orders(self) -> list[Order]:
        """Return all orders with their items and history.

        History may come in any order; callers sort it by time.
        """

    @abstractmethod
    def add_history(self, order: Order, entry: HistoryEntry) -> None:
        """Append one history entry to an order.

        Entries are appended in call order, so identifiers assigned by the
        store follow the order in which entries are added.
        """

    @abstractmethod
    def save_order(self, order: Order) -> None:
        """Persist the order's status, fields and shipment annotations."""
