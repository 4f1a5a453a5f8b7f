"""
State stores
"""
from .base import Action, Store
from .notification_store import NotificationState, NotificationStore, notification_reducer
from .ticket_store import TicketState, TicketStore, ticket_reducer

__all__ = [
    "Action",
    "Store",
    "NotificationState",
    "NotificationStore",
    "notification_reducer",
    "TicketState",
    "TicketStore",
    "ticket_reducer",
]
