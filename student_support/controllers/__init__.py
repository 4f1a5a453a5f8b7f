"""
Controllers holding client-side state on top of the services
"""
from .assignment import BulkResult, TicketAssignmentController
from .cached_tickets import CachedTicketsController, CachedTicketsState
from .delete_ticket import DeleteTicketDialog
from .notifications import ActivityTracker, NotificationsController
from .submit_ticket import SubmitTicketForm

__all__ = [
    "BulkResult",
    "TicketAssignmentController",
    "CachedTicketsController",
    "CachedTicketsState",
    "DeleteTicketDialog",
    "ActivityTracker",
    "NotificationsController",
    "SubmitTicketForm",
]
