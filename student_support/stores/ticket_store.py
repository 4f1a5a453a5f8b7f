"""
Ticket store

Ticket list, current ticket, filters and selection as one immutable
snapshot, changed only through `ticket_reducer`.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Optional, Tuple

from student_support.models.schemas import Pagination, Ticket
from student_support.stores.base import Action, Store
from student_support.tickets.filters import clear_filters_but_preserve_view

TICKETS_LOADED = "tickets_loaded"
TICKET_LOADED = "ticket_loaded"
TICKET_CREATED = "ticket_created"
TICKET_UPDATED = "ticket_updated"
TICKET_DELETED = "ticket_deleted"
LOADING = "loading"
ERROR = "error"
FILTERS_SET = "filters_set"
FILTERS_CLEARED = "filters_cleared"
SELECT = "select"
DESELECT = "deselect"
CLEAR_SELECTION = "clear_selection"

DEFAULT_FILTERS = {
    "page": 1,
    "per_page": 20,
    "sort_by": "updated_at",
    "sort_direction": "desc",
}


@dataclass(frozen=True)
class TicketState:
    tickets: Tuple[Ticket, ...] = ()
    current_ticket: Optional[Ticket] = None
    pagination: Pagination = field(default_factory=Pagination)
    filters: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_FILTERS))
    selected: FrozenSet[int] = frozenset()
    loading: bool = False
    error: Optional[str] = None
    last_fetch: Optional[float] = None


def _replace_ticket(tickets: Tuple[Ticket, ...], ticket: Ticket) -> Tuple[Ticket, ...]:
    return tuple(ticket if t.id == ticket.id else t for t in tickets)


def ticket_reducer(state: TicketState, action: Action) -> TicketState:
    """
    Fold an action into a new ticket state

    Raises:
        ValueError: For an unknown action type
    """
    payload = action.payload

    if action.type == TICKETS_LOADED:
        return replace(
            state,
            tickets=tuple(payload["tickets"]),
            pagination=payload.get("pagination") or state.pagination,
            last_fetch=payload.get("fetched_at", state.last_fetch),
            loading=False,
            error=None,
        )

    if action.type == TICKET_LOADED:
        return replace(
            state,
            current_ticket=payload,
            tickets=_replace_ticket(state.tickets, payload),
            loading=False,
            error=None,
        )

    if action.type == TICKET_CREATED:
        return replace(state, tickets=(payload,) + state.tickets, loading=False, error=None)

    if action.type == TICKET_UPDATED:
        current = state.current_ticket
        if current is not None and current.id == payload.id:
            current = payload
        return replace(state, tickets=_replace_ticket(state.tickets, payload), current_ticket=current)

    if action.type == TICKET_DELETED:
        current = state.current_ticket
        if current is not None and current.id == payload:
            current = None
        return replace(
            state,
            tickets=tuple(t for t in state.tickets if t.id != payload),
            current_ticket=current,
            selected=state.selected - {payload},
        )

    if action.type == LOADING:
        return replace(state, loading=bool(payload))

    if action.type == ERROR:
        return replace(state, error=payload, loading=False)

    if action.type == FILTERS_SET:
        return replace(state, filters={**state.filters, **payload})

    if action.type == FILTERS_CLEARED:
        return replace(state, filters=clear_filters_but_preserve_view(state.filters))

    if action.type == SELECT:
        return replace(state, selected=state.selected | {payload})

    if action.type == DESELECT:
        return replace(state, selected=state.selected - {payload})

    if action.type == CLEAR_SELECTION:
        return replace(state, selected=frozenset())

    raise ValueError(f"Unknown ticket action: {action.type}")


class TicketStore(Store[TicketState]):
    """Store preloaded with the ticket reducer"""

    def __init__(self, initial_state: Optional[TicketState] = None):
        super().__init__(ticket_reducer, initial_state or TicketState())
