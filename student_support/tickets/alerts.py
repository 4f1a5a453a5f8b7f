"""
Staff alerts over a ticket list

Alerts are plain summaries; None means there is nothing to show for
the given role.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, NamedTuple, Optional, Sequence

from student_support.models.schemas import (
    CLOSED_STATUSES,
    Priority,
    Ticket,
    TicketCategory,
    TicketPermissions,
)
from student_support.tickets.display import to_datetime
from student_support.tickets.filters import is_crisis

RECENT_WINDOW = timedelta(hours=24)


class CrisisAlert(NamedTuple):
    crisis_count: int
    recent_count: int


class UnassignedAlert(NamedTuple):
    unassigned_count: int
    urgent_count: int
    recent_count: int


def _now(now: Optional[datetime]) -> datetime:
    return to_datetime(now or datetime.now(timezone.utc))


def _is_recent(ticket: Ticket, now: datetime) -> bool:
    return bool(ticket.created_at) and to_datetime(ticket.created_at) > now - RECENT_WINDOW


def crisis_alert(
    tickets: Sequence[Ticket],
    role: Optional[str],
    now: Optional[datetime] = None
) -> Optional[CrisisAlert]:
    """Crisis tickets and how many arrived in the last 24 hours (staff only)"""
    if role == "student":
        return None

    crisis_tickets = [t for t in tickets if is_crisis(t)]
    if not crisis_tickets:
        return None

    now = _now(now)
    return CrisisAlert(
        crisis_count=len(crisis_tickets),
        recent_count=sum(1 for t in crisis_tickets if _is_recent(t, now)),
    )


def unassigned_alert(
    tickets: Sequence[Ticket],
    role: Optional[str],
    permissions: TicketPermissions,
    now: Optional[datetime] = None
) -> Optional[UnassignedAlert]:
    """Unassigned tickets for users who can assign them"""
    if role == "student" or not permissions.can_assign:
        return None

    unassigned = [t for t in tickets if not t.assigned_to]
    if not unassigned:
        return None

    now = _now(now)
    return UnassignedAlert(
        unassigned_count=len(unassigned),
        urgent_count=sum(1 for t in unassigned if t.priority == Priority.URGENT or t.crisis_flag),
        recent_count=sum(1 for t in unassigned if _is_recent(t, now)),
    )


def is_ticket_overdue(
    ticket: Ticket,
    category: Optional[TicketCategory] = None,
    now: Optional[datetime] = None
) -> bool:
    """
    Whether a ticket has passed its category's response-time SLA

    Resolved and closed tickets are never overdue. Without an SLA the
    backend's `is_overdue` flag is used.
    """
    if ticket.status in CLOSED_STATUSES:
        return False

    if not category or not category.sla_response_hours or not ticket.created_at:
        return ticket.is_overdue

    deadline = to_datetime(ticket.created_at) + timedelta(hours=category.sla_response_hours)
    return _now(now) > deadline


def overdue_tickets(
    tickets: Sequence[Ticket],
    categories: Sequence[TicketCategory],
    now: Optional[datetime] = None
) -> List[Ticket]:
    """Tickets past their SLA, in input order"""
    by_id: Dict[int, TicketCategory] = {c.id: c for c in categories}
    return [
        t for t in tickets
        if is_ticket_overdue(t, by_id.get(t.category_id) if t.category_id else None, now)
    ]
