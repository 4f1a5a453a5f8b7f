"""
Ticket statistics, role permissions and page headings
"""
from typing import List, Optional, Sequence

from student_support.models.schemas import (
    AutoAssigned,
    PageInfo,
    Priority,
    Ticket,
    TicketPermissions,
    TicketStats,
    TicketStatus,
)
from student_support.tickets.display import to_datetime
from student_support.tickets.filters import is_crisis

STAFF_ROLES = ("counselor", "advisor")


def _rate(part: int, total: int) -> int:
    """Whole percent, 0 for an empty list"""
    if total == 0:
        return 0
    return int(part / total * 100 + 0.5)


def _first_staff_response_hours(ticket: Ticket) -> Optional[float]:
    if not ticket.created_at:
        return None

    created_at = to_datetime(ticket.created_at)
    for response in sorted(
        (r for r in ticket.responses if r.created_at),
        key=lambda r: to_datetime(r.created_at)
    ):
        author = response.user_id or (response.user.id if response.user else None)
        if author is not None and author != ticket.user_id:
            return (to_datetime(response.created_at) - created_at).total_seconds() / 3600
    return None


def average_response_time(tickets: Sequence[Ticket]) -> Optional[str]:
    """
    Mean time to the first staff response, e.g. "2.3 hours"

    Returns:
        None when no ticket has a staff response yet
    """
    hours: List[float] = []
    for ticket in tickets:
        value = _first_staff_response_hours(ticket)
        if value is not None and value >= 0:
            hours.append(value)

    if not hours:
        return None
    return f"{sum(hours) / len(hours):.1f} hours"


def calculate_stats(tickets: Sequence[Ticket], current_user_id: Optional[int] = None) -> TicketStats:
    """
    Count tickets per status, assignment and risk

    Args:
        tickets: Tickets to summarise
        current_user_id: Enables the my_assigned / my_tickets counters

    Returns:
        TicketStats; all zeros for an empty list
    """
    total = len(tickets)
    open_count = sum(1 for t in tickets if t.status == TicketStatus.OPEN)
    in_progress = sum(1 for t in tickets if t.status == TicketStatus.IN_PROGRESS)
    resolved = sum(1 for t in tickets if t.status == TicketStatus.RESOLVED)
    closed = sum(1 for t in tickets if t.status == TicketStatus.CLOSED)
    crisis = sum(1 for t in tickets if is_crisis(t))
    unassigned = sum(1 for t in tickets if not t.assigned_to)
    auto_assigned = sum(1 for t in tickets if t.auto_assigned == AutoAssigned.YES)

    my_assigned = 0
    my_tickets = 0
    if current_user_id:
        my_assigned = sum(1 for t in tickets if t.assigned_to == current_user_id)
        my_tickets = sum(1 for t in tickets if t.user_id == current_user_id)

    return TicketStats(
        total=total,
        open=open_count,
        in_progress=in_progress,
        resolved=resolved,
        closed=closed,
        crisis=crisis,
        unassigned=unassigned,
        my_assigned=my_assigned,
        my_tickets=my_tickets,
        high_priority=sum(1 for t in tickets if t.priority in (Priority.HIGH, Priority.URGENT)),
        auto_assigned=auto_assigned,
        manually_assigned=sum(1 for t in tickets if t.auto_assigned == AutoAssigned.MANUAL),
        overdue=sum(1 for t in tickets if t.is_overdue),
        with_crisis_keywords=sum(1 for t in tickets if t.detected_crisis_keywords),
        active=open_count + in_progress,
        inactive=resolved + closed,
        assigned=total - unassigned,
        resolution_rate=_rate(resolved, total),
        crisis_rate=_rate(crisis, total),
        auto_assign_rate=_rate(auto_assigned, total),
        average_response_time=average_response_time(tickets),
    )


def get_permissions(role: Optional[str]) -> TicketPermissions:
    """
    Ticket permissions of a role

    Unknown or missing roles get the student permissions.
    """
    if role == "admin":
        return TicketPermissions(
            can_create=True,
            can_view_all=True,
            can_assign=True,
            can_modify=True,
            can_delete=True,
            can_export=True,
            can_bulk_actions=True,
            can_manage_tags=True,
            can_add_internal_notes=True,
            can_manage_categories=True,
            can_view_crisis_detection=True,
            can_test_crisis_detection=True,
        )

    if role in STAFF_ROLES:
        return TicketPermissions(
            can_modify=True,
            can_manage_tags=True,
            can_add_internal_notes=True,
            can_view_crisis_detection=True,
        )

    return TicketPermissions(can_create=True)


def get_page_info(role: Optional[str]) -> PageInfo:
    """Heading of the tickets page for a role"""
    if role == "admin":
        return PageInfo(
            title="Ticket Management",
            description="Manage all support tickets, assignments, and system overview",
            show_create=True,
            show_stats=True,
        )

    if role in STAFF_ROLES:
        return PageInfo(
            title="My Cases",
            description="View and manage your assigned student support cases",
            show_create=False,
            show_stats=True,
        )

    return PageInfo(
        title="My Support Tickets",
        description="Track your support requests and get help when you need it",
        show_create=True,
        show_stats=False,
    )
