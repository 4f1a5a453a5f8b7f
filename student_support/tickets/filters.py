"""
Client-side ticket list filtering and sorting

All functions are pure: they take a list of tickets plus filter values
and return a new list, preserving input order unless sorting is asked
for.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence

from student_support.models.schemas import (
    AutoAssigned,
    CLOSED_STATUSES,
    Priority,
    Ticket,
    TicketCategory,
    TicketStatus,
)

# Keys that describe list presentation rather than a filter
NON_FILTER_KEYS = {"view", "page", "per_page", "sort_by", "sort_direction"}

STATUS_ORDER = {
    TicketStatus.OPEN: 1,
    TicketStatus.IN_PROGRESS: 2,
    TicketStatus.RESOLVED: 3,
    TicketStatus.CLOSED: 4,
}

PRIORITY_ORDER = {
    Priority.URGENT: 1,
    Priority.HIGH: 2,
    Priority.MEDIUM: 3,
    Priority.LOW: 4,
}

ASSIGNMENT_LABELS = {
    "assigned": "Assigned",
    "unassigned": "Unassigned",
    "me": "Assigned to me",
}

AUTO_ASSIGN_LABELS = {
    "yes": "Auto-assigned",
    "manual": "Manually assigned",
    "no": "Not assigned",
}


def is_crisis(ticket: Ticket) -> bool:
    """Crisis tickets are flagged by detection or filed as Urgent"""
    return ticket.crisis_flag or ticket.priority == Priority.URGENT


def _is_set(value: Any) -> bool:
    return value is not None and value != "" and value != "all"


def _is_true(value: Any) -> bool:
    return value is True or value == "true"


def _searchable_text(ticket: Ticket) -> str:
    parts = [
        ticket.subject,
        ticket.description,
        ticket.ticket_number,
        ticket.user.name if ticket.user else "",
        ticket.user.email if ticket.user else "",
        ticket.assigned_user.name if ticket.assigned_user else "",
        ticket.category_name,
        *ticket.tags,
        *(keyword.keyword for keyword in ticket.detected_crisis_keywords),
    ]
    return " ".join(part or "" for part in parts).lower()


def apply_ticket_filters(
    tickets: Sequence[Ticket],
    search_term: Optional[str],
    filters: Mapping[str, Any],
    current_user_id: Optional[int] = None
) -> List[Ticket]:
    """
    Filter tickets by free-text search and field filters

    Args:
        tickets: Tickets to filter
        search_term: Case-insensitive text matched across ticket fields
        filters: status, category_id (or legacy category), priority,
            assigned, crisis_flag, auto_assigned, overdue
        current_user_id: Resolves the "me" assignment filter

    Returns:
        Matching tickets in input order
    """
    filtered = list(tickets)

    term = (search_term or "").strip().lower()
    if term:
        filtered = [t for t in filtered if term in _searchable_text(t)]

    status = filters.get("status")
    if _is_set(status):
        filtered = [t for t in filtered if t.status == status]

    category_id = filters.get("category_id")
    category = filters.get("category")
    if _is_set(category_id):
        try:
            category_id = int(category_id)
        except (TypeError, ValueError):
            # not an id, matches nothing
            filtered = []
        else:
            filtered = [t for t in filtered if t.category_id == category_id]
    elif _is_set(category):
        filtered = [t for t in filtered if t.category_name == category or t.category == category]

    priority = filters.get("priority")
    if _is_set(priority):
        filtered = [t for t in filtered if t.priority == priority]

    assigned = filters.get("assigned")
    if _is_set(assigned):
        if assigned == "assigned":
            filtered = [t for t in filtered if t.assigned_to]
        elif assigned == "unassigned":
            filtered = [t for t in filtered if not t.assigned_to]
        elif assigned in ("me", "my-assigned") and current_user_id:
            filtered = [t for t in filtered if t.assigned_to == current_user_id]

    crisis_flag = filters.get("crisis_flag")
    if crisis_flag is not None and crisis_flag != "all":
        show_crisis = _is_true(crisis_flag)
        filtered = [t for t in filtered if t.crisis_flag == show_crisis]

    auto_assigned = filters.get("auto_assigned")
    if _is_set(auto_assigned):
        filtered = [t for t in filtered if t.auto_assigned == auto_assigned]

    overdue = filters.get("overdue")
    if overdue is not None and overdue != "all":
        show_overdue = _is_true(overdue)
        filtered = [t for t in filtered if t.is_overdue == show_overdue]

    return filtered


def filter_tickets_by_view(
    tickets: Sequence[Ticket],
    view: str,
    current_user_id: Optional[int] = None
) -> List[Ticket]:
    """
    Narrow tickets to one tab of the tickets page

    Unknown views return every ticket. The personal views return nothing
    without a current user.
    """
    if view in ("open", "active"):
        return [t for t in tickets if t.status in (TicketStatus.OPEN, TicketStatus.IN_PROGRESS)]
    if view == "closed":
        return [t for t in tickets if t.status in CLOSED_STATUSES]
    if view == "crisis":
        return [t for t in tickets if is_crisis(t)]
    if view == "unassigned":
        return [t for t in tickets if not t.assigned_to]
    if view in ("my_assigned", "my_cases"):
        if not current_user_id:
            return []
        return [t for t in tickets if t.assigned_to == current_user_id]
    if view == "my_tickets":
        if not current_user_id:
            return []
        return [t for t in tickets if t.user_id == current_user_id]
    if view == "overdue":
        return [t for t in tickets if t.is_overdue]
    if view == "auto_assigned":
        return [t for t in tickets if t.auto_assigned == AutoAssigned.YES]
    if view == "high_priority":
        return [t for t in tickets if t.priority in (Priority.HIGH, Priority.URGENT)]
    return list(tickets)


def _timestamp(value) -> float:
    return value.timestamp() if value else float("-inf")


def _sort_key(sort_by: str):
    if sort_by == "created_at":
        return lambda t: _timestamp(t.created_at)
    if sort_by == "subject":
        return lambda t: t.subject.lower()
    if sort_by == "status":
        return lambda t: STATUS_ORDER.get(t.status, 5)
    if sort_by == "priority":
        return lambda t: PRIORITY_ORDER.get(t.priority, 5)
    return lambda t: _timestamp(t.updated_at)


def sort_tickets(
    tickets: Sequence[Ticket],
    sort_by: str = "updated_at",
    sort_direction: str = "desc"
) -> List[Ticket]:
    """
    Sort tickets, then move crisis-flagged tickets to the top

    Both passes are stable, so ties keep their input order.
    """
    ordered = sorted(tickets, key=_sort_key(sort_by), reverse=sort_direction != "asc")
    return sorted(ordered, key=lambda t: not t.crisis_flag)


def apply_smart_filter(
    current_filters: Mapping[str, Any],
    key: str,
    value: Any,
    preserve_view: bool = True
) -> Dict[str, Any]:
    """Set one filter (or drop it for None/'all') while keeping the current view"""
    updated = dict(current_filters)

    if value is None or value == "all":
        updated.pop(key, None)
    else:
        updated[key] = value

    if preserve_view and current_filters.get("view"):
        updated["view"] = current_filters["view"]

    return updated


def has_active_filters(filters: Mapping[str, Any]) -> bool:
    """True when any real filter (not view, paging or sorting) is set"""
    for key, value in filters.items():
        if key in NON_FILTER_KEYS:
            continue
        if isinstance(value, (list, tuple)) and len(value) == 0:
            continue
        if _is_set(value):
            return True
    return False


def clear_filters_but_preserve_view(current_filters: Mapping[str, Any]) -> Dict[str, Any]:
    """Reset filters, keeping paging size, sorting and the current view"""
    return {
        "page": 1,
        "per_page": current_filters.get("per_page") or 20,
        "sort_by": current_filters.get("sort_by") or "updated_at",
        "sort_direction": current_filters.get("sort_direction") or "desc",
        "view": current_filters.get("view") or "all",
    }


def get_filter_summary(
    filters: Mapping[str, Any],
    categories: Sequence[TicketCategory] = ()
) -> List[str]:
    """Human-readable description of the active filters"""
    summary = []

    if _is_set(filters.get("status")):
        summary.append(f"Status: {filters['status']}")

    category_id = filters.get("category_id")
    if _is_set(category_id):
        category = next((c for c in categories if str(c.id) == str(category_id)), None)
        summary.append(f"Category: {category.name if category else 'Unknown'}")

    if _is_set(filters.get("priority")):
        summary.append(f"Priority: {filters['priority']}")

    assigned = filters.get("assigned")
    if _is_set(assigned):
        summary.append(f"Assignment: {ASSIGNMENT_LABELS.get(assigned, assigned)}")

    if _is_true(filters.get("crisis_flag")):
        summary.append("Crisis tickets only")

    auto_assigned = filters.get("auto_assigned")
    if _is_set(auto_assigned):
        summary.append(f"Assignment type: {AUTO_ASSIGN_LABELS.get(auto_assigned, auto_assigned)}")

    if _is_true(filters.get("overdue")):
        summary.append("Overdue tickets only")

    return summary
