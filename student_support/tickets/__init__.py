"""
Ticket list utilities
"""
from student_support.tickets.alerts import (
    CrisisAlert,
    UnassignedAlert,
    crisis_alert,
    unassigned_alert,
    is_ticket_overdue,
    overdue_tickets,
)
from student_support.tickets.display import (
    format_relative_time,
    get_priority_color,
    get_status_color,
)
from student_support.tickets.filters import (
    apply_smart_filter,
    apply_ticket_filters,
    clear_filters_but_preserve_view,
    filter_tickets_by_view,
    get_filter_summary,
    has_active_filters,
    is_crisis,
    sort_tickets,
)
from student_support.tickets.stats import (
    calculate_stats,
    get_page_info,
    get_permissions,
)

__all__ = [
    "CrisisAlert",
    "UnassignedAlert",
    "crisis_alert",
    "unassigned_alert",
    "is_ticket_overdue",
    "overdue_tickets",
    "format_relative_time",
    "get_priority_color",
    "get_status_color",
    "apply_smart_filter",
    "apply_ticket_filters",
    "clear_filters_but_preserve_view",
    "filter_tickets_by_view",
    "get_filter_summary",
    "has_active_filters",
    "is_crisis",
    "sort_tickets",
    "calculate_stats",
    "get_page_info",
    "get_permissions",
]
