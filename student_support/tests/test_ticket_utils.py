"""
Unit tests for ticket list filtering, sorting, stats and alerts
"""
from datetime import timedelta

import pytest

from conftest import NOW, make_ticket
from student_support.models.schemas import TicketCategory
from student_support.tickets.alerts import (
    crisis_alert,
    is_ticket_overdue,
    overdue_tickets,
    unassigned_alert,
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
    sort_tickets,
)
from student_support.tickets.stats import (
    average_response_time,
    calculate_stats,
    get_page_info,
    get_permissions,
)


@pytest.fixture
def tickets():
    return [
        make_ticket(1, crisis_flag=True, priority="Urgent", assigned_to=None),
        make_ticket(2, status="In Progress", assigned_to=7, auto_assigned="yes", tags=["housing"]),
        make_ticket(3, crisis_flag=True, assigned_to=7, user={"id": 100, "name": "Dana Lee", "email": "dana@uni.edu"}),
        make_ticket(4, status="Resolved", priority="Low", category_id=2, category="career", is_overdue=True),
        make_ticket(5, status="Closed", subject="Visa paperwork", assigned_to=9, auto_assigned="manual"),
    ]


class TestApplyTicketFilters:
    """apply_ticket_filters"""

    def test_crisis_filter_keeps_crisis_tickets_in_order(self, tickets):
        result = apply_ticket_filters(tickets, "", {"crisis_flag": True})
        assert [t.id for t in result] == [1, 3]

    def test_crisis_filter_accepts_string(self, tickets):
        assert [t.id for t in apply_ticket_filters(tickets, "", {"crisis_flag": "true"})] == [1, 3]
        assert [t.id for t in apply_ticket_filters(tickets, "", {"crisis_flag": "false"})] == [2, 4, 5]

    def test_all_sentinel_is_ignored(self, tickets):
        assert len(apply_ticket_filters(tickets, "", {"status": "all", "crisis_flag": "all"})) == 5

    def test_search_across_fields(self, tickets):
        assert [t.id for t in apply_ticket_filters(tickets, "visa", {})] == [5]
        assert [t.id for t in apply_ticket_filters(tickets, "HOUSING", {})] == [2]
        assert [t.id for t in apply_ticket_filters(tickets, "dana@uni", {})] == [3]
        assert [t.id for t in apply_ticket_filters(tickets, "ST20240004", {})] == [4]

    def test_category_id_as_string(self, tickets):
        assert [t.id for t in apply_ticket_filters(tickets, "", {"category_id": "2"})] == [4]

    def test_non_numeric_category_id_matches_nothing(self, tickets):
        assert apply_ticket_filters(tickets, "", {"category_id": "abc"}) == []

    def test_legacy_category_name(self, tickets):
        assert [t.id for t in apply_ticket_filters(tickets, "", {"category": "career"})] == [4]

    def test_assignment_filters(self, tickets):
        assert [t.id for t in apply_ticket_filters(tickets, "", {"assigned": "unassigned"})] == [1, 4]
        assert [t.id for t in apply_ticket_filters(tickets, "", {"assigned": "me"}, current_user_id=7)] == [2, 3]

    def test_status_and_priority(self, tickets):
        assert [t.id for t in apply_ticket_filters(tickets, "", {"status": "In Progress"})] == [2]
        assert [t.id for t in apply_ticket_filters(tickets, "", {"priority": "Low"})] == [4]

    def test_auto_assigned_and_overdue(self, tickets):
        assert [t.id for t in apply_ticket_filters(tickets, "", {"auto_assigned": "yes"})] == [2]
        assert [t.id for t in apply_ticket_filters(tickets, "", {"overdue": True})] == [4]


class TestViewsAndSorting:
    """filter_tickets_by_view / sort_tickets"""

    def test_views(self, tickets):
        assert [t.id for t in filter_tickets_by_view(tickets, "open")] == [1, 2, 3]
        assert [t.id for t in filter_tickets_by_view(tickets, "closed")] == [4, 5]
        assert [t.id for t in filter_tickets_by_view(tickets, "crisis")] == [1, 3]
        assert [t.id for t in filter_tickets_by_view(tickets, "my_assigned", 9)] == [5]
        assert filter_tickets_by_view(tickets, "my_tickets") == []
        assert len(filter_tickets_by_view(tickets, "all")) == 5

    def test_crisis_tickets_first(self, tickets):
        result = sort_tickets(tickets, "created_at", "desc")
        assert [t.id for t in result][:2] == [1, 3]

    def test_sort_by_subject_ascending(self, tickets):
        result = sort_tickets(tickets, "subject", "asc")
        assert [t.id for t in result] == [1, 3, 2, 4, 5]

    def test_sort_by_updated_desc(self, tickets):
        # updated_at gets older as the id grows
        assert [t.id for t in sort_tickets(tickets)] == [1, 3, 2, 4, 5]
        assert [t.id for t in sort_tickets(tickets, "updated_at", "asc")] == [3, 1, 5, 4, 2]


class TestFilterState:
    """Smart filters and summaries"""

    def test_apply_smart_filter_preserves_view(self):
        result = apply_smart_filter({"view": "crisis", "status": "Open"}, "priority", "High")
        assert result == {"view": "crisis", "status": "Open", "priority": "High"}

    def test_apply_smart_filter_removes_all(self):
        assert apply_smart_filter({"status": "Open"}, "status", "all") == {}

    def test_has_active_filters(self):
        assert not has_active_filters({"view": "crisis", "page": 2, "status": "all", "tags": []})
        assert has_active_filters({"priority": "High"})

    def test_clear_keeps_paging_and_view(self):
        cleared = clear_filters_but_preserve_view({"view": "crisis", "per_page": 50, "status": "Open"})
        assert cleared == {
            "page": 1,
            "per_page": 50,
            "sort_by": "updated_at",
            "sort_direction": "desc",
            "view": "crisis",
        }

    def test_summary(self):
        categories = [TicketCategory(id=2, name="Career")]
        summary = get_filter_summary(
            {"status": "Open", "category_id": "2", "assigned": "me", "crisis_flag": True},
            categories
        )
        assert summary == ["Status: Open", "Category: Career", "Assignment: Assigned to me", "Crisis tickets only"]


class TestStats:
    """calculate_stats"""

    def test_empty_list_is_all_zero(self):
        stats = calculate_stats([])
        for name, value in stats.model_dump().items():
            if name == "average_response_time":
                assert value is None
            else:
                assert value == 0, name

    def test_counts_and_rates(self, tickets):
        stats = calculate_stats(tickets, current_user_id=7)
        assert stats.total == 5
        assert stats.open == 2
        assert stats.in_progress == 1
        assert stats.resolved == 1
        assert stats.closed == 1
        assert stats.crisis == 2
        assert stats.unassigned == 2
        assert stats.assigned == 3
        assert stats.my_assigned == 2
        assert stats.my_tickets == 0
        assert stats.overdue == 1
        assert stats.resolution_rate == 20
        assert stats.crisis_rate == 40
        assert stats.auto_assign_rate == 20

    def test_average_response_time_uses_staff_replies(self):
        created = NOW - timedelta(hours=10)
        ticket = make_ticket(
            1,
            created_at=created.isoformat(),
            responses=[
                {"id": 1, "user_id": 100, "created_at": (created + timedelta(hours=1)).isoformat()},
                {"id": 2, "user_id": 7, "created_at": (created + timedelta(hours=3)).isoformat()},
            ],
        )
        assert average_response_time([ticket]) == "3.0 hours"
        assert average_response_time([make_ticket(2)]) is None

    def test_permissions_per_role(self):
        assert get_permissions("admin").can_assign
        assert not get_permissions("counselor").can_assign
        assert get_permissions("counselor").can_add_internal_notes
        assert get_permissions("student").can_create
        assert not get_permissions(None).can_view_all

    def test_page_info(self):
        assert get_page_info("admin").title == "Ticket Management"
        assert get_page_info("advisor").show_create is False
        assert get_page_info("student").show_stats is False


class TestDisplay:
    """Colors and relative times"""

    def test_colors(self):
        assert "animate-pulse" in get_priority_color("Urgent")
        assert get_status_color("Open").startswith("bg-blue-100")
        assert get_status_color("Unknown").startswith("bg-gray-100")

    def test_relative_time(self):
        assert format_relative_time(NOW, NOW) == "Just now"
        assert format_relative_time(NOW - timedelta(minutes=45), NOW) == "45m ago"
        assert format_relative_time(NOW - timedelta(hours=5), NOW) == "5h ago"
        assert format_relative_time((NOW - timedelta(days=3)).isoformat(), NOW) == "3d ago"
        assert format_relative_time(NOW - timedelta(days=21), NOW) == "3w ago"
        assert format_relative_time(NOW - timedelta(days=65), NOW) == "2mo ago"


class TestAlerts:
    """Crisis / unassigned alerts and SLA checks"""

    def test_crisis_alert_hidden_for_students(self, tickets):
        assert crisis_alert(tickets, "student", NOW) is None

    def test_crisis_alert_counts_recent(self):
        tickets = [
            make_ticket(1, crisis_flag=True, created_at=(NOW - timedelta(hours=2)).isoformat()),
            make_ticket(2, priority="Urgent", created_at=(NOW - timedelta(days=3)).isoformat()),
            make_ticket(3),
        ]
        alert = crisis_alert(tickets, "counselor", NOW)
        assert alert.crisis_count == 2
        assert alert.recent_count == 1

    def test_crisis_alert_none_without_crisis(self):
        assert crisis_alert([make_ticket(1)], "admin", NOW) is None

    def test_unassigned_alert(self, tickets):
        admin = get_permissions("admin")
        alert = unassigned_alert(tickets, "admin", admin, NOW)
        assert alert.unassigned_count == 2
        assert alert.urgent_count == 1
        assert unassigned_alert(tickets, "counselor", get_permissions("counselor"), NOW) is None

    def test_overdue_by_sla(self):
        category = TicketCategory(id=1, name="Academic", sla_response_hours=24)
        late = make_ticket(1, created_at=(NOW - timedelta(hours=30)).isoformat())
        fresh = make_ticket(2, created_at=(NOW - timedelta(hours=2)).isoformat())
        resolved = make_ticket(3, status="Resolved", created_at=(NOW - timedelta(hours=30)).isoformat())

        assert is_ticket_overdue(late, category, NOW)
        assert not is_ticket_overdue(fresh, category, NOW)
        assert not is_ticket_overdue(resolved, category, NOW)
        assert [t.id for t in overdue_tickets([late, fresh, resolved], [category], NOW)] == [1]

    def test_overdue_falls_back_to_backend_flag(self):
        assert is_ticket_overdue(make_ticket(1, is_overdue=True), None, NOW)
