"""
Unit tests for the controllers
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import NOW, failed, make_ticket, ok
from student_support.controllers import (
    ActivityTracker,
    BulkResult,
    CachedTicketsController,
    DeleteTicketDialog,
    NotificationsController,
    SubmitTicketForm,
    TicketAssignmentController,
)
from student_support.controllers.assignment import (
    AUTO_ASSIGN_REASON,
    annotate_workload,
    friendly_assignment_error,
)
from student_support.models.schemas import AssignmentOption, Priority
from student_support.services.notification_service import NotificationService
from student_support.services.ticket_service import TicketService
from student_support.stores import notification_store, ticket_store
from student_support.stores.ticket_store import TicketStore

TICKET_LIST = {
    "tickets": [
        {"id": 1, "subject": "Exam stress", "status": "Open"},
        {"id": 2, "subject": "Visa paperwork", "status": "In Progress"},
    ],
    "pagination": {"current_page": 1, "last_page": 1, "per_page": 20, "total": 2},
}

ASSIGNMENT_OPTIONS = {
    "ticket": {"id": 5, "category_id": 1, "category_name": "Academic"},
    "available_specialists": [
        {"id": 7, "name": "Sam Rivera", "role": "counselor", "current_workload": 2, "max_workload": 5},
        {"id": 8, "name": "Alex Kim", "role": "counselor", "current_workload": 5, "max_workload": 5},
    ],
    "admin_users": [
        {"id": 1, "name": "Pat Admin", "role": "admin", "current_workload": 12, "max_workload": 0},
    ],
    "recommendation": {"id": 7, "name": "Sam Rivera", "role": "counselor"},
}


# ============================================================================
# Cached tickets
# ============================================================================

class TestCachedTicketsController:
    """CachedTicketsController"""

    @pytest.fixture
    def controller(self, cache, mock_api, toaster, clock):
        mock_api.get = AsyncMock(return_value=ok(TICKET_LIST))
        return CachedTicketsController(
            cache, TicketService(mock_api), toaster=toaster, refresh_interval=0, clock=clock
        )

    @pytest.mark.asyncio
    async def test_fetch_loads_and_caches(self, controller, mock_api):
        tickets = await controller.fetch()

        assert [t.id for t in tickets] == [1, 2]
        assert not controller.state.loading
        assert controller.state.last_fetch == 1000.0
        assert controller.has_cached_data
        assert [t.id for t in controller.store.state.tickets] == [1, 2]

        await controller.fetch()
        mock_api.get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_falls_back_to_cached_data(self, controller, mock_api, toaster):
        await controller.fetch()
        mock_api.get = AsyncMock(return_value=failed("Network error. Please check your connection.", status=0))

        tickets = await controller.refresh()

        assert [t.id for t in tickets] == [1, 2]
        assert controller.state.is_stale
        assert controller.state.error is None
        assert toaster.last.title == "Using cached data"
        assert toaster.last.description == "Unable to fetch latest tickets, showing cached data"
        assert not controller.store.state.loading

    @pytest.mark.asyncio
    async def test_error_without_cached_data(self, controller, mock_api, toaster):
        mock_api.get = AsyncMock(return_value=failed("Server exploded"))

        tickets = await controller.fetch()

        assert tickets == ()
        assert controller.state.error == "Server exploded"
        assert not controller.state.loading
        assert controller.store.state.error == "Server exploded"
        assert toaster.toasts == []

    @pytest.mark.asyncio
    async def test_invalid_listing_reported(self, controller, mock_api):
        mock_api.get = AsyncMock(return_value=ok({"tickets": [{"subject": "no id"}]}))
        await controller.fetch()
        assert controller.state.error == "Invalid response format"

    @pytest.mark.asyncio
    async def test_update_invalidates_and_toasts(self, controller, mock_api, toaster, cache):
        await controller.fetch()
        mock_api.patch = AsyncMock(return_value=ok({"ticket": {"id": 2, "status": "Resolved"}}))

        response = await controller.update_ticket(2, {"status": "Resolved"})

        assert response.success
        assert not controller.has_cached_data
        assert toaster.last.level == "success"
        assert toaster.last.description == "update ticket completed successfully"
        assert controller.store.state.tickets[1].status == "Resolved"

    @pytest.mark.asyncio
    async def test_update_during_refresh_discards_old_list(self, controller, mock_api):
        await controller.fetch()
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_list(*args, **kwargs):
            started.set()
            await release.wait()
            return ok(TICKET_LIST)

        mock_api.get = AsyncMock(side_effect=slow_list)
        mock_api.patch = AsyncMock(return_value=ok({"ticket": {"id": 2, "status": "Resolved"}}))

        refresh = asyncio.ensure_future(controller.refresh())
        await started.wait()
        await controller.update_ticket(2, {"status": "Resolved"})
        release.set()
        await refresh

        assert not controller.has_cached_data
        assert controller.store.state.tickets[1].status == "Resolved"

    @pytest.mark.asyncio
    async def test_failed_action_keeps_cache(self, controller, toaster):
        await controller.fetch()

        response = await controller.delete_ticket(1, "too short")

        assert response is None
        assert controller.has_cached_data
        assert toaster.last.level == "error"
        assert toaster.last.description == "Deletion reason must be at least 10 characters long"

    @pytest.mark.asyncio
    async def test_raising_action_reported(self, controller, toaster):
        async def boom():
            raise RuntimeError("")

        assert await controller.perform_action("archive ticket", boom) is None
        assert toaster.last.description == "Failed to archive ticket"

    @pytest.mark.asyncio
    async def test_delete_and_bulk_assign_update_store(self, controller, mock_api):
        await controller.fetch()
        controller.store.dispatch(ticket_store.SELECT, 2)

        await controller.delete_ticket(1, "Duplicate of ticket #2")
        await controller.bulk_assign([2], 7, "Rebalancing")

        assert [t.id for t in controller.store.state.tickets] == [2]
        assert controller.store.state.selected == frozenset()

    @pytest.mark.asyncio
    async def test_aclose_stops_refresh_and_ignores_fetches(self, controller, mock_api):
        controller.refresh_interval = 3600
        controller.start_auto_refresh()
        assert controller._refresh_task is not None

        await controller.aclose()

        assert controller._refresh_task is None
        assert await controller.fetch() == ()
        mock_api.get.assert_not_awaited()


# ============================================================================
# Assignment
# ============================================================================

class TestWorkloadHelpers:
    """annotate_workload / friendly_assignment_error"""

    def test_utilization_rounded_to_one_decimal(self):
        option = annotate_workload(AssignmentOption(id=1, current_workload=1, max_workload=3))
        assert option.utilization_rate == 33.3
        assert option.can_take_ticket

        option = annotate_workload(AssignmentOption(id=1, current_workload=2, max_workload=3))
        assert option.utilization_rate == 66.7

    def test_zero_capacity(self):
        option = annotate_workload(AssignmentOption(id=1, current_workload=0, max_workload=0))
        assert option.utilization_rate == 0.0
        assert not option.can_take_ticket

    def test_friendly_errors(self):
        assert friendly_assignment_error("Counselor has reached maximum workload") == (
            "Assignment failed: The selected counselor is at maximum capacity"
        )
        assert friendly_assignment_error("Ticket already assigned to user") == (
            "Assignment failed: Ticket is already assigned to this person"
        )
        assert friendly_assignment_error("Something else") == "Something else"


class TestTicketAssignmentController:
    """TicketAssignmentController"""

    @pytest.fixture
    def controller(self, mock_api, toaster, cache):
        mock_api.get = AsyncMock(return_value=ok(ASSIGNMENT_OPTIONS))
        mock_api.post = AsyncMock(return_value=ok({"assignment_details": {"assigned_to_name": "Sam Rivera"}}))
        return TicketAssignmentController(TicketService(mock_api), toaster=toaster, cache=cache)

    @pytest.mark.asyncio
    async def test_options_are_annotated(self, controller):
        data = await controller.get_assignment_options(5)

        assert data.available_specialists[0].utilization_rate == 40.0
        assert controller.total_specialists == 2
        assert [s.id for s in controller.available_specialists] == [7]
        assert controller.has_available_specialists
        assert not controller.loading

        controller.clear_assignment_data()
        assert not controller.has_specialists

    @pytest.mark.asyncio
    async def test_options_failure(self, controller, mock_api, toaster):
        mock_api.get = AsyncMock(return_value=failed("Forbidden", status=403))

        assert await controller.get_assignment_options(5) is None
        assert controller.error == "Forbidden"
        assert toaster.last.title == "Forbidden"

    @pytest.mark.asyncio
    async def test_auto_assign_uses_recommendation(self, controller, mock_api, toaster, cache):
        cache.set("ticket:5", {"id": 5})

        assert await controller.auto_assign_ticket(5)

        mock_api.post.assert_awaited_once_with(
            "/tickets/5/assign", {"assigned_to": 7, "reason": AUTO_ASSIGN_REASON}
        )
        assert toaster.last.title == "Ticket assigned to Sam Rivera successfully!"
        assert not cache.has("ticket:5")

    @pytest.mark.asyncio
    async def test_auto_assign_without_recommendation(self, controller, mock_api, toaster):
        mock_api.get = AsyncMock(return_value=ok({**ASSIGNMENT_OPTIONS, "recommendation": None}))

        assert not await controller.auto_assign_ticket(5)
        assert toaster.last.title == "No available counselors found for auto-assignment"
        mock_api.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_assignment_failure_is_friendly(self, controller, mock_api, toaster):
        mock_api.post = AsyncMock(return_value=failed("Counselor has reached maximum workload", status=422))

        assert not await controller.assign_ticket(5, 8)
        assert controller.error == "Counselor has reached maximum workload"
        assert toaster.last.title == "Assignment failed: The selected counselor is at maximum capacity"

    @pytest.mark.asyncio
    async def test_reassign_checks(self, controller, mock_api, toaster):
        assert not await controller.reassign_ticket(5, 99)
        assert toaster.last.title == "Selected staff member is not available for assignment"

        assert not await controller.reassign_ticket(5, 8)
        assert toaster.last.title == "Selected counselor is at maximum capacity"
        mock_api.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reassign_to_admin_ignores_capacity(self, controller, mock_api):
        assert await controller.reassign_ticket(5, 1)
        mock_api.post.assert_awaited_once_with(
            "/tickets/5/assign", {"assigned_to": 1, "reason": "Reassigned to Pat Admin"}
        )

    @pytest.mark.asyncio
    async def test_reassign_without_options(self, controller, mock_api, toaster):
        mock_api.get = AsyncMock(return_value=failed("Server error"))
        assert not await controller.reassign_ticket(5, 7)
        assert toaster.last.title == "Failed to get assignment options"

    @pytest.mark.asyncio
    async def test_unassign(self, controller, mock_api, toaster):
        mock_api.post = AsyncMock(return_value=ok({}))

        assert await controller.unassign_ticket(5)

        mock_api.post.assert_awaited_once_with(
            "/tickets/5/assign", {"assigned_to": None, "reason": "Unassigned by admin"}
        )
        assert toaster.last.title == "Ticket unassigned successfully!"

    @pytest.mark.asyncio
    async def test_bulk_assign_counts(self, controller, mock_api, toaster):
        mock_api.post = AsyncMock(side_effect=[ok({}), failed("Ticket already assigned"), ok({})])

        result = await controller.bulk_assign([1, 2, 3], 7)

        assert result == BulkResult(success_count=2, fail_count=1)
        assert "Successfully assigned 2 tickets" in toaster.messages("success")
        assert toaster.last.title == "Failed to assign 1 tickets"


# ============================================================================
# Notifications
# ============================================================================

NOTIFICATION_PAGE = {
    "notifications": [
        {"id": 1, "title": "Ticket updated", "read": False},
        {"id": 2, "title": "Appointment tomorrow", "read": False},
        {"id": 3, "title": "Welcome", "read": True},
    ],
    "pagination": {"current_page": 1, "last_page": 1, "per_page": 20, "total": 3},
    "counts": {"unread": 2},
}


class TestActivityTracker:
    """ActivityTracker"""

    def test_idle_after_timeout(self, clock):
        tracker = ActivityTracker(idle_timeout=300, clock=clock)
        clock.advance(299)
        assert tracker.is_recently_active
        clock.advance(1)
        assert not tracker.is_recently_active

        tracker.record_activity()
        assert tracker.is_recently_active

    def test_visibility_transitions(self, clock):
        tracker = ActivityTracker(idle_timeout=300, clock=clock)
        assert not tracker.set_visible(True)
        assert not tracker.set_visible(False)
        assert tracker.set_visible(True)


class TestNotificationsController:
    """NotificationsController"""

    @pytest.fixture
    def controller(self, mock_api, toaster, clock):
        mock_api.get = AsyncMock(return_value=ok(NOTIFICATION_PAGE))
        return NotificationsController(
            NotificationService(mock_api),
            toaster=toaster,
            tracker=ActivityTracker(idle_timeout=300, clock=clock),
            poll_interval=0,
            now=lambda: NOW,
        )

    @pytest.mark.asyncio
    async def test_fetch(self, controller, mock_api):
        assert await controller.fetch_notifications()

        mock_api.get.assert_awaited_once_with("/notifications", params=[("page", 1), ("per_page", 20)])
        assert len(controller.state.notifications) == 3
        assert controller.unread_count == 2
        assert not controller.state.loading

    @pytest.mark.asyncio
    async def test_fetch_failure(self, controller, mock_api):
        mock_api.get = AsyncMock(return_value=failed(""))

        assert not await controller.fetch_notifications()
        assert controller.state.error == "Failed to fetch notifications"
        assert not controller.state.loading

        controller.clear_error()
        assert controller.state.error is None

    @pytest.mark.asyncio
    async def test_optimistic_updates(self, controller):
        await controller.fetch_notifications()

        assert await controller.mark_as_read(1)
        assert controller.state.notifications[0].read_at == NOW
        assert controller.unread_count == 1

        assert await controller.mark_as_unread(3)
        assert controller.unread_count == 2

        assert await controller.delete_notification(2)
        assert controller.unread_count == 1

        assert await controller.mark_all_as_read()
        assert controller.unread_count == 0

    @pytest.mark.asyncio
    async def test_bulk_action(self, controller, mock_api):
        await controller.fetch_notifications()

        assert await controller.bulk_action("read", [1, 2])

        mock_api.post.assert_awaited_once_with(
            "/notifications/bulk-action", {"action": "read", "notification_ids": [1, 2]}
        )
        assert controller.unread_count == 0

    @pytest.mark.asyncio
    async def test_failed_mutation_toasts_and_keeps_state(self, controller, mock_api, toaster):
        await controller.fetch_notifications()
        mock_api.patch = AsyncMock(return_value=failed("Notification not found", status=404))

        assert not await controller.mark_as_read(1)

        assert controller.unread_count == 2
        assert not controller.state.notifications[0].read
        assert toaster.last.title == "Failed to mark notification as read"
        assert toaster.last.description == "Notification not found"

    @pytest.mark.asyncio
    async def test_unread_count_failure_only_logged(self, controller, mock_api, toaster):
        mock_api.get = AsyncMock(return_value=failed("Server error"))
        assert await controller.fetch_unread_count() is None
        assert toaster.toasts == []

    @pytest.mark.asyncio
    async def test_poll_skipped_while_hidden(self, controller, mock_api):
        mock_api.get = AsyncMock(return_value=ok({"unread_count": 4}))

        await controller.set_visible(False)
        assert not await controller.poll_once()
        mock_api.get.assert_not_awaited()

        await controller.set_visible(True)
        mock_api.get.assert_awaited_once_with("/notifications/unread-count")
        assert controller.unread_count == 4

    @pytest.mark.asyncio
    async def test_poll_skipped_when_idle_or_loading(self, controller, mock_api, clock):
        mock_api.get = AsyncMock(return_value=ok({"unread_count": 1}))

        clock.advance(300)
        assert not await controller.poll_once()

        controller.tracker.record_activity()
        controller.store.dispatch(notification_store.LOADING, True)
        assert not await controller.poll_once()

        controller.store.dispatch(notification_store.LOADING, False)
        assert await controller.poll_once()
        assert controller.unread_count == 1

    @pytest.mark.asyncio
    async def test_aclose(self, controller, mock_api):
        controller.poll_interval = 3600
        controller.start_polling()
        assert controller._poll_task is not None

        await controller.aclose()

        assert controller._poll_task is None
        assert not await controller.poll_once()
        mock_api.get.assert_not_awaited()


# ============================================================================
# Submit / delete forms
# ============================================================================

def created(ticket_id: int = 9):
    return ok({"ticket": {"id": ticket_id, "ticket_number": f"ST2024{ticket_id:04d}", "subject": "Help"}})


class TestSubmitTicketForm:
    """SubmitTicketForm"""

    @pytest.fixture
    def service(self):
        service = MagicMock(spec=TicketService)
        service.create_ticket = AsyncMock(return_value=created())
        return service

    def fill(self, form: SubmitTicketForm, description: str) -> None:
        form.set_field("subject", "Help")
        form.set_field("category", "academic")
        form.set_field("description", description)

    @pytest.mark.asyncio
    async def test_description_boundary(self, service, toaster):
        form = SubmitTicketForm(service, toaster=toaster)
        self.fill(form, "x" * 19)

        assert not form.is_valid
        assert await form.submit() is None
        assert form.error == "Description must be at least 20 characters long"
        service.create_ticket.assert_not_awaited()

        form.on_description_change("x" * 20)
        assert form.is_valid
        assert form.error is None

    @pytest.mark.asyncio
    async def test_cannot_submit_while_loading(self, service, toaster):
        form = SubmitTicketForm(service, toaster=toaster, store=TicketStore())
        self.fill(form, "My exams clash with my placement week.")
        observed = []

        async def create(payload):
            observed.append((form.loading, form.can_submit))
            return created()

        service.create_ticket = AsyncMock(side_effect=create)

        ticket = await form.submit()

        assert observed == [(True, False)]
        assert ticket.id == 9
        assert form.success
        assert form.can_submit
        assert [t.id for t in form.store.state.tickets] == [9]
        assert toaster.last.title == "Ticket submitted successfully"
        assert toaster.last.description == "Ticket ST20240009"

    @pytest.mark.asyncio
    async def test_submit_failure(self, service, toaster):
        service.create_ticket = AsyncMock(return_value=failed(""))
        form = SubmitTicketForm(service, toaster=toaster)
        self.fill(form, "My exams clash with my placement week.")

        assert await form.submit() is None
        assert form.error == "Failed to create ticket. Please try again."
        assert toaster.last.level == "error"
        assert not form.loading

    def test_crisis_language_escalates(self, service):
        form = SubmitTicketForm(service)
        form.set_field("category", "academic")

        assert form.on_description_change("Lately I feel hopeless about everything")
        assert form.priority == Priority.URGENT
        assert form.category == "crisis"

    def test_already_urgent_keeps_category(self, service):
        form = SubmitTicketForm(service)
        form.set_field("category", "academic")
        form.set_field("priority", "Urgent")

        assert form.on_description_change("This is an emergency with my housing")
        assert form.category == "academic"

    def test_unknown_field(self, service):
        with pytest.raises(AttributeError):
            SubmitTicketForm(service).set_field("owner", 1)

    def test_payload(self, service):
        form = SubmitTicketForm(service)
        self.fill(form, "My exams clash with my placement week.")
        form.set_field("category_id", 3)
        assert form.to_payload() == {
            "subject": "Help",
            "description": "My exams clash with my placement week.",
            "category": "academic",
            "priority": "Medium",
            "category_id": 3,
        }


class TestDeleteTicketDialog:
    """DeleteTicketDialog"""

    @pytest.mark.asyncio
    async def test_empty_reason_does_nothing(self):
        on_confirm = AsyncMock(return_value=ok({}))
        dialog = DeleteTicketDialog(make_ticket(3), on_confirm)

        assert dialog.remaining_characters == 10
        assert not await dialog.confirm()
        assert dialog.error is None
        on_confirm.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_short_reason(self):
        on_confirm = AsyncMock(return_value=ok({}))
        dialog = DeleteTicketDialog(make_ticket(3), on_confirm)
        dialog.reason = "too short"

        assert not dialog.can_confirm
        assert not await dialog.confirm()
        assert dialog.error == "Deletion reason must be at least 10 characters long"
        on_confirm.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_confirm_resets_on_success(self):
        on_confirm = AsyncMock(return_value=ok({}))
        dialog = DeleteTicketDialog(make_ticket(3), on_confirm)
        dialog.reason = "  Duplicate of #2 "
        dialog.notify_user = True

        assert dialog.can_confirm
        assert await dialog.confirm()

        on_confirm.assert_awaited_once_with("Duplicate of #2", True)
        assert dialog.reason == ""
        assert not dialog.notify_user

    @pytest.mark.asyncio
    async def test_second_confirm_refused_while_deleting(self):
        dialog = DeleteTicketDialog(make_ticket(3), None)
        nested = []

        async def on_confirm(reason, notify_user):
            nested.append(await dialog.confirm())
            nested.append(dialog.close())
            return ok({})

        dialog.on_confirm = on_confirm
        dialog.reason = "Duplicate of #2"

        assert await dialog.confirm()
        assert nested == [False, False]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome, message", [
        (failed("Ticket not found", status=404), "Ticket not found"),
        (None, "Failed to delete ticket. Please try again."),
        (RuntimeError(""), "Failed to delete ticket. Please try again."),
    ])
    async def test_failures_keep_dialog_open(self, outcome, message):
        if isinstance(outcome, Exception):
            on_confirm = AsyncMock(side_effect=outcome)
        else:
            on_confirm = AsyncMock(return_value=outcome)
        dialog = DeleteTicketDialog(make_ticket(3), on_confirm)
        dialog.reason = "Duplicate of #2"

        assert not await dialog.confirm()
        assert dialog.error == message
        assert dialog.reason == "Duplicate of #2"
        assert not dialog.is_deleting
