"""
Ticket Assignment Controller

Fetches assignment options with workload annotations and performs
manual, recommended, re- and bulk assignment with user-facing messages.
"""
import math
from typing import List, NamedTuple, Optional

from pydantic import ValidationError

from student_support.cache.smart_cache import SmartCache, invalidate_ticket_cache
from student_support.models.schemas import AssignmentData, AssignmentOption
from student_support.services.ticket_service import TicketService
from student_support.utils.logger import get_logger
from student_support.utils.toast import Toaster

logger = get_logger(__name__)

AUTO_ASSIGN_REASON = "Auto-assigned to best available counselor"

# Backend message fragment -> friendly toast
ASSIGNMENT_ERRORS = (
    ("does not specialize", "Assignment failed: The selected counselor does not specialize in this category"),
    ("maximum workload", "Assignment failed: The selected counselor is at maximum capacity"),
    ("already assigned", "Assignment failed: Ticket is already assigned to this person"),
)


class BulkResult(NamedTuple):
    success_count: int
    fail_count: int


def annotate_workload(option: AssignmentOption) -> AssignmentOption:
    """Fill in utilization_rate (percent, one decimal) and can_take_ticket"""
    if option.max_workload > 0:
        rate = math.floor(option.current_workload / option.max_workload * 1000 + 0.5) / 10
    else:
        rate = 0.0
    return option.model_copy(update={
        "utilization_rate": rate,
        "can_take_ticket": option.current_workload < option.max_workload,
    })


def friendly_assignment_error(message: str) -> str:
    for fragment, friendly in ASSIGNMENT_ERRORS:
        if fragment in message:
            return friendly
    return message


class TicketAssignmentController:
    """
    Assignment workflow for one staff session

    Args:
        service: Ticket service
        toaster: Sink for user-facing messages
        cache: Optional cache whose ticket entries are dropped after a
            successful assignment
    """

    def __init__(self, service: TicketService, toaster: Optional[Toaster] = None, cache: Optional[SmartCache] = None):
        self.service = service
        self.toaster = toaster or Toaster()
        self.cache = cache
        self.loading = False
        self.error: Optional[str] = None
        self.assignment_data: Optional[AssignmentData] = None

    @property
    def has_specialists(self) -> bool:
        return self.total_specialists > 0

    @property
    def total_specialists(self) -> int:
        if self.assignment_data is None:
            return 0
        return len(self.assignment_data.available_specialists)

    @property
    def available_specialists(self) -> List[AssignmentOption]:
        if self.assignment_data is None:
            return []
        return [s for s in self.assignment_data.available_specialists if s.can_take_ticket]

    @property
    def has_available_specialists(self) -> bool:
        return bool(self.available_specialists)

    def clear_assignment_data(self) -> None:
        self.assignment_data = None
        self.error = None

    async def get_assignment_options(self, ticket_id: int) -> Optional[AssignmentData]:
        """
        Load specialists, admins and the recommendation for a ticket

        Returns:
            AssignmentData, or None after reporting the failure
        """
        self.loading = True
        self.error = None
        try:
            response = await self.service.get_assignment_options(ticket_id)
            if not response.success or not response.data:
                return self._fail(response.message or "Failed to fetch assignment options")

            try:
                data = AssignmentData.model_validate(response.data)
            except ValidationError as e:
                logger.error(f"Malformed assignment options for ticket {ticket_id}: {e}")
                return self._fail("Invalid response format")

            data = data.model_copy(update={
                "available_specialists": [annotate_workload(s) for s in data.available_specialists],
            })
            self.assignment_data = data
            logger.info(f"Assignment options fetched for ticket {ticket_id}")
            return data
        finally:
            self.loading = False

    def _fail(self, message: str) -> None:
        logger.error(message)
        self.error = message
        self.toaster.error(message)
        return None

    async def assign_ticket(self, ticket_id: int, assigned_to: Optional[int], reason: Optional[str] = None) -> bool:
        """
        Assign (or with `assigned_to=None`, unassign) a ticket

        Returns:
            True on success
        """
        if not reason:
            reason = "Manually assigned by admin" if assigned_to else "Unassigned by admin"

        self.loading = True
        self.error = None
        try:
            response = await self.service.assign_ticket(ticket_id, assigned_to, reason)
        finally:
            self.loading = False

        if not response.success:
            message = response.message or "Failed to assign ticket"
            logger.error(f"Failed to assign ticket {ticket_id}: {message}")
            self.error = message
            self.toaster.error(friendly_assignment_error(message))
            return False

        if self.cache is not None:
            invalidate_ticket_cache(self.cache, ticket_id)

        assignee_name = (response.get("assignment_details") or {}).get("assigned_to_name")
        if not assigned_to:
            self.toaster.success("Ticket unassigned successfully!")
        elif assignee_name:
            self.toaster.success(f"Ticket assigned to {assignee_name} successfully!")
        else:
            self.toaster.success("Ticket assigned successfully!")
        return True

    async def get_recommended_assignment(self, ticket_id: int) -> Optional[AssignmentOption]:
        data = await self.get_assignment_options(ticket_id)
        return data.recommendation if data else None

    async def auto_assign_ticket(self, ticket_id: int) -> bool:
        """Assign the ticket to the server's recommended counselor"""
        recommendation = await self.get_recommended_assignment(ticket_id)
        if recommendation is None:
            self.toaster.error("No available counselors found for auto-assignment")
            return False
        return await self.assign_ticket(ticket_id, recommendation.id, AUTO_ASSIGN_REASON)

    async def reassign_ticket(self, ticket_id: int, new_assignee_id: int, reason: Optional[str] = None) -> bool:
        """
        Move a ticket to another staff member

        The new assignee must be among the ticket's specialists or admins,
        and a non-admin must still have capacity.
        """
        options = await self.get_assignment_options(ticket_id)
        if options is None:
            self.toaster.error("Failed to get assignment options")
            return False

        candidates = options.available_specialists + options.admin_users
        assignee = next((user for user in candidates if user.id == new_assignee_id), None)

        if assignee is None:
            self.toaster.error("Selected staff member is not available for assignment")
            return False

        if assignee.role != "admin" and not assignee.can_take_ticket:
            self.toaster.error("Selected counselor is at maximum capacity")
            return False

        return await self.assign_ticket(ticket_id, new_assignee_id, reason or f"Reassigned to {assignee.name}")

    async def unassign_ticket(self, ticket_id: int, reason: Optional[str] = None) -> bool:
        return await self.assign_ticket(ticket_id, None, reason or "Unassigned by admin")

    async def bulk_assign(self, ticket_ids: List[int], assignee_id: int, reason: Optional[str] = None) -> BulkResult:
        """Assign tickets one by one and report aggregate counts"""
        success_count = 0
        fail_count = 0

        for ticket_id in ticket_ids:
            if await self.assign_ticket(ticket_id, assignee_id, reason):
                success_count += 1
            else:
                fail_count += 1

        if success_count:
            self.toaster.success(f"Successfully assigned {success_count} tickets")
        if fail_count:
            self.toaster.error(f"Failed to assign {fail_count} tickets")

        return BulkResult(success_count, fail_count)
