"""
Ticket Service

Ticket CRUD, responses, assignment, tags and export against `/tickets`
and the admin ticket endpoints. Input is validated client-side first;
rejected input never reaches the network.
"""
from typing import Any, Dict, List, Mapping, Optional, Union

from student_support.models.schemas import (
    ApiResponse,
    ResponseVisibility,
    TicketCreate,
    TicketUpdate,
)
from student_support.services.base import BaseService, build_query_params
from student_support.utils.logger import get_logger
from student_support.utils.validators import (
    validate_deletion_reason,
    validate_response_message,
    validate_ticket_data,
)

logger = get_logger(__name__)

TAG_ACTIONS = ("add", "remove", "set")
EXPORT_FORMATS = ("csv", "excel", "json")


class TicketService(BaseService):
    """Ticket endpoints of the support backend"""

    async def get_tickets(self, filters: Optional[Mapping[str, Any]] = None, **kwargs) -> ApiResponse:
        """
        List tickets visible to the current user

        Args:
            filters: page, per_page, status, category_id, priority, search, ...
            **kwargs: Extra filters merged over `filters`

        Returns:
            ApiResponse with {tickets, pagination, stats}
        """
        merged = {**(filters or {}), **kwargs}
        logger.info(f"Fetching tickets with filters: {merged}")
        return await self.api.get("/tickets", params=build_query_params(merged))

    async def get_ticket(self, ticket_id: int) -> ApiResponse:
        logger.info(f"Fetching ticket {ticket_id}")
        return await self.api.get(f"/tickets/{ticket_id}")

    async def create_ticket(self, data: Union[TicketCreate, Mapping[str, Any]]) -> ApiResponse:
        """
        Create a ticket

        Returns:
            ApiResponse with {ticket}; 422 envelope if validation fails
        """
        if isinstance(data, TicketCreate):
            data = data.model_dump(mode="json", exclude_none=True)

        errors = validate_ticket_data(data)
        if errors:
            logger.warning(f"Ticket rejected by validation: {errors}")
            return self.validation_failure(errors)

        payload = {key: value for key, value in data.items() if value is not None}
        payload["subject"] = payload["subject"].strip()
        payload["description"] = payload["description"].strip()

        logger.info(f"Creating ticket: {payload['subject']}")
        return await self.api.post("/tickets", payload)

    async def update_ticket(self, ticket_id: int, data: Union[TicketUpdate, Mapping[str, Any]]) -> ApiResponse:
        """Partially update a ticket (staff only)"""
        if isinstance(data, TicketUpdate):
            payload = data.model_dump(mode="json", exclude_none=True)
        else:
            payload = {key: value for key, value in data.items() if value is not None}

        logger.info(f"Updating ticket {ticket_id}: {list(payload)}")
        return await self.api.patch(f"/tickets/{ticket_id}", payload)

    async def delete_ticket(self, ticket_id: int, reason: str, notify_user: bool = False) -> ApiResponse:
        """
        Delete a ticket

        Args:
            ticket_id: Ticket to delete
            reason: Written justification, at least 10 characters
            notify_user: Tell the ticket owner about the deletion
        """
        errors = validate_deletion_reason(reason)
        if errors:
            return self.validation_failure(errors)

        logger.info(f"Deleting ticket {ticket_id}")
        return await self.api.delete(
            f"/tickets/{ticket_id}",
            {"reason": reason.strip(), "notify_user": notify_user}
        )

    async def add_response(
        self,
        ticket_id: int,
        message: str,
        is_internal: bool = False,
        visibility: Optional[ResponseVisibility] = None,
        is_urgent: bool = False
    ) -> ApiResponse:
        """Post a reply (or an internal note) to a ticket"""
        errors = validate_response_message(message)
        if errors:
            return self.validation_failure(errors)

        payload: Dict[str, Any] = {
            "message": message.strip(),
            "is_internal": is_internal,
            "is_urgent": is_urgent,
        }
        if visibility:
            payload["visibility"] = ResponseVisibility(visibility).value

        logger.info(f"Adding response to ticket {ticket_id} (internal={is_internal})")
        return await self.api.post(f"/tickets/{ticket_id}/responses", payload)

    async def assign_ticket(self, ticket_id: int, assigned_to: Optional[int], reason: str = "") -> ApiResponse:
        """Assign a ticket; `assigned_to=None` unassigns it"""
        logger.info(f"Assigning ticket {ticket_id} to {assigned_to}")
        return await self.api.post(
            f"/tickets/{ticket_id}/assign",
            {"assigned_to": assigned_to, "reason": reason}
        )

    async def get_assignment_options(self, ticket_id: int) -> ApiResponse:
        """Specialists, admins and the recommended assignee for a ticket"""
        return await self.api.get(f"/tickets/assignment-options/{ticket_id}")

    async def bulk_assign(self, ticket_ids: List[int], assigned_to: int, reason: str = "") -> ApiResponse:
        """Assign several tickets in one backend call"""
        if not ticket_ids:
            return self.validation_failure(["At least one ticket must be selected"])

        logger.info(f"Bulk assigning {len(ticket_ids)} tickets to {assigned_to}")
        return await self.api.post(
            "/admin/bulk-assign",
            {"ticket_ids": list(ticket_ids), "assigned_to": assigned_to, "reason": reason}
        )

    async def manage_tags(self, ticket_id: int, action: str, tags: List[str]) -> ApiResponse:
        """
        Add, remove or replace ticket tags

        Args:
            action: "add", "remove" or "set"
            tags: Tag names
        """
        if action not in TAG_ACTIONS:
            return self.validation_failure([f"Invalid tag action: {action}"])

        tags = [tag.strip() for tag in tags if tag and tag.strip()]
        if not tags and action != "set":
            return self.validation_failure(["At least one tag is required"])

        return await self.api.post(f"/tickets/{ticket_id}/tags", {"action": action, "tags": tags})

    async def add_tag(self, ticket_id: int, tag: str) -> ApiResponse:
        return await self.manage_tags(ticket_id, "add", [tag])

    async def remove_tag(self, ticket_id: int, tag: str) -> ApiResponse:
        return await self.manage_tags(ticket_id, "remove", [tag])

    async def get_options(self) -> ApiResponse:
        """Categories, priorities and statuses offered by the backend"""
        return await self.api.get("/tickets/options")

    async def export_tickets(
        self,
        format: str = "csv",
        filters: Optional[Mapping[str, Any]] = None
    ) -> ApiResponse:
        """Request a ticket export (admin only)"""
        if format not in EXPORT_FORMATS:
            return self.validation_failure([f"Unsupported export format: {format}"])

        params = [("format", format)] + build_query_params(filters)
        logger.info(f"Exporting tickets as {format}")
        return await self.api.get("/admin/export-tickets", params=params)
