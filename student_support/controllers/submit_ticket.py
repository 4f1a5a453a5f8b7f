"""
Submit Ticket Form

Form state for a new ticket. Typing a description that mentions a
crisis phrase escalates the ticket to Urgent in the crisis category.
"""
from typing import Any, Dict, Optional

from pydantic import ValidationError

from student_support.crisis.scoring import detect_crisis_keywords
from student_support.models.schemas import Priority, Ticket
from student_support.services.ticket_service import TicketService
from student_support.stores import ticket_store
from student_support.stores.ticket_store import TicketStore
from student_support.utils.logger import get_logger
from student_support.utils.toast import Toaster
from student_support.utils.validators import DESCRIPTION_MIN_LENGTH, validate_ticket_data

logger = get_logger(__name__)

CRISIS_CATEGORY = "crisis"


class SubmitTicketForm:
    """
    Ticket submission form

    Args:
        service: Ticket service used to create the ticket
        toaster: Sink for user-facing messages
        store: Ticket store that receives the created ticket
    """

    def __init__(self, service: TicketService, toaster: Optional[Toaster] = None, store: Optional[TicketStore] = None):
        self.service = service
        self.toaster = toaster or Toaster()
        self.store = store
        self.subject = ""
        self.category = ""
        self.category_id: Optional[int] = None
        self.priority = Priority.MEDIUM
        self.description = ""
        self.loading = False
        self.error: Optional[str] = None
        self.created_ticket: Optional[Ticket] = None

    def set_field(self, name: str, value: Any) -> None:
        if name not in ("subject", "category", "category_id", "priority", "description"):
            raise AttributeError(f"Unknown form field: {name}")
        if name == "priority":
            value = Priority(value)
        setattr(self, name, value)
        self.error = None

    def on_description_change(self, value: str) -> bool:
        """
        Update the description and escalate on crisis phrases

        Returns:
            True if crisis language was detected
        """
        self.set_field("description", value)

        crisis = detect_crisis_keywords(value)
        if crisis and self.priority != Priority.URGENT:
            logger.warning("Crisis language detected in ticket description, escalating to Urgent")
            self.priority = Priority.URGENT
            self.category = CRISIS_CATEGORY
        return crisis

    @property
    def is_valid(self) -> bool:
        return bool(
            self.subject.strip()
            and (self.category or self.category_id)
            and self.description.strip()
            and len(self.description) >= DESCRIPTION_MIN_LENGTH
        )

    @property
    def can_submit(self) -> bool:
        return self.is_valid and not self.loading

    @property
    def success(self) -> bool:
        return self.created_ticket is not None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "subject": self.subject,
            "description": self.description,
            "category": self.category,
            "priority": self.priority.value,
        }
        if self.category_id is not None:
            payload["category_id"] = self.category_id
        return payload

    async def submit(self) -> Optional[Ticket]:
        """
        Validate and create the ticket

        Returns:
            The created ticket, or None with `error` set
        """
        if self.loading:
            return None

        payload = self.to_payload()
        errors = validate_ticket_data(payload)
        if errors:
            self.error = ", ".join(errors)
            return None

        self.loading = True
        self.error = None
        try:
            response = await self.service.create_ticket(payload)
        finally:
            self.loading = False

        if not response.success:
            self.error = response.message or "Failed to create ticket. Please try again."
            self.toaster.error("Failed to submit ticket", self.error)
            return None

        try:
            ticket = Ticket.model_validate(response.get("ticket") or response.data)
        except ValidationError as e:
            logger.error(f"Malformed ticket in create response: {e}")
            self.error = "Invalid response format"
            return None

        self.created_ticket = ticket
        if self.store is not None:
            self.store.dispatch(ticket_store.TICKET_CREATED, ticket)

        self.toaster.success("Ticket submitted successfully", f"Ticket {ticket.ticket_number}".rstrip())
        return ticket
