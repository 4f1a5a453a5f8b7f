"""
Delete Ticket Dialog

Collects a deletion reason and hands it to a confirm callback.
"""
from typing import Any, Awaitable, Callable, Optional

from student_support.models.schemas import ApiResponse, Ticket
from student_support.utils.logger import get_logger
from student_support.utils.validators import DELETION_REASON_MIN_LENGTH

logger = get_logger(__name__)

ConfirmCallback = Callable[[str, bool], Awaitable[Any]]


class DeleteTicketDialog:
    """
    Deletion confirmation for one ticket

    Args:
        ticket: Ticket to delete
        on_confirm: Coroutine function called with (reason, notify_user);
            a failed ApiResponse, a falsy result or an exception keeps the
            dialog open with `error` set
    """

    def __init__(self, ticket: Ticket, on_confirm: ConfirmCallback):
        self.ticket = ticket
        self.on_confirm = on_confirm
        self.reason = ""
        self.notify_user = False
        self.is_deleting = False
        self.error: Optional[str] = None

    @property
    def remaining_characters(self) -> int:
        return max(0, DELETION_REASON_MIN_LENGTH - len(self.reason.strip()))

    @property
    def can_confirm(self) -> bool:
        return not self.is_deleting and self.remaining_characters == 0

    def reset(self) -> None:
        self.reason = ""
        self.notify_user = False
        self.is_deleting = False
        self.error = None

    async def confirm(self) -> bool:
        """
        Run the deletion

        Returns:
            True once the callback succeeded; the form is reset then
        """
        reason = self.reason.strip()
        if not reason or self.is_deleting:
            return False

        if len(reason) < DELETION_REASON_MIN_LENGTH:
            self.error = f"Deletion reason must be at least {DELETION_REASON_MIN_LENGTH} characters long"
            return False

        logger.info(f"Deleting ticket {self.ticket.id}")
        self.is_deleting = True
        self.error = None
        try:
            result = await self.on_confirm(reason, self.notify_user)
        except Exception as e:
            logger.error(f"Deletion of ticket {self.ticket.id} failed: {e}")
            self.error = str(e) or "Failed to delete ticket. Please try again."
            return False
        finally:
            self.is_deleting = False

        if isinstance(result, ApiResponse) and not result.success:
            self.error = result.message or "Failed to delete ticket. Please try again."
            return False
        if result is None or result is False:
            self.error = "Failed to delete ticket. Please try again."
            return False

        self.reset()
        return True

    def close(self) -> bool:
        """Reset and close; refused while a deletion is running"""
        if self.is_deleting:
            return False
        self.reset()
        return True
