"""
Notification Service
"""
from typing import Any, List, Mapping, Optional

from student_support.models.schemas import ApiResponse
from student_support.services.base import BaseService, build_query_params
from student_support.utils.logger import get_logger

logger = get_logger(__name__)

BULK_ACTIONS = ("read", "unread", "delete")


class NotificationService(BaseService):
    """In-app notification endpoints"""

    async def get_notifications(self, filters: Optional[Mapping[str, Any]] = None, **kwargs) -> ApiResponse:
        """
        List notifications of the current user

        Args:
            filters: page, per_page, type, read_status, priority, search

        Returns:
            ApiResponse with {notifications, pagination, counts}
        """
        merged = {**(filters or {}), **kwargs}
        logger.info(f"Fetching notifications: {merged}")
        return await self.api.get("/notifications", params=build_query_params(merged))

    async def get_unread_count(self) -> ApiResponse:
        return await self.api.get("/notifications/unread-count")

    async def mark_as_read(self, notification_id: int) -> ApiResponse:
        return await self.api.patch(f"/notifications/{notification_id}/read")

    async def mark_as_unread(self, notification_id: int) -> ApiResponse:
        return await self.api.patch(f"/notifications/{notification_id}/unread")

    async def mark_all_as_read(self) -> ApiResponse:
        return await self.api.post("/notifications/mark-all-read")

    async def delete_notification(self, notification_id: int) -> ApiResponse:
        return await self.api.delete(f"/notifications/{notification_id}")

    async def bulk_action(self, action: str, notification_ids: List[int]) -> ApiResponse:
        """Apply read/unread/delete to several notifications"""
        if action not in BULK_ACTIONS:
            return self.validation_failure([f"Invalid bulk action: {action}"])
        if not notification_ids:
            return self.validation_failure(["At least one notification must be selected"])

        logger.info(f"Bulk {action} on {len(notification_ids)} notifications")
        return await self.api.post(
            "/notifications/bulk-action",
            {"action": action, "notification_ids": list(notification_ids)}
        )

    async def get_options(self) -> ApiResponse:
        return await self.api.get("/notifications/options")

    async def get_stats(self) -> ApiResponse:
        return await self.api.get("/notifications/stats")
