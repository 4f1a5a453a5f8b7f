"""
Ticket Categories Service

Read access to ticket categories and their triage settings
(auto-assign, crisis detection, SLA hours).
"""
from typing import List

from pydantic import ValidationError

from student_support.models.schemas import ApiResponse, TicketCategory
from student_support.services.base import BaseService, build_query_params
from student_support.utils.logger import get_logger

logger = get_logger(__name__)


class TicketCategoriesService(BaseService):
    """Ticket category endpoints"""

    async def get_categories(self, include_inactive: bool = False, with_counselors: bool = False) -> ApiResponse:
        """
        List ticket categories

        Returns:
            ApiResponse whose data holds `categories` as TicketCategory models
        """
        params = {
            "include_inactive": True if include_inactive else None,
            "with_counselors": True if with_counselors else None,
        }
        response = await self.api.get("/admin/ticket-categories", params=build_query_params(params))
        if not response.success:
            return response

        try:
            categories: List[TicketCategory] = [
                TicketCategory.model_validate(item) for item in response.get("categories", [])
            ]
        except ValidationError as e:
            logger.error(f"Malformed category listing: {e}")
            return ApiResponse.failure("Invalid response format", status=response.status)

        data = dict(response.data) if isinstance(response.data, dict) else {}
        data["categories"] = categories
        return ApiResponse(success=True, status=response.status, message=response.message, data=data)

    async def get_category(self, category_id: int) -> ApiResponse:
        return await self.api.get(f"/admin/ticket-categories/{category_id}")

    async def health_check(self) -> bool:
        response = await self.api.get("/admin/ticket-categories")
        return response.success
