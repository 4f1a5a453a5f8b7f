"""
Help Center Service

Read side of the help center (categories, FAQs, stats) plus feedback
and staff content suggestions. Reads can be routed through a
SmartCache; failed responses are never cached.
"""
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError

from student_support.cache.smart_cache import CACHE_CONFIGS, SmartCache
from student_support.exceptions import ApiError
from student_support.models.schemas import (
    ApiResponse,
    ContentSuggestion,
    FAQ,
    FAQsResponse,
    Pagination,
)
from student_support.services.api_client import ApiClient
from student_support.services.base import BaseService, build_query_params
from student_support.utils.logger import get_logger
from student_support.utils.validators import validate_content_suggestion

logger = get_logger(__name__)

SUGGESTION_ROLES = ("counselor", "admin")


def _pagination_for(faqs: List[Any], pagination: Optional[Dict[str, Any]]) -> Pagination:
    if pagination:
        return Pagination.model_validate(pagination)
    return Pagination(current_page=1, last_page=1, per_page=len(faqs), total=len(faqs))


def normalize_faqs_payload(data: Any) -> FAQsResponse:
    """
    Bring the FAQ listing into one shape

    The backend has answered with four layouts over time:
    `{faqs: [...]}`, a bare list, `{data: [...]}` and `{data: {faqs: [...]}}`.
    Anything else yields an empty listing.
    """
    raw_faqs: List[Any] = []
    featured: Optional[List[Any]] = None
    pagination: Optional[Dict[str, Any]] = None

    if isinstance(data, dict) and isinstance(data.get("faqs"), list):
        raw_faqs = data["faqs"]
        featured = data.get("featured_faqs")
        pagination = data.get("pagination")
    elif isinstance(data, list):
        raw_faqs = data
    elif isinstance(data, dict) and isinstance(data.get("data"), list):
        raw_faqs = data["data"]
        pagination = data.get("pagination")
    elif (
        isinstance(data, dict)
        and isinstance(data.get("data"), dict)
        and isinstance(data["data"].get("faqs"), list)
    ):
        nested = data["data"]
        raw_faqs = nested["faqs"]
        featured = nested.get("featured_faqs")
        pagination = nested.get("pagination")
    elif data:
        logger.warning("Unknown FAQ response format, returning empty listing")

    faqs = [FAQ.model_validate(item) for item in raw_faqs]
    if featured:
        featured_faqs = [FAQ.model_validate(item) for item in featured]
    else:
        featured_faqs = [faq for faq in faqs if faq.is_featured]

    if not raw_faqs:
        return FAQsResponse(pagination=Pagination(per_page=0))

    return FAQsResponse(
        faqs=faqs,
        featured_faqs=featured_faqs,
        pagination=_pagination_for(raw_faqs, pagination)
    )


class HelpService(BaseService):
    """
    Help center endpoints.

    Args:
        api: Shared ApiClient
        cache: Optional SmartCache for category/FAQ/stats reads
    """

    def __init__(self, api: ApiClient, cache: Optional[SmartCache] = None):
        super().__init__(api)
        self.cache = cache

    async def _cached(
        self,
        key: str,
        fetch: Callable[[], Awaitable[ApiResponse]],
        config_name: str,
        force: bool,
        message: str
    ) -> ApiResponse:
        if self.cache is None:
            return await fetch()

        async def fetcher() -> Any:
            return (await fetch()).unwrap()

        try:
            data = await self.cache.get_or_fetch(key, fetcher, CACHE_CONFIGS[config_name], force=force)
        except ApiError as e:
            return ApiResponse.failure(e.message, status=e.status, errors=e.errors)

        return ApiResponse(success=True, status=200, message=message, data=data)

    async def get_categories(self, include_inactive: bool = False, force_refresh: bool = False) -> ApiResponse:
        """FAQ categories; `include_inactive` is honoured for admins only"""
        params = {"include_inactive": True} if include_inactive else {}

        async def fetch() -> ApiResponse:
            return await self.api.get("/help/categories", params=build_query_params(params))

        key = SmartCache.generate_key("help:categories", params)
        return await self._cached(key, fetch, "USER_DATA", force_refresh, "Categories retrieved successfully")

    async def get_faqs(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        force_refresh: bool = False
    ) -> ApiResponse:
        """
        List published FAQs

        Args:
            filters: category, search, featured, sort_by, page, per_page

        Returns:
            ApiResponse whose data is a normalised FAQsResponse
        """
        params = build_query_params(filters)

        async def fetch() -> ApiResponse:
            response = await self.api.get("/help/faqs", params=params)
            if not response.success:
                return response

            try:
                listing = normalize_faqs_payload(response.data)
            except ValidationError as e:
                logger.error(f"Malformed FAQ listing: {e}")
                return ApiResponse.failure("Invalid response format", status=response.status)

            return ApiResponse(
                success=True,
                status=response.status,
                message=response.message or "FAQs retrieved successfully",
                data=listing
            )

        key = SmartCache.generate_key("help:faqs", dict(filters or {}))
        return await self._cached(key, fetch, "USER_DATA", force_refresh, "FAQs retrieved successfully")

    async def get_faq(self, faq_id: int) -> ApiResponse:
        """One FAQ with the caller's previous feedback, if any"""
        return await self.api.get(f"/help/faqs/{faq_id}")

    async def get_stats(self, force_refresh: bool = False) -> ApiResponse:
        async def fetch() -> ApiResponse:
            return await self.api.get("/help/stats")

        return await self._cached("help:stats", fetch, "STATS", force_refresh, "Stats retrieved successfully")

    async def provide_feedback(self, faq_id: int, is_helpful: bool, comment: Optional[str] = None) -> ApiResponse:
        """Vote a FAQ helpful or not"""
        payload: Dict[str, Any] = {"is_helpful": is_helpful}
        if comment and comment.strip():
            payload["comment"] = comment.strip()

        response = await self.api.post(f"/help/faqs/{faq_id}/feedback", payload)
        if response.success and self.cache is not None:
            self.cache.invalidate("help:faqs")
            self.cache.invalidate("help:stats")
        return response

    async def suggest_content(
        self,
        suggestion: ContentSuggestion,
        user_role: Optional[str] = None
    ) -> ApiResponse:
        """
        Suggest a new FAQ (counselors and admins)

        Returns:
            403 envelope for other roles, 422 for invalid content
        """
        if user_role is not None and user_role not in SUGGESTION_ROLES:
            return ApiResponse.failure(
                "Only counselors and administrators can suggest content.",
                status=403
            )

        payload = suggestion.model_dump(mode="json")
        errors = validate_content_suggestion(payload)
        if errors:
            return self.validation_failure(errors)

        payload["question"] = payload["question"].strip()
        payload["answer"] = payload["answer"].strip()

        response = await self.api.post("/help/suggest-content", payload)
        if response.success and self.cache is not None:
            self.cache.invalidate("help:faqs")
            self.cache.invalidate("help:stats")
        return response

    async def get_popular_faqs(self, limit: int = 5) -> ApiResponse:
        """Most helpful FAQs"""
        response = await self.get_faqs({"sort_by": "helpful", "per_page": limit}, force_refresh=True)
        if not response.success:
            return ApiResponse.failure(
                response.message or "Failed to fetch popular FAQs",
                status=response.status or 500,
                errors=response.errors
            )

        return ApiResponse(success=True, status=200, message=response.message, data=response.data.faqs)

    async def get_featured_faqs(self, limit: int = 3) -> ApiResponse:
        """Featured FAQs, falling back to filtering the listing by `is_featured`"""
        response = await self.get_faqs({"featured": True, "per_page": limit}, force_refresh=True)
        if not response.success:
            return ApiResponse.failure(
                response.message or "Failed to fetch featured FAQs",
                status=response.status or 500,
                errors=response.errors
            )

        listing: FAQsResponse = response.data
        featured = listing.featured_faqs or [faq for faq in listing.faqs if faq.is_featured]
        return ApiResponse(success=True, status=200, message=response.message, data=featured)
