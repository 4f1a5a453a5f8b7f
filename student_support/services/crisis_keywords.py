"""
Crisis Keywords Service

Admin management of the keywords used for crisis detection:
CRUD, bulk actions, detection testing, import/export and statistics.
Payloads are validated before they are sent; rejected input comes back
as a 422 envelope.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from student_support.crisis.scoring import write_keywords_csv
from student_support.models.schemas import (
    ApiResponse,
    CrisisKeywordCreate,
    CrisisKeywordUpdate,
)
from student_support.services.base import BaseService, build_query_params
from student_support.utils.logger import get_logger
from student_support.utils.validators import (
    DETECTION_TEXT_MIN_LENGTH,
    validate_keyword_data,
)

logger = get_logger(__name__)

BASE_PATH = "/admin/crisis-keywords"
BULK_ACTIONS = ("activate", "deactivate", "delete", "update_severity")
EXPORT_FORMATS = ("csv", "json")

KeywordPayload = Union[CrisisKeywordCreate, Dict[str, Any]]


def _as_dict(data: KeywordPayload) -> Dict[str, Any]:
    if isinstance(data, CrisisKeywordCreate):
        return data.model_dump(mode="json")
    return dict(data)


class CrisisKeywordsService(BaseService):
    """Crisis keyword admin endpoints"""

    async def get_keywords(self, **params) -> ApiResponse:
        """
        List keywords

        Args:
            **params: severity_level, is_active, category_id, search,
                page, per_page, sort_by, sort_direction, with_categories

        Returns:
            ApiResponse with {keywords, pagination, stats}
        """
        logger.info(f"Fetching crisis keywords: {params}")
        return await self.api.get(BASE_PATH, params=build_query_params(params))

    async def create_keyword(self, data: KeywordPayload) -> ApiResponse:
        payload = _as_dict(data)

        errors = validate_keyword_data(payload)
        if errors:
            return self.validation_failure(errors)

        payload["keyword"] = payload["keyword"].strip()
        logger.info(f"Creating crisis keyword: {payload['keyword']}")
        return await self.api.post(BASE_PATH, payload)

    async def update_keyword(self, keyword_id: int, data: CrisisKeywordUpdate) -> ApiResponse:
        """Partial update; only the provided fields are checked"""
        if data.keyword is not None and not 2 <= len(data.keyword.strip()) <= 100:
            return self.validation_failure(["Keyword must be between 2 and 100 characters"])

        if data.severity_weight is not None and not 1 <= data.severity_weight <= 100:
            return self.validation_failure(["Severity weight must be between 1 and 100"])

        payload = data.model_dump(mode="json", exclude_none=True)
        logger.info(f"Updating crisis keyword {keyword_id}: {list(payload)}")
        return await self.api.put(f"{BASE_PATH}/{keyword_id}", payload)

    async def delete_keyword(self, keyword_id: int) -> ApiResponse:
        logger.info(f"Deleting crisis keyword {keyword_id}")
        return await self.api.delete(f"{BASE_PATH}/{keyword_id}")

    async def bulk_action(
        self,
        action: str,
        keyword_ids: List[int],
        severity_level: Optional[str] = None,
        severity_weight: Optional[int] = None
    ) -> ApiResponse:
        """
        Apply one action to several keywords

        Args:
            action: activate, deactivate, delete or update_severity
            keyword_ids: Selected keywords (at least one)
            severity_level: New level for update_severity
            severity_weight: New weight for update_severity
        """
        if not keyword_ids:
            return self.validation_failure(["At least one keyword must be selected"])
        if action not in BULK_ACTIONS:
            return self.validation_failure([f"Invalid bulk action: {action}"])

        payload: Dict[str, Any] = {"action": action, "keyword_ids": list(keyword_ids)}
        if severity_level is not None:
            payload["severity_level"] = severity_level
        if severity_weight is not None:
            payload["severity_weight"] = severity_weight

        logger.info(f"Bulk {action} on {len(keyword_ids)} crisis keywords")
        return await self.api.post(f"{BASE_PATH}/bulk-action", payload)

    async def test_detection(self, text: str, category_id: Optional[int] = None) -> ApiResponse:
        """Run the backend crisis detector on sample text"""
        if not text or len(text.strip()) < DETECTION_TEXT_MIN_LENGTH:
            return self.validation_failure(
                [f"Text must be at least {DETECTION_TEXT_MIN_LENGTH} characters long for testing"]
            )

        payload: Dict[str, Any] = {"text": text}
        if category_id is not None:
            payload["category_id"] = category_id

        return await self.api.post(f"{BASE_PATH}/test-detection", payload)

    async def import_keywords(self, keywords: List[KeywordPayload], overwrite_existing: bool = False) -> ApiResponse:
        """
        Import keywords in bulk

        Every keyword is validated first; the first invalid one rejects
        the whole import.
        """
        if not keywords:
            return self.validation_failure(["At least one keyword is required for import"])

        payloads = [_as_dict(keyword) for keyword in keywords]
        for payload in payloads:
            errors = validate_keyword_data(payload)
            if errors:
                return ApiResponse.failure(
                    f"Invalid keyword \"{payload.get('keyword', '')}\": {', '.join(errors)}",
                    status=422,
                    errors=errors
                )

        logger.info(f"Importing {len(payloads)} crisis keywords")
        return await self.api.post(
            f"{BASE_PATH}/import",
            {"keywords": payloads, "overwrite_existing": overwrite_existing}
        )

    async def export_keywords(
        self,
        format: str = "csv",
        path: Optional[Union[str, Path]] = None,
        **filters
    ) -> ApiResponse:
        """
        Export keywords

        Args:
            format: "csv" or "json"
            path: File or directory to write the CSV to; nothing is
                written without it
            **filters: severity_level, is_active, category_id

        Returns:
            ApiResponse with {keywords, filename, count, exported_at}
        """
        if format not in EXPORT_FORMATS:
            return self.validation_failure([f"Unsupported export format: {format}"])

        params = [("format", format)] + build_query_params(filters)
        response = await self.api.get(f"{BASE_PATH}/export", params=params)

        keywords = response.get("keywords")
        if response.success and format == "csv" and path is not None and keywords:
            target = Path(path)
            if target.is_dir() and response.get("filename"):
                target = target / response.get("filename")
            write_keywords_csv(keywords, target)

        return response

    async def get_stats(self) -> ApiResponse:
        return await self.api.get(f"{BASE_PATH}/stats")

    async def health_check(self) -> bool:
        response = await self.api.get("/health")
        return response.success
