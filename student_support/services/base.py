"""
Base Service

Shared plumbing for the backend services: the API client handle,
query-string building and the failed envelopes returned when input is
rejected before any request is sent.
"""
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

from student_support.models.schemas import ApiResponse
from student_support.services.api_client import ApiClient
from student_support.utils.validators import clean_params


def build_query_params(filters: Optional[Mapping[str, Any]]) -> List[Tuple[str, Any]]:
    """
    Turn filters into query parameters

    None, blank and 'all' values are dropped; list values are sent as
    repeated `key[]` parameters.
    """
    params: List[Tuple[str, Any]] = []
    for key, value in clean_params(dict(filters or {})).items():
        if isinstance(value, (list, tuple, set)):
            params.extend((f"{key}[]", item.value if isinstance(item, Enum) else item) for item in value)
        elif isinstance(value, bool):
            params.append((key, "true" if value else "false"))
        else:
            params.append((key, value))
    return params


class BaseService:
    """
    Base class for backend services.

    Args:
        api: Shared ApiClient instance
    """

    def __init__(self, api: ApiClient):
        self.api = api

    @staticmethod
    def validation_failure(errors: List[str]) -> ApiResponse:
        """422 envelope carrying joined validation messages"""
        return ApiResponse.failure(", ".join(errors), status=422, errors=errors)
