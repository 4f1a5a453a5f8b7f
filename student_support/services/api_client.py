"""
Student Support API Client

Thin httpx wrapper around the support backend REST API:
- bearer-token authentication
- normalisation of every reply into an `ApiResponse` envelope
- transport errors turned into failed envelopes, never raised
- concurrent identical GET requests share one network call
"""
import asyncio
import json
from typing import Any, Dict, Optional

import httpx

from student_support.config import get_settings
from student_support.models.schemas import ApiResponse
from student_support.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."


class ApiClient:
    """
    Async REST client returning `ApiResponse` envelopes

    Args:
        base_url: Backend base URL (defaults to settings.API_URL)
        token: Bearer token (defaults to settings.api_token)
        transport: Optional httpx transport (e.g. ASGITransport in tests)
        client: Pre-built httpx.AsyncClient; the caller keeps ownership
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = (base_url or settings.API_URL).rstrip("/")
        self.token = settings.api_token if token is None else token
        self.timeout = timeout or settings.api_timeout
        self.read_timeout = read_timeout or settings.api_read_timeout
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
            transport=transport
        )
        self._pending_gets: Dict[str, asyncio.Future] = {}

    def set_token(self, token: Optional[str]) -> None:
        """Replace the bearer token used by later requests"""
        self.token = token or ""

    def _auth_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    @staticmethod
    def _handle_response(response: httpx.Response) -> ApiResponse:
        """Convert an HTTP response into the standard envelope"""
        status = response.status_code
        content_type = response.headers.get("content-type", "")

        # File downloads and other non-JSON bodies
        if "application/json" not in content_type:
            if response.is_success:
                return ApiResponse(
                    success=True,
                    status=status,
                    message="Request successful",
                    data=response.content
                )
            return ApiResponse.failure(f"Request failed with status {status}", status=status)

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from backend: {e}")
            return ApiResponse.failure("Invalid response format", status=status)

        # Backend replied without an envelope
        if not isinstance(body, dict) or "success" not in body:
            if response.is_success:
                return ApiResponse(success=True, status=status, message="Request successful", data=body)
            message = body.get("message") if isinstance(body, dict) else None
            return ApiResponse.failure(message or f"HTTP {status}", status=status, errors=body)

        return ApiResponse(
            success=bool(body.get("success")),
            status=status,
            message=body.get("message") or "",
            data=body.get("data"),
            errors=body.get("errors")
        )

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Any] = None,
        data: Optional[Any] = None,
        timeout: Optional[float] = None
    ) -> ApiResponse:
        """
        Send one request and normalise the outcome

        Args:
            method: HTTP method
            endpoint: Path relative to the base URL (e.g. "/tickets")
            params: Query parameters
            data: JSON body
            timeout: Seconds before the request is abandoned

        Returns:
            ApiResponse (failed envelope on transport errors)
        """
        timeout = timeout or self.timeout

        try:
            response = await self._client.request(
                method=method,
                url=endpoint,
                params=params,
                json=data,
                headers=self._auth_headers(),
                timeout=timeout
            )
        except httpx.TimeoutException as e:
            logger.error(f"{method} {endpoint} timed out after {timeout:g}s: {e}")
            return ApiResponse.failure(
                f"Request timeout after {timeout:g} seconds. Please try again.",
                errors=str(e)
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            return ApiResponse.failure(NETWORK_ERROR_MESSAGE, errors=str(e))

        result = self._handle_response(response)
        if not result.success:
            logger.warning(f"{method} {endpoint} -> {result.status}: {result.message}")
        return result

    @staticmethod
    def _dedupe_key(endpoint: str, params: Optional[Any]) -> str:
        if not params:
            return f"GET:{endpoint}"
        if isinstance(params, dict):
            params = sorted(params.items())
        return f"GET:{endpoint}:{json.dumps(params, default=str)}"

    def _clear_pending_get(self, key: str, future: asyncio.Future) -> None:
        if self._pending_gets.get(key) is future:
            del self._pending_gets[key]

    async def get(self, endpoint: str, params: Optional[Any] = None) -> ApiResponse:
        """GET; identical in-flight requests are shared"""
        key = self._dedupe_key(endpoint, params)

        pending = self._pending_gets.get(key)
        if pending is None:
            pending = asyncio.ensure_future(
                self._make_request("GET", endpoint, params=params, timeout=self.read_timeout)
            )
            self._pending_gets[key] = pending
            pending.add_done_callback(lambda done, k=key: self._clear_pending_get(k, done))
        else:
            logger.debug(f"Deduplicating request: {key}")

        return await asyncio.shield(pending)

    async def post(self, endpoint: str, data: Optional[Any] = None) -> ApiResponse:
        return await self._make_request("POST", endpoint, data=data)

    async def put(self, endpoint: str, data: Optional[Any] = None) -> ApiResponse:
        return await self._make_request("PUT", endpoint, data=data)

    async def patch(self, endpoint: str, data: Optional[Any] = None) -> ApiResponse:
        return await self._make_request("PATCH", endpoint, data=data)

    async def delete(self, endpoint: str, data: Optional[Any] = None) -> ApiResponse:
        return await self._make_request("DELETE", endpoint, data=data, timeout=self.read_timeout)

    async def health_check(self) -> bool:
        """True when the backend health endpoint answers with success"""
        response = await self.get("/health")
        return response.success

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it"""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
