"""
pytest configuration and shared fixtures
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from student_support.cache.smart_cache import SmartCache
from student_support.models.schemas import ApiResponse, Ticket
from student_support.services.api_client import ApiClient
from student_support.utils.toast import Toaster

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced time source"""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_ticket(ticket_id: int, **overrides: Any) -> Ticket:
    """Ticket with sensible defaults; timestamps are relative to NOW"""
    data: Dict[str, Any] = {
        "id": ticket_id,
        "ticket_number": f"ST2024{ticket_id:04d}",
        "user_id": 100,
        "subject": f"Ticket {ticket_id}",
        "description": "I need some help with my coursework schedule",
        "category": "academic",
        "category_id": 1,
        "status": "Open",
        "priority": "Medium",
        "created_at": (NOW - timedelta(days=2)).isoformat(),
        "updated_at": (NOW - timedelta(hours=ticket_id)).isoformat(),
    }
    data.update(overrides)
    return Ticket.model_validate(data)


def ok(data: Any = None, message: str = "OK", status: int = 200) -> ApiResponse:
    return ApiResponse(success=True, status=status, message=message, data=data)


def failed(message: str, status: int = 500) -> ApiResponse:
    return ApiResponse.failure(message, status=status)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> SmartCache:
    return SmartCache(clock=clock)


@pytest.fixture
def toaster() -> Toaster:
    return Toaster()


@pytest.fixture
def mock_api() -> MagicMock:
    """ApiClient stand-in whose verbs are AsyncMocks returning success"""
    api = MagicMock(spec=ApiClient)
    for verb in ("get", "post", "put", "patch", "delete"):
        setattr(api, verb, AsyncMock(return_value=ok({})))
    return api


# ============================================================================
# In-process fake backend
# ============================================================================

def build_fake_backend() -> FastAPI:
    app = FastAPI()
    app.state.calls = []

    @app.get("/api/health")
    async def health():
        return {"success": True, "message": "healthy", "data": {"status": "ok"}}

    @app.get("/api/tickets")
    async def list_tickets(request: Request):
        app.state.calls.append(list(request.query_params.multi_items()))
        return {
            "success": True,
            "message": "Tickets retrieved successfully",
            "data": {
                "tickets": [{"id": 1, "subject": "Exam stress", "status": "Open"}],
                "pagination": {"current_page": 1, "last_page": 1, "per_page": 20, "total": 1},
            },
        }

    @app.post("/api/tickets", status_code=201)
    async def create_ticket(request: Request):
        body = await request.json()
        return {"success": True, "message": "Ticket created", "data": {"ticket": {"id": 7, **body}}}

    @app.post("/api/tickets/rejected")
    async def rejected():
        return JSONResponse(
            status_code=422,
            content={"success": False, "message": "Validation failed", "errors": {"subject": ["required"]}},
        )

    @app.get("/api/whoami")
    async def whoami(request: Request):
        return {"success": True, "data": {"authorization": request.headers.get("authorization")}}

    @app.get("/api/raw-list")
    async def raw_list():
        return [1, 2, 3]

    @app.get("/api/raw-missing")
    async def raw_missing():
        return JSONResponse(status_code=404, content={"message": "Ticket not found"})

    @app.get("/api/download")
    async def download():
        return PlainTextResponse("keyword,severity_level")

    @app.get("/api/server-error")
    async def server_error():
        return PlainTextResponse("boom", status_code=502)

    @app.get("/api/broken-json")
    async def broken_json():
        return Response(content="{not json", media_type="application/json")

    return app


@pytest.fixture
def fake_backend() -> FastAPI:
    return build_fake_backend()


@pytest.fixture
def api_client(fake_backend) -> ApiClient:
    transport = httpx.ASGITransport(app=fake_backend)
    return ApiClient(base_url="http://testserver/api", token="test-token", transport=transport)


def counting_transport(calls: List[httpx.Request], payload: Dict[str, Any]) -> httpx.MockTransport:
    """Transport that records requests and answers every one with `payload`"""

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        await asyncio.sleep(0)
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)
