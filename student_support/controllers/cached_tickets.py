"""
Cached Tickets Controller

Loads the ticket list through the SmartCache, keeps loading/error/stale
state, refreshes on a timer and falls back to cached data when the
backend is unreachable. Ticket mutations go through `perform_action`,
which invalidates the cached lists on success.
"""
import asyncio
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from student_support.cache.smart_cache import (
    CACHE_CONFIGS,
    SmartCache,
    invalidate_ticket_cache,
    tickets_list_key,
)
from student_support.config import get_settings
from student_support.exceptions import ApiError
from student_support.models.schemas import ApiResponse, Pagination, Ticket
from student_support.services.ticket_service import TicketService
from student_support.stores import ticket_store
from student_support.stores.ticket_store import TicketStore
from student_support.utils.logger import get_logger
from student_support.utils.toast import Toaster

logger = get_logger(__name__)


@dataclass(frozen=True)
class CachedTicketsState:
    tickets: Tuple[Ticket, ...] = ()
    loading: bool = False
    error: Optional[str] = None
    is_stale: bool = False
    last_fetch: float = 0.0


class CachedTicketsController:
    """
    Ticket list backed by the cache

    Args:
        cache: Shared SmartCache instance
        service: Ticket service used by the fetcher and the actions
        store: Ticket store that receives every loaded list
        toaster: Sink for user-facing messages
        filters: List filters merged over the default paging/sorting
        refresh_interval: Seconds between automatic refreshes
        clock: Wall-clock source for `last_fetch`
    """

    def __init__(
        self,
        cache: SmartCache,
        service: TicketService,
        store: Optional[TicketStore] = None,
        toaster: Optional[Toaster] = None,
        filters: Optional[Dict[str, Any]] = None,
        refresh_interval: Optional[float] = None,
        clock: Callable[[], float] = time.time
    ):
        settings = get_settings()
        self.cache = cache
        self.service = service
        self.store = store or TicketStore()
        self.toaster = toaster or Toaster()
        self.filters = {
            **ticket_store.DEFAULT_FILTERS,
            "per_page": settings.tickets_page_size,
            **(filters or {}),
        }
        self.refresh_interval = (
            settings.tickets_refresh_interval if refresh_interval is None else refresh_interval
        )
        self._clock = clock
        self._state = CachedTicketsState()
        self._refresh_task: Optional[asyncio.Task] = None
        self._closed = False
        # bumped by every successful mutation
        self._mutations = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def cache_key(self) -> str:
        return tickets_list_key(self.filters)

    @property
    def state(self) -> CachedTicketsState:
        return self._state

    @property
    def tickets(self) -> Tuple[Ticket, ...]:
        return self._state.tickets

    @property
    def has_cached_data(self) -> bool:
        return self.cache.get(self.cache_key) is not None

    @property
    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.get_stats()

    def _update(self, **changes) -> None:
        if self._closed:
            return
        self._state = replace(self._state, **changes)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def _load_tickets(self) -> Tuple[Ticket, ...]:
        """
        Fetcher handed to the cache; raises on a failed envelope

        A list fetched across a successful mutation is returned but not
        pushed to the store, which already holds the mutated ticket.
        """
        mutations = self._mutations
        logger.info(f"Fetching tickets from API: {self.filters}")
        data = (await self.service.get_tickets(self.filters)).unwrap() or {}

        try:
            tickets = tuple(Ticket.model_validate(item) for item in data.get("tickets", []))
            pagination = Pagination.model_validate(data.get("pagination") or {})
        except ValidationError as e:
            raise ApiError("Invalid response format", errors=e.errors()) from e

        if not self._closed and mutations == self._mutations:
            self.store.dispatch(ticket_store.TICKETS_LOADED, {
                "tickets": tickets,
                "pagination": pagination,
                "fetched_at": self._clock(),
            })
        return tickets

    async def fetch(self, force: bool = False) -> Tuple[Ticket, ...]:
        """
        Load the ticket list

        Args:
            force: Bypass the cache and hit the backend

        Returns:
            Tickets now held by the controller; on failure the previous
            (or cached) list
        """
        if self._closed:
            return self._state.tickets

        key = self.cache_key
        config = CACHE_CONFIGS["TICKETS_LIST"]
        cached = self.cache.get(key, config)

        if force or cached is None:
            self._update(loading=True, error=None)
            self.store.dispatch(ticket_store.LOADING, True)

        try:
            tickets = await self.cache.get_or_fetch(key, self._load_tickets, config, force=force, fallback=not force)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch tickets: {e}")
            message = getattr(e, "message", None) or str(e) or "Failed to fetch tickets"
            return self._fallback(self.cache.get(key, config), message)

        self._update(tickets=tuple(tickets), loading=False, error=None, is_stale=False, last_fetch=self._clock())
        return self._state.tickets

    def _fallback(self, cached: Optional[Tuple[Ticket, ...]], message: str) -> Tuple[Ticket, ...]:
        if self._closed:
            return self._state.tickets

        if cached is not None:
            self._update(tickets=tuple(cached), loading=False, is_stale=True, error=None)
            self.store.dispatch(ticket_store.LOADING, False)
            self.toaster.info("Using cached data", "Unable to fetch latest tickets, showing cached data")
        else:
            self._update(loading=False, error=message)
            self.store.dispatch(ticket_store.ERROR, message)
        return self._state.tickets

    async def refresh(self) -> Tuple[Ticket, ...]:
        """Manual refresh; always goes to the backend"""
        return await self.fetch(force=True)

    def invalidate_cache(self) -> None:
        invalidate_ticket_cache(self.cache)
        self._update(is_stale=False)

    # ------------------------------------------------------------------
    # Auto refresh
    # ------------------------------------------------------------------

    def start_auto_refresh(self) -> None:
        """Refresh every `refresh_interval` seconds until stopped"""
        if self.refresh_interval <= 0 or self._closed:
            return
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        self._refresh_task = asyncio.ensure_future(self._auto_refresh_loop())

    async def _auto_refresh_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.refresh_interval)
            logger.debug("Auto-refreshing tickets")
            await self.fetch(force=False)

    async def stop(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def aclose(self) -> None:
        """Stop refreshing; results arriving afterwards are ignored"""
        self._closed = True
        await self.stop()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def perform_action(
        self,
        action_type: str,
        action: Callable[[], Awaitable[ApiResponse]],
        invalidate_pattern: Optional[str] = "tickets"
    ) -> Optional[ApiResponse]:
        """
        Run a ticket mutation and invalidate the cache on success

        Args:
            action_type: Human-readable name used in toasts
            action: Coroutine function returning an ApiResponse
            invalidate_pattern: Cache key pattern to drop; None drops
                every ticket entry

        Returns:
            The successful response, or None on failure
        """
        logger.info(f"Performing action: {action_type}")
        try:
            response = await action()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Action failed: {action_type}: {e}")
            self.toaster.error("Error", str(e) or f"Failed to {action_type}")
            return None

        if not response.success:
            logger.error(f"Action failed: {action_type}: {response.message}")
            self.toaster.error("Error", response.message or f"Failed to {action_type}")
            return None

        self._mutations += 1
        if invalidate_pattern:
            self.cache.invalidate(invalidate_pattern)
        else:
            invalidate_ticket_cache(self.cache)

        self.toaster.success("Success", f"{action_type} completed successfully")
        return response

    async def update_ticket(self, ticket_id: int, updates: Dict[str, Any]) -> Optional[ApiResponse]:
        response = await self.perform_action(
            "update ticket",
            lambda: self.service.update_ticket(ticket_id, updates)
        )
        ticket = response.get("ticket") if response else None
        if ticket:
            self.store.dispatch(ticket_store.TICKET_UPDATED, Ticket.model_validate(ticket))
        return response

    async def delete_ticket(self, ticket_id: int, reason: str, notify_user: bool = False) -> Optional[ApiResponse]:
        response = await self.perform_action(
            "delete ticket",
            lambda: self.service.delete_ticket(ticket_id, reason, notify_user)
        )
        if response:
            self.store.dispatch(ticket_store.TICKET_DELETED, ticket_id)
        return response

    async def assign_ticket(self, ticket_id: int, user_id: Optional[int], reason: str = "") -> Optional[ApiResponse]:
        return await self.perform_action(
            "assign ticket",
            lambda: self.service.assign_ticket(ticket_id, user_id, reason)
        )

    async def bulk_assign(self, ticket_ids: List[int], user_id: int, reason: str = "") -> Optional[ApiResponse]:
        response = await self.perform_action(
            "bulk assign",
            lambda: self.service.bulk_assign(ticket_ids, user_id, reason)
        )
        if response:
            self.store.dispatch(ticket_store.CLEAR_SELECTION)
        return response
