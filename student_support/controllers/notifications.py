"""
Notifications Controller

Notification list and unread badge with optimistic local updates, plus
activity-aware polling of the unread count: polling only happens while
the client is visible, the user was active recently and no fetch is
running.
"""
import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from student_support.config import get_settings
from student_support.models.schemas import NotificationData, Pagination
from student_support.services.notification_service import NotificationService
from student_support.stores import notification_store
from student_support.stores.notification_store import NotificationState, NotificationStore
from student_support.utils.logger import get_logger
from student_support.utils.toast import Toaster

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ActivityTracker:
    """
    Visibility and last-activity bookkeeping

    Args:
        idle_timeout: Seconds without activity after which polling pauses
        clock: Monotonic time source in seconds
    """

    def __init__(self, idle_timeout: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        if idle_timeout is None:
            idle_timeout = get_settings().notification_idle_timeout
        self.idle_timeout = idle_timeout
        self._clock = clock
        self.visible = True
        self.last_activity = clock()

    def record_activity(self) -> None:
        self.last_activity = self._clock()
        self.visible = True

    def set_visible(self, visible: bool) -> bool:
        """
        Update visibility

        Returns:
            True when the client just became visible
        """
        became_visible = visible and not self.visible
        self.visible = visible
        if visible:
            self.last_activity = self._clock()
        return became_visible

    @property
    def is_recently_active(self) -> bool:
        return self._clock() - self.last_activity < self.idle_timeout


class NotificationsController:
    """
    Notification state for the current user

    Args:
        service: Notification service
        store: Notification store; a fresh one by default
        toaster: Sink for user-facing messages
        tracker: Activity tracker consulted by the poller
        poll_interval: Seconds between unread-count polls
        now: Wall-clock source used for `read_at`
    """

    def __init__(
        self,
        service: NotificationService,
        store: Optional[NotificationStore] = None,
        toaster: Optional[Toaster] = None,
        tracker: Optional[ActivityTracker] = None,
        poll_interval: Optional[float] = None,
        now: Callable[[], datetime] = utc_now
    ):
        self.service = service
        self.store = store or NotificationStore()
        self.toaster = toaster or Toaster()
        self.tracker = tracker or ActivityTracker()
        self.poll_interval = (
            get_settings().notification_poll_interval if poll_interval is None else poll_interval
        )
        self._now = now
        self._poll_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def state(self) -> NotificationState:
        return self.store.state

    @property
    def unread_count(self) -> int:
        return self.store.state.unread_count

    def _dispatch(self, action_type: str, payload: Any = None) -> None:
        if not self._closed:
            self.store.dispatch(action_type, payload)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    async def fetch_notifications(self, filters: Optional[Dict[str, Any]] = None) -> bool:
        """
        Load one page of notifications

        Args:
            filters: page, per_page, type, read_status, priority, search

        Returns:
            True on success; on failure the store carries the error
        """
        params = {"page": 1, "per_page": 20, **(filters or {})}
        self._dispatch(notification_store.CLEAR_ERROR)
        self._dispatch(notification_store.LOADING, True)

        response = await self.service.get_notifications(params)
        if not response.success:
            logger.error(f"Failed to fetch notifications: {response.message}")
            self._dispatch(notification_store.ERROR, response.message or "Failed to fetch notifications")
            return False

        try:
            notifications = [NotificationData.model_validate(n) for n in response.get("notifications", [])]
            pagination = Pagination.model_validate(response.get("pagination") or {})
        except ValidationError as e:
            logger.error(f"Malformed notification listing: {e}")
            self._dispatch(notification_store.ERROR, "Invalid response format")
            return False

        self._dispatch(notification_store.LOADED, {
            "notifications": notifications,
            "pagination": pagination,
            "unread_count": (response.get("counts") or {}).get("unread"),
        })
        self.tracker.record_activity()
        return True

    async def fetch_unread_count(self) -> Optional[int]:
        """Refresh the unread badge; failures are only logged"""
        response = await self.service.get_unread_count()
        if not response.success:
            logger.warning(f"Unread count refresh failed: {response.message}")
            return None

        count = response.get("unread_count")
        if count is None:
            return None
        self._dispatch(notification_store.UNREAD_COUNT, count)
        return self.unread_count

    async def refresh(self) -> bool:
        """Manual refresh of the list"""
        self.tracker.record_activity()
        return await self.fetch_notifications()

    def clear_error(self) -> None:
        self._dispatch(notification_store.CLEAR_ERROR)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _report_failure(self, action: str, message: str) -> bool:
        logger.error(f"Failed to {action}: {message}")
        self.toaster.error(f"Failed to {action}", message)
        return False

    async def mark_as_read(self, notification_id: int) -> bool:
        response = await self.service.mark_as_read(notification_id)
        if not response.success:
            return self._report_failure("mark notification as read", response.message)
        self._dispatch(notification_store.MARKED_READ, {"id": notification_id, "read_at": self._now()})
        return True

    async def mark_as_unread(self, notification_id: int) -> bool:
        response = await self.service.mark_as_unread(notification_id)
        if not response.success:
            return self._report_failure("mark notification as unread", response.message)
        self._dispatch(notification_store.MARKED_UNREAD, {"id": notification_id})
        return True

    async def mark_all_as_read(self) -> bool:
        response = await self.service.mark_all_as_read()
        if not response.success:
            return self._report_failure("mark all notifications as read", response.message)
        self._dispatch(notification_store.MARKED_ALL_READ, {"read_at": self._now()})
        return True

    async def delete_notification(self, notification_id: int) -> bool:
        response = await self.service.delete_notification(notification_id)
        if not response.success:
            return self._report_failure("delete notification", response.message)
        self._dispatch(notification_store.DELETED, {"id": notification_id})
        return True

    async def bulk_action(self, action: str, notification_ids: List[int]) -> bool:
        """Apply read/unread/delete to several notifications"""
        response = await self.service.bulk_action(action, notification_ids)
        if not response.success:
            return self._report_failure(f"apply bulk {action}", response.message)
        self._dispatch(notification_store.BULK, {
            "action": action,
            "ids": list(notification_ids),
            "read_at": self._now(),
        })
        return True

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def set_visible(self, visible: bool) -> None:
        """Becoming visible refreshes the unread count right away"""
        if self.tracker.set_visible(visible):
            await self.fetch_unread_count()

    async def poll_once(self) -> bool:
        """
        One polling tick

        Returns:
            True if the unread count was fetched
        """
        if self._closed:
            return False
        if not self.tracker.visible or not self.tracker.is_recently_active or self.state.loading:
            logger.debug("Skipping notification poll (inactive or hidden)")
            return False

        await self.fetch_unread_count()
        return True

    def start_polling(self) -> None:
        if self._closed or self.poll_interval <= 0:
            return
        if self._poll_task is not None and not self._poll_task.done():
            return
        self._poll_task = asyncio.ensure_future(self._poll_loop())

    async def _poll_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.poll_interval)
            await self.poll_once()

    async def stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def aclose(self) -> None:
        """Stop polling; responses arriving afterwards are ignored"""
        self._closed = True
        await self.stop_polling()
