"""
Notification store

Optimistic bookkeeping of the notification list and unread counter.
The unread count never drops below zero.
"""
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from student_support.models.schemas import NotificationData, Pagination
from student_support.stores.base import Action, Store

LOADED = "loaded"
UNREAD_COUNT = "unread_count"
MARKED_READ = "marked_read"
MARKED_UNREAD = "marked_unread"
MARKED_ALL_READ = "marked_all_read"
DELETED = "deleted"
BULK = "bulk"
LOADING = "loading"
ERROR = "error"
CLEAR_ERROR = "clear_error"


@dataclass(frozen=True)
class NotificationState:
    notifications: Tuple[NotificationData, ...] = ()
    unread_count: int = 0
    pagination: Pagination = field(default_factory=Pagination)
    loading: bool = False
    error: Optional[str] = None


def _mark(notification: NotificationData, read: bool, read_at=None) -> NotificationData:
    return notification.model_copy(update={"read": read, "read_at": read_at if read else None})


def notification_reducer(state: NotificationState, action: Action) -> NotificationState:
    """
    Fold an action into a new notification state

    Payloads:
        loaded: {notifications, pagination, unread_count}
        unread_count: int
        marked_read / marked_unread / deleted: {id, read_at}
        marked_all_read: {read_at}
        bulk: {action, ids, read_at}

    Raises:
        ValueError: For an unknown action type
    """
    payload = action.payload

    if action.type == LOADED:
        notifications = tuple(payload["notifications"])
        unread = payload.get("unread_count")
        if unread is None:
            unread = sum(1 for n in notifications if not n.read)
        return replace(
            state,
            notifications=notifications,
            pagination=payload.get("pagination") or state.pagination,
            unread_count=max(0, unread),
            loading=False,
            error=None,
        )

    if action.type == UNREAD_COUNT:
        return replace(state, unread_count=max(0, int(payload)))

    if action.type == MARKED_READ:
        target = payload["id"]
        known = [n for n in state.notifications if n.id == target]
        # a notification outside the loaded page still counts against the badge
        decrement = not known or not known[0].read
        return replace(
            state,
            notifications=tuple(
                _mark(n, True, payload.get("read_at")) if n.id == target else n
                for n in state.notifications
            ),
            unread_count=max(0, state.unread_count - 1) if decrement else state.unread_count,
        )

    if action.type == MARKED_UNREAD:
        target = payload["id"]
        was_read = any(n.id == target and n.read for n in state.notifications)
        return replace(
            state,
            notifications=tuple(_mark(n, False) if n.id == target else n for n in state.notifications),
            unread_count=state.unread_count + 1 if was_read else state.unread_count,
        )

    if action.type == MARKED_ALL_READ:
        return replace(
            state,
            notifications=tuple(_mark(n, True, payload.get("read_at")) for n in state.notifications),
            unread_count=0,
        )

    if action.type == DELETED:
        target = payload["id"]
        was_unread = any(n.id == target and not n.read for n in state.notifications)
        return replace(
            state,
            notifications=tuple(n for n in state.notifications if n.id != target),
            unread_count=max(0, state.unread_count - 1) if was_unread else state.unread_count,
        )

    if action.type == BULK:
        ids = set(payload["ids"])
        bulk_action = payload["action"]
        affected = [n for n in state.notifications if n.id in ids]

        if bulk_action == "read":
            unread_marked = sum(1 for n in affected if not n.read)
            return replace(
                state,
                notifications=tuple(
                    _mark(n, True, payload.get("read_at")) if n.id in ids else n
                    for n in state.notifications
                ),
                unread_count=max(0, state.unread_count - unread_marked),
            )

        if bulk_action == "unread":
            read_marked = sum(1 for n in affected if n.read)
            return replace(
                state,
                notifications=tuple(_mark(n, False) if n.id in ids else n for n in state.notifications),
                unread_count=state.unread_count + read_marked,
            )

        if bulk_action == "delete":
            deleted_unread = sum(1 for n in affected if not n.read)
            return replace(
                state,
                notifications=tuple(n for n in state.notifications if n.id not in ids),
                unread_count=max(0, state.unread_count - deleted_unread),
            )

        raise ValueError(f"Unknown bulk action: {bulk_action}")

    if action.type == LOADING:
        return replace(state, loading=bool(payload))

    if action.type == ERROR:
        return replace(state, error=payload, loading=False)

    if action.type == CLEAR_ERROR:
        return replace(state, error=None)

    raise ValueError(f"Unknown notification action: {action.type}")


class NotificationStore(Store[NotificationState]):
    """Store preloaded with the notification reducer"""

    def __init__(self, initial_state: Optional[NotificationState] = None):
        super().__init__(notification_reducer, initial_state or NotificationState())
