"""
User-facing message sink

Controllers report outcomes here instead of raising. Messages are
logged and kept in memory so that callers (and tests) can inspect them.
"""
from dataclasses import dataclass
from typing import List, Optional

from student_support.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Toast:
    """A single user-facing message"""
    level: str
    title: str
    description: str = ""


class Toaster:
    """In-memory toast collector"""

    def __init__(self, limit: int = 100):
        self.limit = limit
        self.toasts: List[Toast] = []

    def _push(self, level: str, title: str, description: str) -> Toast:
        toast = Toast(level=level, title=title, description=description)
        self.toasts.append(toast)
        del self.toasts[:-self.limit]
        return toast

    def success(self, title: str, description: str = "") -> Toast:
        logger.info(f"Toast: {title} {description}".rstrip())
        return self._push("success", title, description)

    def error(self, title: str, description: str = "") -> Toast:
        logger.error(f"Toast: {title} {description}".rstrip())
        return self._push("error", title, description)

    def info(self, title: str, description: str = "") -> Toast:
        logger.info(f"Toast: {title} {description}".rstrip())
        return self._push("info", title, description)

    @property
    def last(self) -> Optional[Toast]:
        return self.toasts[-1] if self.toasts else None

    def messages(self, level: Optional[str] = None) -> List[str]:
        """Titles of recorded toasts, optionally of one level"""
        return [t.title for t in self.toasts if level is None or t.level == level]

    def clear(self) -> None:
        self.toasts.clear()
