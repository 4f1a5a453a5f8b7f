"""
Exceptions raised by the Student Support client
"""
from typing import Any, Optional


class ApiError(Exception):
    """A backend call finished with `success: false`"""

    def __init__(self, message: str, status: int = 0, errors: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.errors = errors

    def __str__(self) -> str:
        if self.status:
            return f"{self.message} (status {self.status})"
        return self.message


class CacheConfigError(ValueError):
    """Cache time windows are missing or out of order"""
