"""
Utility functions
"""
from student_support.utils.logger import get_logger
from student_support.utils.toast import Toast, Toaster
from student_support.utils.validators import (
    validate_ticket_data,
    validate_deletion_reason,
    validate_response_message,
    validate_keyword_data,
    validate_content_suggestion,
    sanitize_input,
    clean_params,
)

__all__ = [
    "get_logger",
    "Toast",
    "Toaster",
    "validate_ticket_data",
    "validate_deletion_reason",
    "validate_response_message",
    "validate_keyword_data",
    "validate_content_suggestion",
    "sanitize_input",
    "clean_params",
]
