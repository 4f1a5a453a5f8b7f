"""
Input validation utilities

Validators return a list of human-readable errors; an empty list means
the input is acceptable. Services join the errors into a single 422
envelope message so nothing invalid reaches the network.
"""
from enum import Enum
from typing import Any, Dict, List, Mapping

SEVERITY_LEVELS = ("low", "medium", "high", "critical")

SUBJECT_MAX_LENGTH = 255
DESCRIPTION_MIN_LENGTH = 20
DESCRIPTION_MAX_LENGTH = 5000
DELETION_REASON_MIN_LENGTH = 10
RESPONSE_MIN_LENGTH = 5
DETECTION_TEXT_MIN_LENGTH = 5


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def validate_ticket_data(data: Mapping[str, Any]) -> List[str]:
    """
    Validate a new ticket

    Args:
        data: Mapping with subject, description and category

    Returns:
        List of error messages
    """
    errors = []

    subject = _text(data, "subject")
    if not subject.strip():
        errors.append("Subject is required")
    elif len(subject) > SUBJECT_MAX_LENGTH:
        errors.append(f"Subject must not exceed {SUBJECT_MAX_LENGTH} characters")

    description = _text(data, "description")
    if not description.strip():
        errors.append("Description is required")
    elif len(description) < DESCRIPTION_MIN_LENGTH:
        errors.append(f"Description must be at least {DESCRIPTION_MIN_LENGTH} characters long")
    elif len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(f"Description must not exceed {DESCRIPTION_MAX_LENGTH} characters")

    if not data.get("category") and not data.get("category_id"):
        errors.append("Category is required")

    return errors


def validate_deletion_reason(reason: str) -> List[str]:
    """Deletion needs a written reason of at least 10 characters"""
    reason = (reason or "").strip()
    if not reason:
        return ["Deletion reason is required"]
    if len(reason) < DELETION_REASON_MIN_LENGTH:
        return [f"Deletion reason must be at least {DELETION_REASON_MIN_LENGTH} characters long"]
    return []


def validate_response_message(message: str) -> List[str]:
    """Ticket responses need at least 5 non-blank characters"""
    message = (message or "").strip()
    if not message:
        return ["Response message is required"]
    if len(message) < RESPONSE_MIN_LENGTH:
        return [f"Response must be at least {RESPONSE_MIN_LENGTH} characters long"]
    return []


def validate_keyword_data(data: Mapping[str, Any]) -> List[str]:
    """
    Validate a crisis keyword create/import payload

    Args:
        data: Mapping with keyword, severity_level, severity_weight, category_ids

    Returns:
        List of error messages
    """
    errors = []

    keyword = _text(data, "keyword").strip()
    if len(keyword) < 2:
        errors.append("Keyword must be at least 2 characters long")
    if len(keyword) > 100:
        errors.append("Keyword must not exceed 100 characters")

    severity_level = data.get("severity_level")
    if hasattr(severity_level, "value"):
        severity_level = severity_level.value
    if severity_level not in SEVERITY_LEVELS:
        errors.append("Valid severity level is required")

    weight = data.get("severity_weight")
    if not isinstance(weight, (int, float)) or isinstance(weight, bool) or not 1 <= weight <= 100:
        errors.append("Severity weight must be between 1 and 100")

    if not isinstance(data.get("category_ids"), (list, tuple)):
        errors.append("Category IDs must be an array")

    return errors


def validate_content_suggestion(data: Mapping[str, Any]) -> List[str]:
    """Validate FAQ content suggested by staff"""
    errors = []

    question = _text(data, "question").strip()
    answer = _text(data, "answer").strip()

    if not question:
        errors.append("Question is required")
    if not answer:
        errors.append("Answer is required")
    if not data.get("category_id"):
        errors.append("Category is required")

    if question and len(question) < 10:
        errors.append("Question must be at least 10 characters")
    if answer and len(answer) < 20:
        errors.append("Answer must be at least 20 characters")

    return errors


def sanitize_input(text: str, max_length: int = 10000) -> str:
    """
    Sanitize user input

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    text = text.replace('\x00', '')

    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()


def clean_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop filter values that mean "no filter"

    None, empty strings and the 'all' sentinel are removed; strings are
    trimmed.
    """
    cleaned = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, str):
            value = value.strip()
            if value == "" or value == "all":
                continue
        cleaned[key] = value
    return cleaned
