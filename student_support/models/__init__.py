"""
Pydantic models for the Student Support client
"""

from student_support.models.schemas import (
    # Enums
    TicketStatus,
    Priority,
    AutoAssigned,
    SeverityLevel,
    ResponseVisibility,
    NotificationType,
    NotificationPriority,
    CLOSED_STATUSES,

    # Tickets
    UserSummary,
    DetectedKeyword,
    TicketAttachment,
    TicketResponse,
    TicketCategory,
    Ticket,
    TicketCreate,
    TicketUpdate,
    Pagination,

    # Crisis keywords
    CategoryRef,
    CrisisKeyword,
    CrisisKeywordCreate,
    CrisisKeywordUpdate,
    TestDetectionResult,
    CrisisKeywordStats,

    # Help center
    HelpCategory,
    FAQ,
    FAQsResponse,
    FAQFeedback,
    HelpStats,
    ContentSuggestion,

    # Notifications
    NotificationData,

    # Assignment
    AssignmentOption,
    AssignmentTicketInfo,
    AssignmentData,

    # Derived views
    TicketStats,
    TicketPermissions,
    PageInfo,

    # Envelope
    ApiResponse,
)

__all__ = [
    "TicketStatus",
    "Priority",
    "AutoAssigned",
    "SeverityLevel",
    "ResponseVisibility",
    "NotificationType",
    "NotificationPriority",
    "CLOSED_STATUSES",
    "UserSummary",
    "DetectedKeyword",
    "TicketAttachment",
    "TicketResponse",
    "TicketCategory",
    "Ticket",
    "TicketCreate",
    "TicketUpdate",
    "Pagination",
    "CategoryRef",
    "CrisisKeyword",
    "CrisisKeywordCreate",
    "CrisisKeywordUpdate",
    "TestDetectionResult",
    "CrisisKeywordStats",
    "HelpCategory",
    "FAQ",
    "FAQsResponse",
    "FAQFeedback",
    "HelpStats",
    "ContentSuggestion",
    "NotificationData",
    "AssignmentOption",
    "AssignmentTicketInfo",
    "AssignmentData",
    "TicketStats",
    "TicketPermissions",
    "PageInfo",
    "ApiResponse",
]
