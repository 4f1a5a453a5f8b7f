"""
Pydantic models for the Student Support backend

This module mirrors the JSON shapes issued by the support backend.
The backend owns every invariant, so models are permissive: unknown
fields are kept (extra="allow") and most fields have defaults.

Sections:
- Enums (ticket status/priority, crisis severity, notification kinds)
- Tickets, responses, attachments, categories
- Crisis keywords and detection results
- Help center (categories, FAQs, feedback, suggestions)
- Notifications
- Assignment options
- Derived client-side views (stats, permissions, page info)
- Standard response envelope
"""
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Union

from pydantic import BaseModel, Field, ConfigDict

from student_support.exceptions import ApiError


# ============================================================================
# Enums
# ============================================================================

class TicketStatus(str, Enum):
    """Valid ticket statuses"""
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class Priority(str, Enum):
    """Valid ticket priorities"""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class AutoAssigned(str, Enum):
    """How a ticket got its current assignee"""
    YES = "yes"
    MANUAL = "manual"
    NO = "no"


class SeverityLevel(str, Enum):
    """Crisis keyword severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ResponseVisibility(str, Enum):
    """Audience of a ticket response"""
    ALL = "all"
    COUNSELORS = "counselors"
    ADMINS = "admins"


class NotificationType(str, Enum):
    """Notification categories"""
    APPOINTMENT = "appointment"
    TICKET = "ticket"
    SYSTEM = "system"
    REMINDER = "reminder"


class NotificationPriority(str, Enum):
    """Notification priorities"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


CLOSED_STATUSES = (TicketStatus.RESOLVED, TicketStatus.CLOSED)


class _BackendModel(BaseModel):
    """Base for backend-issued shapes"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ============================================================================
# Tickets
# ============================================================================

class UserSummary(_BackendModel):
    """Embedded user reference (owner, assignee, responder)"""
    id: int
    name: str = ""
    email: str = ""
    role: str = ""


class DetectedKeyword(_BackendModel):
    """A crisis keyword matched inside ticket text"""
    keyword: str
    severity_level: Optional[SeverityLevel] = None
    severity_weight: int = 0
    position: Optional[int] = None


class TicketAttachment(_BackendModel):
    """File attached to a ticket or a response (metadata only)"""
    id: int
    ticket_id: Optional[int] = None
    response_id: Optional[int] = None
    original_name: str = ""
    file_type: str = ""
    file_size: int = 0
    created_at: Optional[datetime] = None


class TicketResponse(_BackendModel):
    """A message in a ticket thread"""
    id: int
    ticket_id: Optional[int] = None
    user_id: Optional[int] = None
    message: str = ""
    is_internal: bool = False
    visibility: ResponseVisibility = ResponseVisibility.ALL
    is_urgent: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    attachments: List[TicketAttachment] = Field(default_factory=list)


class TicketCategory(_BackendModel):
    """
    Ticket category with triage configuration.

    Attributes:
        auto_assign: Backend assigns new tickets to a specialist automatically
        crisis_detection_enabled: Ticket text is scanned for crisis keywords
        sla_response_hours: Response-time threshold used for overdue status
    """
    id: int
    name: str = ""
    slug: str = ""
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True
    auto_assign: bool = False
    crisis_detection_enabled: bool = False
    sla_response_hours: Optional[int] = None
    max_priority_level: Optional[int] = None


class Ticket(_BackendModel):
    """
    Support ticket as returned by `/tickets`.

    `category` is either the legacy slug string or an embedded category
    object; `category_id` is the canonical reference.
    """
    id: int
    ticket_number: str = ""
    user_id: Optional[int] = None
    subject: str = ""
    description: str = ""
    category: Optional[Union[TicketCategory, str]] = None
    category_id: Optional[int] = None
    status: TicketStatus = TicketStatus.OPEN
    priority: Priority = Priority.MEDIUM
    crisis_flag: bool = False
    detected_crisis_keywords: List[DetectedKeyword] = Field(default_factory=list)
    assigned_to: Optional[int] = None
    auto_assigned: AutoAssigned = AutoAssigned.NO
    is_overdue: bool = False
    sla_deadline: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    responses: List[TicketResponse] = Field(default_factory=list)
    attachments: List[TicketAttachment] = Field(default_factory=list)
    user: Optional[UserSummary] = None
    assigned_user: Optional[UserSummary] = Field(None, alias="assignedTo")
    resolved_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def category_name(self) -> str:
        """Display name of the category, whichever form the backend sent"""
        if isinstance(self.category, TicketCategory):
            return self.category.name
        return self.category or ""


class TicketCreate(BaseModel):
    """Fields accepted when creating a ticket (validated client-side)"""
    subject: str = ""
    description: str = ""
    category: str = ""
    category_id: Optional[int] = None
    priority: Optional[Priority] = None
    created_for: Optional[int] = None


class TicketUpdate(BaseModel):
    """Partial ticket update (staff only)"""
    status: Optional[TicketStatus] = None
    assigned_to: Optional[int] = None
    priority: Optional[Priority] = None
    crisis_flag: Optional[bool] = None
    tags: Optional[List[str]] = None
    subject: Optional[str] = None
    description: Optional[str] = None


class Pagination(_BackendModel):
    """Pagination block of list endpoints"""
    current_page: int = 1
    last_page: int = 1
    per_page: int = 20
    total: int = 0


# ============================================================================
# Crisis keywords
# ============================================================================

class CategoryRef(_BackendModel):
    """Short category reference embedded in keywords"""
    id: int
    name: str = ""
    slug: str = ""
    color: Optional[str] = None


class CrisisKeyword(_BackendModel):
    """Crisis keyword configured by admins"""
    id: int
    keyword: str
    severity_level: SeverityLevel = SeverityLevel.MEDIUM
    severity_weight: int = 1
    is_active: bool = True
    category_ids: List[int] = Field(default_factory=list)
    trigger_count: int = 0
    last_triggered_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    categories: List[CategoryRef] = Field(default_factory=list)


class CrisisKeywordCreate(BaseModel):
    """
    Create/import payload for a crisis keyword.

    No field constraints here: business validation is performed by
    `validate_keyword_data` so that errors can be relayed as one message.
    """
    keyword: str = ""
    severity_level: str = ""
    severity_weight: int = 0
    is_active: bool = True
    category_ids: List[int] = Field(default_factory=list)


class CrisisKeywordUpdate(BaseModel):
    """Partial keyword update"""
    keyword: Optional[str] = None
    severity_level: Optional[SeverityLevel] = None
    severity_weight: Optional[int] = None
    is_active: Optional[bool] = None
    category_ids: Optional[List[int]] = None


class TestDetectionResult(_BackendModel):
    """Result of running crisis detection on sample text"""
    __test__ = False  # not a pytest test class

    is_crisis: bool = False
    crisis_score: int = 0
    detected_keywords: List[DetectedKeyword] = Field(default_factory=list)
    recommendation: str = ""
    total_weight: int = 0
    threshold: int = 0


class CrisisKeywordStats(_BackendModel):
    """Aggregate keyword statistics computed by the backend"""
    total_keywords: int = 0
    active_keywords: int = 0
    inactive_keywords: int = 0
    by_severity: Dict[str, int] = Field(default_factory=dict)
    by_category: List[Dict[str, Any]] = Field(default_factory=list)
    recent_triggers: List[Dict[str, Any]] = Field(default_factory=list)
    detection_metrics: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Help center
# ============================================================================

class HelpCategory(_BackendModel):
    """FAQ category"""
    id: int
    name: str = ""
    slug: str = ""
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True
    faqs_count: Optional[int] = None


class FAQ(_BackendModel):
    """Published help-center question/answer"""
    id: int
    category_id: Optional[int] = None
    question: str = ""
    answer: str = ""
    slug: str = ""
    tags: List[str] = Field(default_factory=list)
    sort_order: int = 0
    is_published: bool = True
    is_featured: bool = False
    helpful_count: int = 0
    not_helpful_count: int = 0
    view_count: int = 0
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    category: Optional[HelpCategory] = None

    @property
    def helpfulness_rate(self) -> float:
        """Share of helpful votes in percent, 0 without votes"""
        votes = self.helpful_count + self.not_helpful_count
        if votes == 0:
            return 0.0
        return round(self.helpful_count / votes * 100, 1)


class FAQsResponse(BaseModel):
    """Normalised FAQ listing"""
    faqs: List[FAQ] = Field(default_factory=list)
    featured_faqs: List[FAQ] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class FAQFeedback(_BackendModel):
    """Helpful/not-helpful vote on a FAQ"""
    id: Optional[int] = None
    faq_id: int
    is_helpful: bool
    comment: Optional[str] = None


class HelpStats(_BackendModel):
    """Help-center statistics"""
    total_faqs: int = 0
    total_categories: int = 0
    most_helpful_faq: Optional[Dict[str, Any]] = None
    most_viewed_faq: Optional[Dict[str, Any]] = None
    recent_faqs: List[Dict[str, Any]] = Field(default_factory=list)
    categories_with_counts: List[Dict[str, Any]] = Field(default_factory=list)


class ContentSuggestion(BaseModel):
    """FAQ content suggested by a counselor"""
    category_id: Optional[int] = None
    question: str = ""
    answer: str = ""
    tags: List[str] = Field(default_factory=list)


# ============================================================================
# Notifications
# ============================================================================

class NotificationData(_BackendModel):
    """In-app notification"""
    id: int
    user_id: Optional[int] = None
    type: NotificationType = NotificationType.SYSTEM
    title: str = ""
    message: str = ""
    priority: NotificationPriority = NotificationPriority.MEDIUM
    read: bool = False
    data: Optional[Any] = None
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# Assignment
# ============================================================================

class AssignmentOption(_BackendModel):
    """
    Staff member who could take a ticket.

    `utilization_rate` and `can_take_ticket` are filled in client-side
    from the workload numbers.
    """
    id: int
    name: str = ""
    email: str = ""
    role: str = ""
    priority_level: Optional[str] = None
    current_workload: int = 0
    max_workload: int = 0
    expertise_rating: Optional[float] = None
    utilization_rate: float = 0.0
    can_take_ticket: bool = False


class AssignmentTicketInfo(_BackendModel):
    """Ticket summary returned with assignment options"""
    id: int
    category_id: Optional[int] = None
    category_name: str = ""
    current_assignee: Optional[str] = None


class AssignmentData(BaseModel):
    """Assignment options for one ticket"""
    ticket: AssignmentTicketInfo
    available_specialists: List[AssignmentOption] = Field(default_factory=list)
    admin_users: List[AssignmentOption] = Field(default_factory=list)
    recommendation: Optional[AssignmentOption] = None


# ============================================================================
# Derived client-side views
# ============================================================================

class TicketStats(BaseModel):
    """Counters and rates computed over a ticket list"""
    total: int = 0
    open: int = 0
    in_progress: int = 0
    resolved: int = 0
    closed: int = 0
    crisis: int = 0
    unassigned: int = 0
    my_assigned: int = 0
    my_tickets: int = 0
    high_priority: int = 0
    auto_assigned: int = 0
    manually_assigned: int = 0
    overdue: int = 0
    with_crisis_keywords: int = 0

    active: int = 0
    inactive: int = 0
    assigned: int = 0

    resolution_rate: int = 0
    crisis_rate: int = 0
    auto_assign_rate: int = 0
    average_response_time: Optional[str] = None


class TicketPermissions(BaseModel):
    """What a role may do with tickets"""
    can_create: bool = False
    can_view_all: bool = False
    can_assign: bool = False
    can_modify: bool = False
    can_delete: bool = False
    can_export: bool = False
    can_bulk_actions: bool = False
    can_manage_tags: bool = False
    can_add_internal_notes: bool = False
    can_download_attachments: bool = True
    can_manage_categories: bool = False
    can_view_crisis_detection: bool = False
    can_test_crisis_detection: bool = False


class PageInfo(BaseModel):
    """Heading of the tickets page per role"""
    title: str
    description: str
    show_create: bool
    show_stats: bool


# ============================================================================
# Response envelope
# ============================================================================

class ApiResponse(BaseModel):
    """
    Standardised `{success, status, message, data}` envelope.

    Every service call returns one of these; failures never raise.
    """
    success: bool
    status: int = 0
    message: str = ""
    data: Optional[Any] = None
    errors: Optional[Any] = None

    @classmethod
    def failure(cls, message: str, status: int = 0, errors: Any = None) -> "ApiResponse":
        """Build a failed envelope"""
        return cls(success=False, status=status, message=message, errors=errors)

    def unwrap(self) -> Any:
        """
        Return `data` of a successful response

        Raises:
            ApiError: If the response is a failure
        """
        if not self.success:
            raise ApiError(self.message or "Request failed", status=self.status, errors=self.errors)
        return self.data

    def get(self, key: str, default: Any = None) -> Any:
        """Read a key of a dict payload"""
        if isinstance(self.data, dict):
            return self.data.get(key, default)
        return default
