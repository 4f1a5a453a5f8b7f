"""
Backend services
"""
from .api_client import ApiClient
from .base import BaseService, build_query_params
from .crisis_keywords import CrisisKeywordsService
from .help_service import HelpService, normalize_faqs_payload
from .notification_service import NotificationService
from .ticket_categories import TicketCategoriesService
from .ticket_service import TicketService

__all__ = [
    "ApiClient",
    "BaseService",
    "build_query_params",
    "CrisisKeywordsService",
    "HelpService",
    "normalize_faqs_payload",
    "NotificationService",
    "TicketCategoriesService",
    "TicketService",
]
