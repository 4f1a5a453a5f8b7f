"""
Crisis scoring and keyword helpers
"""
from student_support.crisis.scoring import (
    CRISIS_PHRASES,
    CrisisScoreStatus,
    SeverityDisplay,
    calculate_crisis_score,
    create_sample_keywords,
    detect_crisis_keywords,
    format_trigger_count,
    get_crisis_score_status,
    get_severity_level_display,
    get_severity_weight_color,
    keywords_to_csv,
    time_since_last_trigger,
    write_keywords_csv,
)

__all__ = [
    "CRISIS_PHRASES",
    "CrisisScoreStatus",
    "SeverityDisplay",
    "calculate_crisis_score",
    "create_sample_keywords",
    "detect_crisis_keywords",
    "format_trigger_count",
    "get_crisis_score_status",
    "get_severity_level_display",
    "get_severity_weight_color",
    "keywords_to_csv",
    "time_since_last_trigger",
    "write_keywords_csv",
]
