"""
Crisis scoring and keyword display helpers

Scores are the summed severity weights of the keywords detected in a
ticket, capped at 100. The status bands below drive triage: the higher
the band, the sooner a counselor must pick the ticket up.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Union

from student_support.models.schemas import CrisisKeyword, CrisisKeywordCreate, SeverityLevel
from student_support.tickets.display import to_datetime
from student_support.utils.logger import get_logger

logger = get_logger(__name__)

MAX_CRISIS_SCORE = 100

# Phrases that flag a ticket description as a crisis while it is typed
CRISIS_PHRASES = (
    "suicide", "kill myself", "end my life", "want to die",
    "self harm", "hurt myself", "crisis", "emergency",
    "cutting", "overdose", "hopeless", "worthless",
)

CSV_HEADERS = ("keyword", "severity_level", "severity_weight", "is_active", "trigger_count", "categories")


class CrisisScoreStatus(NamedTuple):
    """Triage band of a crisis score"""
    status: str
    color: str
    recommendation: str


class SeverityDisplay(NamedTuple):
    """Display metadata of a severity level"""
    label: str
    color: str
    description: str
    icon: str


# (lower bound, status) pairs, checked from the top
_SCORE_BANDS = (
    (80, CrisisScoreStatus("Critical", "bg-red-100 text-red-800", "Immediate intervention required")),
    (60, CrisisScoreStatus("High Risk", "bg-orange-100 text-orange-800", "Priority assignment needed")),
    (40, CrisisScoreStatus("Moderate Risk", "bg-yellow-100 text-yellow-800", "Monitor closely")),
    (20, CrisisScoreStatus("Low Risk", "bg-blue-100 text-blue-800", "Standard processing")),
)
_MINIMAL_RISK = CrisisScoreStatus("Minimal Risk", "bg-green-100 text-green-800", "Normal handling")

_SEVERITY_DISPLAYS = {
    SeverityLevel.CRITICAL: SeverityDisplay(
        "Critical", "bg-red-100 text-red-800 border-red-200", "Immediate intervention required", "🚨"
    ),
    SeverityLevel.HIGH: SeverityDisplay(
        "High", "bg-orange-100 text-orange-800 border-orange-200", "High risk situation", "⚠️"
    ),
    SeverityLevel.MEDIUM: SeverityDisplay(
        "Medium", "bg-yellow-100 text-yellow-800 border-yellow-200", "Moderate concern", "⚡"
    ),
    SeverityLevel.LOW: SeverityDisplay(
        "Low", "bg-blue-100 text-blue-800 border-blue-200", "Low level concern", "ℹ️"
    ),
}
_UNKNOWN_SEVERITY = SeverityDisplay(
    "Unknown", "bg-gray-100 text-gray-800 border-gray-200", "Unknown severity level", "❓"
)


def _weight_of(match: Any) -> int:
    if isinstance(match, dict):
        weight = match.get("severity_weight", 0)
    else:
        weight = getattr(match, "severity_weight", 0)
    return int(weight or 0)


def calculate_crisis_score(matches: Optional[Iterable[Any]]) -> int:
    """
    Sum the severity weights of detected keywords

    Args:
        matches: Detected keywords (dicts or objects with `severity_weight`)

    Returns:
        Score in [0, 100]; 0 for no matches
    """
    if not matches:
        return 0

    total = sum(_weight_of(match) for match in matches)
    return max(0, min(MAX_CRISIS_SCORE, total))


def get_crisis_score_status(score: float) -> CrisisScoreStatus:
    """
    Map a crisis score to its triage band

    Bands include their lower bound: 80 is Critical, 79 is High Risk.
    """
    score = max(0, min(MAX_CRISIS_SCORE, score))
    for lower_bound, status in _SCORE_BANDS:
        if score >= lower_bound:
            return status
    return _MINIMAL_RISK


def detect_crisis_keywords(text: str) -> bool:
    """True when the text contains any built-in crisis phrase"""
    text = (text or "").lower()
    return any(phrase in text for phrase in CRISIS_PHRASES)


def get_severity_level_display(level: Union[SeverityLevel, str, None]) -> SeverityDisplay:
    try:
        return _SEVERITY_DISPLAYS[SeverityLevel(level)]
    except ValueError:
        return _UNKNOWN_SEVERITY


def get_severity_weight_color(weight: float) -> str:
    if weight >= 80:
        return "text-red-600 font-bold"
    if weight >= 60:
        return "text-orange-600 font-semibold"
    if weight >= 40:
        return "text-yellow-600"
    if weight >= 20:
        return "text-blue-600"
    return "text-gray-600"


def format_trigger_count(count: int) -> str:
    """Human-readable trigger count (e.g. "1.5K triggers")"""
    if count == 0:
        return "Never triggered"
    if count == 1:
        return "1 trigger"
    if count < 1000:
        return f"{count} triggers"
    if count < 1000000:
        return f"{count / 1000:.1f}K triggers"
    return f"{count / 1000000:.1f}M triggers"


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}{'s' if value > 1 else ''} ago"


def time_since_last_trigger(
    last_triggered_at: Union[datetime, str, None],
    now: Optional[datetime] = None
) -> str:
    """
    Describe how long ago a keyword last fired

    Args:
        last_triggered_at: Trigger time (datetime or ISO string), None if never
        now: Reference time, defaults to the current UTC time

    Returns:
        "Never", "Just now", "N min ago", "N hours ago", ...
    """
    if not last_triggered_at:
        return "Never"

    now = to_datetime(now or datetime.now(timezone.utc))
    minutes = int((now - to_datetime(last_triggered_at)).total_seconds() // 60)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} min ago"

    hours = minutes // 60
    if hours < 24:
        return _plural(hours, "hour")

    days = hours // 24
    if days < 7:
        return _plural(days, "day")

    weeks = days // 7
    if weeks < 4:
        return _plural(weeks, "week")

    return _plural(days // 30, "month")


def create_sample_keywords() -> List[CrisisKeywordCreate]:
    """Starter keyword set offered on first import"""
    samples = [
        ("suicide", "critical", 100),
        ("kill myself", "critical", 95),
        ("self harm", "high", 80),
        ("want to die", "critical", 90),
        ("overwhelmed", "medium", 40),
        ("hopeless", "high", 70),
        ("crisis", "high", 75),
        ("emergency", "high", 65),
        ("can't cope", "medium", 50),
        ("breakdown", "medium", 55),
    ]
    return [
        CrisisKeywordCreate(keyword=keyword, severity_level=level, severity_weight=weight)
        for keyword, level, weight in samples
    ]


def _quoted(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def keywords_to_csv(keywords: Iterable[Union[CrisisKeyword, Dict[str, Any]]]) -> str:
    """
    Render keywords as CSV

    The keyword and the `; `-joined category names are quoted; the
    remaining columns are written bare.
    """
    lines = [",".join(CSV_HEADERS)]

    for item in keywords:
        keyword = item if isinstance(item, CrisisKeyword) else CrisisKeyword.model_validate(item)
        categories = "; ".join(category.name for category in keyword.categories)
        lines.append(",".join([
            _quoted(keyword.keyword),
            keyword.severity_level.value,
            str(keyword.severity_weight),
            "true" if keyword.is_active else "false",
            str(keyword.trigger_count or 0),
            _quoted(categories),
        ]))

    return "\n".join(lines)


def default_export_filename(today: Optional[datetime] = None) -> str:
    today = today or datetime.now(timezone.utc)
    return f"crisis-keywords-export-{today.date().isoformat()}.csv"


def write_keywords_csv(
    keywords: Iterable[Union[CrisisKeyword, Dict[str, Any]]],
    path: Union[str, Path]
) -> Path:
    """
    Write keywords to a CSV file

    Args:
        keywords: Keywords to export
        path: Target file, or a directory to place the default file name in

    Returns:
        Path of the written file
    """
    path = Path(path)
    if path.is_dir():
        path = path / default_export_filename()

    path.write_text(keywords_to_csv(keywords), encoding="utf-8")
    logger.info(f"Crisis keywords exported to {path}")
    return path
