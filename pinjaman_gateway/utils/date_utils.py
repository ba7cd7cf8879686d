"""Date and period-label utilities"""

from datetime import date, datetime, timezone
from typing import Iterable, List

# Indonesian month names, index = calendar month - 1
MONTH_NAMES = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]

MONTH_INDEX = {name: i for i, name in enumerate(MONTH_NAMES)}


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def parse_month_label(label: str) -> tuple[int, int]:
    """
    Split a period label like "Maret 2026" into (year, month_index).

    Unknown month names map to 0 and a non-numeric year maps to 0, so
    malformed labels sort first instead of failing.
    """
    parts = label.split(" ")
    month_name = parts[0] if parts else ""
    year_raw = parts[1] if len(parts) > 1 else ""
    year = int(year_raw) if year_raw.isdigit() else 0
    return year, MONTH_INDEX.get(month_name, 0)


def month_sort_key(label: str) -> tuple[int, int]:
    """Chronological sort key for period labels"""
    return parse_month_label(label)


def sort_month_labels(labels: Iterable[str]) -> List[str]:
    """Deduplicate (keeping first occurrence) and sort labels chronologically"""
    unique = list(dict.fromkeys(labels))
    return sorted(unique, key=month_sort_key)


def month_label_for(day: date) -> str:
    """Period label for a date, e.g. date(2026, 2, 14) -> "Februari 2026" """
    return f"{MONTH_NAMES[day.month - 1]} {day.year}"


def year_month_labels(year: int) -> List[str]:
    """All twelve period labels of a year in calendar order"""
    return [f"{name} {year}" for name in MONTH_NAMES]
