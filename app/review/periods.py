"""Release-period labels: ordering and derivation from upload file names.

Period labels are free text ("First Release", "January week-2",
"March 3rd Week"), so ordering is best effort: labels whose first word is
a known ordinal come first, in ordinal order; everything else follows in
case-insensitive lexical order.
"""
from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta

ORDINAL_ORDER: dict[str, int] = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
}

UNSPECIFIED_PERIOD = "Unspecified"

_RELEASE_FILE_RE = re.compile(r"(first|second|third|fourth)-release")
_WEEKLY_FILE_RE = re.compile(r"([a-z]+)_([1-4])[a-z]+week")

_MONTHS: dict[str, int] = {name.lower(): index for index, name in enumerate(calendar.month_name) if name}

# Due date lands this many days after the release Saturday.
RELEASE_DUE_OFFSET_DAYS = 14


def period_sort_key(label: str) -> tuple[int, int, str, str]:
    """Sort key: ordinal-named labels first, then lexical."""
    text = (label or "").strip()
    words = text.split()
    first_word = words[0].casefold() if words else ""
    if first_word in ORDINAL_ORDER:
        return (0, ORDINAL_ORDER[first_word], text.casefold(), text)
    return (1, 0, text.casefold(), text)


def sort_periods(labels) -> list[str]:
    return sorted(labels, key=period_sort_key)


def ordinal_suffix(number: int) -> str:
    if number % 100 in (11, 12, 13):
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def nth_saturday(year: int, month: int, week: int) -> date | None:
    """The Saturday of the *week*-th week of a month, or None if it spills over."""
    first = date(year, month, 1)
    first_saturday = first + timedelta(days=(calendar.SATURDAY - first.weekday()) % 7)
    target = first_saturday + timedelta(weeks=week - 1)
    if target.month != month:
        return None
    return target


@dataclass(frozen=True)
class ReleaseInfo:
    release_period: str
    academic_level: str | None
    due_date: date | None


def parse_release_info(file_name: str, year: int | None = None) -> ReleaseInfo:
    """Derive release period, academic level and default due date from a file name.

    ``*first-release*`` … ``*fourth-release*`` name a numbered release (no
    default due date).  ``<month>_<n><suffix>week`` names a weekly release
    whose due date is that week's Saturday plus 14 days.
    """
    lower = (file_name or "").lower()

    release = _RELEASE_FILE_RE.search(lower)
    if release:
        level = "Undergraduate" if "undergraduate" in lower else "Graduate"
        return ReleaseInfo(
            release_period=f"{release.group(1).capitalize()} Release",
            academic_level=level,
            due_date=None,
        )

    weekly = _WEEKLY_FILE_RE.search(lower)
    if weekly:
        month_name, week_text = weekly.group(1), weekly.group(2)
        week = int(week_text)
        label = f"{month_name.capitalize()} {week}{ordinal_suffix(week)} Week"
        due = None
        month = _MONTHS.get(month_name)
        if month is not None:
            saturday = nth_saturday(year or date.today().year, month, week)
            if saturday is not None:
                due = saturday + timedelta(days=RELEASE_DUE_OFFSET_DAYS)
        return ReleaseInfo(release_period=label, academic_level=None, due_date=due)

    return ReleaseInfo(release_period="", academic_level=None, due_date=None)
