# POS Insight - Financial analytics engine for small-business point of sale
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for POS Insight.

This module defines the DateRange value object used by every analytic and
helpers to derive reporting ranges (last 30 days, month to date, last
month, year to date, trailing calendar months) from the current date and
CLI arguments.

A DateRange is an inclusive interval of local calendar dates: a record
dated `end` at 23:59:59 is inside the range.
"""

from calendar import monthrange
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from .errors import ValidationError


@dataclass(frozen=True)
class DateRange:
    """Inclusive [start, end] range of calendar dates with a display label."""

    start: date
    end: date
    label: str = ""

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValidationError(
                f"Invalid date range: start {self.start} is after end {self.end}."
            )

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def iter_days(date_range: DateRange) -> Iterator[date]:
    """Yield every calendar day of the range, in order."""
    day = date_range.start
    while day <= date_range.end:
        yield day
        day += timedelta(days=1)


def month_label(year: int, month: int) -> str:
    """Return the 'YYYY-MM' label of a calendar month."""
    return f"{year:04d}-{month:02d}"


def parse_month(label: str) -> tuple[int, int]:
    """
    Parse a 'YYYY-MM' month label.

    Raises
    ------
    ValidationError
        If the label is not a valid calendar month.
    """
    try:
        year_raw, month_raw = str(label).split("-")
        if len(year_raw) != 4 or len(month_raw) != 2:
            raise ValueError(label)
        year, month = int(year_raw), int(month_raw)
    except ValueError as exc:
        raise ValidationError(f"Invalid month {label!r}, expected YYYY-MM.") from exc
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month {label!r}, expected YYYY-MM.")
    return year, month


def month_range(year: int, month: int) -> DateRange:
    """Full calendar month as a DateRange labelled 'YYYY-MM'."""
    last_day = monthrange(year, month)[1]
    return DateRange(
        start=date(year, month, 1),
        end=date(year, month, last_day),
        label=month_label(year, month),
    )


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move a (year, month) pair by `delta` months (negative goes back)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def trailing_months(count: int, today: Optional[date] = None) -> list[DateRange]:
    """
    Return the `count` calendar months ending with the month of `today`.

    Months are ordered oldest to newest and always cover whole months, so
    the last entry includes days after `today`.

    Raises
    ------
    ValidationError
        If count is lower than 1.
    """
    if count < 1:
        raise ValidationError(f"Month count must be at least 1, got {count}.")
    if today is None:
        today = _today()

    months = []
    for back in range(count - 1, -1, -1):
        year, month = shift_month(today.year, today.month, -back)
        months.append(month_range(year, month))
    return months


def period_current_month(today: Optional[date] = None) -> DateRange:
    """Full calendar month containing today."""
    if today is None:
        today = _today()
    return month_range(today.year, today.month)


def period_last_30_days() -> DateRange:
    """Thirty days ending today (inclusive)."""
    today = _today()
    return DateRange(
        start=today - timedelta(days=29),
        end=today,
        label="Last 30 days",
    )


def period_mtd() -> DateRange:
    """Month to date."""
    today = _today()
    return DateRange(start=today.replace(day=1), end=today, label="Month to date")


def period_last_month() -> DateRange:
    """Full previous calendar month."""
    today = _today()
    year, month = shift_month(today.year, today.month, -1)
    previous = month_range(year, month)
    return DateRange(start=previous.start, end=previous.end, label="Last month")


def period_ytd() -> DateRange:
    """Calendar year to date."""
    today = _today()
    return DateRange(start=date(today.year, 1, 1), end=today, label="Year to date")


def determine_period_from_args(args) -> DateRange:
    """
    Determine the reporting range to use based on CLI args.

    Priority (highest to lowest):

        1. args.from_date / args.to_date (custom range; a missing bound
           defaults to 29 days before the end, or to today)
        2. args.period (last-30-days, mtd, last-month, ytd)
        3. last 30 days by default
    """
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        try:
            end = date.fromisoformat(to_raw) if to_raw else _today()
            start = (
                date.fromisoformat(from_raw) if from_raw else end - timedelta(days=29)
            )
        except ValueError as exc:
            raise ValidationError(
                "Invalid custom period date, expected YYYY-MM-DD."
            ) from exc
        return DateRange(start=start, end=end, label=f"Custom period ({start} → {end})")

    p = getattr(args, "period", None)
    if p is None or p == "last-30-days":
        return period_last_30_days()
    if p == "mtd":
        return period_mtd()
    if p == "last-month":
        return period_last_month()
    if p == "ytd":
        return period_ytd()
    raise ValidationError(f"Unknown period: {p!r}")
