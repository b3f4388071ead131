"""
Date Codec

Parses ``DD-MM-YYYY`` calendar dates and converts them to and from epoch
seconds. Days are counted on a single UTC-like clock with no timezone
offset: a date maps to the epoch second of its midnight.
"""

from __future__ import annotations

from ballot.errors import InvalidInput

SECONDS_PER_DAY = 24 * 60 * 60
EPOCH_YEAR = 1970
DEFAULT_MIN_YEAR = 2023
MAX_YEAR = 9999

DATE_FORMAT_HINT = "DD-MM-YYYY"


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_year(year: int) -> int:
    return 366 if is_leap_year(year) else 365


def days_in_month(year: int, month: int) -> int:
    if month in (4, 6, 9, 11):
        return 30
    if month == 2:
        return 29 if is_leap_year(year) else 28
    return 31


def _parse_field(raw: str, name: str) -> int:
    # int() would also accept signs, whitespace and underscores
    if not raw or not (raw.isascii() and raw.isdigit()):
        raise InvalidInput(f"Invalid {name}")
    return int(raw)


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------

class DateCodec:
    """Converts between ``DD-MM-YYYY`` text, (y, m, d) and epoch seconds."""

    def __init__(self, min_year: int = DEFAULT_MIN_YEAR):
        self.min_year = min_year

    def parse(self, text: str) -> tuple[int, int, int, int]:
        """Parse ``DD-MM-YYYY`` into ``(epoch_seconds, year, month, day)``.

        Raises InvalidInput for anything that is not a real calendar date
        between ``min_year`` and ``MAX_YEAR``.
        """
        parts = text.split("-")
        if len(parts) != 3:
            raise InvalidInput(f"Invalid date format. Use {DATE_FORMAT_HINT}")

        if len(parts[0]) > 2 or len(parts[1]) > 2 or len(parts[2]) > 4:
            raise InvalidInput(f"Invalid date format. Use {DATE_FORMAT_HINT}")

        day = _parse_field(parts[0], "day")
        month = _parse_field(parts[1], "month")
        year = _parse_field(parts[2], "year")

        if year > MAX_YEAR:
            raise InvalidInput(f"Invalid date: year must be {MAX_YEAR} or earlier")
        if year < self.min_year:
            raise InvalidInput(f"Invalid date: year must be {self.min_year} or later")
        if not 1 <= month <= 12:
            raise InvalidInput("Invalid date: month must be between 1 and 12")
        if not 1 <= day <= days_in_month(year, month):
            raise InvalidInput(
                f"Invalid date: {year:04d}-{month:02d} has "
                f"{days_in_month(year, month)} days"
            )

        return self.to_epoch(year, month, day), year, month, day

    def to_epoch(self, year: int, month: int, day: int) -> int:
        """Epoch seconds of midnight on the given date."""
        days = 0
        if year >= EPOCH_YEAR:
            for y in range(EPOCH_YEAR, year):
                days += days_in_year(y)
        else:
            for y in range(year, EPOCH_YEAR):
                days -= days_in_year(y)
        for m in range(1, month):
            days += days_in_month(year, m)
        days += day - 1
        return days * SECONDS_PER_DAY

    def current_date(self, now: int) -> tuple[int, int, int]:
        """Decompose epoch seconds into ``(year, month, day)``."""
        days_remaining = max(now, 0) // SECONDS_PER_DAY
        year = EPOCH_YEAR
        while days_remaining >= days_in_year(year):
            days_remaining -= days_in_year(year)
            year += 1

        month = 1
        while days_remaining >= days_in_month(year, month):
            days_remaining -= days_in_month(year, month)
            month += 1

        return year, month, days_remaining + 1

    def format(self, epoch_seconds: int) -> str:
        year, month, day = self.current_date(epoch_seconds)
        return f"{day:02d}-{month:02d}-{year:04d}"
