"""
Date and time helpers for order handling.
Inputs arrive as ISO strings from the API, as Excel cells via pandas, or as
hand-typed DD/MM/YYYY values in uploaded sheets.
"""

from datetime import date, datetime
from typing import Any, Optional

import pytz
from dateutil import parser

# Business timezone for user-facing dates (export stamps, email bodies)
IN_TZ = pytz.timezone('Asia/Kolkata')
UTC_TZ = pytz.UTC


class DateUtils:
    """Date utility class for order operations."""

    FORMATS = [
        '%Y-%m-%d %H:%M:%S',
        '%Y-%m-%d',
        '%d/%m/%Y %H:%M:%S',
        '%d/%m/%Y',
        '%d-%m-%Y',
    ]

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current UTC time."""
        return datetime.now(UTC_TZ)

    @staticmethod
    def get_local_now() -> datetime:
        return datetime.now(IN_TZ)

    @staticmethod
    def to_local_timezone(dt: datetime) -> datetime:
        """Convert datetime to the business timezone. Naive values are taken as UTC."""
        if dt.tzinfo is None:
            dt = UTC_TZ.localize(dt)
        return dt.astimezone(IN_TZ)

    @staticmethod
    def parse_flexible_date(value: Any) -> Optional[datetime]:
        """Parse the date shapes found in requests and spreadsheets. Returns None when unparsable."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if hasattr(value, 'to_pydatetime'):
            return value.to_pydatetime()
        if not isinstance(value, str):
            return None

        text = value.strip()
        if not text:
            return None

        try:
            return datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            pass

        for fmt in DateUtils.FORMATS:
            try:
                return datetime.strptime(text, fmt)
            except ValueError:
                continue

        try:
            return parser.parse(text, dayfirst=True)
        except (ValueError, OverflowError):
            return None

    @staticmethod
    def format_date(dt: Optional[datetime], fmt: str = '%Y-%m-%d') -> str:
        if not dt:
            return ''
        return dt.strftime(fmt)

    @staticmethod
    def format_for_display(dt: Optional[datetime]) -> str:
        """Human-readable local date for customer emails."""
        if not dt:
            return 'N/A'
        return DateUtils.to_local_timezone(dt).strftime('%d %b %Y')


# Convenience functions
def utc_now() -> datetime:
    return DateUtils.get_utc_now()


def parse_date(value: Any) -> Optional[datetime]:
    return DateUtils.parse_flexible_date(value)


def format_date(dt: Optional[datetime], fmt: str = '%Y-%m-%d') -> str:
    return DateUtils.format_date(dt, fmt)


def export_date_stamp() -> str:
    """Today's date in the business timezone, YYYY-MM-DD."""
    return DateUtils.get_local_now().strftime('%Y-%m-%d')
