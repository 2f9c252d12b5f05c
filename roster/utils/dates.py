"""Date helpers for roster columns (ISO `YYYY-MM-DD` strings)."""
from datetime import date, datetime

ACCEPTED_DATE_FORMATS = ('%Y-%m-%d', '%d/%m/%Y', '%Y/%m/%d')


def parse_roster_date(value):
    """Parse a user-supplied date into an ISO string, or None if unparseable."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    for fmt in ACCEPTED_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    return None


def month_of(iso_date):
    """'2025-11-03' -> '2025-11'."""
    return iso_date[:7]


def current_month_year(now=None):
    return (now or datetime.utcnow()).strftime('%Y-%m')


def is_valid_month(value):
    try:
        datetime.strptime(value or '', '%Y-%m')
        return True
    except ValueError:
        return False
