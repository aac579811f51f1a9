"""
Fiscal-period anchoring.

The fiscal month closes on the 21st: a reference date on or before the 21st
belongs to the period anchored on the 21st of the same month, a date on the
22nd or later belongs to the period anchored on the 21st of the next month.
Only UTC calendar dates are considered.
"""

from datetime import date, datetime, timezone

from fieldops_ingest.core.errors import InvalidFiscalDateError

ANCHOR_DAY = 21


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def parse_reference_date(value: date | str | None) -> date:
    """
    Coerce a reference date, defaulting to today (UTC) when absent.

    Args:
        value: A date, an ISO ``YYYY-MM-DD`` string, or None/blank

    Returns:
        The reference date

    Raises:
        InvalidFiscalDateError: If a string value is not a valid ISO date
    """
    if value is None:
        return today_utc()
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).date() if value.tzinfo else value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return today_utc()
    try:
        return date.fromisoformat(text)
    except ValueError as e:
        raise InvalidFiscalDateError(value) from e


def fiscal_month_anchor(reference: date | str | None = None) -> date:
    """
    Map a reference date to its fiscal-period anchor.

    Examples:
        >>> fiscal_month_anchor("2025-03-21")
        datetime.date(2025, 3, 21)
        >>> fiscal_month_anchor("2025-12-22")
        datetime.date(2026, 1, 21)
    """
    ref = parse_reference_date(reference)
    year, month = ref.year, ref.month
    if ref.day > ANCHOR_DAY:
        month += 1
        if month == 13:
            month = 1
            year += 1
    return date(year, month, ANCHOR_DAY)
