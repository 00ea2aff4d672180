"""
Date parsing for spreadsheet imports.

Spreadsheets hand dates over either as locale-formatted day/month/year text
or as serial day numbers counted from the spreadsheet epoch.
"""

from datetime import date, datetime, timedelta

# Day 0 of the Excel/Sheets 1900 date system (accounts for the 1900 leap bug).
SPREADSHEET_EPOCH = date(1899, 12, 30)


def from_serial(serial: float) -> date:
    """
    Convert a spreadsheet serial day number to a date.

    The fractional part (time of day) is discarded.
    """
    return SPREADSHEET_EPOCH + timedelta(days=int(serial))


def parse_spreadsheet_date(value):
    """
    Parse a spreadsheet cell into a calendar date.

    Accepts:
    - date/datetime objects (returned as dates)
    - int/float serial numbers
    - "d/m/yyyy" or "dd/mm/yyyy" text (also with '-' or '.' separators)
    - numeric text such as "45292" (serial)
    - ISO "yyyy-mm-dd" text

    Returns None for empty cells.

    Raises:
        ValueError: If the text cannot be interpreted as a date
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return from_serial(value)

    text = str(value).strip()
    if not text:
        return None

    try:
        return from_serial(float(text))
    except ValueError:
        pass

    for separator in ("/", "-", "."):
        parts = text.split(separator)
        if len(parts) != 3:
            continue
        if len(parts[0]) == 4:
            year, month, day = parts
        else:
            day, month, year = parts
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            break

    raise ValueError(f"Unrecognized spreadsheet date: {value!r}")
