# app/utils/dates.py

from datetime import datetime, date


def parse_date(value):
    """
    Convierte strings/datetime del formulario a date (ETA).
    Si no puede, devuelve None.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    s = str(value).strip()
    if not s:
        return None

    # ISO con hora (lo que manda el date picker): 2025-10-01T00:00:00.000Z
    if "T" in s:
        s = s.split("T", 1)[0]

    formats = [
        "%Y-%m-%d",
        "%d/%m/%Y",
        "%d-%m-%Y",
    ]

    for fmt in formats:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue

    return None


def utcnow_iso() -> str:
    return datetime.utcnow().replace(microsecond=0).isoformat() + "Z"
