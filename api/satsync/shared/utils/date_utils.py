"""
Utilidades de fechas para la planeacion de ventanas de descarga.

Funciones puras (sin I/O) para poder testearlas facilmente.
"""
from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Retorna la hora actual en UTC, como datetime aware."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normaliza datetime a UTC (aware).

    SQLite devuelve datetimes naive; los tratamos como UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def add_days(base: date, days: int) -> date:
    return base + timedelta(days=days)


def yesterday(today: date) -> date:
    """El SAT solo entrega CFDI de dias cerrados: el limite superior es ayer."""
    return add_days(today, -1)


def first_sync_start(today: date, month_day: str = "01-01") -> date:
    """
    Fecha de inicio de la primera sincronizacion de un RFC.

    Args:
        today: Fecha de referencia
        month_day: "MM-DD" dentro del año de `today` (default: 1 de enero)

    Returns:
        Fecha de inicio del ejercicio a descargar
    """
    month, day = (int(part) for part in month_day.split("-"))
    return date(today.year, month, day)


def days_between(start: Optional[date], end: date) -> int:
    """Dias de atraso entre `start` y `end` (0 si no hay atraso o no hay fecha)."""
    if start is None:
        return 0
    return max((end - start).days, 0)


def windows_overlap(a_from: date, a_to: date, b_from: date, b_to: date) -> bool:
    """Indica si dos rangos cerrados de fechas se traslapan."""
    return a_from <= b_to and b_from <= a_to


def parse_iso_date(value: str) -> date:
    """Acepta 'YYYY-MM-DD' o 'YYYY-MM-DD HH:MM:SS' y regresa la fecha."""
    return date.fromisoformat(value.strip()[:10])
