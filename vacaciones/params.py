"""Request parameter helpers shared by the blueprints."""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

from vacaciones.errors import ValidationFailed


MIN_YEAR = 1970
MAX_YEAR = 9999


def app_timezone() -> ZoneInfo:
    tz_name = current_app.config.get("APP_TIMEZONE", "Europe/Madrid")
    try:
        return ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:
        return ZoneInfo("UTC")


def today_local() -> date:
    return datetime.now(app_timezone()).date()


def parse_year(raw_value: object) -> int:
    try:
        year = int(str(raw_value).strip())
    except (TypeError, ValueError) as exc:
        raise ValidationFailed(f"Ano invalido: {raw_value!r}.") from exc
    if year < MIN_YEAR or year > MAX_YEAR:
        raise ValidationFailed(f"Ano fuera de rango: {year}.")
    return year


def requested_year(args) -> int:
    raw_value = (args.get("year") or "").strip()
    if not raw_value:
        return today_local().year
    return parse_year(raw_value)
