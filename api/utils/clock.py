# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Time helpers shared by services and domain logic.

Services receive a clock callable so tests can pin "now".
"""

from datetime import datetime, timedelta, timezone, date
from typing import Callable, Tuple

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_bucket(value: datetime) -> datetime:
    """UTC midnight of the day containing ``value``."""
    value = ensure_utc(value)
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def day_range(day: date) -> Tuple[datetime, datetime]:
    """Half-open [start, end) UTC range covering one calendar day."""
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)
