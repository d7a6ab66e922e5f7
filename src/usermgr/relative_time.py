"""Human readable rendering of past timestamps."""

import math
from datetime import datetime
from typing import Optional

NEVER = "Jamais"
JUST_NOW = "À l'instant"
YESTERDAY = "Hier"


def format_relative_time(value: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Render ``value`` relative to ``now`` the way the dashboards display it.

    Parameters
    ----------
    value: datetime | None
        Moment to describe. ``None`` means the event never happened.
    now: datetime | None
        Reference moment, defaults to the current local time.

    Returns
    -------
    str
        ``"À l'instant"`` under one hour, ``"Il y a Nh"`` under a day,
        ``"Hier"`` for one whole day, ``"Il y a N jours"`` under thirty days
        and the ``dd/mm/YYYY`` date beyond that.
    """
    if value is None:
        return NEVER

    now = now or datetime.now()
    elapsed = (now - value).total_seconds()
    diff_hours = math.floor(elapsed / 3600)
    diff_days = math.floor(elapsed / 86400)

    if diff_hours < 1:
        return JUST_NOW
    if diff_hours < 24:
        return f"Il y a {diff_hours}h"
    if diff_days == 1:
        return YESTERDAY
    if diff_days < 30:
        return f"Il y a {diff_days} jours"
    return value.strftime("%d/%m/%Y")
