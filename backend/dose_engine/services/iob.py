from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Sequence

from dose_engine.core.constants import (
    ACTIVE_DOSE_EPSILON_U,
    DIA_MINUTES,
    INSULIN_PEAK_MINUTES,
    IOB_DANGEROUS_U,
    IOB_WARNING_U,
)
from dose_engine.models.dose import ActiveDose, ActiveDoseStatus, DoseRecord, IOBSafetyStatus
from dose_engine.services.math.curves import InsulinCurves

logger = logging.getLogger(__name__)


def _ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def remaining_units(units: float, minutes_since: float) -> float:
    return units * InsulinCurves.remaining_fraction(minutes_since, DIA_MINUTES)


def iob_safety_status(total_iob: float) -> IOBSafetyStatus:
    if total_iob > IOB_DANGEROUS_U:
        return "dangerous"
    if total_iob > IOB_WARNING_U:
        return "warning"
    return "safe"


def compute_active_doses(doses: Sequence[DoseRecord], now: datetime) -> ActiveDoseStatus:
    """
    Insulin on board from the caller's recent dose window.

    Doses are walked newest first. Anything with 0.01 U or less remaining is
    considered cleared and left out of both the total and the breakdown.
    """
    now = _ensure_aware(now)
    if not doses:
        return ActiveDoseStatus()

    total = 0.0
    active: list[ActiveDose] = []
    for dose in sorted(doses, key=lambda d: d.administered_at, reverse=True):
        minutes_since = (now - dose.administered_at).total_seconds() / 60
        remaining = remaining_units(dose.units, minutes_since)
        if remaining <= ACTIVE_DOSE_EPSILON_U:
            continue
        total += remaining
        active.append(
            ActiveDose(
                dose_id=dose.id,
                units=dose.units,
                administered_at=dose.administered_at,
                remaining_units=remaining,
                minutes_active=round(minutes_since),
            )
        )

    peak_time = active[0].administered_at + timedelta(minutes=INSULIN_PEAK_MINUTES) if active else None
    clearance_time = active[-1].administered_at + timedelta(minutes=DIA_MINUTES) if active else None

    status = iob_safety_status(total)
    logger.debug(
        "IOB computed: total=%.3f active_doses=%d status=%s",
        total,
        len(active),
        status,
    )
    return ActiveDoseStatus(
        active_amount=total,
        peak_time=peak_time,
        clearance_time=clearance_time,
        safety_status=status,
        active_doses=active,
    )


def compute_iob(doses: Sequence[DoseRecord], now: datetime) -> float:
    return compute_active_doses(doses, now).active_amount
