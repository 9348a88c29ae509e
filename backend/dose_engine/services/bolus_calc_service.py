from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from dose_engine.core.logging import configure_logging
from dose_engine.core.settings import EngineSettings, get_settings
from dose_engine.models.calculation import CalculationRequest, CalculationResult
from dose_engine.models.profile import UserProfile
from dose_engine.services.bolus_engine import IdFactory, calculate
from dose_engine.services.data_provider import DoseDataProvider

logger = logging.getLogger(__name__)


async def calculate_for_user(
    user_id: str,
    request: CalculationRequest,
    provider: DoseDataProvider,
    *,
    now: Optional[datetime] = None,
    settings: Optional[EngineSettings] = None,
    id_factory: Optional[IdFactory] = None,
) -> CalculationResult:
    """
    Fetch the user's snapshot from the provider, then run the pure calculation.

    Provider errors propagate unchanged. A missing profile falls back to the
    documented defaults.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(hours=settings.history.dose_window_hours)

    doses, profile, history = await asyncio.gather(
        provider.fetch_recent_doses(user_id, since),
        provider.fetch_user_profile(user_id),
        provider.fetch_scenario_history(user_id, settings.history.scenario_history_limit),
    )

    if profile is None:
        logger.info("No profile stored for user=%s, using defaults", user_id)
        profile = UserProfile.default()

    logger.debug(
        "Snapshot for user=%s: doses=%d scenarios=%d",
        user_id,
        len(doses),
        len(history),
    )
    return calculate(
        request,
        profile,
        recent_doses=doses,
        scenario_history=history,
        now=now,
        id_factory=id_factory,
    )
