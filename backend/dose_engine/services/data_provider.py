from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence

from dose_engine.models.dose import DoseRecord
from dose_engine.models.profile import UserProfile
from dose_engine.models.scenario import ScenarioOutcome


class DoseDataProvider(Protocol):
    """Repository boundary: everything the engine needs about a user, fetched up front."""

    async def fetch_recent_doses(self, user_id: str, since: datetime) -> List[DoseRecord]: ...

    async def fetch_user_profile(self, user_id: str) -> Optional[UserProfile]: ...

    async def fetch_scenario_history(self, user_id: str, limit: int) -> List[ScenarioOutcome]: ...


class InMemoryDataProvider:
    def __init__(
        self,
        doses: Optional[Dict[str, Sequence[DoseRecord]]] = None,
        profiles: Optional[Dict[str, UserProfile]] = None,
        history: Optional[Dict[str, Sequence[ScenarioOutcome]]] = None,
    ):
        self.doses = {k: list(v) for k, v in (doses or {}).items()}
        self.profiles = dict(profiles or {})
        self.history = {k: list(v) for k, v in (history or {}).items()}

    async def fetch_recent_doses(self, user_id: str, since: datetime) -> List[DoseRecord]:
        rows = [d for d in self.doses.get(user_id, []) if d.administered_at >= since]
        return sorted(rows, key=lambda d: d.administered_at, reverse=True)

    async def fetch_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get(user_id)

    async def fetch_scenario_history(self, user_id: str, limit: int) -> List[ScenarioOutcome]:
        # Stored newest first
        return self.history.get(user_id, [])[:limit]
