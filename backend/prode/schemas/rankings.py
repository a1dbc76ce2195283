from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class RoundRankingEntryOut(BaseModel):
    position: int
    user_id: int
    user_name: Optional[str] = None
    points: int
    live_points: int
    total_points: int
    first_prediction_at: Optional[str] = None


class TournamentRankingEntryOut(BaseModel):
    position: int
    user_id: int
    user_name: Optional[str] = None
    points: int
    live_points: int
    total_points: int
    joined_at: Optional[str] = None
