from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PredictedScorers(BaseModel):
    model_config = ConfigDict(extra="ignore")

    home: Optional[str] = None
    away: Optional[str] = None


class PredictionPayload(BaseModel):
    """Shape of the JSON stored in ``predictions.prediction``."""

    model_config = ConfigDict(extra="ignore")

    scores: tuple[int, int] = Field(...)
    scorers: Optional[PredictedScorers] = None
