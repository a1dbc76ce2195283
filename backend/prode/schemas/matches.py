from __future__ import annotations

from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchStatus(IntEnum):
    SCHEDULED = 1
    LIVE = 2
    FINISHED = 3


# Names the provider sends next to (or instead of) the numeric enum
STATUS_NAMES = {
    "Prog.": MatchStatus.SCHEDULED,
    "En Vivo": MatchStatus.LIVE,
    "Finalizado": MatchStatus.FINISHED,
}


class StatusInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    enum: Optional[int] = None
    name: str = ""

    @property
    def kind(self) -> Optional[MatchStatus]:
        if self.enum in (1, 2, 3):
            return MatchStatus(self.enum)
        return STATUS_NAMES.get(self.name)


class Team(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    short_name: str = ""

    @field_validator("id", "name", "short_name", mode="before")
    @classmethod
    def _none_to_str(cls, v):
        return "" if v is None else str(v)


class Match(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    teams: list[Team] = Field(default_factory=list)
    scores: Optional[list[Optional[int]]] = None
    status: StatusInfo = Field(default_factory=StatusInfo)
    start_time: str = ""
    stage_round_name: str = ""
    # {"home": ["Cavani"], "away": []} when the provider publishes goal scorers
    scorers: Optional[dict[str, list[str]]] = None

    # set by the client, the provider only implies it through the URL
    round_number: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v):
        return str(v)

    @field_validator("start_time", mode="before")
    @classmethod
    def _start_time_to_str(cls, v):
        return "" if v is None else str(v)

    @property
    def kind(self) -> Optional[MatchStatus]:
        return self.status.kind

    @property
    def is_finished(self) -> bool:
        return self.kind == MatchStatus.FINISHED

    @property
    def is_live(self) -> bool:
        return self.kind == MatchStatus.LIVE

    @property
    def is_scheduled(self) -> bool:
        return self.kind == MatchStatus.SCHEDULED

    @property
    def score_pair(self) -> Optional[tuple[int, int]]:
        s = self.scores
        if not s or len(s) != 2 or s[0] is None or s[1] is None:
            return None
        return (int(s[0]), int(s[1]))


class RoundPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    games: list[Match] = Field(default_factory=list)
    TTL: Optional[int] = None
