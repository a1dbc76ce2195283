from datetime import datetime, timedelta
from typing import Optional

from prode.core.errors import ProviderError
from prode.models.prediction import Prediction
from prode.models.tournament import Tournament, TournamentParticipant
from prode.models.user import User
from prode.schemas.matches import Match

SCHEDULED, LIVE, FINISHED = 1, 2, 3
STATUS_LABELS = {SCHEDULED: "Prog.", LIVE: "En Vivo", FINISHED: "Finalizado"}

# (day offset from Friday, hour, minute): eight distinct weekday/time slots
SLOTS = [(0, 19, 0), (1, 15, 30), (1, 17, 45), (1, 20, 0), (2, 14, 0), (2, 16, 15), (2, 18, 30), (3, 21, 0)]
FIRST_FRIDAY = datetime(2025, 2, 7)


def kickoff(round_number: int, slot: int) -> str:
    d, hh, mm = SLOTS[slot % len(SLOTS)]
    ko = FIRST_FRIDAY + timedelta(days=7 * (round_number - 1) + d, hours=hh, minutes=mm)
    return ko.strftime("%d-%m-%Y %H:%M")


def make_match(
    match_id: str,
    status: int,
    scores=None,
    start_time: str = "15-03-2025 17:00",
    scorers: Optional[dict] = None,
    teams: Optional[list] = None,
) -> Match:
    if teams is None:
        teams = [
            {"id": f"{match_id}-h", "name": f"Home {match_id}", "short_name": "HOM"},
            {"id": f"{match_id}-a", "name": f"Away {match_id}", "short_name": "AWA"},
        ]
    return Match.model_validate(
        {
            "id": match_id,
            "teams": teams,
            "scores": scores,
            "status": {"enum": status, "name": STATUS_LABELS.get(status, "")},
            "start_time": start_time,
            "stage_round_name": "Fecha",
            "scorers": scorers,
        }
    )


def make_round(round_number: int, statuses: list[int], scores: Optional[list] = None) -> list[Match]:
    scores = scores or [None] * len(statuses)
    return [
        make_match(f"r{round_number}m{i}", st, sc, start_time=kickoff(round_number, i))
        for i, (st, sc) in enumerate(zip(statuses, scores))
    ]


def placeholder_round(round_number: int, size: int = 4) -> list[Match]:
    return [
        make_match(f"r{round_number}m{i}", SCHEDULED, start_time="01-01-2030 00:00", teams=[])
        for i in range(size)
    ]


class FakeProvider:
    """Stands in for PromiedosClient; unknown rounds fail like an unreachable provider."""

    def __init__(self, rounds: Optional[dict] = None):
        self.rounds = dict(rounds or {})
        self.errors: dict = {}
        self.calls: list[int] = []

    def fetch_matches(self, round_number: int) -> list[Match]:
        self.calls.append(round_number)
        if round_number in self.errors:
            raise self.errors[round_number]
        if round_number not in self.rounds:
            raise ProviderError(f"round {round_number} not available", round_number=round_number)
        return [m.model_copy(deep=True) for m in self.rounds[round_number]]

    def close(self) -> None:
        pass


def seed_users(db, *names: str) -> list[User]:
    users = [User(name=n, email=f"{n.lower()}@example.com") for n in names]
    db.add_all(users)
    db.commit()
    return users


def seed_tournament(db, users: list[User], name: str = "Amigos", joined: Optional[list[datetime]] = None) -> Tournament:
    t = Tournament(name=name, invite_code=f"code-{name.lower()}")
    db.add(t)
    db.flush()
    for i, u in enumerate(users):
        p = TournamentParticipant(tournament_id=t.id, user_id=u.id)
        if joined:
            p.joined_at = joined[i]
        db.add(p)
    db.commit()
    return t


def add_prediction(db, user: User, match_id: str, scores, created_at: Optional[datetime] = None, scorers=None) -> Prediction:
    payload = {"scores": list(scores)}
    if scorers:
        payload["scorers"] = scorers
    p = Prediction(match_id=match_id, user_id=user.id, prediction=payload)
    if created_at is not None:
        p.created_at = created_at
    db.add(p)
    db.commit()
    return p
