# prode/services/round_repository.py
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from prode.crud import crud_system_config

logger = logging.getLogger(__name__)


class CurrentRoundRepository:
    """The committed current round, stored under `current_matchday` in system_config.

    Each call opens and closes its own session so it can be used from
    scheduler threads.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get_current_round(self) -> Optional[int]:
        with self.session_factory() as db:
            return crud_system_config.get_current_round(db)

    def save_current_round(self, round_number: int, updated_by: str = "system") -> None:
        with self.session_factory() as db:
            crud_system_config.save_current_round(db, round_number, updated_by)
        logger.debug("Current round saved: %s (by %s)", round_number, updated_by)

    def get_metadata(self) -> dict:
        with self.session_factory() as db:
            return crud_system_config.get_current_round_metadata(db)

    def delete_current_round(self) -> bool:
        with self.session_factory() as db:
            deleted = crud_system_config.delete_current_round(db)
        if deleted:
            logger.info("Current round config deleted")
        return deleted
