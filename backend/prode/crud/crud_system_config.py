# prode/crud/crud_system_config.py
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from prode.core.game_config import CURRENT_ROUND_KEY
from prode.models.system_config import SystemConfig


def get_current_round(db: Session) -> Optional[int]:
    row = db.get(SystemConfig, CURRENT_ROUND_KEY)
    if row is None:
        return None
    return int(row.value)


def get_current_round_metadata(db: Session) -> dict:
    row = db.get(SystemConfig, CURRENT_ROUND_KEY)
    if row is None:
        return {"value": None, "updated_at": None, "updated_by": None}
    return {
        "value": int(row.value),
        "updated_at": row.updated_at,
        "updated_by": row.updated_by,
    }


def save_current_round(db: Session, round_number: int, updated_by: str = "system") -> SystemConfig:
    row = db.get(SystemConfig, CURRENT_ROUND_KEY)
    if row is None:
        row = SystemConfig(key=CURRENT_ROUND_KEY)
        db.add(row)

    row.value = str(round_number)
    row.updated_by = updated_by
    row.updated_at = datetime.utcnow()

    db.commit()
    return row


def delete_current_round(db: Session) -> bool:
    row = db.get(SystemConfig, CURRENT_ROUND_KEY)
    if row is None:
        return False
    db.delete(row)
    db.commit()
    return True
