from datetime import datetime

from sqlalchemy import Column, DateTime, String

from prode.db.base import Base


class SystemConfig(Base):
    __tablename__ = "system_config"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_by = Column(String, nullable=True)  # "manual" | "cron_job"
