from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String, Text

from prode.db.base import Base


class CronJobExecution(Base):
    __tablename__ = "cron_job_executions"

    id = Column(Integer, primary_key=True)
    job_name = Column(String, nullable=False)
    status = Column(String, nullable=False)  # started | completed | failed

    started_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    execution_time_ms = Column(Integer, nullable=True)

    previous_value = Column(String, nullable=True)
    new_value = Column(String, nullable=True)
    records_affected = Column(Integer, nullable=True)

    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    host_info = Column(String, nullable=True)

    __table_args__ = (
        Index("ix_cron_exec_job_started", "job_name", "started_at"),
        Index("ix_cron_exec_status", "status"),
        Index("ix_cron_exec_started", "started_at"),
    )
