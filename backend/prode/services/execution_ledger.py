# prode/services/execution_ledger.py
from __future__ import annotations

import logging
import os
import socket
import traceback
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from prode.core.errors import ExecutionNotFoundError
from prode.core.game_config import LEDGER_RETENTION_DAYS
from prode.core.sentry import report_error
from prode.models.cron_execution import CronJobExecution

logger = logging.getLogger(__name__)

STATUS_STARTED = "started"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


@dataclass
class ExecutionResult:
    execution_id: int
    job_name: str
    status: str
    execution_time_ms: int
    previous_value: Optional[str] = None
    new_value: Optional[str] = None
    records_affected: Optional[int] = None
    metadata: Optional[dict] = None
    error_message: Optional[str] = None


def _host_info() -> str:
    return f"{socket.gethostname()}-{os.getenv('DYNO', 'local')}"


def _elapsed_ms(started_at: datetime) -> int:
    return int((datetime.utcnow() - started_at).total_seconds() * 1000)


class ExecutionLedger:
    """Audit trail of scheduled runs: one row per run, opened at start, closed once."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def start_execution(self, job_name: str, metadata: Optional[dict] = None) -> int:
        with self.session_factory() as db:
            row = CronJobExecution(
                job_name=job_name,
                status=STATUS_STARTED,
                started_at=datetime.utcnow(),
                meta=dict(metadata or {}),
                host_info=_host_info(),
            )
            db.add(row)
            db.commit()
            logger.info("Started execution %s for %s", row.id, job_name)
            return row.id

    def complete_execution(
        self,
        execution_id: int,
        *,
        previous_value: Optional[str] = None,
        new_value: Optional[str] = None,
        records_affected: int = 0,
        metadata: Optional[dict] = None,
    ) -> ExecutionResult:
        with self.session_factory() as db:
            row = db.get(CronJobExecution, execution_id)
            if row is None:
                raise ExecutionNotFoundError(f"execution {execution_id} not found")

            elapsed = _elapsed_ms(row.started_at)
            has_changes = previous_value != new_value

            row.status = STATUS_COMPLETED
            row.completed_at = datetime.utcnow()
            row.execution_time_ms = elapsed
            row.previous_value = previous_value
            row.new_value = new_value
            row.records_affected = records_affected or 0
            row.meta = {**(row.meta or {}), **(metadata or {}), "has_changes": has_changes}
            db.commit()

            logger.info(
                "Execution %s completed: %s (%dms, changes: %s)",
                execution_id, row.job_name, elapsed, "YES" if has_changes else "NO",
            )
            return ExecutionResult(
                execution_id=execution_id,
                job_name=row.job_name,
                status=STATUS_COMPLETED,
                execution_time_ms=elapsed,
                previous_value=previous_value,
                new_value=new_value,
                records_affected=records_affected,
                metadata=metadata,
            )

    def fail_execution(self, execution_id: int, error: BaseException, metadata: Optional[dict] = None) -> ExecutionResult:
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))

        with self.session_factory() as db:
            row = db.get(CronJobExecution, execution_id)
            if row is None:
                raise ExecutionNotFoundError(f"execution {execution_id} not found")

            elapsed = _elapsed_ms(row.started_at)
            row.status = STATUS_FAILED
            row.completed_at = datetime.utcnow()
            row.execution_time_ms = elapsed
            row.error_message = str(error)
            row.meta = {**(row.meta or {}), **(metadata or {}), "error_stack": stack}
            db.commit()
            job_name = row.job_name
            started_at = row.started_at

        logger.error("Execution %s failed: %s (%dms) - %s", execution_id, job_name, elapsed, error)
        report_error(
            "cron-audit",
            {
                "job_name": job_name,
                "execution_id": execution_id,
                "execution_time_ms": elapsed,
                "started_at": started_at.isoformat(),
            },
            error,
            extra_tags={"cron_job": job_name, "execution_id": execution_id},
        )
        return ExecutionResult(
            execution_id=execution_id,
            job_name=job_name,
            status=STATUS_FAILED,
            execution_time_ms=elapsed,
            error_message=str(error),
            metadata=metadata,
        )

    def get_execution_stats(self, job_name: Optional[str] = None, hours: int = 24) -> dict:
        since = datetime.utcnow() - timedelta(hours=hours)

        with self.session_factory() as db:
            q = db.query(CronJobExecution).filter(CronJobExecution.started_at >= since)
            last_q = db.query(CronJobExecution)
            if job_name:
                q = q.filter(CronJobExecution.job_name == job_name)
                last_q = last_q.filter(CronJobExecution.job_name == job_name)

            executions = q.order_by(CronJobExecution.started_at.desc(), CronJobExecution.id.desc()).all()
            last = last_q.order_by(CronJobExecution.started_at.desc(), CronJobExecution.id.desc()).first()

            timed = [e.execution_time_ms for e in executions if e.execution_time_ms]
            failures = [e for e in executions if e.status == STATUS_FAILED]

            return {
                "total_executions": len(executions),
                "successful_executions": sum(1 for e in executions if e.status == STATUS_COMPLETED),
                "failed_executions": len(failures),
                "average_execution_time_ms": round(sum(timed) / len(timed)) if timed else 0,
                "last_execution": _execution_to_dict(last) if last else None,
                "recent_failures": [
                    {
                        "id": e.id,
                        "job_name": e.job_name,
                        "started_at": e.started_at,
                        "error_message": e.error_message,
                        "execution_time_ms": e.execution_time_ms,
                    }
                    for e in failures[:5]
                ],
            }

    def get_execution_history(self, job_name: Optional[str] = None, limit: int = 50) -> list[dict]:
        with self.session_factory() as db:
            q = db.query(CronJobExecution)
            if job_name:
                q = q.filter(CronJobExecution.job_name == job_name)
            rows = q.order_by(CronJobExecution.started_at.desc(), CronJobExecution.id.desc()).limit(limit).all()
            return [_execution_to_dict(r) for r in rows]

    def cleanup_old_executions(self, retention_days: int = LEDGER_RETENTION_DAYS) -> int:
        cutoff = datetime.utcnow() - timedelta(days=retention_days)
        with self.session_factory() as db:
            deleted = (
                db.query(CronJobExecution)
                .filter(CronJobExecution.started_at < cutoff)
                .delete(synchronize_session=False)
            )
            db.commit()
        logger.info("Ledger cleanup: %d records deleted", deleted)
        return deleted


def _execution_to_dict(e: CronJobExecution) -> dict[str, Any]:
    return {
        "id": e.id,
        "job_name": e.job_name,
        "status": e.status,
        "started_at": e.started_at,
        "completed_at": e.completed_at,
        "execution_time_ms": e.execution_time_ms,
        "previous_value": e.previous_value,
        "new_value": e.new_value,
        "records_affected": e.records_affected,
        "error_message": e.error_message,
        "host_info": e.host_info,
        "metadata": e.meta,
        "has_changes": e.previous_value != e.new_value,
        "is_running": e.status == STATUS_STARTED,
    }
