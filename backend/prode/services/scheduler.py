# prode/services/scheduler.py
from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from prode.core.config import settings
from prode.core.game_config import (
    CHECK_MATCHES_CRON,
    CLEANUP_LEDGER_CRON,
    JOB_ACTIVATE_SWEEP,
    JOB_CHECK_MATCHES_TODAY,
    JOB_CLEANUP_LEDGER,
    JOB_DEACTIVATE_SWEEP,
    JOB_POINTS_SWEEP,
    JOB_UPDATE_CURRENT_ROUND,
    LEDGER_RETENTION_DAYS,
    SWEEP_CRON,
    SWEEP_JOB_ID,
    SWEEP_WINDOW_END,
    SWEEP_WINDOW_START,
    UPDATE_ROUND_CRON,
)
from prode.core.sentry import report_error
from prode.services.execution_ledger import ExecutionLedger
from prode.services.prediction_cache import PredictionCache
from prode.services.round_calculator import RoundCalculator
from prode.services.round_repository import CurrentRoundRepository
from prode.services.scoring import ScoringEngine, SweepResult

logger = logging.getLogger(__name__)

ACTION_CREATE = "create-missing-job"
ACTION_REMOVE = "remove-orphaned-job"
ACTION_NONE = "no-action"


class SweepState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"


def reconcile_sweep(is_active: bool, job_exists: bool) -> str:
    """What to do so the registered jobs match the active flag."""
    if is_active and not job_exists:
        return ACTION_CREATE
    if not is_active and job_exists:
        return ACTION_REMOVE
    return ACTION_NONE


def is_within_sweep_window(now: datetime) -> bool:
    # 15:00 .. 01:00 local, crossing midnight
    t = (now.hour, now.minute)
    return t >= SWEEP_WINDOW_START or t <= SWEEP_WINDOW_END


class MatchdayScheduler:
    """
    Owns the background jobs:

      - update-current-matchday (06:00, 18:00): recompute and commit the round
      - check-matches-today (11:00): switch the points sweep on or off
      - cleanup-audit-logs (Sunday 02:00): ledger retention
      - process-points-dynamic (every 5 min, 15:00-01:00): only registered
        while the sweep is active

    Activation is level-triggered: activating an active sweep or
    deactivating an idle one does nothing.
    """

    def __init__(
        self,
        calculator: RoundCalculator,
        engine: ScoringEngine,
        ledger: ExecutionLedger,
        session_factory: Callable[[], Session],
        cache: Optional[PredictionCache] = None,
        timezone: Optional[str] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.calculator = calculator
        self.engine = engine
        self.ledger = ledger
        self.cache = cache
        self.rounds = CurrentRoundRepository(session_factory)
        self.tz = ZoneInfo(timezone or settings.TIMEZONE)
        self.scheduler = scheduler or BackgroundScheduler(
            timezone=self.tz,
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
        )
        self._state = SweepState.IDLE
        self._state_lock = threading.RLock()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def start(self, paused: bool = False) -> None:
        self.register_fixed_jobs()
        self.scheduler.start(paused=paused)
        logger.info("Scheduler started (tz=%s)", self.tz.key)

    def shutdown(self, wait: bool = False) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler stopped")

    def register_fixed_jobs(self) -> None:
        self.scheduler.add_job(
            self.update_current_round_job,
            CronTrigger(timezone=self.tz, **UPDATE_ROUND_CRON),
            id=JOB_UPDATE_CURRENT_ROUND,
            name="Recompute current round",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.check_matches_today_job,
            CronTrigger(timezone=self.tz, **CHECK_MATCHES_CRON),
            id=JOB_CHECK_MATCHES_TODAY,
            name="Probe matches today",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.cleanup_ledger_job,
            CronTrigger(timezone=self.tz, **CLEANUP_LEDGER_CRON),
            id=JOB_CLEANUP_LEDGER,
            name="Execution ledger retention",
            replace_existing=True,
        )

    # ------------------------------------------------------------------
    # audited runs
    # ------------------------------------------------------------------

    def _run_audited(self, job_name: str, body: Callable[[], dict], metadata: Optional[dict] = None) -> Optional[dict]:
        """Open a ledger record, run `body`, close the record. Never raises."""
        start_meta = {
            "scheduled_time": datetime.now(self.tz).isoformat(),
            "timezone": self.tz.key,
            **(metadata or {}),
        }
        try:
            execution_id = self.ledger.start_execution(job_name, start_meta)
        except Exception as exc:
            logger.error("Could not open ledger record for %s: %s", job_name, exc)
            report_error("matchday-scheduler", {"job": job_name, "phase": "audit-start"}, exc, extra_tags={"cron_job": job_name})
            return None

        logger.info("Running job %s (execution %s)", job_name, execution_id)
        try:
            outcome = body()
            self.ledger.complete_execution(execution_id, **outcome)
            return outcome
        except Exception as exc:
            logger.error("Error in job %s: %s", job_name, exc)
            try:
                self.ledger.fail_execution(execution_id, exc, {"operation": job_name})
            except Exception as audit_exc:
                logger.error("Could not mark execution %s as failed: %s", execution_id, audit_exc)
                report_error("matchday-scheduler", {"job": job_name, "execution_id": execution_id}, exc, extra_tags={"cron_job": job_name})
            return None

    # --- recompute current round ---

    def update_current_round_job(self) -> Optional[dict]:
        return self._run_audited(
            JOB_UPDATE_CURRENT_ROUND,
            lambda: self._recompute_round("cron_job"),
            {"calculated_rounds": "auto-detection"},
        )

    def _recompute_round(self, updated_by: str) -> dict:
        previous = self.rounds.get_current_round()

        new_round = self.calculator.calculate_current_round()

        self.rounds.save_current_round(new_round, updated_by)

        changed = previous != new_round
        if changed:
            logger.info("Current round updated: %s -> %s (by %s)", previous, new_round, updated_by)
        else:
            logger.info("Current round unchanged: %s", new_round)

        return {
            "previous_value": str(previous) if previous is not None else None,
            "new_value": str(new_round),
            "records_affected": 1,
            "metadata": {"changed": changed, "updated_by": updated_by},
        }

    def refresh_current_round(self, updated_by: str = "manual") -> dict:
        """Manual recompute; the caller waits for the result, so errors propagate."""
        logger.info("Forcing current round recompute (%s)", updated_by)
        t0 = time.monotonic()
        try:
            outcome = self._recompute_round(updated_by)
        except Exception as exc:
            report_error("matchday-scheduler", {"operation": "refresh-manual", "updated_by": updated_by}, exc)
            raise

        return {
            "success": True,
            "previous_round": int(outcome["previous_value"]) if outcome["previous_value"] is not None else None,
            "new_round": int(outcome["new_value"]),
            "updated_by": updated_by,
            "timestamp": datetime.now(self.tz).isoformat(),
            "execution_time_ms": int((time.monotonic() - t0) * 1000),
            "changed": outcome["metadata"]["changed"],
        }

    # --- probe matches today ---

    def check_matches_today_job(self) -> Optional[dict]:
        return self._run_audited(JOB_CHECK_MATCHES_TODAY, self._check_matches_today)

    def _check_matches_today(self) -> dict:
        has_matches = self.engine.has_matches_today()
        if has_matches:
            logger.info("Matches today: activating points sweep")
            self.activate_sweep(reason=JOB_CHECK_MATCHES_TODAY)
        else:
            logger.info("No matches today: points sweep stays off")
            self.deactivate_sweep(reason=JOB_CHECK_MATCHES_TODAY)

        return {
            "previous_value": None,
            "new_value": None,
            "records_affected": 0,
            "metadata": {"has_matches_today": has_matches, "sweep_state": self.state.value},
        }

    # --- points sweep ---

    def points_sweep_job(self, now: Optional[datetime] = None) -> Optional[dict]:
        now = now or datetime.now(self.tz)
        if not is_within_sweep_window(now):
            logger.debug("Outside sweep window (%s), skipping", now.strftime("%H:%M"))
            return None
        return self._run_audited(
            JOB_POINTS_SWEEP,
            self._sweep,
            {"is_dynamic_job": True, "active_hours": "15:00-01:00"},
        )

    def _sweep(self) -> dict:
        result = self.engine.process_round()
        return {
            "previous_value": None,
            "new_value": None,
            "records_affected": result.final_count,
            "metadata": {
                "matchday": result.round_number,
                "total_matches": result.total_matches,
                "processed_matches": result.processed_matches,
                "processed_predictions": result.final_count,
                "live_predictions": result.live_count,
                "failures": result.failures,
                "user_points_details": [asdict(d) for d in result.user_points_details],
                "summary": result.summary(),
            },
        }

    def execute_sweep_now(self) -> SweepResult:
        logger.info("Running points sweep manually")
        return self.engine.process_round()

    # --- ledger retention ---

    def cleanup_ledger_job(self) -> Optional[dict]:
        return self._run_audited(
            JOB_CLEANUP_LEDGER,
            self._cleanup_ledger,
            {"retention_days": LEDGER_RETENTION_DAYS},
        )

    def _cleanup_ledger(self) -> dict:
        deleted = self.ledger.cleanup_old_executions(LEDGER_RETENTION_DAYS)
        return {
            "previous_value": None,
            "new_value": None,
            "records_affected": deleted,
            "metadata": {"deleted_records": deleted, "operation": "cleanup"},
        }

    def execute_job(self, job_name: str) -> Optional[Any]:
        jobs = {
            JOB_UPDATE_CURRENT_ROUND: self.update_current_round_job,
            JOB_CHECK_MATCHES_TODAY: self.check_matches_today_job,
            JOB_CLEANUP_LEDGER: self.cleanup_ledger_job,
            JOB_POINTS_SWEEP: self.points_sweep_job,
        }
        if job_name not in jobs:
            raise KeyError(job_name)
        logger.info("Executing job %s manually", job_name)
        if job_name == JOB_POINTS_SWEEP:
            # manual runs ignore the time window
            return self._run_audited(JOB_POINTS_SWEEP, self._sweep, {"is_dynamic_job": False, "manual": True})
        return jobs[job_name]()

    # ------------------------------------------------------------------
    # dynamic sweep job
    # ------------------------------------------------------------------

    @property
    def state(self) -> SweepState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state != SweepState.IDLE

    def sweep_job_exists(self) -> bool:
        return self.scheduler.get_job(SWEEP_JOB_ID) is not None

    def activate_sweep(self, reason: str = "manual") -> bool:
        with self._state_lock:
            if self._state != SweepState.IDLE:
                logger.info("Points sweep already active")
                return False

            self._state = SweepState.STARTING
            try:
                self._create_sweep_job()
            except Exception:
                self._state = SweepState.IDLE
                raise
            self._state = SweepState.ACTIVE

        logger.info("Points sweep ACTIVATED (every 5 min, 15:00-01:00)")
        self._audit_transition(JOB_ACTIVATE_SWEEP, reason, SweepState.IDLE, SweepState.ACTIVE)
        return True

    def deactivate_sweep(self, reason: str = "manual") -> bool:
        with self._state_lock:
            if self._state == SweepState.IDLE:
                logger.info("Points sweep already inactive")
                return False
            previous = self._state
            # an in-flight sweep is left to finish; scoring is idempotent
            self._remove_sweep_job()
            self._state = SweepState.IDLE

        logger.info("Points sweep DEACTIVATED")
        self._audit_transition(JOB_DEACTIVATE_SWEEP, reason, previous, SweepState.IDLE)
        return True

    def _create_sweep_job(self) -> None:
        if self.sweep_job_exists():
            logger.info("Sweep job %s already registered", SWEEP_JOB_ID)
            return
        self.scheduler.add_job(
            self.points_sweep_job,
            CronTrigger(timezone=self.tz, **SWEEP_CRON),
            id=SWEEP_JOB_ID,
            name="Points sweep (live + final)",
            replace_existing=True,
        )
        logger.info("Sweep job %s created", SWEEP_JOB_ID)

    def _remove_sweep_job(self) -> None:
        if not self.sweep_job_exists():
            return
        self.scheduler.remove_job(SWEEP_JOB_ID)
        logger.info("Sweep job %s removed", SWEEP_JOB_ID)

    def _audit_transition(self, job_name: str, reason: str, before: SweepState, after: SweepState) -> None:
        try:
            execution_id = self.ledger.start_execution(job_name, {"reason": reason})
            self.ledger.complete_execution(
                execution_id,
                previous_value=before.value,
                new_value=after.value,
                records_affected=1,
                metadata={"job_id": SWEEP_JOB_ID},
            )
        except Exception as exc:
            logger.error("Could not audit %s: %s", job_name, exc)
            report_error("matchday-scheduler", {"transition": job_name}, exc)

    def sync_sweep_state(self) -> dict:
        """Repair drift between the active flag and the job registry."""
        with self._state_lock:
            was_active = self.is_active
            job_existed = self.sweep_job_exists()
            action = reconcile_sweep(was_active, job_existed)

            if action == ACTION_CREATE:
                self._create_sweep_job()
                self._state = SweepState.ACTIVE
            elif action == ACTION_REMOVE:
                self._remove_sweep_job()

        if action != ACTION_NONE:
            logger.info("Sweep state sync: %s", action)
        return {"was_active": was_active, "job_existed": job_existed, "action": action}

    # ------------------------------------------------------------------
    # status
    # ------------------------------------------------------------------

    def sweep_status(self) -> dict:
        exists = self.sweep_job_exists()
        if self.is_active and exists:
            description = "Sweep job active every 5 min (15:00-01:00)"
        elif self.is_active:
            description = "Sweep flagged active but job is missing (run sync)"
        elif exists:
            description = "Sweep inactive but an orphaned job is registered (run sync)"
        else:
            description = "Sweep inactive, no job registered"
        return {
            "state": self.state.value,
            "is_active": self.is_active,
            "job_id": SWEEP_JOB_ID,
            "job_exists": exists,
            "description": description,
        }

    def status(self) -> dict:
        current = self.rounds.get_metadata()

        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": next_run.isoformat() if next_run else None,
                }
            )

        return {
            "running": self.scheduler.running,
            "timezone": self.tz.key,
            "current_round": current,
            "sweep": self.sweep_status(),
            "jobs": sorted(jobs, key=lambda j: j["id"]),
            "cache": self.cache.stats() if self.cache is not None else None,
        }
