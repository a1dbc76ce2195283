from datetime import datetime, timedelta

import pytest

from prode.core.errors import ExecutionNotFoundError
from prode.models.cron_execution import CronJobExecution
from prode.services.execution_ledger import ExecutionLedger


@pytest.fixture
def ledger(session_factory) -> ExecutionLedger:
    return ExecutionLedger(session_factory)


def test_completed_execution_records_values(ledger) -> None:
    eid = ledger.start_execution("update-current-matchday", {"timezone": "America/Argentina/Buenos_Aires"})
    result = ledger.complete_execution(eid, previous_value="3", new_value="4", records_affected=1, metadata={"changed": True})

    assert result.status == "completed"
    (row,) = ledger.get_execution_history()
    assert row["id"] == eid
    assert row["status"] == "completed"
    assert row["has_changes"] is True
    assert row["is_running"] is False
    assert row["metadata"]["timezone"] == "America/Argentina/Buenos_Aires"
    assert row["metadata"]["changed"] is True
    assert row["completed_at"] is not None
    assert row["host_info"]


def test_failed_execution_keeps_message_and_stack(ledger) -> None:
    eid = ledger.start_execution("process-points-dynamic")
    try:
        raise RuntimeError("provider exploded")
    except RuntimeError as exc:
        ledger.fail_execution(eid, exc, {"operation": "sweep"})

    (row,) = ledger.get_execution_history("process-points-dynamic")
    assert row["status"] == "failed"
    assert row["error_message"] == "provider exploded"
    assert "RuntimeError" in row["metadata"]["error_stack"]
    assert row["metadata"]["operation"] == "sweep"


def test_unknown_execution_raises(ledger) -> None:
    with pytest.raises(ExecutionNotFoundError):
        ledger.complete_execution(999)
    with pytest.raises(ExecutionNotFoundError):
        ledger.fail_execution(999, RuntimeError("x"))


def test_running_execution_is_reported_as_running(ledger) -> None:
    ledger.start_execution("check-matches-today")
    (row,) = ledger.get_execution_history()
    assert row["is_running"] is True


def test_stats(ledger) -> None:
    for _ in range(3):
        ledger.complete_execution(ledger.start_execution("update-current-matchday"), previous_value="1", new_value="1")
    ledger.fail_execution(ledger.start_execution("update-current-matchday"), RuntimeError("boom"))
    ledger.complete_execution(ledger.start_execution("check-matches-today"))

    stats = ledger.get_execution_stats("update-current-matchday", hours=24)
    assert stats["total_executions"] == 4
    assert stats["successful_executions"] == 3
    assert stats["failed_executions"] == 1
    assert stats["recent_failures"][0]["error_message"] == "boom"
    assert stats["last_execution"]["job_name"] == "update-current-matchday"

    assert ledger.get_execution_stats()["total_executions"] == 5


def test_history_is_newest_first_and_limited(ledger) -> None:
    ids = [ledger.start_execution("cleanup-audit-logs") for _ in range(5)]
    history = ledger.get_execution_history(limit=3)
    assert [h["id"] for h in history] == ids[::-1][:3]


def test_cleanup_removes_only_old_records(ledger, db) -> None:
    old = ledger.start_execution("update-current-matchday")
    recent = ledger.start_execution("update-current-matchday")
    db.query(CronJobExecution).filter_by(id=old).update({"started_at": datetime.utcnow() - timedelta(days=31)})
    db.commit()

    assert ledger.cleanup_old_executions(30) == 1
    assert [h["id"] for h in ledger.get_execution_history()] == [recent]
