# tests/test_job_views.py

from datetime import date

import pytest

from app.services.job_records import (
    JobRecord, make_storage_name, next_serial, validate_field,
)
from app.services.job_views import dashboard_stats, jobs_with_eta, refund_queue



def _jobs():
    return [
        JobRecord(serial=1, status="pending"),
        JobRecord(serial=2, status="done", refund_status="pending"),
        JobRecord(serial=3, status="done", refund_status="collected"),
        JobRecord(serial=4, status="cancelled", refund_status="collected"),
        JobRecord(serial=5, status="eta", eta=date(2025, 11, 2)),
        JobRecord(serial=6, status="eta", eta=date(2025, 10, 1)),
    ]


def test_dashboard_stats_counts_refunds_only_for_done_jobs():
    stats = dashboard_stats(_jobs())

    assert stats["total_jobs"] == 6
    assert stats["active_jobs"] == 1
    assert stats["completed_jobs"] == 2
    assert stats["pending_refunds"] == 1
    assert stats["collected_refunds"] == 1  # el cancelado no cuenta
    assert stats["by_status"]["eta"] == 2


def test_refund_queue_and_eta_listing():
    jobs = _jobs()
    assert [j.serial for j in refund_queue(jobs)] == [2, 3]
    assert [j.serial for j in jobs_with_eta(jobs)] == [6, 5]


def test_next_serial():
    assert next_serial([]) == 1
    assert next_serial([JobRecord(serial=3), JobRecord(serial=7)]) == 8


def test_storage_names_keep_extension_and_differ():
    a = make_storage_name("Invoice.PDF")
    b = make_storage_name("Invoice.PDF")
    assert a.endswith(".pdf")
    assert a != b
    assert a.split("-", 1)[0].isdigit()


def test_validate_field():
    assert validate_field("status", " Done ") == "done"
    assert validate_field("eta", "01/10/2025") == date(2025, 10, 1)
    assert validate_field("eta", "") is None
    assert validate_field("terminal", None) == ""

    with pytest.raises(ValueError):
        validate_field("status", "shipped")
    with pytest.raises(ValueError):
        validate_field("serial", 3)
