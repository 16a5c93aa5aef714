# app/services/job_views.py

from typing import Any, Dict, Iterable, List

from app.models.job import JOB_STATUSES
from app.services.job_records import JobRecord


def refund_queue(jobs: Iterable[JobRecord]) -> List[JobRecord]:
    # el reembolso solo se gestiona cuando el job está "done"
    return [j for j in jobs if j.status == "done"]


def jobs_with_eta(jobs: Iterable[JobRecord]) -> List[JobRecord]:
    return sorted(
        (j for j in jobs if j.status == "eta" and j.eta is not None),
        key=lambda j: (j.eta, j.serial),
    )


def dashboard_stats(jobs: Iterable[JobRecord]) -> Dict[str, Any]:
    """
    Contadores del dashboard.

    NOTA:
    - active_jobs cuenta solo status "pending" (igual que el tablero original).
    - pending_refunds / collected_refunds solo sobre jobs "done";
      refund_status de otros jobs se conserva pero no cuenta.
    """
    by_status = {s: 0 for s in JOB_STATUSES}
    total_jobs = 0
    pending_refunds = 0
    collected_refunds = 0
    attachments = 0

    for j in jobs:
        total_jobs += 1
        by_status[j.status] = by_status.get(j.status, 0) + 1
        attachments += len(j.files)

        if j.status != "done":
            continue
        if j.refund_status == "collected":
            collected_refunds += 1
        else:
            pending_refunds += 1

    return {
        "total_jobs": total_jobs,
        "active_jobs": by_status["pending"],
        "completed_jobs": by_status["done"],
        "pending_refunds": pending_refunds,
        "collected_refunds": collected_refunds,
        "attachments": attachments,
        "by_status": by_status,
    }
