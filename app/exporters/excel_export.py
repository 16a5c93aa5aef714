# app/exporters/excel_export.py

import hashlib
import os
import uuid
from typing import List

import pandas as pd
from werkzeug.utils import secure_filename

from app.services.job_records import JobRecord
from app.services.job_views import dashboard_stats, refund_queue


def _owner_dir_name(owner) -> str:
    name = secure_filename(str(owner))
    if not name:
        name = hashlib.sha256(str(owner).encode("utf-8")).hexdigest()[:16]
    return name


def export_jobs_to_excel(jobs: List[JobRecord], output_folder: str, owner: str) -> str:
    """
    Genera outputs/<owner>/Jobs_<owner>_<uuid>.xlsx con multihoja:
      Jobs, Refunds, Attachments, KPIs
    El owner viene de un header: se sanea antes de usarlo en el path.
    """
    safe_owner = _owner_dir_name(owner)
    out_dir = os.path.join(output_folder, safe_owner)
    os.makedirs(out_dir, exist_ok=True)
    out_path = os.path.join(out_dir, f"Jobs_{safe_owner}_{uuid.uuid4().hex}.xlsx")

    df_jobs = pd.DataFrame([{
        "S/N": j.serial,
        "Consignee": j.consignee,
        "BL Number": j.bl_number,
        "Container Size": j.container_size,
        "Terminal": j.terminal,
        "Status": j.status,
        "ETA": j.eta.isoformat() if j.eta else "",
        "Refund Status": j.refund_status,
        "Files": len(j.files),
    } for j in jobs], columns=[
        "S/N", "Consignee", "BL Number", "Container Size", "Terminal",
        "Status", "ETA", "Refund Status", "Files",
    ])

    df_refunds = pd.DataFrame([{
        "S/N": j.serial,
        "Consignee": j.consignee,
        "BL Number": j.bl_number,
        "Container Size": j.container_size,
        "Refund Status": j.refund_status,
    } for j in refund_queue(jobs)], columns=[
        "S/N", "Consignee", "BL Number", "Container Size", "Refund Status",
    ])

    df_files = pd.DataFrame([{
        "S/N": j.serial,
        "File": f.name,
        "Size": f.size,
        "Type": f.mime_type,
        "Uploaded": f.uploaded_at,
    } for j in jobs for f in j.files], columns=["S/N", "File", "Size", "Type", "Uploaded"])

    stats = dashboard_stats(jobs)
    df_kpi = pd.DataFrame([{
        "Total Jobs": stats["total_jobs"],
        "Active Jobs": stats["active_jobs"],
        "Completed Jobs": stats["completed_jobs"],
        "Pending Refunds": stats["pending_refunds"],
        "Collected Refunds": stats["collected_refunds"],
        "Attachments": stats["attachments"],
    }])

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        df_jobs.to_excel(writer, sheet_name="Jobs", index=False)
        df_refunds.to_excel(writer, sheet_name="Refunds", index=False)
        df_files.to_excel(writer, sheet_name="Attachments", index=False)
        df_kpi.to_excel(writer, sheet_name="KPIs", index=False)

    return os.path.abspath(out_path)
