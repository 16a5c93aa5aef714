# tests/test_excel_export.py

import os

from app.exporters.excel_export import export_jobs_to_excel
from app.services.job_records import JobRecord


def test_each_export_gets_its_own_file(tmp_path):
    jobs = [JobRecord(id="j1", owner="owner-a", serial=1, consignee="ABC Corp")]
    first = export_jobs_to_excel(jobs, str(tmp_path), "owner-a")
    second = export_jobs_to_excel(jobs, str(tmp_path), "owner-a")

    assert first != second
    assert os.path.dirname(first) == os.path.join(str(tmp_path), "owner-a")
    assert os.path.isfile(first) and os.path.isfile(second)


def test_owner_without_safe_characters_is_hashed(tmp_path):
    path = export_jobs_to_excel([], str(tmp_path), "../..")

    assert os.path.dirname(os.path.dirname(path)) == str(tmp_path)
    assert os.path.basename(os.path.dirname(path)) not in ("", "..", ".")
