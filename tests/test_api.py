# tests/test_api.py

import io
import os

from app.models import Job

OWNER = {"X-Owner-Id": "owner-a"}


def test_health_and_ping(client):
    assert client.get("/health/").get_json()["status"] == "healthy"
    assert client.get("/api/ping").get_json() == {"status": "ok"}


def test_jobs_require_owner(client):
    resp = client.get("/api/jobs")
    assert resp.status_code == 401
    assert client.post("/api/jobs", json={}).status_code == 401


def test_create_list_update_delete(client):
    resp = client.post("/api/jobs", json={"consignee": "ABC Corp", "terminal": "Apapa"}, headers=OWNER)
    assert resp.status_code == 201
    job = resp.get_json()["job"]
    assert job["serial"] == 1
    assert job["status"] == "pending"

    client.post("/api/jobs", json={"consignee": "XYZ Ltd"}, headers=OWNER)
    jobs = client.get("/api/jobs", headers=OWNER).get_json()["jobs"]
    assert [j["serial"] for j in jobs] == [1, 2]

    resp = client.patch("/api/jobs/1", json={"field": "status", "value": "done"}, headers=OWNER)
    assert resp.status_code == 200
    assert resp.get_json()["job"]["status"] == "done"

    resp = client.patch("/api/jobs/1", json={"field": "status", "value": "shipped"}, headers=OWNER)
    assert resp.status_code == 409
    assert resp.get_json()["notices"][0]["level"] == "ERROR"

    resp = client.patch("/api/jobs/1", json={"field": "serial", "value": "7"}, headers=OWNER)
    assert resp.status_code == 400

    assert client.delete("/api/jobs/2", headers=OWNER).status_code == 200
    assert client.delete("/api/jobs/2", headers=OWNER).status_code == 404
    assert Job.query.count() == 1


def test_create_rejects_unknown_status(client):
    resp = client.post("/api/jobs", json={"status": "shipped"}, headers=OWNER)
    assert resp.status_code == 400
    assert "status" in resp.get_json()["errors"]


def test_other_owner_cannot_see_jobs(client):
    client.post("/api/jobs", json={"consignee": "A"}, headers=OWNER)
    jobs = client.get("/api/jobs", headers={"X-Owner-Id": "owner-b"}).get_json()["jobs"]
    assert jobs == []
    assert client.patch(
        "/api/jobs/1", json={"field": "terminal", "value": "TICT"}, headers={"X-Owner-Id": "owner-b"}
    ).status_code == 404


def test_upload_rename_and_fetch_attachment(client):
    client.post("/api/jobs", json={}, headers=OWNER)

    data = {"files": [
        (io.BytesIO(b"bl copy"), "bl.pdf", "application/pdf"),
        (io.BytesIO(b"invoice"), "invoice.pdf", "application/pdf"),
    ]}
    resp = client.post("/api/jobs/1/files", data=data, headers=OWNER, content_type="multipart/form-data")
    assert resp.status_code == 200
    body = resp.get_json()
    assert [f["name"] for f in body["job"]["files"]] == ["bl.pdf", "invoice.pdf"]

    identity = body["job"]["id"]
    resp = client.patch(
        f"/api/jobs/by-id/{identity}/files",
        json={"old_name": "bl.pdf", "new_name": "bill-of-lading.pdf"},
        headers=OWNER,
    )
    assert resp.status_code == 200
    files = resp.get_json()["job"]["files"]
    assert files[0]["name"] == "bill-of-lading.pdf"

    # URL firmada: sin header de owner
    fetched = client.get(files[0]["url"])
    assert fetched.status_code == 200
    assert fetched.data == b"bl copy"

    assert client.get("/storage/not-a-token").status_code == 403

    resp = client.delete(f"/api/jobs/by-id/{identity}/files/invoice.pdf", headers=OWNER)
    assert resp.status_code == 200
    assert [f["name"] for f in resp.get_json()["job"]["files"]] == ["bill-of-lading.pdf"]


def test_dashboard_and_refunds(client):
    for _ in range(3):
        client.post("/api/jobs", json={}, headers=OWNER)
    client.patch("/api/jobs/2", json={"field": "status", "value": "done"}, headers=OWNER)
    client.patch("/api/jobs/3", json={"field": "status", "value": "done"}, headers=OWNER)
    client.patch("/api/jobs/3", json={"field": "refund_status", "value": "collected"}, headers=OWNER)

    stats = client.get("/api/dashboard", headers=OWNER).get_json()["stats"]
    assert stats["total_jobs"] == 3
    assert stats["pending_refunds"] == 1
    assert stats["collected_refunds"] == 1

    refunds = client.get("/api/refunds", headers=OWNER).get_json()["jobs"]
    assert [j["serial"] for j in refunds] == [2, 3]


def test_export_jobs_workbook(client):
    client.post("/api/jobs", json={"consignee": "ABC Corp"}, headers=OWNER)
    resp = client.get("/api/jobs/export", headers=OWNER)
    assert resp.status_code == 200
    assert resp.data[:2] == b"PK"  # xlsx = zip


def test_export_owner_header_cannot_escape_export_folder(app, client, tmp_path):
    headers = {"X-Owner-Id": "../../escaped"}
    client.post("/api/jobs", json={"consignee": "ABC Corp"}, headers=headers)

    resp = client.get("/api/jobs/export", headers=headers)
    assert resp.status_code == 200
    assert resp.data[:2] == b"PK"

    assert not (tmp_path.parent / "escaped").exists()
    assert not (tmp_path / "escaped").exists()

    export_root = os.path.realpath(app.config["EXPORT_FOLDER"])
    created = [
        os.path.realpath(os.path.join(d, name))
        for d, dirs, files in os.walk(tmp_path)
        for name in dirs + files
        if "escaped" in name
    ]
    assert created
    assert all(p.startswith(export_root + os.sep) for p in created)


def test_documents_endpoints(client):
    data = {
        "file": (io.BytesIO(b"letter"), "msc.pdf", "application/pdf"),
        "folder_path": "Shipping line/Terminal Authorities/MSC Authority",
    }
    resp = client.post("/api/documents", data=data, headers=OWNER, content_type="multipart/form-data")
    assert resp.status_code == 201
    file_id = resp.get_json()["file"]["id"]

    listed = client.get(
        "/api/documents",
        query_string={"folder": "Shipping line/Terminal Authorities/MSC Authority"},
        headers=OWNER,
    ).get_json()["files"]
    assert [f["id"] for f in listed] == [file_id]

    tree = client.get("/api/documents/tree", headers=OWNER).get_json()["folders"]
    assert tree[1]["name"] == "FORM C30"

    assert client.delete(f"/api/documents/{file_id}", headers=OWNER).status_code == 200
    assert client.delete(f"/api/documents/{file_id}", headers=OWNER).status_code == 404


def test_company_file_upload_requires_file(client):
    resp = client.post("/api/company-files", data={"folder_path": "Policies"}, headers=OWNER)
    assert resp.status_code == 400
    assert "file" in resp.get_json()["errors"]
