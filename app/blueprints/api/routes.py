# app/blueprints/api/routes.py

import io
import os
from dataclasses import asdict

from flask import Blueprint, abort, current_app, jsonify, request, send_file, session

from app.blueprints.api.forms import (
    AttachmentUploadForm, JobFieldForm, JobForm, LibraryUploadForm, RenameAttachmentForm,
)
from app.exporters.excel_export import export_jobs_to_excel
from app.services.file_library import FileLibrary, LibraryError
from app.services.job_store import get_job_store
from app.services.job_views import dashboard_stats, jobs_with_eta, refund_queue
from app.services.storage import get_storage

api_bp = Blueprint("api", __name__)


def current_owner():
    """
    Owner = usuario autenticado. Lo pone el gateway en un header
    (OWNER_HEADER) o viene en la sesión.
    """
    header = current_app.config.get("OWNER_HEADER", "X-Owner-Id")
    return request.headers.get(header) or session.get("owner")


def _require_owner() -> str:
    owner = current_owner()
    if not owner:
        abort(401)
    return owner


def _store():
    return get_job_store(_require_owner())


def _reply(store, payload: dict, status: int = 200):
    payload["notices"] = [asdict(n) for n in store.drain_notices()]
    return jsonify(payload), status


def _form_errors(form):
    return jsonify({"errors": form.errors}), 400


def _library(kind: str) -> FileLibrary:
    owner = _require_owner()
    expiry = current_app.config.get("LIBRARY_FILE_URL_EXPIRY")
    if kind == "documents":
        lib = FileLibrary.documents(owner, get_storage(), expiry)
    else:
        lib = FileLibrary.company_files(owner, get_storage(), expiry)
    lib.refresh()
    return lib


@api_bp.errorhandler(401)
def unauthorized(_):
    return jsonify({"error": "not signed in"}), 401


@api_bp.route("/ping")
def ping():
    return jsonify({"status": "ok"})


# ----------------------------
# jobs
# ----------------------------
@api_bp.route("/jobs", methods=["GET"])
def list_jobs():
    store = _store()
    return _reply(store, {"jobs": [j.to_dict() for j in store.jobs]})


@api_bp.route("/jobs", methods=["POST"])
def create_job():
    store = _store()
    form = JobForm()
    if not form.validate():
        return _form_errors(form)

    job = store.create(form.job_values())
    if job is None:
        return _reply(store, {"job": None}, 409)
    return _reply(store, {"job": job.to_dict()}, 201)


@api_bp.route("/jobs/<int:serial>", methods=["PATCH"])
def update_job(serial: int):
    store = _store()
    if store.get(serial) is None:
        abort(404)

    form = JobFieldForm()
    if not form.validate():
        return _form_errors(form)

    ok = store.update_field(serial, form.field.data, form.value.data)
    job = store.get(serial)
    return _reply(store, {"ok": ok, "job": job.to_dict() if job else None}, 200 if ok else 409)


@api_bp.route("/jobs/<int:serial>", methods=["DELETE"])
def delete_job(serial: int):
    store = _store()
    if store.get(serial) is None:
        abort(404)

    ok = store.delete(serial)
    return _reply(store, {"ok": ok}, 200 if ok else 409)


@api_bp.route("/jobs/<int:serial>/files", methods=["POST"])
def upload_job_files(serial: int):
    store = _store()
    if store.get(serial) is None:
        abort(404)

    form = AttachmentUploadForm()
    if not form.validate():
        return _form_errors(form)

    report = store.add_attachments(serial, form.files.data)
    job = store.get(serial)
    payload = {"report": report.to_dict(), "job": job.to_dict() if job else None}
    return _reply(store, payload, 200 if report.uploaded else 409)


@api_bp.route("/jobs/by-id/<identity>/files", methods=["PATCH"])
def rename_job_file(identity: str):
    store = _store()
    if store.find_by_identity(identity) is None:
        abort(404)

    form = RenameAttachmentForm()
    if not form.validate():
        return _form_errors(form)

    ok = store.rename_attachment(identity, form.old_name.data, form.new_name.data)
    job = store.find_by_identity(identity)
    return _reply(store, {"ok": ok, "job": job.to_dict() if job else None}, 200 if ok else 409)


@api_bp.route("/jobs/by-id/<identity>/files/<path:name>", methods=["DELETE"])
def delete_job_file(identity: str, name: str):
    store = _store()
    if store.find_by_identity(identity) is None:
        abort(404)

    ok = store.remove_attachment(identity, name)
    job = store.find_by_identity(identity)
    return _reply(store, {"ok": ok, "job": job.to_dict() if job else None}, 200 if ok else 409)


@api_bp.route("/jobs/export")
def export_jobs():
    store = _store()
    out_path = export_jobs_to_excel(
        store.jobs,
        output_folder=current_app.config.get("EXPORT_FOLDER", "outputs"),
        owner=store.owner,
    )
    # nombre único por request: se lee y se borra
    with open(out_path, "rb") as fh:
        data = io.BytesIO(fh.read())
    os.remove(out_path)
    return send_file(
        data,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name="Jobs.xlsx",
    )


@api_bp.route("/dashboard")
def dashboard():
    store = _store()
    upcoming = [j.to_dict() for j in jobs_with_eta(store.jobs)]
    return _reply(store, {"stats": dashboard_stats(store.jobs), "upcoming": upcoming})


@api_bp.route("/refunds")
def refunds():
    store = _store()
    return _reply(store, {"jobs": [j.to_dict() for j in refund_queue(store.jobs)]})


# ----------------------------
# documents / company files
# ----------------------------
def _library_list(kind: str):
    lib = _library(kind)
    folder = request.args.get("folder")
    files = lib.files_in_folder(folder) if folder else lib.files
    return jsonify({"files": files})


def _library_upload(kind: str):
    lib = _library(kind)
    form = LibraryUploadForm()
    if not form.validate():
        return _form_errors(form)

    try:
        row = lib.upload(form.file.data, form.folder_path.data, form.category.data or None)
    except LibraryError as e:
        return jsonify({"error": str(e)}), 502
    return jsonify({"file": row}), 201


def _library_delete(kind: str, file_id: str):
    lib = _library(kind)
    try:
        lib.delete(file_id)
    except LibraryError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"ok": True})


@api_bp.route("/documents", methods=["GET"])
def list_documents():
    return _library_list("documents")


@api_bp.route("/documents", methods=["POST"])
def upload_document():
    return _library_upload("documents")


@api_bp.route("/documents/<file_id>", methods=["DELETE"])
def delete_document(file_id: str):
    return _library_delete("documents", file_id)


@api_bp.route("/documents/tree")
def documents_tree():
    return jsonify({"folders": _library("documents").folder_tree()})


@api_bp.route("/company-files", methods=["GET"])
def list_company_files():
    return _library_list("company_files")


@api_bp.route("/company-files", methods=["POST"])
def upload_company_file():
    return _library_upload("company_files")


@api_bp.route("/company-files/<file_id>", methods=["DELETE"])
def delete_company_file(file_id: str):
    return _library_delete("company_files", file_id)


@api_bp.route("/company-files/tree")
def company_files_tree():
    return jsonify({"folders": _library("company_files").folder_tree()})
