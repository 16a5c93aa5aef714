# app/services/job_store.py

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, Iterable, List, Optional

from flask import current_app, g

from app.models import Job
from app.services.job_records import (
    Attachment, JobRecord,
    make_storage_name, next_serial, validate_field, validate_values,
)
from app.services.remote_store import (
    OwnedTable, RemoteStoreError, DuplicateSerialError,
)
from app.services.storage import ObjectStorage, StorageError, get_storage
from app.utils.dates import utcnow_iso
from app.utils.logging import get_logger

logger = get_logger("job_store")

DEFAULT_URL_EXPIRY = 60 * 60 * 24 * 7  # 7 días


@dataclass
class Notice:
    level: str  # "ERROR" | "WARN" | "INFO"
    message: str
    context: Optional[dict] = None


@dataclass
class UploadReport:
    uploaded: List[Attachment] = field(default_factory=list)
    failed: List[Notice] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict:
        return {
            "uploaded": [a.to_dict() for a in self.uploaded],
            "failed": [asdict(n) for n in self.failed],
        }


def job_path(serial: int, storage_name: str) -> str:
    return f"jobs/{serial}/{storage_name}"


class JobStore:
    """
    Lista en memoria de los jobs del owner actual, sincronizada con la tabla `jobs`.

    Patrón: aplicar el cambio local (optimista) -> escribir remoto ->
    si falla, recargar desde la tabla (reconciliación).
    Ninguna operación lanza excepción al caller: devuelven bool / resultado
    y dejan un Notice en `notices`.
    """

    def __init__(
        self,
        owner: Optional[str],
        table: Optional[OwnedTable] = None,
        storage: Optional[ObjectStorage] = None,
        url_expiry: int = DEFAULT_URL_EXPIRY,
        reload_after_update: bool = False,
        serial_retry_limit: int = 3,
    ):
        self.owner = owner
        self.table = table if table is not None else (OwnedTable(Job, owner) if owner else None)
        self.storage = storage
        self.url_expiry = url_expiry
        self.reload_after_update = reload_after_update
        self.serial_retry_limit = max(1, serial_retry_limit)

        self.jobs: List[JobRecord] = []
        self.loaded = False
        self.notices: List[Notice] = []
        self._listeners: List[Callable[["JobStore"], None]] = []

    # ----------------------------
    # estado / notificaciones
    # ----------------------------
    def subscribe(self, callback: Callable[["JobStore"], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_jobs(self, jobs: List[JobRecord]) -> None:
        self.jobs = sorted(jobs, key=lambda j: j.serial)
        for cb in list(self._listeners):
            cb(self)

    def _notice(self, level: str, message: str, **context) -> Notice:
        n = Notice(level, message, context or None)
        self.notices.append(n)
        return n

    def drain_notices(self) -> List[Notice]:
        out, self.notices = self.notices, []
        return out

    def _require_owner(self, op: str) -> bool:
        if self.owner and self.table is not None:
            return True
        logger.warning(f"{op} skipped: no owner in session")
        self._notice("WARN", "Not signed in", op=op)
        return False

    def get(self, serial: int) -> Optional[JobRecord]:
        for j in self.jobs:
            if j.serial == serial:
                return j
        return None

    def find_by_identity(self, identity: str) -> Optional[JobRecord]:
        for j in self.jobs:
            if j.id == identity:
                return j
        return None

    def _replace_local(self, serial: int, record: JobRecord) -> None:
        self._set_jobs([record if j.serial == serial else j for j in self.jobs])

    # ----------------------------
    # carga
    # ----------------------------
    def load_all(self) -> bool:
        """
        Reemplaza la lista con los jobs del owner (orden serial asc).
        Si falla NO se vacía la lista (evita que la tabla "parpadee" vacía).
        """
        if not self._require_owner("load_all"):
            return False

        try:
            rows = self.table.select(order_by="serial")
        except RemoteStoreError as e:
            logger.error(f"load_all failed owner={self.owner} error={e}")
            self._notice("ERROR", "Could not load jobs", error=str(e))
            return False

        self._set_jobs([JobRecord.from_row(r) for r in rows])
        self.loaded = True
        logger.info(f"Loaded jobs owner={self.owner} count={len(rows)}")
        return True

    # ----------------------------
    # edición por campo
    # ----------------------------
    def update_field(self, serial: int, field_name: str, value: Any) -> bool:
        if not self._require_owner("update_field"):
            return False

        try:
            clean = validate_field(field_name, value)
        except ValueError as e:
            self._notice("ERROR", str(e), serial=serial, field=field_name)
            return False

        current = self.get(serial)
        if current is None:
            self._notice("ERROR", f"Job {serial} not found", serial=serial)
            return False

        # optimista: la UI ve el cambio antes de la escritura remota
        self._replace_local(serial, current.with_value(field_name, clean))

        try:
            self.table.update({field_name: clean}, serial=serial)
        except RemoteStoreError as e:
            logger.error(
                f"update_field failed owner={self.owner} serial={serial} field={field_name} error={e}"
            )
            self._notice("ERROR", f"Could not update {field_name} for job {serial}", serial=serial)
            self.load_all()
            return False

        if self.reload_after_update:
            self.load_all()
        return True

    def update_consignee(self, serial: int, consignee: str) -> bool:
        return self.update_field(serial, "consignee", consignee)

    def update_bl_number(self, serial: int, bl_number: str) -> bool:
        return self.update_field(serial, "bl_number", bl_number)

    def update_container_size(self, serial: int, container_size: str) -> bool:
        return self.update_field(serial, "container_size", container_size)

    def update_terminal(self, serial: int, terminal: str) -> bool:
        return self.update_field(serial, "terminal", terminal)

    def update_status(self, serial: int, status: str) -> bool:
        return self.update_field(serial, "status", status)

    def update_eta(self, serial: int, eta) -> bool:
        return self.update_field(serial, "eta", eta)

    def update_refund_status(self, serial: int, refund_status: str) -> bool:
        # independiente de status; no se resetea al cambiar status
        return self.update_field(serial, "refund_status", refund_status)

    # ----------------------------
    # alta / baja
    # ----------------------------
    def create(self, values: Optional[Dict[str, Any]] = None) -> Optional[JobRecord]:
        """
        Crea un job con serial = max + 1. Si otro create del mismo owner ganó
        ese serial (DuplicateSerialError), recarga, recalcula y reintenta.
        """
        if not self._require_owner("create"):
            return None

        try:
            clean = validate_values(values)
        except ValueError as e:
            self._notice("ERROR", str(e))
            return None

        for attempt in range(1, self.serial_retry_limit + 1):
            serial = next_serial(self.jobs)
            placeholder = JobRecord(serial=serial, owner=self.owner, placeholder=True, **clean)
            self._set_jobs(self.jobs + [placeholder])

            try:
                row = self.table.insert({**clean, "serial": serial})
            except DuplicateSerialError as e:
                logger.warning(
                    f"Serial conflict owner={self.owner} serial={serial} attempt={attempt} error={e}"
                )
                self._set_jobs([j for j in self.jobs if j is not placeholder])
                self.load_all()
                continue
            except RemoteStoreError as e:
                logger.error(f"create failed owner={self.owner} serial={serial} error={e}")
                self._set_jobs([j for j in self.jobs if j is not placeholder])
                self._notice("ERROR", "Could not create job", error=str(e))
                return None

            created = JobRecord.from_row(row)
            self._set_jobs([created if j is placeholder else j for j in self.jobs])
            logger.info(f"Created job owner={self.owner} serial={serial} id={created.id}")
            return created

        self._notice("ERROR", "Could not assign a job number, please retry")
        return None

    def delete(self, serial: int) -> bool:
        """
        Quita el job local, borra sus adjuntos del bucket (fallos se registran
        pero no detienen) y borra la fila.
        """
        if not self._require_owner("delete"):
            return False

        current = self.get(serial)
        if current is None:
            self._notice("ERROR", f"Job {serial} not found", serial=serial)
            return False

        self._set_jobs([j for j in self.jobs if j.serial != serial])

        if self.storage is not None:
            for f in current.files:
                path = job_path(serial, f.storage_name)
                try:
                    self.storage.remove([path])
                except StorageError as e:
                    logger.warning(f"Attachment delete failed serial={serial} path={path} error={e}")
                    self._notice("WARN", f"Could not delete file {f.name}", serial=serial)

        try:
            self.table.delete(serial=serial)
        except RemoteStoreError as e:
            logger.error(f"delete failed owner={self.owner} serial={serial} error={e}")
            self._notice("ERROR", f"Could not delete job {serial}", serial=serial)
            self.load_all()
            return False

        logger.info(f"Deleted job owner={self.owner} serial={serial} files={len(current.files)}")
        return True

    # ----------------------------
    # adjuntos
    # ----------------------------
    def _write_files(self, record: JobRecord, files: List[Attachment], op: str) -> bool:
        try:
            self.table.update({"files": [f.to_dict() for f in files]}, id=record.id)
        except RemoteStoreError as e:
            logger.error(f"{op} failed owner={self.owner} serial={record.serial} error={e}")
            self._notice("ERROR", f"Could not save files for job {record.serial}", serial=record.serial)
            self.load_all()
            return False
        return True

    def add_attachments(self, serial: int, files: Iterable) -> UploadReport:
        """
        files: objetos tipo werkzeug FileStorage (filename, mimetype, read()).
        Cada archivo se sube por separado; un fallo no aborta el resto.
        """
        report = UploadReport()
        if not self._require_owner("add_attachments"):
            return report

        record = self.get(serial)
        if record is None or self.storage is None:
            self._notice("ERROR", f"Job {serial} not found", serial=serial)
            return report

        for fs in files:
            original = fs.filename or "file"
            storage_name = make_storage_name(original)
            path = job_path(serial, storage_name)
            try:
                data = fs.read()
                self.storage.upload(path, data, content_type=fs.mimetype)
                url = self.storage.create_signed_url(path, self.url_expiry)
            except (StorageError, OSError) as e:
                logger.error(f"Upload failed serial={serial} file={original} error={e}")
                report.failed.append(
                    self._notice("ERROR", f"Failed to upload {original}", serial=serial, file=original)
                )
                continue

            report.uploaded.append(Attachment(
                name=original,
                storage_name=storage_name,
                url=url,
                size=len(data),
                mime_type=fs.mimetype or "",
                uploaded_at=utcnow_iso(),
            ))

        if not report.uploaded:
            return report

        # read-modify-write sobre la lista completa (sin lock)
        if self._write_files(record, record.files + report.uploaded, "add_attachments"):
            self.load_all()
        else:
            # los objetos quedaron huérfanos en el bucket; el sweep los limpia
            for a in report.uploaded:
                report.failed.append(
                    Notice("ERROR", f"Failed to save {a.name}", {"serial": serial, "file": a.name})
                )
            report.uploaded = []
        return report

    def rename_attachment(self, identity: str, old_name: str, new_name: str) -> bool:
        """
        Copia el objeto a un storage_name nuevo, actualiza el descriptor y
        recién entonces borra el viejo. Si falla la copia o la escritura del
        descriptor el objeto viejo queda intacto; si falla el borrado del
        viejo queda huérfano.
        """
        if not self._require_owner("rename_attachment"):
            return False

        record = self.find_by_identity(identity)
        new_name = (new_name or "").strip()
        if record is None or self.storage is None:
            self._notice("ERROR", "Job not found", id=identity)
            return False
        if not new_name:
            self._notice("ERROR", "File name cannot be empty", id=identity)
            return False

        current = record.find_file(old_name)
        if current is None:
            self._notice("ERROR", f"File {old_name} not found", id=identity)
            return False

        old_path = job_path(record.serial, current.storage_name)
        new_storage_name = make_storage_name(new_name)
        new_path = job_path(record.serial, new_storage_name)

        try:
            self.storage.copy(old_path, new_path)
        except StorageError as e:
            logger.error(f"Rename copy failed serial={record.serial} path={old_path} error={e}")
            self._notice("ERROR", f"Could not rename {old_name}", id=identity)
            return False

        try:
            url = self.storage.create_signed_url(new_path, self.url_expiry)
        except StorageError as e:
            logger.warning(f"Could not sign renamed file path={new_path} error={e}")
            url = ""

        renamed = Attachment(
            name=new_name,
            storage_name=new_storage_name,
            url=url,
            size=current.size,
            mime_type=current.mime_type,
            uploaded_at=current.uploaded_at,
        )
        files = [renamed if f is current else f for f in record.files]
        if not self._write_files(record, files, "rename_attachment"):
            # el descriptor sigue apuntando al objeto viejo: se descarta la copia
            try:
                self.storage.remove([new_path])
            except StorageError as e:
                logger.warning(f"Rename left orphan serial={record.serial} path={new_path} error={e}")
            return False

        self._replace_local(record.serial, record.with_value("files", files))

        # el viejo se borra al final; si falla queda huérfano
        try:
            self.storage.remove([old_path])
        except StorageError as e:
            logger.warning(f"Rename left orphan serial={record.serial} path={old_path} error={e}")
        return True

    def remove_attachment(self, identity: str, file_name: str) -> bool:
        if not self._require_owner("remove_attachment"):
            return False

        record = self.find_by_identity(identity)
        if record is None:
            self._notice("ERROR", "Job not found", id=identity)
            return False

        current = record.find_file(file_name)
        if current is None:
            self._notice("ERROR", f"File {file_name} not found", id=identity)
            return False

        if self.storage is not None:
            path = job_path(record.serial, current.storage_name)
            try:
                self.storage.remove([path])
            except StorageError as e:
                logger.warning(f"Attachment delete failed serial={record.serial} path={path} error={e}")

        files = [f for f in record.files if f is not current]
        if not self._write_files(record, files, "remove_attachment"):
            return False

        self._replace_local(record.serial, record.with_value("files", files))
        return True


def get_job_store(owner: Optional[str]) -> JobStore:
    """
    Un JobStore por request/sesión (en flask.g), cargado al crearse.
    """
    store = g.get("job_store")
    if store is None or store.owner != owner:
        cfg = current_app.config
        store = JobStore(
            owner,
            storage=get_storage(),
            url_expiry=cfg.get("JOB_FILE_URL_EXPIRY", DEFAULT_URL_EXPIRY),
            reload_after_update=cfg.get("JOBS_RELOAD_AFTER_UPDATE", False),
            serial_retry_limit=cfg.get("SERIAL_RETRY_LIMIT", 3),
        )
        store.load_all()
        g.job_store = store
    return store
