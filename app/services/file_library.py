# app/services/file_library.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

from app.models import Document, CompanyFile
from app.services.job_records import make_storage_name
from app.services.remote_store import OwnedTable, RemoteStoreError
from app.services.storage import ObjectStorage, StorageError, normalize_path
from app.utils.logging import get_logger

logger = get_logger("file_library")

DEFAULT_URL_EXPIRY = 60 * 60 * 24 * 365  # 1 año


def _folder(name: str, children: Optional[List[dict]] = None) -> dict:
    return {"name": name, "children": children or []}


# Árbol fijo; solo las hojas tienen archivos reales
DOCUMENT_FOLDERS: List[dict] = [
    _folder("Shipping line/Terminal Authorities", [
        _folder("MSC Authority"),
        _folder("CMA Authority"),
        _folder("PIL Authority"),
        _folder("Hapagloyd Authority"),
        _folder("Hullblyte Authority"),
        _folder("COSCO Authority"),
        _folder("BESTAF Authority"),
        _folder("Fivestar Authority"),
        _folder("Sifax Authority"),
        _folder("APMT Authority"),
        _folder("TICT Authority"),
        _folder("ENL Authority"),
    ]),
    _folder("FORM C30", [
        _folder("Apapa Form C30"),
        _folder("TICT Form C30"),
        _folder("PTML Form C30"),
        _folder("KLT Form C30"),
    ]),
]

COMPANY_FILE_FOLDERS: List[dict] = [
    _folder("Policies"),
    _folder("Procedures"),
    _folder("Certificates"),
    _folder("Licenses"),
    _folder("Contracts"),
    _folder("Reports"),
    _folder("Other"),
]


class LibraryError(Exception):
    pass


class FileLibrary:
    """
    Carpetas virtuales sobre una tabla plana (documents / company_files)
    indexada por folder_path. El binario va al mismo bucket que los jobs.
    """

    def __init__(self, model, owner: str, storage: ObjectStorage,
                 url_expiry: int = DEFAULT_URL_EXPIRY, folders: Optional[List[dict]] = None):
        self.model = model
        self.owner = owner
        self.table = OwnedTable(model, owner)
        self.storage = storage
        self.url_expiry = url_expiry
        self.folders = folders or []
        self.files: List[Dict[str, Any]] = []

    @classmethod
    def documents(cls, owner: str, storage: ObjectStorage, url_expiry: int = DEFAULT_URL_EXPIRY) -> "FileLibrary":
        return cls(Document, owner, storage, url_expiry, DOCUMENT_FOLDERS)

    @classmethod
    def company_files(cls, owner: str, storage: ObjectStorage, url_expiry: int = DEFAULT_URL_EXPIRY) -> "FileLibrary":
        return cls(CompanyFile, owner, storage, url_expiry, COMPANY_FILE_FOLDERS)

    @property
    def has_category(self) -> bool:
        return hasattr(self.model, "category")

    def refresh(self) -> bool:
        try:
            self.files = self.table.select(order_by="created_at", descending=True)
            return True
        except RemoteStoreError as e:
            logger.error(f"Refresh failed table={self.model.__tablename__} owner={self.owner} error={e}")
            return False

    def upload(self, file_storage, folder_path: str, category: Optional[str] = None) -> Dict[str, Any]:
        """
        Sube el archivo a <folder_path>/<storage_name> y guarda la metadata.
        Lanza LibraryError si falla el upload, la firma o el insert.
        """
        if not file_storage:
            raise LibraryError("No file provided")

        try:
            folder = normalize_path(folder_path)
        except StorageError as e:
            raise LibraryError(str(e)) from e

        original_name = file_storage.filename or "file"
        path = f"{folder}/{make_storage_name(original_name)}"

        try:
            data = file_storage.read()
            self.storage.upload(path, data, content_type=file_storage.mimetype)
            url = self.storage.create_signed_url(path, self.url_expiry)
        except StorageError as e:
            logger.error(f"Upload failed owner={self.owner} path={path} error={e}")
            raise LibraryError(f"Failed to upload {original_name}") from e

        values = {
            "name": original_name,
            "path": path,
            "folder_path": folder,
            "file_url": url,
            "file_size": len(data),
            "mime_type": file_storage.mimetype or "",
        }
        if self.has_category:
            values["category"] = (category or folder.split("/", 1)[0]).lower()

        try:
            row = self.table.insert(values)
        except RemoteStoreError as e:
            # el objeto queda huérfano en el bucket
            logger.error(f"Metadata insert failed owner={self.owner} path={path} error={e}")
            raise LibraryError(f"Failed to save {original_name}") from e

        logger.info(f"Saved file table={self.model.__tablename__} owner={self.owner} path={path}")
        self.refresh()
        return row

    def delete(self, file_id: str) -> None:
        try:
            row = self.table.single(id=file_id)
        except RemoteStoreError as e:
            raise LibraryError(f"File not found: {file_id}") from e

        try:
            self.storage.remove([row["path"]])
        except StorageError as e:
            # seguimos con la fila aunque falle el bucket
            logger.warning(f"Storage delete failed owner={self.owner} path={row['path']} error={e}")

        try:
            self.table.delete(id=file_id)
        except RemoteStoreError as e:
            raise LibraryError(f"Could not delete {row['name']}") from e

        self.refresh()

    def files_in_folder(self, folder_path: str) -> List[Dict[str, Any]]:
        parts = [p for p in (folder_path or "").split("/") if p]
        if not parts:
            return []

        # company files: en la carpeta de categoría se listan por categoría
        if self.has_category and len(parts) == 1:
            category = parts[0].lower()
            return [f for f in self.files if (f.get("category") or "") == category]

        target = "/".join(parts)
        return [f for f in self.files if f.get("folder_path") == target]

    def folder_tree(self) -> List[dict]:
        def walk(nodes: List[dict], prefix: str) -> List[dict]:
            out = []
            for n in nodes:
                path = f"{prefix}/{n['name']}" if prefix else n["name"]
                children = walk(n["children"], path)
                out.append({
                    "name": n["name"],
                    "path": path,
                    "children": children,
                    "file_count": len(self.files_in_folder(path)),
                })
            return out

        return walk(self.folders, "")
