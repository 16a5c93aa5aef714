# app/services/storage.py

from __future__ import annotations

import os
import posixpath
import shutil
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from flask import current_app
from itsdangerous import URLSafeTimedSerializer, BadSignature
from werkzeug.security import safe_join

from app.utils.logging import get_logger

logger = get_logger("storage")


class StorageError(Exception):
    pass


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def normalize_path(path: str) -> str:
    """
    'jobs//3/abc.pdf' -> 'jobs/3/abc.pdf'. Rechaza '..' y rutas vacías.
    """
    parts = [p for p in str(path or "").replace("\\", "/").split("/") if p not in ("", ".")]
    if not parts or ".." in parts:
        raise StorageError(f"Invalid storage path: {path!r}")
    return posixpath.join(*parts)


class ObjectStorage:
    """
    Bucket privado en disco: <root>/<bucket>/<path>.
    No hay URLs públicas; el acceso es con URL firmada y con expiración.
    """

    def __init__(self, root: str, bucket: str, secret: str, url_prefix: str = "/storage"):
        self.bucket = bucket
        self.base = os.path.abspath(os.path.join(root, bucket))
        self.url_prefix = url_prefix.rstrip("/")
        self._signer = URLSafeTimedSerializer(secret_key=secret, salt=f"storage-{bucket}")
        ensure_dir(self.base)

    def _disk_path(self, path: str) -> str:
        full = safe_join(self.base, *normalize_path(path).split("/"))
        if full is None:
            raise StorageError(f"Invalid storage path: {path!r}")
        return full

    def exists(self, path: str) -> bool:
        return os.path.isfile(self._disk_path(path))

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """
        Sube bytes a <path>. Sin upsert: si ya existe, falla (colisión de ruta).
        """
        key = normalize_path(path)
        full = self._disk_path(key)
        if os.path.exists(full):
            raise StorageError(f"Object already exists: {key}")

        try:
            ensure_dir(os.path.dirname(full))
            with open(full, "xb") as f:
                f.write(data)
        except OSError as e:
            raise StorageError(f"Upload failed for {key}: {e}") from e

        logger.info(f"Uploaded object bucket={self.bucket} path={key} size={len(data)} type={content_type}")
        return key

    def download(self, path: str) -> bytes:
        full = self._disk_path(path)
        try:
            with open(full, "rb") as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Object not found: {path}") from e

    def copy(self, src: str, dst: str) -> str:
        src_full = self._disk_path(src)
        dst_key = normalize_path(dst)
        dst_full = self._disk_path(dst_key)

        if not os.path.isfile(src_full):
            raise StorageError(f"Object not found: {src}")
        if os.path.exists(dst_full):
            raise StorageError(f"Object already exists: {dst_key}")

        try:
            ensure_dir(os.path.dirname(dst_full))
            shutil.copyfile(src_full, dst_full)
        except OSError as e:
            raise StorageError(f"Copy failed {src} -> {dst_key}: {e}") from e
        return dst_key

    def remove(self, paths: Iterable[str]) -> List[str]:
        """
        Borra varios objetos. Intenta todos; si alguno falla lanza StorageError
        al final (los que sí se borraron quedan borrados).
        """
        removed: List[str] = []
        failed: List[str] = []

        for p in paths:
            try:
                os.remove(self._disk_path(p))
                removed.append(normalize_path(p))
            except (OSError, StorageError) as e:
                logger.warning(f"Remove failed bucket={self.bucket} path={p} error={e}")
                failed.append(str(p))

        if failed:
            raise StorageError(f"Could not remove: {', '.join(failed)}")
        return removed

    def list_paths(self, prefix: str = "") -> List[str]:
        start = self._disk_path(prefix) if prefix else self.base
        out: List[str] = []
        for dirpath, _, filenames in os.walk(start):
            for fn in filenames:
                rel = os.path.relpath(os.path.join(dirpath, fn), self.base)
                out.append(rel.replace(os.sep, "/"))
        return sorted(out)

    def modified_at(self, path: str) -> float:
        """Epoch (segundos) de la última escritura del objeto."""
        try:
            return os.path.getmtime(self._disk_path(path))
        except OSError as e:
            raise StorageError(f"Object not found: {normalize_path(path)}") from e

    # ----------------------------
    # URLs firmadas
    # ----------------------------
    def create_signed_url(self, path: str, expires_in: int) -> str:
        key = normalize_path(path)
        if not self.exists(key):
            raise StorageError(f"Object not found: {key}")
        token = self._signer.dumps({"p": key, "e": int(expires_in)})
        return f"{self.url_prefix}/{token}"

    def resolve_signed_token(self, token: str) -> str:
        """
        Valida firma y expiración; devuelve el path del objeto.
        """
        try:
            data, signed_at = self._signer.loads(token, return_timestamp=True)
        except BadSignature as e:
            raise StorageError("TOKEN_INVALID") from e

        age = (datetime.now(timezone.utc) - signed_at).total_seconds()
        if age > data["e"]:
            raise StorageError("TOKEN_EXPIRED")
        return data["p"]

    def disk_path(self, path: str) -> str:
        return self._disk_path(path)


def get_storage() -> ObjectStorage:
    cfg = current_app.config
    return ObjectStorage(
        root=cfg.get("STORAGE_FOLDER", "storage"),
        bucket=cfg.get("STORAGE_BUCKET", "documents"),
        secret=cfg.get("STORAGE_URL_SECRET") or cfg["SECRET_KEY"],
    )
