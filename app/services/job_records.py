# app/services/job_records.py

from __future__ import annotations

import os
import random
import string
import time
from dataclasses import dataclass, field, asdict, replace
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from app.models.job import JOB_STATUSES, REFUND_STATUSES
from app.utils.dates import parse_date

# Campos que la UI edita uno por uno (serial nunca se edita)
TEXT_FIELDS = ("consignee", "bl_number", "container_size", "terminal")
EDITABLE_FIELDS = TEXT_FIELDS + ("status", "eta", "refund_status")

_BASE36 = string.digits + string.ascii_lowercase


@dataclass
class Attachment:
    name: str           # nombre visible, se puede renombrar
    storage_name: str   # nombre del objeto en el bucket, no cambia con el nombre visible
    url: str = ""
    size: int = 0
    mime_type: str = ""
    uploaded_at: str = ""

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Attachment":
        return cls(
            name=d.get("name", ""),
            storage_name=d.get("storage_name", ""),
            url=d.get("url", "") or "",
            size=int(d.get("size") or 0),
            mime_type=d.get("mime_type", "") or "",
            uploaded_at=d.get("uploaded_at", "") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class JobRecord:
    serial: int
    consignee: str = ""
    bl_number: str = ""
    container_size: str = ""
    terminal: str = ""
    status: str = "pending"
    eta: Optional[date] = None
    refund_status: str = "pending"
    files: List[Attachment] = field(default_factory=list)
    owner: Optional[str] = None

    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # True mientras el insert remoto no ha confirmado
    placeholder: bool = False

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "JobRecord":
        return cls(
            id=row.get("id"),
            serial=int(row["serial"]),
            consignee=row.get("consignee") or "",
            bl_number=row.get("bl_number") or "",
            container_size=row.get("container_size") or "",
            terminal=row.get("terminal") or "",
            status=row.get("status") or "pending",
            eta=parse_date(row.get("eta")),
            refund_status=row.get("refund_status") or "pending",
            files=[Attachment.from_dict(f) for f in (row.get("files") or [])],
            owner=row.get("owner"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def with_value(self, field_name: str, value: Any) -> "JobRecord":
        return replace(self, **{field_name: value})

    def file_dicts(self) -> List[Dict[str, Any]]:
        return [f.to_dict() for f in self.files]

    def find_file(self, name: str) -> Optional[Attachment]:
        for f in self.files:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "serial": self.serial,
            "consignee": self.consignee,
            "bl_number": self.bl_number,
            "container_size": self.container_size,
            "terminal": self.terminal,
            "status": self.status,
            "eta": self.eta.isoformat() if self.eta else None,
            "refund_status": self.refund_status,
            "files": self.file_dicts(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def default_job_values() -> Dict[str, Any]:
    return {
        "consignee": "",
        "bl_number": "",
        "container_size": "",
        "terminal": "",
        "status": "pending",
        "eta": None,
        "refund_status": "pending",
        "files": [],
    }


def validate_field(field_name: str, value: Any) -> Any:
    """
    Normaliza el valor de un campo editable.
    Lanza ValueError si el campo no es editable o el valor no pertenece
    al conjunto cerrado (status / refund_status) o no es una fecha válida (eta).
    """
    if field_name not in EDITABLE_FIELDS:
        raise ValueError(f"Field not editable: {field_name}")

    if field_name in TEXT_FIELDS:
        return "" if value is None else str(value).strip()

    if field_name == "status":
        s = str(value or "").strip().lower()
        if s not in JOB_STATUSES:
            raise ValueError(f"Invalid status: {value}")
        return s

    if field_name == "refund_status":
        s = str(value or "").strip().lower()
        if s not in REFUND_STATUSES:
            raise ValueError(f"Invalid refund status: {value}")
        return s

    # eta
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    d = parse_date(value)
    if d is None:
        raise ValueError(f"Invalid ETA date: {value}")
    return d


def validate_values(values: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    clean = default_job_values()
    for k, v in (values or {}).items():
        if k in ("serial", "id", "owner", "files", "created_at", "updated_at"):
            continue
        clean[k] = validate_field(k, v)
    return clean


def _base36(n: int) -> str:
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
    return out or "0"


def make_storage_name(filename: str) -> str:
    """
    Nombre único para el bucket: <epoch ms>-<random base36>.<ext>
    Ej: 1735689600000-k3j9x2m1qz.pdf
    """
    _, ext = os.path.splitext(filename or "")
    suffix = _base36(random.getrandbits(52))
    return f"{int(time.time() * 1000)}-{suffix}{ext.lower()}"


def next_serial(jobs: List[JobRecord]) -> int:
    return max((j.serial for j in jobs), default=0) + 1
