# app/models/job.py

import uuid
from datetime import datetime

from app.extensions import db

JOB_STATUSES = ("pending", "in-progress", "done", "cancelled", "eta")
REFUND_STATUSES = ("pending", "collected")


class Job(db.Model):
    __tablename__ = "jobs"
    __table_args__ = (
        # serial es único por owner, no global
        db.UniqueConstraint("owner", "serial", name="uq_jobs_owner_serial"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    serial = db.Column(db.Integer, nullable=False, index=True)

    consignee = db.Column(db.String(255), nullable=False, default="")
    bl_number = db.Column(db.String(80), nullable=False, default="")
    container_size = db.Column(db.String(30), nullable=False, default="")
    terminal = db.Column(db.String(120), nullable=False, default="")

    status = db.Column(db.String(30), nullable=False, default="pending")  # ver JOB_STATUSES
    eta = db.Column(db.Date)
    refund_status = db.Column(db.String(30), nullable=False, default="pending")  # pending / collected

    # [{name, storage_name, url, size, mime_type, uploaded_at}]
    files = db.Column(db.JSON, nullable=False, default=list)

    owner = db.Column(db.String(64), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "serial": self.serial,
            "consignee": self.consignee,
            "bl_number": self.bl_number,
            "container_size": self.container_size,
            "terminal": self.terminal,
            "status": self.status,
            "eta": self.eta,
            "refund_status": self.refund_status,
            "files": list(self.files or []),
            "owner": self.owner,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
