# app/models/library_file.py

import uuid
from datetime import datetime

from app.extensions import db


class LibraryFileMixin:
    """
    Columnas comunes de documents / company_files.
    El binario vive en el bucket; aquí solo la metadata.
    """

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = db.Column(db.String(255), nullable=False)
    path = db.Column(db.String(500), nullable=False)
    folder_path = db.Column(db.String(500), nullable=False, index=True)

    file_url = db.Column(db.Text)
    file_size = db.Column(db.BigInteger)
    mime_type = db.Column(db.String(120))

    owner = db.Column(db.String(64), nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


class Document(LibraryFileMixin, db.Model):
    __tablename__ = "documents"


class CompanyFile(LibraryFileMixin, db.Model):
    __tablename__ = "company_files"

    category = db.Column(db.String(80))
