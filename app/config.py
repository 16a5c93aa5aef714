# app/config.py

import os


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

    # PostgreSQL (Render / local)
    # Render a veces entrega DATABASE_URL como postgres:// (deprecated)
    uri = os.getenv("DATABASE_URL", "postgresql://localhost/maritime_jobs")
    if uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)

    # Forzar driver pg8000 (para evitar psycopg2 en Render)
    # Si ya viene con driver, no lo tocamos
    if uri.startswith("postgresql://") and "+pg8000" not in uri:
        uri = uri.replace("postgresql://", "postgresql+pg8000://", 1)

    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bucket privado en disco: <STORAGE_FOLDER>/<STORAGE_BUCKET>/...
    STORAGE_FOLDER = os.getenv("STORAGE_FOLDER", "storage")
    STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "documents")
    STORAGE_URL_SECRET = os.getenv("STORAGE_URL_SECRET", SECRET_KEY)

    # Expiración de URLs firmadas (segundos)
    JOB_FILE_URL_EXPIRY = int(os.getenv("JOB_FILE_URL_EXPIRY", str(60 * 60 * 24 * 7)))
    LIBRARY_FILE_URL_EXPIRY = int(os.getenv("LIBRARY_FILE_URL_EXPIRY", str(60 * 60 * 24 * 365)))

    # Jobs
    SERIAL_RETRY_LIMIT = int(os.getenv("SERIAL_RETRY_LIMIT", "3"))
    JOBS_RELOAD_AFTER_UPDATE = os.getenv("JOBS_RELOAD_AFTER_UPDATE", "0") == "1"

    # El gateway de auth deja el usuario en este header
    OWNER_HEADER = os.getenv("OWNER_HEADER", "X-Owner-Id")

    EXPORT_FOLDER = os.getenv("EXPORT_FOLDER", "outputs")
    SWEEP_POLL_SECONDS = int(os.getenv("SWEEP_POLL_SECONDS", "3600"))
    # objetos más nuevos que esto no se barren (pueden estar a mitad de un upload)
    SWEEP_MIN_AGE_SECONDS = int(os.getenv("SWEEP_MIN_AGE_SECONDS", "3600"))

    # Limite upload (50MB)
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    STORAGE_URL_SECRET = "test-storage-secret"
