# tests/conftest.py

import io

import pytest
from werkzeug.datastructures import FileStorage

from app import create_app
from app.config import TestConfig
from app.extensions import db
from app.services.job_store import JobStore
from app.services.storage import get_storage


@pytest.fixture
def app(tmp_path):
    class Cfg(TestConfig):
        STORAGE_FOLDER = str(tmp_path / "storage")
        EXPORT_FOLDER = str(tmp_path / "outputs")

    app = create_app(Cfg)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage(app):
    return get_storage()


@pytest.fixture
def make_store(storage):
    def _make(owner="owner-a", **kwargs):
        store = JobStore(owner, storage=storage, **kwargs)
        store.load_all()
        return store
    return _make


@pytest.fixture
def upload():
    def _upload(name, data=b"%PDF-1.4 test", mimetype="application/pdf"):
        return FileStorage(stream=io.BytesIO(data), filename=name, content_type=mimetype)
    return _upload
