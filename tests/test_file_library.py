# tests/test_file_library.py

import pytest

from app.models import Document, CompanyFile
from app.services.file_library import FileLibrary, LibraryError
from app.services.storage import StorageError


def test_document_upload_records_metadata(storage, upload):
    lib = FileLibrary.documents("owner-a", storage)
    row = lib.upload(upload("msc.pdf", b"authority letter"), "Shipping line/Terminal Authorities/MSC Authority")

    assert row["name"] == "msc.pdf"
    assert row["folder_path"] == "Shipping line/Terminal Authorities/MSC Authority"
    assert row["path"].startswith("Shipping line/Terminal Authorities/MSC Authority/")
    assert row["path"].endswith(".pdf")
    assert row["file_size"] == len(b"authority letter")
    assert row["mime_type"] == "application/pdf"
    assert row["owner"] == "owner-a"
    assert row["file_url"].startswith("/storage/")
    assert storage.download(row["path"]) == b"authority letter"

    assert [f["id"] for f in lib.files] == [row["id"]]


def test_delete_tolerates_storage_failure(storage, upload, monkeypatch):
    lib = FileLibrary.documents("owner-a", storage)
    row = lib.upload(upload("c30.pdf"), "FORM C30/TICT Form C30")

    def broken_remove(paths):
        raise StorageError("bucket unavailable")

    monkeypatch.setattr(storage, "remove", broken_remove)
    lib.delete(row["id"])

    assert Document.query.count() == 0
    assert lib.files == []


def test_delete_is_owner_scoped(storage, upload):
    mine = FileLibrary.documents("owner-a", storage)
    row = mine.upload(upload("c30.pdf"), "FORM C30/KLT Form C30")

    theirs = FileLibrary.documents("owner-b", storage)
    with pytest.raises(LibraryError):
        theirs.delete(row["id"])
    assert Document.query.count() == 1


def test_failed_upload_raises_and_saves_nothing(storage, upload, monkeypatch):
    lib = FileLibrary.documents("owner-a", storage)

    def broken_upload(path, data, content_type=None):
        raise StorageError("disk full")

    monkeypatch.setattr(storage, "upload", broken_upload)
    with pytest.raises(LibraryError):
        lib.upload(upload("a.pdf"), "FORM C30/Apapa Form C30")
    assert Document.query.count() == 0


def test_company_files_by_category_and_folder(storage, upload):
    lib = FileLibrary.company_files("owner-a", storage)
    lib.upload(upload("policy.pdf"), "Policies")
    lib.upload(upload("hse.pdf"), "Policies/HSE")
    lib.upload(upload("cac.pdf"), "Certificates", category="certificates")

    assert CompanyFile.query.filter_by(category="policies").count() == 2
    assert {f["name"] for f in lib.files_in_folder("Policies")} == {"policy.pdf", "hse.pdf"}
    assert [f["name"] for f in lib.files_in_folder("Policies/HSE")] == ["hse.pdf"]
    assert lib.files_in_folder("") == []

    tree = {n["name"]: n["file_count"] for n in lib.folder_tree()}
    assert tree["Policies"] == 2
    assert tree["Certificates"] == 1
    assert tree["Other"] == 0


def test_document_tree_counts_leaf_files(storage, upload):
    lib = FileLibrary.documents("owner-a", storage)
    lib.upload(upload("cosco.pdf"), "Shipping line/Terminal Authorities/COSCO Authority")

    tree = lib.folder_tree()
    authorities = tree[0]
    assert authorities["path"] == "Shipping line/Terminal Authorities"
    cosco = [c for c in authorities["children"] if c["name"] == "COSCO Authority"][0]
    assert cosco["file_count"] == 1
    assert cosco["path"] == "Shipping line/Terminal Authorities/COSCO Authority"
