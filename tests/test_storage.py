# tests/test_storage.py

import pytest

from app.services.storage import ObjectStorage, StorageError


@pytest.fixture
def bucket(tmp_path):
    return ObjectStorage(str(tmp_path), "documents", secret="s3cr3t-for-tests")


def test_upload_refuses_existing_path(bucket):
    bucket.upload("jobs/1/a.pdf", b"one")
    with pytest.raises(StorageError):
        bucket.upload("jobs/1/a.pdf", b"two")
    assert bucket.download("jobs/1/a.pdf") == b"one"


def test_paths_are_normalized_and_traversal_rejected(bucket):
    key = bucket.upload("jobs//2/./b.pdf", b"x")
    assert key == "jobs/2/b.pdf"
    assert bucket.list_paths() == ["jobs/2/b.pdf"]

    with pytest.raises(StorageError):
        bucket.upload("../outside.txt", b"x")
    with pytest.raises(StorageError):
        bucket.upload("", b"x")


def test_signed_url_resolves_to_path(bucket):
    bucket.upload("FORM C30/Apapa Form C30/c30.pdf", b"form")
    url = bucket.create_signed_url("FORM C30/Apapa Form C30/c30.pdf", 60)

    assert url.startswith("/storage/")
    token = url[len("/storage/"):]
    assert bucket.resolve_signed_token(token) == "FORM C30/Apapa Form C30/c30.pdf"


def test_signed_url_expired_or_tampered(bucket, tmp_path):
    bucket.upload("jobs/1/a.pdf", b"one")

    expired = bucket.create_signed_url("jobs/1/a.pdf", -1)[len("/storage/"):]
    with pytest.raises(StorageError, match="TOKEN_EXPIRED"):
        bucket.resolve_signed_token(expired)

    other = ObjectStorage(str(tmp_path), "documents", secret="another-secret")
    token = other.create_signed_url("jobs/1/a.pdf", 60)[len("/storage/"):]
    with pytest.raises(StorageError, match="TOKEN_INVALID"):
        bucket.resolve_signed_token(token)


def test_signing_missing_object_fails(bucket):
    with pytest.raises(StorageError):
        bucket.create_signed_url("jobs/9/missing.pdf", 60)


def test_copy_and_remove(bucket):
    bucket.upload("jobs/1/a.pdf", b"content")
    bucket.copy("jobs/1/a.pdf", "jobs/1/b.pdf")
    assert bucket.download("jobs/1/b.pdf") == b"content"

    with pytest.raises(StorageError):
        bucket.copy("jobs/1/missing.pdf", "jobs/1/c.pdf")

    # remove intenta todos y reporta los que fallaron
    with pytest.raises(StorageError):
        bucket.remove(["jobs/1/a.pdf", "jobs/1/missing.pdf"])
    assert not bucket.exists("jobs/1/a.pdf")
    assert bucket.remove(["jobs/1/b.pdf"]) == ["jobs/1/b.pdf"]
