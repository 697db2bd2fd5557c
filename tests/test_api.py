"""Tests for the HTTP upload ingress."""
import re

import httpx
import pytest

from dualstore.api import create_app
from dualstore.errors import BackendError
from dualstore.models import UploadConfig
from dualstore.orchestrator import UploadOrchestrator
from dualstore.settings import Settings

from doubles import HELLO, HELLO_CID, FakeContentStore, FakeObjectStore

KEY_PATTERN = re.compile(r"^uploads/[0-9a-f]{32}-hello\.txt$")


def _client(object_store=None, content_store=None, config=None):
    orchestrator = UploadOrchestrator(
        object_store or FakeObjectStore(),
        content_store or FakeContentStore(),
        config or UploadConfig(upload_timeout=2.0),
    )
    app = create_app(Settings(s3_bucket="b"), orchestrator=orchestrator)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_health_check():
    async with _client() as client:
        response = await client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_upload_full_success():
    object_store = FakeObjectStore()
    content_store = FakeContentStore()

    async with _client(object_store, content_store) as client:
        response = await client.post(
            "/upload", files={"file": ("hello.txt", HELLO, "text/plain")}
        )

    assert response.status_code == 200
    body = response.json()
    assert set(body) == {"s3_url", "ipfs_hash"}
    assert body["ipfs_hash"] == HELLO_CID

    data, destination = object_store.calls[0]
    assert data == HELLO
    assert destination.bucket == "b"
    assert KEY_PATTERN.match(destination.key)
    assert body["s3_url"] == f"https://b.s3.amazonaws.com/{destination.key}"
    assert content_store.calls == [HELLO]


@pytest.mark.asyncio
async def test_upload_sanitizes_client_filename():
    object_store = FakeObjectStore()

    async with _client(object_store) as client:
        await client.post("/upload", files={"file": ("../../etc/pass wd", b"x")})

    key = object_store.calls[0][1].key
    assert key.startswith("uploads/")
    assert key.endswith("-pass_wd")
    assert ".." not in key


@pytest.mark.asyncio
async def test_upload_partial_success():
    content_store = FakeContentStore(error=BackendError.transient("IPFS error 503: busy"))

    async with _client(content_store=content_store) as client:
        response = await client.post("/upload", files={"file": ("hello.txt", HELLO)})

    assert response.status_code == 207
    body = response.json()
    assert body["status"] == "partial_success"
    assert body["s3_url"].startswith("https://b.s3.amazonaws.com/uploads/")
    assert body["ipfs_hash"] is None
    assert body["errors"] == {"ipfs": {"kind": "transient", "message": "IPFS error 503: busy"}}


@pytest.mark.asyncio
async def test_upload_full_failure():
    object_store = FakeObjectStore(error=BackendError.permanent("S3 AccessDenied: denied"))
    content_store = FakeContentStore(error=RuntimeError("boom"))

    async with _client(object_store, content_store) as client:
        response = await client.post("/upload", files={"file": ("hello.txt", HELLO)})

    assert response.status_code == 502
    body = response.json()
    assert body["status"] == "full_failure"
    assert body["s3_url"] is None
    assert body["ipfs_hash"] is None
    assert body["errors"]["s3"]["kind"] == "permanent"
    assert body["errors"]["ipfs"]["kind"] == "unknown"


@pytest.mark.asyncio
async def test_upload_without_file_field():
    object_store = FakeObjectStore()

    async with _client(object_store) as client:
        response = await client.post("/upload", files={"attachment": ("hello.txt", HELLO)})

    assert response.status_code == 400
    assert response.json() == {
        "error": "NoFileError",
        "message": "No file found in upload request",
        "details": {},
    }
    assert object_store.calls == []


@pytest.mark.asyncio
async def test_upload_too_large():
    object_store = FakeObjectStore()
    content_store = FakeContentStore()
    config = UploadConfig(max_file_size=4, upload_timeout=2.0)

    async with _client(object_store, content_store, config) as client:
        response = await client.post("/upload", files={"file": ("hello.txt", HELLO)})

    assert response.status_code == 413
    body = response.json()
    assert body["error"] == "PayloadTooLargeError"
    assert "4 bytes" in body["message"]
    assert object_store.calls == []
    assert content_store.calls == []
