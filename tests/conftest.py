"""Shared fixtures for dualstore tests."""
import pytest

from dualstore.models import ObjectStoreDestination, UploadConfig
from dualstore.orchestrator import UploadOrchestrator

from doubles import FakeContentStore, FakeObjectStore


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def content_store():
    return FakeContentStore()


@pytest.fixture
def upload_config():
    return UploadConfig(max_buffered_bytes=1024, upload_timeout=2.0, max_file_size=None)


@pytest.fixture
def orchestrator(object_store, content_store, upload_config):
    return UploadOrchestrator(object_store, content_store, upload_config)


@pytest.fixture
def destination():
    return ObjectStoreDestination(bucket="b", key="k")
