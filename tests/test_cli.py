"""Tests for dualstore CLI helpers."""
import json
import logging
import os

import pytest

from dualstore.cli import (
    EXIT_FAILED,
    EXIT_OK,
    EXIT_PARTIAL,
    _exit_code,
    _load_env_file,
    _normalize_key,
    _setup_logging,
    run_cli,
)
from dualstore.models import UploadStatus
from dualstore.orchestrator import UploadOrchestrator

from doubles import HELLO, HELLO_CID, FakeContentStore, FakeObjectStore


@pytest.fixture
def clean_env(monkeypatch):
    env = {
        k: v
        for k, v in os.environ.items()
        if not k.startswith(("S3_", "AWS_", "IPFS_", "MAX_", "UPLOAD_", "SERVER_")) and k != "LOG_LEVEL"
    }
    monkeypatch.setattr(os, "environ", env)
    yield env
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    logging.disable(logging.NOTSET)
    root_logger.setLevel(logging.WARNING)


def test_normalize_key():
    assert _normalize_key(None) is None
    assert _normalize_key("") is None
    assert _normalize_key(" / ") is None
    assert _normalize_key("/uploads/a.png") == "uploads/a.png"
    assert _normalize_key("media/2026/a.png") == "media/2026/a.png"


def test_load_env_file(tmp_path, clean_env):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# comment",
                "S3_BUCKET=media",
                "IPFS_API_URL='http://127.0.0.1:5001'",
                "export AWS_REGION=eu-west-1",
                "not a pair",
            ]
        ),
        encoding="utf-8",
    )

    _load_env_file(env_path)

    assert os.environ["S3_BUCKET"] == "media"
    assert os.environ["IPFS_API_URL"] == "http://127.0.0.1:5001"
    assert os.environ["AWS_REGION"] == "eu-west-1"


def test_load_env_file_keeps_existing_values(tmp_path, clean_env):
    env_path = tmp_path / ".env"
    env_path.write_text("S3_BUCKET=from-file\n", encoding="utf-8")
    os.environ["S3_BUCKET"] = "from-shell"

    _load_env_file(env_path)
    assert os.environ["S3_BUCKET"] == "from-shell"

    _load_env_file(env_path, override=True)
    assert os.environ["S3_BUCKET"] == "from-file"


def test_setup_logging_is_silent_by_default(clean_env):
    assert _setup_logging(debug=False, silent=False, log_level=None) == "silent"
    assert logging.getLogger("dualstore").isEnabledFor(logging.ERROR) is False


def test_setup_logging_debug(clean_env):
    assert _setup_logging(debug=True, silent=False, log_level=None) == "DEBUG"
    assert logging.getLogger("dualstore").isEnabledFor(logging.DEBUG) is True


def test_setup_logging_from_env(clean_env):
    os.environ["LOG_LEVEL"] = "warning"
    assert _setup_logging(debug=False, silent=False, log_level=None) == "WARNING"


@pytest.mark.parametrize(
    "status, code",
    [
        (UploadStatus.FULL_SUCCESS, EXIT_OK),
        (UploadStatus.PARTIAL_SUCCESS, EXIT_PARTIAL),
        (UploadStatus.FULL_FAILURE, EXIT_FAILED),
    ],
)
def test_exit_code(status, code):
    assert _exit_code(status) == code


def test_run_cli_without_command(capsys):
    assert run_cli([]) == EXIT_OK
    assert "dualstore" in capsys.readouterr().out


def test_run_cli_requires_bucket(tmp_path, monkeypatch, clean_env, capsys):
    monkeypatch.chdir(tmp_path)
    source = tmp_path / "hello.txt"
    source.write_bytes(HELLO)

    assert run_cli(["put", str(source)]) == EXIT_FAILED
    assert "S3_BUCKET not set" in capsys.readouterr().err


def test_run_cli_missing_source(tmp_path, monkeypatch, clean_env, capsys):
    monkeypatch.chdir(tmp_path)
    os.environ["S3_BUCKET"] = "b"

    assert run_cli(["put", str(tmp_path / "missing.txt")]) == EXIT_FAILED
    assert "source is not a file" in capsys.readouterr().err


def test_run_cli_put_json(tmp_path, monkeypatch, clean_env, capsys):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("S3_BUCKET=b\n", encoding="utf-8")
    source = tmp_path / "hello.txt"
    source.write_bytes(HELLO)

    object_store = FakeObjectStore()
    monkeypatch.setattr(
        UploadOrchestrator,
        "from_settings",
        classmethod(lambda cls, settings: cls(object_store, FakeContentStore(), settings.upload_config())),
    )

    assert run_cli(["put", str(source), "--key", "/docs/hello.txt", "--json"]) == EXIT_OK

    body = json.loads(capsys.readouterr().out)
    assert body == {"s3_url": "https://b.s3.amazonaws.com/docs/hello.txt", "ipfs_hash": HELLO_CID}
    assert object_store.calls[0][1].key == "docs/hello.txt"


def test_run_cli_put_partial_exit_code(tmp_path, monkeypatch, clean_env, capsys):
    monkeypatch.chdir(tmp_path)
    os.environ["S3_BUCKET"] = "b"
    source = tmp_path / "hello.txt"
    source.write_bytes(HELLO)

    monkeypatch.setattr(
        UploadOrchestrator,
        "from_settings",
        classmethod(
            lambda cls, settings: cls(
                FakeObjectStore(), FakeContentStore(error=RuntimeError("down")), settings.upload_config()
            )
        ),
    )

    assert run_cli(["put", str(source), "--json"]) == EXIT_PARTIAL
    body = json.loads(capsys.readouterr().out)
    assert body["status"] == "partial_success"
    assert body["errors"]["ipfs"]["kind"] == "unknown"


def test_run_cli_rejects_oversized_file_before_upload(tmp_path, monkeypatch, clean_env, capsys):
    monkeypatch.chdir(tmp_path)
    os.environ["S3_BUCKET"] = "b"
    os.environ["MAX_FILE_SIZE"] = "4"
    source = tmp_path / "hello.txt"
    source.write_bytes(HELLO)

    object_store = FakeObjectStore()
    content_store = FakeContentStore()
    monkeypatch.setattr(
        UploadOrchestrator,
        "from_settings",
        classmethod(lambda cls, settings: cls(object_store, content_store, settings.upload_config())),
    )

    assert run_cli(["put", str(source), "--json"]) == EXIT_FAILED
    assert "maximum file size of 4 bytes" in capsys.readouterr().err
    assert object_store.calls == []
    assert content_store.calls == []
