"""Tests for object key helpers."""
import re

import pytest

from dualstore.utils import build_object_key, generate_id, sanitize_filename


def test_generate_id_is_unique_hex():
    first, second = generate_id(), generate_id()
    assert first != second
    assert re.fullmatch(r"[0-9a-f]{32}", first)


@pytest.mark.parametrize(
    "filename, expected",
    [
        ("photo.png", "photo.png"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\report final.pdf", "report_final.pdf"),
        ("weird name!!.txt", "weird_name_.txt"),
        ("...", "upload.bin"),
        ("", "upload.bin"),
        (None, "upload.bin"),
    ],
)
def test_sanitize_filename(filename, expected):
    assert sanitize_filename(filename) == expected


def test_sanitize_filename_truncates_and_keeps_suffix():
    name = sanitize_filename("a" * 300 + ".jpeg")
    assert len(name) == 200
    assert name.endswith(".jpeg")


def test_build_object_key():
    assert build_object_key("uploads", "a.png", upload_id="abc") == "uploads/abc-a.png"
    assert build_object_key("/nested/prefix/", "a.png", upload_id="abc") == "nested/prefix/abc-a.png"
    assert build_object_key("", "a.png", upload_id="abc") == "abc-a.png"


def test_build_object_key_generates_id():
    key = build_object_key("uploads", "a.png")
    assert re.fullmatch(r"uploads/[0-9a-f]{32}-a\.png", key)
