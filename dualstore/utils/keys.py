"""Object key helpers."""
import re
import uuid
from pathlib import PurePosixPath, PureWindowsPath
from typing import Optional

DEFAULT_FILENAME = "upload.bin"
MAX_FILENAME_LENGTH = 200

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def generate_id() -> str:
    """Random id used to keep object keys unique per upload."""
    return uuid.uuid4().hex


def sanitize_filename(filename: Optional[str]) -> str:
    """
    Reduce a client-supplied filename to a safe key segment.

    Directory components are dropped (both / and \\ separators) and any run of
    characters outside ``[A-Za-z0-9._-]`` becomes a single underscore.
    """
    if not filename:
        return DEFAULT_FILENAME
    name = PureWindowsPath(PurePosixPath(filename).name).name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    if not name:
        return DEFAULT_FILENAME
    if len(name) > MAX_FILENAME_LENGTH:
        stem, dot, suffix = name.rpartition(".")
        if dot and len(suffix) < 16:
            name = stem[: MAX_FILENAME_LENGTH - len(suffix) - 1] + "." + suffix
        else:
            name = name[:MAX_FILENAME_LENGTH]
    return name


def build_object_key(prefix: str, filename: Optional[str], upload_id: Optional[str] = None) -> str:
    """Build ``{prefix}/{upload_id}-{filename}`` (no leading slash)."""
    upload_id = upload_id or generate_id()
    name = f"{upload_id}-{sanitize_filename(filename)}"
    prefix = (prefix or "").strip("/")
    return f"{prefix}/{name}" if prefix else name
