from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import hashlib


@dataclass(frozen=True)
class FileSnapshot:
    file_path: str
    bytes: bytes
    sha256: str


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def read_file_snapshot(file_path: Path) -> FileSnapshot:
    data = file_path.read_bytes()
    return FileSnapshot(
        file_path=str(file_path),
        bytes=data,
        sha256=sha256_hex(data),
    )


def current_sha256(file_path: Path) -> str:
    return sha256_hex(file_path.read_bytes())
