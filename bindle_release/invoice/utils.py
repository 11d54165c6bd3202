"""Shared helpers used by invoice tooling."""

from __future__ import annotations

import hashlib
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import tomli_w

from .files import FileSystem

DEFAULT_MEDIA_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ContentDigest:
    sha256: str
    size: int


def compute_digest(filesystem: FileSystem, path: Path) -> ContentDigest:
    """Return the SHA-256 digest and byte length of a file."""

    return digest_bytes(filesystem.read_bytes(path))


def digest_bytes(data: bytes) -> ContentDigest:
    return ContentDigest(sha256=hashlib.sha256(data).hexdigest(), size=len(data))


def compute_sha256(path: Path) -> str:
    """Return the SHA-256 checksum for a file on disk."""

    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


def guess_media_type(name: str) -> str:
    media_type, _ = mimetypes.guess_type(name, strict=False)
    return media_type or DEFAULT_MEDIA_TYPE


def bindle_id_hash(bindle_id: str) -> str:
    """Directory name used for a bindle in a standalone layout."""

    return hashlib.sha256(bindle_id.encode("utf-8")).hexdigest()


def write_toml(payload: Mapping[str, Any], path: Path) -> None:
    """Write a TOML document to disk."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(payload), encoding="utf-8")
