"""Invoice version handling for development and production builds."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol

_IDENTIFIER_STRIP_RE = re.compile(r"[^0-9A-Za-z-]+")
_TIMESTAMP_FORMAT = "%Y.%m.%d.%H.%M.%S"


class Clock(Protocol):
    def now(self) -> datetime:  # pragma: no cover - interface
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now()


class Versioning(str, Enum):
    DEV = "dev"
    PRODUCTION = "production"

    @classmethod
    def parse(cls, text: str) -> "Versioning":
        if text == cls.PRODUCTION.value:
            return cls.PRODUCTION
        return cls.DEV


def mangle_version(
    version: str,
    *,
    versioning: Versioning,
    clock: Clock,
    identifier: Optional[str] = None,
) -> str:
    """Return the invoice version for a build.

    Production builds keep the declared version. Development builds append a
    prerelease segment made of the sanitised identifier and a millisecond
    timestamp, so repeated builds of one manifest version get distinct ids.
    """

    if versioning is Versioning.PRODUCTION:
        return version

    parts = [version]
    cleaned = _sanitise_identifier(identifier)
    if cleaned:
        parts.append(cleaned)
    parts.append(_format_timestamp(clock.now()))
    return "-".join(parts)


def _sanitise_identifier(identifier: Optional[str]) -> str:
    if not identifier:
        return ""
    return _IDENTIFIER_STRIP_RE.sub("-", identifier).strip("-")


def _format_timestamp(moment: datetime) -> str:
    return f"{moment.strftime(_TIMESTAMP_FORMAT)}.{moment.microsecond // 1000:03d}"


__all__ = ["Clock", "SystemClock", "Versioning", "mangle_version"]
