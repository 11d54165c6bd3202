"""Errors raised while compiling a manifest into an invoice."""

from __future__ import annotations

from typing import Optional


class BindleReleaseError(RuntimeError):
    """Base class for every compilation failure."""


class ParseError(BindleReleaseError):
    """Raised when manifest text is not valid TOML."""

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class ValidationError(BindleReleaseError):
    """Raised when a manifest is well formed but violates a constraint."""

    def __init__(self, reason: str, *, entry: Optional[str] = None) -> None:
        self.entry = entry
        self.reason = reason
        message = f"{entry}: {reason}" if entry else reason
        super().__init__(message)


class ConditionSyntaxError(BindleReleaseError):
    """Raised when a build condition cannot be parsed."""

    def __init__(self, expression: str, reason: str, *, offset: Optional[int] = None) -> None:
        self.expression = expression
        self.reason = reason
        self.offset = offset
        lines = [
            f'Invalid build condition "{expression}". '
            f"Typical format is: \"$name ==/!= 'value'\"; problem was {reason}"
        ]
        if offset is not None:
            lines.append(f"    {expression}")
            lines.append(f"    {' ' * offset}^-- here")
        super().__init__("\n".join(lines))


class MissingFileError(BindleReleaseError):
    """Raised when a module or manifest file does not exist."""

    def __init__(self, path: str, *, entry: Optional[str] = None) -> None:
        self.path = path
        self.entry = entry
        if entry:
            message = f"{entry}: file not found: {path}"
        else:
            message = f"File not found: {path}"
        super().__init__(message)


class ExternalFetchError(BindleReleaseError):
    """Raised when a remote invoice is unreachable or malformed."""

    def __init__(self, bindle_id: str, reason: str) -> None:
        self.bindle_id = bindle_id
        self.reason = reason
        super().__init__(f"Unable to fetch invoice for bindle '{bindle_id}': {reason}")


class HandlerNotFoundError(BindleReleaseError):
    """Raised when an external bindle exports no module with the requested id."""

    def __init__(self, bindle_id: str, handler_id: str) -> None:
        self.bindle_id = bindle_id
        self.handler_id = handler_id
        super().__init__(f"Bindle '{bindle_id}' does not export a handler with id '{handler_id}'")


class CyclicDependencyError(BindleReleaseError):
    """Raised when a remote group graph revisits a group."""

    def __init__(self, bindle_id: str, group: str, reason: str = "group is part of a dependency cycle") -> None:
        self.bindle_id = bindle_id
        self.group = group
        self.reason = reason
        super().__init__(f"Cyclic dependency in bindle '{bindle_id}' at group '{group}': {reason}")


class StagingError(BindleReleaseError):
    """Raised when a parcel cannot be staged to disk."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to stage {path}: {reason}")


class IdentityCollisionError(BindleReleaseError):
    """Raised when two parcels or groups claim the same identity."""

    def __init__(self, identity: str, reason: str, *, entry: Optional[str] = None) -> None:
        self.identity = identity
        self.reason = reason
        self.entry = entry
        prefix = f"{entry}: " if entry else ""
        super().__init__(f"{prefix}{identity}: {reason}")


__all__ = [
    "BindleReleaseError",
    "ConditionSyntaxError",
    "CyclicDependencyError",
    "ExternalFetchError",
    "HandlerNotFoundError",
    "IdentityCollisionError",
    "MissingFileError",
    "ParseError",
    "StagingError",
    "ValidationError",
]
