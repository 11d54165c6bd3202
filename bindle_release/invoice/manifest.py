"""Manifest loading and validation."""

from __future__ import annotations

import tomllib
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import MissingFileError, ParseError, ValidationError
from ..schemas.manifest import (
    BindleMetadata,
    ExportModel,
    ExternalModule,
    Handler,
    HandlerModel,
    LocalModule,
    ManifestModel,
    ModuleRef,
    Spec,
)
from .conditions import parse_condition

MANIFEST_FILENAMES = ("HIPPOFACTS", "hippofacts.toml")


def locate_manifest(path: Path) -> Path:
    """Return the manifest file for ``path``, searching inside directories."""

    if path.is_file():
        return path
    if not path.is_dir():
        raise MissingFileError(str(path))

    candidates = [path / name for name in MANIFEST_FILENAMES if (path / name).is_file()]
    if not candidates:
        raise MissingFileError(str(path / MANIFEST_FILENAMES[0]))
    if len(candidates) > 1:
        names = ", ".join(candidate.name for candidate in candidates)
        raise ValidationError(f"Multiple manifests found in {path} ({names}); pass a specific file")
    return candidates[0]


def load_manifest(path: Path) -> Spec:
    """Load and validate a manifest from disk."""

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"manifest is not valid UTF-8: {exc}", path=str(path)) from exc
    except OSError as exc:
        raise ParseError(f"cannot read manifest: {exc}", path=str(path)) from exc
    return parse_manifest(text, source=str(path))


def parse_manifest(text: str, *, source: Optional[str] = None) -> Spec:
    """Parse manifest text into a validated ``Spec``."""

    try:
        payload = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ParseError(str(exc), path=source) from exc
    return build_spec(payload)


def build_spec(payload: Mapping[str, Any]) -> Spec:
    try:
        model = ManifestModel.model_validate(payload)
    except PydanticValidationError as exc:
        entry, reason = _describe_pydantic_error(exc)
        raise ValidationError(reason, entry=entry) from exc

    bindle = model.bindle
    if not bindle.name.strip():
        raise ValidationError("bindle.name must not be empty", entry="bindle")
    if not bindle.version.strip():
        raise ValidationError("bindle.version must not be empty", entry="bindle")

    handlers = tuple(
        _build_handler(f"handler[{index}]", raw) for index, raw in enumerate(model.handler)
    )
    exports = tuple(
        _build_export(f"export[{index}]", raw) for index, raw in enumerate(model.export)
    )

    return Spec(
        bindle=BindleMetadata(
            name=bindle.name,
            version=bindle.version,
            description=bindle.description,
            authors=tuple(bindle.authors) if bindle.authors is not None else None,
        ),
        handlers=handlers,
        exports=exports,
        annotations=dict(model.annotations or {}),
    )


def _build_handler(label: str, raw: HandlerModel) -> Handler:
    if raw.route is None:
        raise ValidationError("handler must declare a route", entry=label)
    if not raw.route.strip():
        raise ValidationError("route must not be empty", entry=label)
    return Handler(
        label=label,
        module=_module_ref(label, raw.name, raw.external),
        route=raw.route,
        files=_file_patterns(label, raw.files),
        condition=parse_condition(raw.condition) if raw.condition is not None else None,
    )


def _build_export(label: str, raw: ExportModel) -> Handler:
    if raw.id is None:
        raise ValidationError("export must declare an id", entry=label)
    if not raw.id.strip():
        raise ValidationError("id must not be empty", entry=label)
    return Handler(
        label=label,
        module=_module_ref(label, raw.name, raw.external),
        export_id=raw.id,
        files=_file_patterns(label, raw.files),
        condition=parse_condition(raw.condition) if raw.condition is not None else None,
    )


def _module_ref(label: str, name: Optional[str], external: Any) -> ModuleRef:
    if name is not None and external is not None:
        raise ValidationError("must not specify both a local 'name' and an 'external' reference", entry=label)
    if name is not None:
        _require_relative(label, "name", name)
        return LocalModule(path=PurePosixPath(name).as_posix())
    if external is not None:
        if not external.bindle_id.strip() or not external.handler_id.strip():
            raise ValidationError("external reference needs a non-empty bindleId and handlerId", entry=label)
        return ExternalModule(bindle_id=external.bindle_id, handler_id=external.handler_id)
    raise ValidationError("must specify a module with 'name' or 'external'", entry=label)


def _file_patterns(label: str, files: Optional[Sequence[str]]) -> Tuple[str, ...]:
    patterns: List[str] = []
    for pattern in files or []:
        _require_relative(label, "files", pattern)
        patterns.append(pattern)
    return tuple(patterns)


def _require_relative(label: str, field_name: str, value: str) -> None:
    if not value.strip():
        raise ValidationError(f"{field_name} entries must not be empty", entry=label)
    if value.startswith("/") or PureWindowsPath(value).is_absolute():
        raise ValidationError(f"{field_name} must be relative to the manifest directory (got '{value}')", entry=label)
    if ".." in PurePosixPath(value.replace("\\", "/")).parts:
        raise ValidationError(f"{field_name} must not leave the manifest directory (got '{value}')", entry=label)


def _describe_pydantic_error(exc: PydanticValidationError) -> Tuple[Optional[str], str]:
    error = exc.errors()[0]
    loc = [part for part in error.get("loc", ())]

    entry: Optional[str] = None
    if len(loc) >= 2 and loc[0] in ("handler", "export") and isinstance(loc[1], int):
        entry = f"{loc[0]}[{loc[1]}]"
        field_path = loc[2:]
    elif len(loc) > 1:
        entry = str(loc[0])
        field_path = loc[1:]
    else:
        field_path = loc

    field_name = ".".join(str(part) for part in field_path)
    if error.get("type") == "extra_forbidden":
        reason = f"unknown key '{field_name}'"
    elif error.get("type") == "missing":
        reason = f"missing required field '{field_name}'"
    elif field_name:
        reason = f"invalid value for '{field_name}': {error.get('msg')}"
    else:
        reason = str(error.get("msg"))
    return entry, reason


__all__ = [
    "MANIFEST_FILENAMES",
    "build_spec",
    "load_manifest",
    "locate_manifest",
    "parse_manifest",
]
