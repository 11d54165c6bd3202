"""Invoice assembly orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from ..exceptions import IdentityCollisionError, ValidationError
from ..schemas.invoice import (
    DO_NOT_STAGE_ANNOTATION,
    HANDLER_ID_ANNOTATION,
    WAGI_FEATURE,
    BindleSpec,
    Condition,
    Group,
    Invoice,
    Label,
    Parcel,
)
from ..schemas.manifest import ExternalModule, Handler, LocalModule, Spec, external_bindle_ids
from .conditions import should_build
from .external import InvoiceFetcher, ResolutionContext
from .files import FileSystem, LocalFileSystem, resolve_module, resolve_pattern
from .manifest import load_manifest, locate_manifest
from .utils import compute_digest, guess_media_type
from .versioning import Clock, SystemClock, Versioning, mangle_version

logger = logging.getLogger(__name__)

ParcelKey = Tuple[str, str]

_MODULE = "module"
_FILE = "file"
_ALIAS = "alias"
_REMOTE = "remote"


@dataclass(slots=True)
class CompileConfig:
    """Configuration describing one compilation run."""

    source_dir: Path
    versioning: Versioning = Versioning.DEV
    bindings: Mapping[str, str] = field(default_factory=dict)
    identifier: Optional[str] = None


@dataclass(slots=True)
class CompileResult:
    invoice: Invoice
    warnings: List[str] = field(default_factory=list)


@dataclass(slots=True)
class _ParcelDraft:
    role: str
    owner: str
    label: Label
    member_of: List[str] = field(default_factory=list)
    requires: List[str] = field(default_factory=list)

    def join(self, group: str) -> None:
        if group not in self.member_of:
            self.member_of.append(group)

    def merge(self, other: _ParcelDraft) -> None:
        for group in other.member_of:
            self.join(group)
        for group in other.requires:
            if group not in self.requires:
                self.requires.append(group)

    def to_parcel(self) -> Parcel:
        conditions = Condition(
            member_of=list(self.member_of) or None,
            requires=list(self.requires) or None,
        )
        return Parcel(label=self.label, conditions=conditions)


class InvoiceBuilder:
    """Compiles a validated manifest into an invoice."""

    def __init__(
        self,
        *,
        filesystem: Optional[FileSystem] = None,
        fetcher: Optional[InvoiceFetcher] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.filesystem = filesystem or LocalFileSystem()
        self.fetcher = fetcher
        self.clock = clock or SystemClock()

    def build(
        self,
        spec: Spec,
        config: CompileConfig,
        *,
        context: Optional[ResolutionContext] = None,
    ) -> CompileResult:
        """Build the invoice for ``spec``; any error aborts the whole run."""

        entries = select_entries(spec.entries, config.bindings)
        check_group_names(entries)

        context = context or ResolutionContext(self.fetcher)
        for bindle_id in external_bindle_ids(entries):
            context.invoice(bindle_id)

        assembly = _Assembly(
            filesystem=self.filesystem,
            root=config.source_dir,
            context=context,
        )
        for entry in entries:
            assembly.add_entry(entry)

        version = mangle_version(
            spec.bindle.version,
            versioning=config.versioning,
            clock=self.clock,
            identifier=config.identifier,
        )
        invoice = Invoice(
            bindle=BindleSpec(
                name=spec.bindle.name,
                version=version,
                description=spec.bindle.description,
                authors=list(spec.bindle.authors) if spec.bindle.authors is not None else None,
            ),
            annotations=dict(spec.annotations) or None,
            parcel=assembly.parcels(),
            group=assembly.groups(),
        )
        logger.debug(
            "Compiled %s with %d parcel(s) and %d group(s)",
            invoice.id,
            len(invoice.parcel),
            len(invoice.group),
        )
        return CompileResult(invoice=invoice, warnings=list(assembly.warnings))


def compile_manifest(
    manifest_path: Path,
    *,
    versioning: Versioning = Versioning.DEV,
    bindings: Optional[Mapping[str, str]] = None,
    identifier: Optional[str] = None,
    filesystem: Optional[FileSystem] = None,
    fetcher: Optional[InvoiceFetcher] = None,
    clock: Optional[Clock] = None,
) -> CompileResult:
    """Locate, load and compile a manifest; files resolve relative to it."""

    path = locate_manifest(manifest_path)
    spec = load_manifest(path)
    builder = InvoiceBuilder(filesystem=filesystem, fetcher=fetcher, clock=clock)
    config = CompileConfig(
        source_dir=path.parent,
        versioning=versioning,
        bindings=dict(bindings or {}),
        identifier=identifier,
    )
    return builder.build(spec, config)


def select_entries(entries: Sequence[Handler], bindings: Mapping[str, str]) -> List[Handler]:
    selected: List[Handler] = []
    for entry in entries:
        if should_build(entry.condition, bindings):
            selected.append(entry)
        else:
            logger.debug("Skipping %s: condition %s not met", entry.label, entry.condition)
    return selected


def check_group_names(entries: Sequence[Handler]) -> None:
    owners: Dict[str, str] = {}
    for entry in entries:
        group = entry.group_name
        if group in owners:
            raise ValidationError(
                f"group '{group}' is already declared by {owners[group]}",
                entry=entry.label,
            )
        owners[group] = entry.label


class _Assembly:
    def __init__(
        self,
        *,
        filesystem: FileSystem,
        root: Path,
        context: ResolutionContext,
    ) -> None:
        self.filesystem = filesystem
        self.root = root
        self.context = context
        self.warnings: List[str] = []
        self._drafts: Dict[ParcelKey, _ParcelDraft] = {}
        self._order: List[ParcelKey] = []
        self._groups: List[str] = []

    def add_entry(self, entry: Handler) -> None:
        group = entry.group_name
        self._declare(group)

        keys: List[ParcelKey] = []
        if isinstance(entry.module, LocalModule):
            keys.append(self._add_local_module(entry, entry.module, group))
        else:
            keys.extend(self._add_external_module(entry, entry.module, group))

        for path in self._match_files(entry):
            keys.append(self._add_file(entry, path, group))

        for key in keys:
            if key not in self._order:
                self._order.append(key)

    def parcels(self) -> List[Parcel]:
        """Finalise the drafts in first-seen order.

        An imported copy whose content is already present as a local file is
        dropped and its conditions merge into that file. Content already held
        by a local module cannot also be an imported member.
        """

        files: Dict[str, _ParcelDraft] = {}
        modules: Dict[str, _ParcelDraft] = {}
        for key in self._order:
            draft = self._drafts[key]
            if draft.role == _FILE:
                files.setdefault(draft.label.sha256, draft)
            elif draft.role == _MODULE:
                modules.setdefault(draft.label.sha256, draft)

        kept: List[_ParcelDraft] = []
        for key in self._order:
            draft = self._drafts[key]
            if draft.role != _REMOTE:
                kept.append(draft)
                continue
            digest = draft.label.sha256
            target = files.get(digest)
            if target is not None:
                logger.debug(
                    "Dropping imported parcel %s: content already present as %s",
                    draft.label.name,
                    target.label.name,
                )
                target.merge(draft)
                continue
            module = modules.get(digest)
            if module is not None:
                raise IdentityCollisionError(
                    draft.label.name,
                    f"imported as a file but its content is already used as module {module.label.name} by {module.owner}",
                    entry=draft.owner,
                )
            kept.append(draft)
        return [draft.to_parcel() for draft in kept]

    def groups(self) -> List[Group]:
        return [Group(name=name) for name in self._groups]

    def _declare(self, group: str) -> None:
        if group not in self._groups:
            self._groups.append(group)

    def _add_local_module(self, entry: Handler, module: LocalModule, group: str) -> ParcelKey:
        key: ParcelKey = ("path", module.path)
        self._reject_existing(key, entry, module.path)

        absolute = resolve_module(self.filesystem, self.root, module.path, entry=entry.label)
        digest = compute_digest(self.filesystem, absolute)
        annotations = {HANDLER_ID_ANNOTATION: entry.export_id} if entry.is_export else None
        label = Label(
            name=module.path,
            sha256=digest.sha256,
            media_type=guess_media_type(module.path),
            size=digest.size,
            annotations=annotations,
            feature={WAGI_FEATURE: _module_feature(entry)},
        )
        self._drafts[key] = _ParcelDraft(role=_MODULE, owner=entry.label, label=label, requires=[group])
        return key

    def _add_external_module(self, entry: Handler, module: ExternalModule, group: str) -> List[ParcelKey]:
        resolved = self.context.resolve(module)
        remote = resolved.module.label

        key: ParcelKey = ("digest", remote.sha256)
        self._reject_existing(key, entry, f"{module.bindle_id}:{module.handler_id}")

        annotations = {
            name: value for name, value in (remote.annotations or {}).items() if name != HANDLER_ID_ANNOTATION
        }
        if entry.is_export:
            annotations[HANDLER_ID_ANNOTATION] = entry.export_id
        annotations[DO_NOT_STAGE_ANNOTATION] = "true"
        label = Label(
            name=remote.name,
            sha256=remote.sha256,
            media_type=remote.media_type,
            size=remote.size,
            annotations=annotations,
            feature={WAGI_FEATURE: _module_feature(entry)},
        )
        self._drafts[key] = _ParcelDraft(role=_ALIAS, owner=entry.label, label=label, requires=[group])
        keys = [key]

        for remote_group in resolved.groups:
            self._declare(remote_group)
        for parcel in resolved.members:
            keys.append(self._add_remote_member(entry, parcel))
        return keys

    def _add_remote_member(self, entry: Handler, parcel: Parcel) -> ParcelKey:
        key: ParcelKey = ("digest", parcel.label.sha256)
        annotations = dict(parcel.label.annotations or {})
        annotations[DO_NOT_STAGE_ANNOTATION] = "true"
        draft = _ParcelDraft(
            role=_REMOTE,
            owner=entry.label,
            label=parcel.label.model_copy(update={"annotations": annotations}, deep=True),
            member_of=list(parcel.member_of),
            requires=list(parcel.requires),
        )

        existing = self._drafts.get(key)
        if existing is None:
            self._drafts[key] = draft
        elif existing.role == _REMOTE:
            existing.merge(draft)
        else:
            raise IdentityCollisionError(
                parcel.label.name,
                f"imported as a file but already used as a module by {existing.owner}",
                entry=entry.label,
            )
        return key

    def _match_files(self, entry: Handler) -> List[str]:
        matched: Set[str] = set()
        for pattern in entry.files:
            paths = resolve_pattern(self.filesystem, self.root, pattern)
            if not paths:
                logger.warning("%s: pattern '%s' did not match any files", entry.label, pattern)
                self.warnings.append(f"{entry.label}: pattern '{pattern}' did not match any files")
            matched.update(paths)
        return sorted(matched)

    def _add_file(self, entry: Handler, path: str, group: str) -> ParcelKey:
        key: ParcelKey = ("path", path)
        existing = self._drafts.get(key)
        if existing is not None:
            if existing.role != _FILE:
                raise IdentityCollisionError(
                    path,
                    f"matched as a file but already used as a module by {existing.owner}",
                    entry=entry.label,
                )
            existing.join(group)
            return key

        digest = compute_digest(self.filesystem, self.root / path)
        label = Label(
            name=path,
            sha256=digest.sha256,
            media_type=guess_media_type(path),
            size=digest.size,
            feature={WAGI_FEATURE: {"file": "true"}},
        )
        self._drafts[key] = _ParcelDraft(role=_FILE, owner=entry.label, label=label, member_of=[group])
        return key

    def _reject_existing(self, key: ParcelKey, entry: Handler, identity: str) -> None:
        existing = self._drafts.get(key)
        if existing is None:
            return
        usage = "a file" if existing.role == _FILE else f"a {existing.role} parcel"
        raise IdentityCollisionError(
            identity,
            f"module is already used as {usage} by {existing.owner}",
            entry=entry.label,
        )


def _module_feature(entry: Handler) -> Dict[str, str]:
    feature = {"file": "false"}
    if entry.route is not None:
        feature["route"] = entry.route
    return feature


__all__ = [
    "CompileConfig",
    "CompileResult",
    "InvoiceBuilder",
    "check_group_names",
    "compile_manifest",
    "select_entries",
]
