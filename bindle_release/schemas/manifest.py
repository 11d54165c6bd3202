"""Manifest models: the raw TOML shape and the validated entry tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:  # pragma: no cover
    from ..invoice.conditions import BuildCondition


class ExternalRefModel(BaseModel):
    bindle_id: str = Field(..., alias="bindleId")
    handler_id: str = Field(..., alias="handlerId")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class BindleMetadataModel(BaseModel):
    name: str
    version: str
    description: Optional[str] = None
    authors: Optional[List[str]] = None

    model_config = ConfigDict(extra="forbid")


class HandlerModel(BaseModel):
    route: Optional[str] = None
    name: Optional[str] = None
    external: Optional[ExternalRefModel] = None
    files: Optional[List[str]] = None
    condition: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class ExportModel(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    external: Optional[ExternalRefModel] = None
    files: Optional[List[str]] = None
    condition: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class ManifestModel(BaseModel):
    bindle: BindleMetadataModel
    annotations: Optional[Dict[str, str]] = None
    handler: List[HandlerModel] = Field(default_factory=list)
    export: List[ExportModel] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


@dataclass(frozen=True)
class LocalModule:
    path: str


@dataclass(frozen=True)
class ExternalModule:
    bindle_id: str
    handler_id: str


ModuleRef = Union[LocalModule, ExternalModule]


@dataclass(frozen=True)
class Handler:
    """One `[[handler]]` or `[[export]]` entry after validation.

    Exactly one of ``route`` and ``export_id`` is set.
    """

    label: str
    module: ModuleRef
    route: Optional[str] = None
    export_id: Optional[str] = None
    files: Tuple[str, ...] = ()
    condition: Optional["BuildCondition"] = None

    @property
    def is_export(self) -> bool:
        return self.export_id is not None

    @property
    def group_name(self) -> str:
        if self.export_id is not None:
            return f"{self.export_id}-files"
        if isinstance(self.module, ExternalModule):
            return f"import:{self.module.bindle_id}:{self.module.handler_id}-files"
        return f"{self.module.path}-files"


@dataclass(frozen=True)
class BindleMetadata:
    name: str
    version: str
    description: Optional[str] = None
    authors: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class Spec:
    bindle: BindleMetadata
    handlers: Tuple[Handler, ...] = ()
    exports: Tuple[Handler, ...] = ()
    annotations: Dict[str, str] = field(default_factory=dict)

    @property
    def entries(self) -> Tuple[Handler, ...]:
        return self.handlers + self.exports


def external_bindle_ids(entries: Sequence[Handler]) -> List[str]:
    """Bindle ids referenced by external modules, in first-seen order."""

    seen: List[str] = []
    for entry in entries:
        if isinstance(entry.module, ExternalModule) and entry.module.bindle_id not in seen:
            seen.append(entry.module.bindle_id)
    return seen
