"""Pydantic models describing a Bindle invoice."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

INVOICE_FORMAT_VERSION = "1.0.0"

WAGI_FEATURE = "wagi"
HANDLER_ID_ANNOTATION = "wagi_handler_id"
DO_NOT_STAGE_ANNOTATION = "hippofactory_do_not_stage"


class BindleSpec(BaseModel):
    name: str
    version: str
    description: Optional[str] = None
    authors: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def id(self) -> str:
        return f"{self.name}/{self.version}"


class Label(BaseModel):
    name: str
    sha256: str = Field(..., description="SHA-256 digest of the parcel content.")
    media_type: str = Field(default="application/octet-stream", alias="mediaType")
    size: int
    annotations: Optional[Dict[str, str]] = None
    feature: Optional[Dict[str, Dict[str, str]]] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @property
    def route(self) -> Optional[str]:
        return (self.feature or {}).get(WAGI_FEATURE, {}).get("route")

    @property
    def is_file(self) -> bool:
        return (self.feature or {}).get(WAGI_FEATURE, {}).get("file") == "true"

    def annotation(self, key: str) -> Optional[str]:
        return (self.annotations or {}).get(key)


class Condition(BaseModel):
    member_of: Optional[List[str]] = Field(default=None, alias="memberOf")
    requires: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Parcel(BaseModel):
    label: Label
    conditions: Optional[Condition] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def member_of(self) -> List[str]:
        if self.conditions is None:
            return []
        return list(self.conditions.member_of or [])

    @property
    def requires(self) -> List[str]:
        if self.conditions is None:
            return []
        return list(self.conditions.requires or [])

    def is_member_of(self, group: str) -> bool:
        return group in self.member_of


class Group(BaseModel):
    name: str
    required: Optional[bool] = None
    satisfied_by: Optional[str] = Field(default=None, alias="satisfiedBy")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Invoice(BaseModel):
    bindle_version: str = Field(default=INVOICE_FORMAT_VERSION, alias="bindleVersion")
    yanked: Optional[bool] = None
    bindle: BindleSpec
    annotations: Optional[Dict[str, str]] = None
    parcel: List[Parcel] = Field(default_factory=list)
    group: List[Group] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @property
    def id(self) -> str:
        return self.bindle.id

    def parcels_in(self, group: str) -> List[Parcel]:
        return [parcel for parcel in self.parcel if parcel.is_member_of(group)]

    def to_payload(self) -> dict:
        """Return the JSON-ready wire representation."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
