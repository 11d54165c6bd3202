from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Dict, List, Mapping, Optional

from bindle_release.exceptions import ExternalFetchError
from bindle_release.schemas.invoice import Invoice

BIRDS_MANIFEST = """\
[bindle]
name = "birdsondemand"
version = "1.2.4"

[[handler]]
route = "/penguin"
name = "bin/penguin.wasm"
files = ["photo/adelie.png", "photo/rockhopper.png", "stock/*.jpg"]

[[handler]]
route = "/cassowary"
name = "bin/cassowary.wasm"

[[handler]]
route = "/kea"
name = "bin/kea.wasm"
files = ["stock/kea.jpg", "stock/wipers.jpg"]
"""

BIRDS_TREE = {
    "bin/penguin.wasm": "penguin module",
    "bin/cassowary.wasm": "cassowary module",
    "bin/kea.wasm": "kea module",
    "photo/adelie.png": "adelie",
    "photo/rockhopper.png": "rockhopper",
    "stock/hamilton.jpg": "hamilton",
    "stock/kea.jpg": "kea",
    "stock/wipers.jpg": "wipers",
    "stock/README.txt": "not a photo",
}


class FixedClock:
    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def now(self) -> datetime:
        return self.moment


class FakeFetcher:
    """In-memory ``InvoiceFetcher`` that records every lookup."""

    def __init__(self, invoices: Optional[Mapping[str, Invoice]] = None) -> None:
        self.invoices: Dict[str, Invoice] = dict(invoices or {})
        self.calls: List[str] = []

    def fetch(self, bindle_id: str) -> Invoice:
        self.calls.append(bindle_id)
        if bindle_id not in self.invoices:
            raise ExternalFetchError(bindle_id, "bindle not found on server")
        return self.invoices[bindle_id]


def sha256_of(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def remote_parcel(
    name: str,
    content: str,
    *,
    member_of: Optional[List[str]] = None,
    requires: Optional[List[str]] = None,
    handler_id: Optional[str] = None,
) -> dict:
    label: dict = {
        "name": name,
        "sha256": sha256_of(content),
        "mediaType": "application/octet-stream",
        "size": len(content.encode("utf-8")),
    }
    if handler_id is not None:
        label["annotations"] = {"wagi_handler_id": handler_id}
    conditions: dict = {}
    if member_of:
        conditions["memberOf"] = member_of
    if requires:
        conditions["requires"] = requires
    parcel: dict = {"label": label}
    if conditions:
        parcel["conditions"] = conditions
    return parcel


def remote_invoice(name: str, version: str, parcels: List[dict], groups: List[str]) -> Invoice:
    return Invoice.model_validate(
        {
            "bindleVersion": "1.0.0",
            "bindle": {"name": name, "version": version},
            "parcel": parcels,
            "group": [{"name": group} for group in groups],
        }
    )
