"""Schema definitions for manifests and invoices."""

from .invoice import BindleSpec, Condition, Group, Invoice, Label, Parcel
from .manifest import BindleMetadata, ExternalModule, Handler, LocalModule, ModuleRef, Spec

__all__ = [
    "BindleMetadata",
    "BindleSpec",
    "Condition",
    "ExternalModule",
    "Group",
    "Handler",
    "Invoice",
    "Label",
    "LocalModule",
    "ModuleRef",
    "Parcel",
    "Spec",
]
