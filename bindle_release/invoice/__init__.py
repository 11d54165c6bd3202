"""Manifest compilation into Bindle invoices."""

from .builder import CompileConfig, CompileResult, InvoiceBuilder, compile_manifest
from .conditions import BuildCondition, parse_condition
from .external import InvoiceFetcher, ResolutionContext, ResolvedExternal
from .files import FileSystem, LocalFileSystem
from .manifest import load_manifest, locate_manifest, parse_manifest
from .versioning import Clock, SystemClock, Versioning, mangle_version

__all__ = [
    "BuildCondition",
    "Clock",
    "CompileConfig",
    "CompileResult",
    "FileSystem",
    "InvoiceBuilder",
    "InvoiceFetcher",
    "LocalFileSystem",
    "ResolutionContext",
    "ResolvedExternal",
    "SystemClock",
    "Versioning",
    "compile_manifest",
    "load_manifest",
    "locate_manifest",
    "mangle_version",
    "parse_condition",
    "parse_manifest",
]
