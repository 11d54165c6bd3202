"""Compile application manifests into content-addressed Bindle invoices."""

__version__ = "0.1.0"
from .exceptions import (
    BindleReleaseError,
    ConditionSyntaxError,
    CyclicDependencyError,
    ExternalFetchError,
    HandlerNotFoundError,
    IdentityCollisionError,
    MissingFileError,
    ParseError,
    StagingError,
    ValidationError,
)
from .invoice import (
    CompileConfig,
    CompileResult,
    InvoiceBuilder,
    ResolutionContext,
    Versioning,
    compile_manifest,
    load_manifest,
    parse_manifest,
)
from .publish import HttpInvoiceFetcher, StandaloneInvoiceFetcher, StandaloneWriter
from .schemas import Invoice, Spec

__all__ = [
    "__version__",
    "BindleReleaseError",
    "CompileConfig",
    "CompileResult",
    "ConditionSyntaxError",
    "CyclicDependencyError",
    "ExternalFetchError",
    "HandlerNotFoundError",
    "HttpInvoiceFetcher",
    "IdentityCollisionError",
    "Invoice",
    "InvoiceBuilder",
    "MissingFileError",
    "ParseError",
    "ResolutionContext",
    "Spec",
    "StagingError",
    "StandaloneInvoiceFetcher",
    "StandaloneWriter",
    "ValidationError",
    "Versioning",
    "compile_manifest",
    "load_manifest",
    "parse_manifest",
]
