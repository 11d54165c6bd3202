"""Collaborators for fetching remote invoices and staging compiled ones."""

from .fetch import HttpInvoiceFetcher, StandaloneInvoiceFetcher
from .stage import StandaloneWriter

__all__ = [
    "HttpInvoiceFetcher",
    "StandaloneInvoiceFetcher",
    "StandaloneWriter",
]
