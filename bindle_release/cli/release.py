"""Command-line helpers for compiling and staging bindles."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence

from bindle_release.exceptions import BindleReleaseError, ValidationError
from bindle_release.invoice.builder import CompileResult, compile_manifest
from bindle_release.invoice.external import InvoiceFetcher
from bindle_release.invoice.versioning import Versioning
from bindle_release.publish.fetch import HttpInvoiceFetcher, StandaloneInvoiceFetcher
from bindle_release.publish.stage import StandaloneWriter

OUTPUT_FORMATS = ("none", "id", "message", "json")


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "invoice":
            return _handle_invoice(args)
        if args.command == "prepare":
            return _handle_prepare(args)
    except BindleReleaseError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    parser.error(f"Unknown command '{args.command}'")
    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bindle-release", description="Compile manifests into bindles.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    invoice = subparsers.add_parser("invoice", help="Compile a manifest and print the invoice.")
    _add_compile_arguments(invoice)

    prepare = subparsers.add_parser("prepare", help="Compile a manifest and stage the bindle.")
    _add_compile_arguments(prepare)
    prepare.add_argument("--dir", required=True, help="Staging directory.")
    prepare.add_argument("--output", choices=OUTPUT_FORMATS, default="message")

    return parser


def _add_compile_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--manifest", default=".", help="Manifest file or directory containing HIPPOFACTS.")
    parser.add_argument("--versioning", choices=[item.value for item in Versioning], default=Versioning.DEV.value)
    parser.add_argument("--condition", action="append", help="Build condition value key=value (repeatable).")
    parser.add_argument("--bindle-url", default=os.getenv("BINDLE_URL"), help="Bindle server URL (default $BINDLE_URL).")
    parser.add_argument("--insecure", action="store_true", help="Skip TLS verification for the bindle server.")
    parser.add_argument("--standalone-dir", help="Resolve external bindles from a standalone directory.")
    parser.add_argument("--workspace-root")


def _handle_invoice(args: argparse.Namespace) -> int:
    workspace = _resolve_workspace(args.workspace_root)
    result = _compile(args, workspace)
    _print_warnings(result)
    _print_json(
        {
            "id": result.invoice.id,
            "invoice": result.invoice.to_payload(),
            "warnings": result.warnings,
        }
    )
    return 0


def _handle_prepare(args: argparse.Namespace) -> int:
    workspace = _resolve_workspace(args.workspace_root)
    manifest_path = _resolve_path(args.manifest, workspace)
    result = _compile(args, workspace)
    _print_warnings(result)

    source_dir = manifest_path if manifest_path.is_dir() else manifest_path.parent
    dest_dir = _resolve_path(args.dir, workspace)
    bindle_dir = StandaloneWriter(source_dir, dest_dir).write(result.invoice)

    if args.output == "id":
        print(result.invoice.id)
    elif args.output == "message":
        print(f"id:      {result.invoice.id}")
        print(f"staged:  {bindle_dir}")
        print(f"command: bindle push -p {dest_dir.resolve()} {result.invoice.id}")
    elif args.output == "json":
        _print_json(
            {
                "id": result.invoice.id,
                "bindle_dir": str(bindle_dir),
                "parcels": len(result.invoice.parcel),
                "groups": [group.name for group in result.invoice.group],
                "warnings": result.warnings,
            }
        )
    return 0


def _compile(args: argparse.Namespace, workspace: Path) -> CompileResult:
    return compile_manifest(
        _resolve_path(args.manifest, workspace),
        versioning=Versioning.parse(args.versioning),
        bindings=_parse_conditions(args.condition),
        identifier=os.getenv("USER") or os.getenv("USERNAME"),
        fetcher=_build_fetcher(args, workspace),
    )


def _build_fetcher(args: argparse.Namespace, workspace: Path) -> Optional[InvoiceFetcher]:
    if args.standalone_dir:
        return StandaloneInvoiceFetcher(_resolve_path(args.standalone_dir, workspace))
    if args.bindle_url:
        return HttpInvoiceFetcher(args.bindle_url, verify=not args.insecure)
    return None


def _parse_conditions(values: Optional[Sequence[str]]) -> Dict[str, str]:
    bindings: Dict[str, str] = {}
    for entry in values or []:
        if "=" not in entry:
            raise ValidationError(f"Condition value must be key=value (got '{entry}')")
        key, raw_value = entry.split("=", 1)
        bindings[key.strip()] = raw_value.strip()
    return bindings


def _resolve_workspace(value: Optional[str]) -> Path:
    return Path(value).resolve() if value else Path.cwd()


def _resolve_path(value: str, workspace: Path) -> Path:
    path = Path(value)
    if not path.is_absolute():
        path = workspace / path
    return path.resolve()


def _print_warnings(result: CompileResult) -> None:
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)


def _print_json(payload: Mapping[str, object]) -> None:
    print(json.dumps(payload, indent=2, default=str))
