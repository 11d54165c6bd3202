"""Resolution of handlers that reference modules exported by other bindles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Set, Tuple

from ..exceptions import CyclicDependencyError, ExternalFetchError, HandlerNotFoundError
from ..schemas.invoice import HANDLER_ID_ANNOTATION, Invoice, Parcel
from ..schemas.manifest import ExternalModule

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


class InvoiceFetcher(Protocol):
    def fetch(self, bindle_id: str) -> Invoice:  # pragma: no cover - interface
        ...


@dataclass(frozen=True)
class ResolvedExternal:
    """An exported module and everything its group transitively pulls in."""

    bindle_id: str
    handler_id: str
    module: Parcel
    members: Tuple[Parcel, ...]
    groups: Tuple[str, ...]


class ResolutionContext:
    """Per-compilation cache of remote invoices, keyed by bindle id.

    Each bindle is fetched at most once; cached invoices are never replaced.
    """

    def __init__(self, fetcher: Optional[InvoiceFetcher], *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.fetcher = fetcher
        self.max_depth = max_depth
        self._invoices: Dict[str, Invoice] = {}

    def invoice(self, bindle_id: str) -> Invoice:
        cached = self._invoices.get(bindle_id)
        if cached is not None:
            logger.debug("Using cached invoice for %s", bindle_id)
            return cached
        if self.fetcher is None:
            raise ExternalFetchError(bindle_id, "manifest references external bindles but no bindle server is configured")

        logger.debug("Fetching invoice for %s", bindle_id)
        invoice = self.fetcher.fetch(bindle_id)
        if not isinstance(invoice, Invoice):
            raise ExternalFetchError(bindle_id, f"fetcher returned {type(invoice).__name__}, expected an invoice")
        self._invoices[bindle_id] = invoice
        return invoice

    def resolve(self, module: ExternalModule) -> ResolvedExternal:
        invoice = self.invoice(module.bindle_id)
        exported = find_exported_module(invoice, module.bindle_id, module.handler_id)
        members, groups = collect_dependencies(
            invoice,
            exported,
            bindle_id=module.bindle_id,
            max_depth=self.max_depth,
        )
        logger.debug(
            "Resolved %s:%s to %s with %d member parcel(s)",
            module.bindle_id,
            module.handler_id,
            exported.label.name,
            len(members),
        )
        return ResolvedExternal(
            bindle_id=module.bindle_id,
            handler_id=module.handler_id,
            module=exported,
            members=tuple(members),
            groups=tuple(groups),
        )


def find_exported_module(invoice: Invoice, bindle_id: str, handler_id: str) -> Parcel:
    matches = [
        parcel
        for parcel in invoice.parcel
        if parcel.label.annotation(HANDLER_ID_ANNOTATION) == handler_id
    ]
    if not matches:
        raise HandlerNotFoundError(bindle_id, handler_id)
    if len(matches) > 1:
        raise ExternalFetchError(
            bindle_id,
            f"{len(matches)} parcels are annotated with handler id '{handler_id}'",
        )
    return matches[0]


def collect_dependencies(
    invoice: Invoice,
    module: Parcel,
    *,
    bindle_id: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Tuple[List[Parcel], List[str]]:
    """Breadth-first closure over the groups ``module`` requires.

    Returns the collected parcels (remote invoice order, unique by digest) and
    the visited groups in visit order. A group that is required again by its
    own members, directly or transitively, raises ``CyclicDependencyError``;
    two paths converging on one group are fine.
    """

    requirements = _group_requirements(invoice, module)
    roots = list(dict.fromkeys(module.requires))
    _check_acyclic(requirements, roots, bindle_id=bindle_id)

    visited: List[str] = []
    frontier = roots
    depth = 0
    while frontier:
        depth += 1
        if depth > max_depth:
            raise CyclicDependencyError(
                bindle_id,
                frontier[0],
                f"dependency chain is deeper than {max_depth} groups",
            )
        visited.extend(frontier)
        next_frontier: List[str] = []
        for group in frontier:
            for required in requirements.get(group, []):
                if required not in visited and required not in next_frontier:
                    next_frontier.append(required)
        frontier = next_frontier

    reached = set(visited)
    collected: List[Parcel] = []
    seen: Set[str] = {module.label.sha256}
    for parcel in invoice.parcel:
        digest = parcel.label.sha256
        if digest in seen or reached.isdisjoint(parcel.member_of):
            continue
        seen.add(digest)
        collected.append(parcel)
    return collected, visited


def _group_requirements(invoice: Invoice, module: Parcel) -> Dict[str, List[str]]:
    requirements: Dict[str, List[str]] = {}
    for parcel in invoice.parcel:
        if parcel.label.sha256 == module.label.sha256:
            continue
        for group in parcel.member_of:
            targets = requirements.setdefault(group, [])
            for required in parcel.requires:
                if required not in targets:
                    targets.append(required)
    return requirements


def _check_acyclic(requirements: Dict[str, List[str]], roots: List[str], *, bindle_id: str) -> None:
    done: Set[str] = set()
    for root in roots:
        if root in done:
            continue
        path = [root]
        pending = [iter(requirements.get(root, []))]
        while pending:
            group = next(pending[-1], None)
            if group is None:
                pending.pop()
                done.add(path.pop())
                continue
            if group in path:
                cycle = " -> ".join(path[path.index(group):] + [group])
                raise CyclicDependencyError(bindle_id, group, f"group requires itself ({cycle})")
            if group in done:
                continue
            path.append(group)
            pending.append(iter(requirements.get(group, [])))


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "InvoiceFetcher",
    "ResolutionContext",
    "ResolvedExternal",
    "collect_dependencies",
    "find_exported_module",
]
