"""Stage a compiled invoice and its parcels in a standalone directory layout."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Tuple

from ..exceptions import StagingError
from ..invoice.utils import bindle_id_hash, compute_sha256, write_toml
from ..schemas.invoice import DO_NOT_STAGE_ANNOTATION, Invoice, Parcel
from .fetch import INVOICE_FILENAME

logger = logging.getLogger(__name__)


class StandaloneWriter:
    """Writes ``<dest>/<sha256(id)>/invoice.toml`` and ``parcels/<sha256>.dat``."""

    def __init__(self, source_dir: Path, dest_dir: Path) -> None:
        self.source_dir = source_dir
        self.dest_dir = dest_dir

    def write(self, invoice: Invoice) -> Path:
        """Stage ``invoice`` and return the bindle directory.

        Every source is checked before anything is written, so a failure
        leaves no partial bindle behind.
        """

        sources = [self._check_source(parcel) for parcel in invoice.parcel if _stageable(parcel)]

        bindle_dir = self.dest_dir / bindle_id_hash(invoice.id)
        parcels_dir = bindle_dir / "parcels"
        parcels_dir.mkdir(parents=True, exist_ok=True)
        for source, digest in sources:
            target = parcels_dir / f"{digest}.dat"
            if not target.exists():
                shutil.copy2(source, target)
        write_toml(invoice.to_payload(), bindle_dir / INVOICE_FILENAME)
        return bindle_dir

    def _check_source(self, parcel: Parcel) -> Tuple[Path, str]:
        label = parcel.label
        source = self.source_dir / label.name
        if not source.is_file():
            raise StagingError(label.name, f"source file {source} does not exist")
        if compute_sha256(source) != label.sha256:
            raise StagingError(label.name, "file changed since the invoice was compiled")
        return source, label.sha256


def _stageable(parcel: Parcel) -> bool:
    if parcel.label.annotation(DO_NOT_STAGE_ANNOTATION) == "true":
        logger.debug("Not staging %s: content lives in another bindle", parcel.label.name)
        return False
    return True


__all__ = ["StandaloneWriter"]
