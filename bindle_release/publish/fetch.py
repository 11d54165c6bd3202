"""Invoice fetchers used to resolve external module references."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any, Mapping, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError as PydanticValidationError
from requests import Response, Session
from requests.exceptions import RequestException

from ..exceptions import ExternalFetchError
from ..invoice.utils import bindle_id_hash
from ..schemas.invoice import Invoice

logger = logging.getLogger(__name__)

INVOICE_FILENAME = "invoice.toml"


class HttpInvoiceFetcher:
    """Fetch invoices from a Bindle server over HTTP."""

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[Session] = None,
        timeout: float = 20,
        verify: bool = True,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.verify = verify

    def fetch(self, bindle_id: str) -> Invoice:
        url = f"{self.base_url}/_i/{quote(bindle_id, safe='/')}"
        logger.debug("GET %s", url)
        try:
            response: Response = self.session.get(
                url,
                params={"yanked": "true"},
                headers={"Accept": "application/toml, application/json"},
                timeout=self.timeout,
                verify=self.verify,
            )
        except RequestException as exc:
            raise ExternalFetchError(bindle_id, f"request to {url} failed: {exc}") from exc

        if response.status_code == 404:
            raise ExternalFetchError(bindle_id, "bindle not found on server")
        if response.status_code != 200:
            raise ExternalFetchError(
                bindle_id,
                f"server returned {response.status_code}: {response.text or response.reason}",
            )
        return _validate_invoice(bindle_id, _decode_body(bindle_id, response))


class StandaloneInvoiceFetcher:
    """Fetch invoices from a directory written by ``StandaloneWriter``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def fetch(self, bindle_id: str) -> Invoice:
        path = self.root / bindle_id_hash(bindle_id) / INVOICE_FILENAME
        if not path.exists():
            raise ExternalFetchError(bindle_id, f"no standalone invoice at {path}")
        try:
            payload = tomllib.loads(path.read_text(encoding="utf-8"))
        except UnicodeDecodeError as exc:
            raise ExternalFetchError(bindle_id, f"{path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise ExternalFetchError(bindle_id, f"cannot read {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ExternalFetchError(bindle_id, f"invalid TOML in {path}: {exc}") from exc
        return _validate_invoice(bindle_id, payload)


def _decode_body(bindle_id: str, response: Response) -> Any:
    content_type = response.headers.get("Content-Type", "")
    try:
        if "json" in content_type:
            return response.json()
        return tomllib.loads(response.text)
    except (ValueError, tomllib.TOMLDecodeError) as exc:
        raise ExternalFetchError(bindle_id, f"malformed invoice body: {exc}") from exc


def _validate_invoice(bindle_id: str, payload: Any) -> Invoice:
    if not isinstance(payload, Mapping):
        raise ExternalFetchError(bindle_id, "invoice payload is not a table")
    try:
        return Invoice.model_validate(payload)
    except PydanticValidationError as exc:
        raise ExternalFetchError(bindle_id, f"invalid invoice: {exc.errors()[0].get('msg')}") from exc


__all__ = ["HttpInvoiceFetcher", "INVOICE_FILENAME", "StandaloneInvoiceFetcher"]
