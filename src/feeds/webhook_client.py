"""
HTTP client for the sheet-automation webhooks.

Every call is bounded by a timeout and never raises: a failed read comes back
as an empty row list flagged `ok=False`, a failed write as `False`.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

logger = logging.getLogger(__name__)


# Keys a webhook may wrap its row list in
ENVELOPE_KEYS = ("data", "rows", "items", "records", "values")


@dataclass
class FetchedRows:
    """Rows returned by one webhook read."""

    url: str
    rows: list[dict] = field(default_factory=list)
    ok: bool = True
    error: str | None = None


def unwrap_rows(payload: Any) -> list[dict] | None:
    """
    Extract the list of row dicts from a webhook response body.

    Accepts a bare list, a dict holding the list under one of ENVELOPE_KEYS
    (matched case-insensitively), and per-row {"json": {...}} wrappers.
    Returns None when no row list can be found.
    """
    rows = None
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict):
        lowered = {str(k).lower(): v for k, v in payload.items()}
        for key in ENVELOPE_KEYS:
            if isinstance(lowered.get(key), list):
                rows = lowered[key]
                break
        else:
            # A single row object
            rows = [payload] if payload else []

    if rows is None:
        return None

    unwrapped = []
    for row in rows:
        if isinstance(row, dict) and len(row) == 1 and isinstance(row.get("json"), dict):
            row = row["json"]
        if isinstance(row, dict):
            unwrapped.append(row)
    return unwrapped


class WebhookClient:
    """
    Reads rows from and posts rows to sheet webhooks.

    Usage:
        client = WebhookClient(timeout=8)
        fetched = client.fetch_rows("https://example/webhook/get-inventory")
        if not fetched.ok:
            ...  # stale cache is still served
    """

    def __init__(
        self,
        timeout: float = 8.0,
        write_url: str | None = None,
        session: requests.Session | None = None,
    ):
        self.timeout = timeout
        self.write_url = write_url
        self.session = session or requests.Session()

    def fetch_rows(self, url: str) -> FetchedRows:
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            logger.warning(f"Feed fetch failed for {url}: {e}")
            return FetchedRows(url=url, ok=False, error=str(e))
        except ValueError as e:
            logger.warning(f"Feed {url} returned a body that is not JSON: {e}")
            return FetchedRows(url=url, ok=False, error=f"invalid JSON: {e}")

        rows = unwrap_rows(payload)
        if rows is None:
            logger.warning(f"Feed {url} returned an unexpected payload type {type(payload).__name__}")
            return FetchedRows(url=url, ok=False, error="unexpected payload")

        logger.info(f"Fetched {len(rows)} rows from {url}")
        return FetchedRows(url=url, rows=rows)

    def post_adjustment(self, payload: dict) -> bool:
        """POST one adjustment row; True when the endpoint accepted it."""
        if not self.write_url:
            logger.warning("No adjustments write URL configured")
            return False
        try:
            resp = self.session.post(self.write_url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Failed to write adjustment: {e}")
            return False
        if not resp.ok:
            logger.warning(f"Adjustment write returned HTTP {resp.status_code}")
        return resp.ok
