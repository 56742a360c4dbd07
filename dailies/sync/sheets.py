"""Google Sheets values API client and the timer row codec.

Sheet layout (one timer per row, header fixed in row 1)::

    ID | Name | Reference Duration (s) | Elapsed Time (s) | Is Running | Last Updated

``Last Updated`` is written for humans reading the sheet; it is never read
back for merge decisions.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from urllib.parse import quote

import httpx

from ..errors import DecodeFailure, HttpError, NetworkFailure
from ..timer.models import Timer
from ..settings import Settings
from .credentials import CredentialProvider, credential_from_settings

logger = logging.getLogger(__name__)

SHEETS_BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"
HEADER_ROW = [
    "ID",
    "Name",
    "Reference Duration (s)",
    "Elapsed Time (s)",
    "Is Running",
    "Last Updated",
]
MAX_FETCH_ROW = 100
BLANK_ROW = [""] * len(HEADER_ROW)


# ── row codec ─────────────────────────────────────────────────────────────


def encode_row(timer: Timer, now: datetime) -> list[str]:
    return [
        str(timer.id),
        timer.name,
        f"{timer.reference_duration:.0f}",
        f"{timer.current_elapsed(now):.0f}",
        "TRUE" if timer.running else "FALSE",
        now.isoformat(),
    ]


def decode_row(row: list) -> Timer:
    """Parse one sheet row.  Remote timers are never running locally."""
    if len(row) < 5:
        raise DecodeFailure(f"row has {len(row)} cells, expected at least 5")
    try:
        timer_id = uuid.UUID(str(row[0]).strip())
        reference = float(str(row[2]).replace(",", ""))
        elapsed = float(str(row[3]).replace(",", ""))
    except ValueError as exc:
        raise DecodeFailure(f"unparseable row {row!r}: {exc}") from exc
    name = str(row[1]).strip()
    if not name:
        raise DecodeFailure(f"row {row[0]!r} has an empty name")
    return Timer(
        id=timer_id,
        name=name,
        reference_duration=max(0.0, reference),
        accumulated_elapsed=max(0.0, elapsed),
    )


def decode_rows(rows: list[list]) -> list[Timer]:
    timers = []
    for row in rows:
        try:
            timers.append(decode_row(row))
        except DecodeFailure as exc:
            logger.warning("Skipping sheet row: %s", exc)
    return timers


# ── client ────────────────────────────────────────────────────────────────


class SheetsClient:
    """Reads and overwrites the timer range of one spreadsheet tab."""

    def __init__(
        self,
        credentials: CredentialProvider,
        http_client: httpx.Client,
        spreadsheet_id: str,
        sheet_name: str = "Timers",
        *,
        base_url: str = SHEETS_BASE_URL,
    ) -> None:
        self._credentials = credentials
        self._http = http_client
        self._spreadsheet_id = spreadsheet_id
        self._sheet_name = sheet_name
        self._base_url = base_url

    @property
    def credentials(self) -> CredentialProvider:
        return self._credentials

    # ── reads ─────────────────────────────────────────────────────────

    def fetch_title(self) -> str | None:
        response = self._send(
            "GET",
            f"{self._base_url}/{self._spreadsheet_id}",
            params={"fields": "properties.title"},
        )
        _raise_for_status(response)
        try:
            return response.json()["properties"]["title"]
        except (ValueError, KeyError, TypeError):
            return None

    def fetch_rows(self) -> list[list]:
        response = self._send("GET", self._values_url(f"A2:F{MAX_FETCH_ROW}"))
        if response.status_code == 404:
            return []
        _raise_for_status(response)
        try:
            body = response.json()
        except ValueError as exc:
            raise DecodeFailure("values response is not JSON") from exc
        if not isinstance(body, dict):
            raise DecodeFailure("values response is not an object")
        return body.get("values") or []

    def fetch_timers(self) -> list[Timer]:
        return decode_rows(self.fetch_rows())

    # ── writes ────────────────────────────────────────────────────────

    def put_timers(self, timers: list[Timer], now: datetime) -> None:
        """Overwrite the sheet with ``timers`` (header included).

        Rows below the last timer are blanked down to :data:`MAX_FETCH_ROW`
        so a shrinking collection leaves no stale rows behind.
        """
        values = [HEADER_ROW] + [encode_row(t, now) for t in timers]
        values += [BLANK_ROW] * (MAX_FETCH_ROW - len(values))
        cell_range = f"A1:F{len(values)}"
        response = self._send(
            "PUT",
            self._values_url(cell_range),
            params={"valueInputOption": "USER_ENTERED"},
            json={
                "range": f"{self._sheet_name}!{cell_range}",
                "majorDimension": "ROWS",
                "values": values,
            },
        )
        _raise_for_status(response)

    # ── internals ─────────────────────────────────────────────────────

    def _values_url(self, cells: str) -> str:
        a1 = quote(f"{self._sheet_name}!{cells}", safe="!:")
        return f"{self._base_url}/{self._spreadsheet_id}/values/{a1}"

    def _send(self, method: str, url: str, *, params=None, json=None) -> httpx.Response:
        auth_params, headers = self._credentials.request_auth()
        merged = dict(params or {})
        merged.update(auth_params)
        try:
            return self._http.request(
                method, url, params=merged, headers=headers, json=json
            )
        except httpx.TransportError as exc:
            raise NetworkFailure(f"{method} {url} failed: {exc}") from exc


def _raise_for_status(response: httpx.Response) -> None:
    if 200 <= response.status_code < 300:
        return
    message = f"HTTP Error {response.status_code}"
    try:
        body = response.json()
        message = body["error"]["message"]
    except (ValueError, KeyError, TypeError):
        pass
    raise HttpError(response.status_code, message)


def client_from_settings(
    settings: Settings, http_client: httpx.Client
) -> SheetsClient | None:
    """Build a client for the configured sheet, or ``None`` if unconfigured."""
    if not settings.is_configured:
        return None
    provider = CredentialProvider(credential_from_settings(settings), http_client)
    return SheetsClient(
        provider, http_client, settings.spreadsheet_id, settings.sheet_name
    )
