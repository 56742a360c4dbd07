"""Sync configuration with JSON persistence.

Settings are stored at:
    ~/Library/Application Support/Dailies/settings.json

Usage::

    settings = load_settings()
    settings.configure_with_service_account(email, key, sheet_id)
    save_settings(settings)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, asdict, fields
from pathlib import Path


# Reuse the app-support directory from db.py
APP_SUPPORT_DIR = Path.home() / "Library" / "Application Support" / "Dailies"
SETTINGS_PATH = APP_SUPPORT_DIR / "settings.json"

AUTH_SERVICE_ACCOUNT = "service_account"
AUTH_API_KEY = "api_key"


@dataclass
class Settings:
    """Everything the settings form lets the user change."""

    # ── auth ──────────────────────────────────────────────────────────
    auth_method: str = AUTH_SERVICE_ACCOUNT
    api_key: str | None = None
    service_account_email: str | None = None
    private_key: str | None = None

    # ── target ────────────────────────────────────────────────────────
    spreadsheet_id: str | None = None
    sheet_name: str = "Timers"

    # ── behaviour ─────────────────────────────────────────────────────
    auto_sync_enabled: bool = True
    debounce_seconds: float = 2.0
    request_timeout: float = 10.0          # seconds, per HTTP request

    @property
    def is_configured(self) -> bool:
        if not self.spreadsheet_id:
            return False
        if self.auth_method == AUTH_API_KEY:
            return bool(self.api_key)
        return bool(self.service_account_email and self.private_key)

    @property
    def can_write(self) -> bool:
        return self.auth_method == AUTH_SERVICE_ACCOUNT

    def configure_with_api_key(
        self, api_key: str, spreadsheet_id: str, sheet_name: str = "Timers"
    ) -> None:
        self.auth_method = AUTH_API_KEY
        self.api_key = api_key
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.service_account_email = None
        self.private_key = None

    def configure_with_service_account(
        self,
        email: str,
        private_key: str,
        spreadsheet_id: str,
        sheet_name: str = "Timers",
    ) -> None:
        self.auth_method = AUTH_SERVICE_ACCOUNT
        self.service_account_email = email
        # Keys pasted out of a JSON credentials file carry literal escapes
        self.private_key = private_key.replace("\\n", "\n").replace("\\r", "\r")
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.api_key = None

    def clear_configuration(self) -> None:
        self.api_key = None
        self.service_account_email = None
        self.private_key = None
        self.spreadsheet_id = None


def load_settings(path: Path = SETTINGS_PATH) -> Settings:
    """Load settings from disk, falling back to defaults."""
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            # Only use keys that exist in the dataclass
            valid_keys = {f.name for f in fields(Settings)}
            filtered = {k: v for k, v in data.items() if k in valid_keys}
            return Settings(**filtered)
    except (OSError, ValueError, TypeError):
        pass
    return Settings()


def save_settings(settings: Settings, path: Path = SETTINGS_PATH) -> None:
    """Write settings to disk as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(asdict(settings), indent=2) + "\n",
        encoding="utf-8",
    )
