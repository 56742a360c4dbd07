"""Spreadsheet sync package."""

from .credentials import (
    ApiKeyCredential,
    CredentialProvider,
    RS256Signer,
    ServiceAccountCredential,
    build_assertion,
)
from .engine import ConnectionResult, RemoteSyncEngine
from .merge import RECENT_RESET_WINDOW, MergeResult, merge_timers
from .sheets import HEADER_ROW, SheetsClient, client_from_settings

__all__ = [
    "ApiKeyCredential",
    "CredentialProvider",
    "RS256Signer",
    "ServiceAccountCredential",
    "build_assertion",
    "ConnectionResult",
    "RemoteSyncEngine",
    "RECENT_RESET_WINDOW",
    "MergeResult",
    "merge_timers",
    "HEADER_ROW",
    "SheetsClient",
    "client_from_settings",
]
