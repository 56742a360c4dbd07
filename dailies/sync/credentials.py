"""Credentials for the Sheets API.

Two modes:

* **API key**: appended as ``?key=`` to read requests.  Read-only; the
  Sheets API refuses writes made with a bare key.
* **Service account**: an issuer e-mail plus an RSA private key.  We sign
  a short-lived JWT assertion, trade it at the OAuth token endpoint for a
  bearer token, and cache that token for 50 minutes (it lives for 60) so a
  request never leaves with a token about to expire.

Signing is delegated to a :class:`Signer`; :class:`RS256Signer` uses
python-jose's RSA backend.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Protocol

import httpx
from jose.backends import RSAKey
from jose.constants import ALGORITHMS
from jose.exceptions import JOSEError
from jose.utils import base64url_encode

from ..errors import (
    AuthFailure,
    ExchangeRejected,
    InvalidKeyMaterial,
    NetworkFailure,
    NotConfigured,
)
from ..settings import AUTH_API_KEY, Settings
from ..timer.models import utcnow

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"

ASSERTION_LIFETIME = timedelta(seconds=3600)
TOKEN_CACHE_LIFETIME = timedelta(minutes=50)


# ── signing ───────────────────────────────────────────────────────────────


class Signer(Protocol):
    def sign(self, message: bytes) -> bytes: ...


class RS256Signer:
    """RSASSA-PKCS1-v1_5 with SHA-256 over a PEM private key."""

    def __init__(self, private_key_pem: str) -> None:
        try:
            self._key = RSAKey(private_key_pem, ALGORITHMS.RS256)
        except (JOSEError, ValueError, TypeError) as exc:
            raise InvalidKeyMaterial(f"Could not parse private key: {exc}") from exc
        if self._key.is_public():
            raise InvalidKeyMaterial("A public key cannot sign assertions")

    def sign(self, message: bytes) -> bytes:
        try:
            return self._key.sign(message)
        except (JOSEError, ValueError, TypeError) as exc:
            raise InvalidKeyMaterial(f"Signing failed: {exc}") from exc


def _segment(payload: dict) -> bytes:
    return base64url_encode(
        json.dumps(payload, separators=(",", ":")).encode("utf-8")
    )


def build_assertion(
    issuer: str,
    signer: Signer,
    now: datetime,
    scope: str = SHEETS_SCOPE,
    audience: str = TOKEN_URL,
) -> str:
    """Assemble and sign ``header.claims.signature`` (all base64url)."""
    header = {"alg": "RS256", "typ": "JWT"}
    issued_at = int(now.timestamp())
    claims = {
        "iss": issuer,
        "scope": scope,
        "aud": audience,
        "iat": issued_at,
        "exp": issued_at + int(ASSERTION_LIFETIME.total_seconds()),
    }
    signing_input = _segment(header) + b"." + _segment(claims)
    signature = base64url_encode(signer.sign(signing_input))
    return (signing_input + b"." + signature).decode("ascii")


# ── credentials ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ApiKeyCredential:
    api_key: str


@dataclass(frozen=True)
class ServiceAccountCredential:
    email: str
    private_key: str


def credential_from_settings(
    settings: Settings,
) -> ApiKeyCredential | ServiceAccountCredential:
    if not settings.is_configured:
        raise NotConfigured()
    if settings.auth_method == AUTH_API_KEY:
        return ApiKeyCredential(settings.api_key)
    return ServiceAccountCredential(
        settings.service_account_email, settings.private_key
    )


class CredentialProvider:
    """Hands out request authentication for one configured credential.

    Token exchange is serialised: a caller arriving while another thread
    is mid-exchange waits for it and then reuses the cached token.
    """

    def __init__(
        self,
        credential: ApiKeyCredential | ServiceAccountCredential,
        http_client: httpx.Client,
        *,
        clock: Callable[[], datetime] = utcnow,
        signer_factory: Callable[[str], Signer] = RS256Signer,
        token_url: str = TOKEN_URL,
    ) -> None:
        self._credential = credential
        self._http = http_client
        self._clock = clock
        self._signer_factory = signer_factory
        self._token_url = token_url

        self._token: str | None = None
        self._token_expires_at: datetime | None = None
        self._lock = threading.Lock()

    @property
    def read_only(self) -> bool:
        return isinstance(self._credential, ApiKeyCredential)

    def request_auth(self) -> tuple[dict[str, str], dict[str, str]]:
        """Return ``(query_params, headers)`` to attach to an API request."""
        if isinstance(self._credential, ApiKeyCredential):
            return {"key": self._credential.api_key}, {}
        return {}, {"Authorization": f"Bearer {self.get_access_token()}"}

    def get_access_token(self) -> str:
        credential = self._credential
        if not isinstance(credential, ServiceAccountCredential):
            raise AuthFailure("API key credentials do not use access tokens")

        with self._lock:
            now = self._clock()
            if self._token and self._token_expires_at and now < self._token_expires_at:
                return self._token

            signer = self._signer_factory(credential.private_key)
            assertion = build_assertion(credential.email, signer, now)
            token = self._exchange(assertion)

            self._token = token
            self._token_expires_at = now + TOKEN_CACHE_LIFETIME
            logger.info("Obtained access token for %s", credential.email)
            return token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._token_expires_at = None

    def _exchange(self, assertion: str) -> str:
        try:
            response = self._http.post(
                self._token_url,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )
        except httpx.TransportError as exc:
            raise NetworkFailure(f"Token exchange failed: {exc}") from exc

        if response.status_code != 200:
            raise ExchangeRejected(response.status_code, _error_description(response))

        try:
            token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise ExchangeRejected(200, "response carried no access_token") from exc
        return token


def _error_description(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "unknown"
    if isinstance(body, dict):
        return body.get("error_description") or body.get("error") or "unknown"
    return "unknown"
