from __future__ import annotations
"""
Service Account Auth: JWT-bearer grant with a cached access token
==================================================================

A Google service account signs its own RS256 assertion and trades it at the
OAuth 2.0 token endpoint for a short-lived bearer token.

Grant:      urn:ietf:params:oauth:grant-type:jwt-bearer
Claims:     iss, scope, aud, iat, exp (exp = iat + 3600)
Cache:      one token per TokenManager, reused until < 5 minutes remain
Refresh:    single-flight; the instance lock is held across the exchange
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence, Union

import httpx
from google.auth import crypt, jwt
from pydantic import ValidationError

from play_publisher.auth.token_model import OAuth2Token, ServiceAccountCredential, TokenResponse
from play_publisher.settings import settings

JWT_BEARER_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class CredentialError(Exception):
    """Raised when a bearer token cannot be obtained for the service account"""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.body = body


def load_service_account(path: str) -> ServiceAccountCredential:
    """
    Load a Google service-account JSON key file.

    Raises:
        OSError: the file cannot be read
        CredentialError: the file is not a usable service-account key
    """
    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CredentialError(f"Service account key {path} is not valid JSON: {e}") from e

    if not isinstance(info, dict):
        raise CredentialError(f"Service account key {path} must be a JSON object")

    missing = [field for field in ("private_key", "client_email") if not info.get(field)]
    if missing:
        raise CredentialError(
            f"Service account key {path} is missing required field(s): {', '.join(missing)}"
        )

    return ServiceAccountCredential(
        private_key=info["private_key"],
        client_email=info["client_email"],
        private_key_id=info.get("private_key_id"),
        project_id=info.get("project_id"),
        token_uri=info.get("token_uri"),
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """Issues and caches bearer tokens for one service account and scope set"""

    def __init__(
        self,
        service_account: ServiceAccountCredential,
        scopes: Union[str, Sequence[str]],
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        token_endpoint: Optional[str] = None,
        expiry_skew: Optional[timedelta] = None,
        assertion_lifetime: Optional[timedelta] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.service_account = service_account
        self.scope = scopes if isinstance(scopes, str) else " ".join(scopes)
        self.token_endpoint = token_endpoint or settings.TOKEN_ENDPOINT
        self.expiry_skew = expiry_skew or timedelta(seconds=settings.TOKEN_EXPIRY_SKEW_SECONDS)
        self.assertion_lifetime = assertion_lifetime or timedelta(
            seconds=settings.ASSERTION_LIFETIME_SECONDS
        )
        self.clock = clock

        self._owns_client = http_client is None
        self._http = http_client

        self._token: Optional[OAuth2Token] = None
        self._lock = asyncio.Lock()

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
        return self._http

    async def aclose(self) -> None:
        if self._owns_client and self._http is not None:
            await self._http.aclose()
            self._http = None

    def invalidate(self) -> None:
        """Drop the cached token so the next get_token() exchanges a new one."""
        self._token = None

    # ============================================================
    # 🔁 TOKEN ACQUISITION
    # ============================================================

    async def get_token(self) -> OAuth2Token:
        """
        Return a bearer token with more than the expiry skew left.

        The lock stays held while a refresh is on the wire, so concurrent
        callers queue behind it and then hit the freshly cached token.
        """
        async with self._lock:
            cached = self._token
            if cached is not None and cached.is_fresh(self.expiry_skew, self.clock()):
                return cached

            if cached is None:
                print(f"[AUTH] [SA: {self.service_account.client_email}] No cached token, requesting one...")
            else:
                print(f"[AUTH] [SA: {self.service_account.client_email}] Token near expiry, refreshing...")

            new_token = await self._request_access_token()
            self._token = new_token

            print(
                f"[AUTH] [SA: {self.service_account.client_email}] "
                f"Token issued, expires at {new_token.expires_at.isoformat()}"
            )
            return new_token

    def build_assertion(self, now: Optional[datetime] = None) -> str:
        """
        Sign a fresh JWT-bearer assertion with the service account's RSA key.

        Raises:
            CredentialError: the private key cannot be loaded or used for signing
        """
        issued_at = int((now or self.clock()).timestamp())
        payload = {
            "iss": self.service_account.client_email,
            "scope": self.scope,
            "aud": self.token_endpoint,
            "iat": issued_at,
            "exp": issued_at + int(self.assertion_lifetime.total_seconds()),
        }

        try:
            signer = crypt.RSASigner.from_string(
                self.service_account.private_key,
                key_id=self.service_account.private_key_id,
            )
            assertion = jwt.encode(signer, payload)
        except (ValueError, TypeError) as e:
            raise CredentialError(
                f"Could not sign assertion for {self.service_account.client_email}: {e}"
            ) from e

        return assertion.decode("utf-8") if isinstance(assertion, bytes) else assertion

    async def _request_access_token(self) -> OAuth2Token:
        form = {
            "grant_type": JWT_BEARER_GRANT_TYPE,
            "assertion": self.build_assertion(),
        }

        try:
            response = await self._client().post(self.token_endpoint, data=form)
        except httpx.TransportError as e:
            print(f"[AUTH ERROR] Token endpoint unreachable: {e}")
            raise CredentialError(f"Token request to {self.token_endpoint} failed: {e}") from e

        if not response.is_success:
            print(f"[AUTH ERROR] Token endpoint returned {response.status_code}")
            print(f"  body: {response.text}")
            raise CredentialError(
                f"Token endpoint returned HTTP {response.status_code}",
                status=response.status_code,
                body=response.text,
            )

        try:
            token_res = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise CredentialError(
                f"Malformed token response: {e}",
                status=response.status_code,
                body=response.text,
            ) from e

        # Compatibility shim: some issued tokens arrive with trailing '.' padding
        access_token = token_res.access_token.rstrip(".")

        return OAuth2Token(
            access_token=access_token,
            expires_at=self.clock() + timedelta(seconds=token_res.expires_in),
        )
