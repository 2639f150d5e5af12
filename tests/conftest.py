from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from play_publisher.auth.token_model import OAuth2Token, ServiceAccountCredential

TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"
CLIENT_EMAIL = "publisher@example-project.iam.gserviceaccount.com"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class StubTokenManager:
    """Hands out a fixed token and counts how often it was asked."""

    def __init__(self, access_token: str = "stub-token"):
        self.calls = 0
        self.token = OAuth2Token(
            access_token=access_token,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )

    async def get_token(self) -> OAuth2Token:
        self.calls += 1
        return self.token


@pytest.fixture(scope="session")
def rsa_key_pair():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return private_pem, public_pem


@pytest.fixture
def service_account(rsa_key_pair) -> ServiceAccountCredential:
    private_pem, _ = rsa_key_pair
    return ServiceAccountCredential(
        private_key=private_pem,
        client_email=CLIENT_EMAIL,
        private_key_id="key-1",
        project_id="example-project",
    )


@pytest.fixture
def service_account_file(tmp_path, rsa_key_pair):
    private_pem, _ = rsa_key_pair
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps({
        "type": "service_account",
        "project_id": "example-project",
        "private_key_id": "key-1",
        "private_key": private_pem,
        "client_email": CLIENT_EMAIL,
        "client_id": "1234567890",
        "token_uri": TOKEN_ENDPOINT,
    }), encoding="utf-8")
    return path


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def bundle_file(tmp_path):
    path = tmp_path / "app-release.aab"
    path.write_bytes(bytes(range(256)) * 40)
    return path
