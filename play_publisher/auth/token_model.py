from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel


@dataclass(frozen=True)
class ServiceAccountCredential:
    """
    The parts of a Google service-account key needed to self-sign assertions.
    Immutable once loaded.
    """
    private_key: str
    client_email: str
    private_key_id: Optional[str] = None
    project_id: Optional[str] = None
    token_uri: Optional[str] = None

    def __repr__(self) -> str:
        # Never leak key material through logs or tracebacks
        return (
            f"ServiceAccountCredential(client_email={self.client_email!r}, "
            f"private_key_id={self.private_key_id!r})"
        )


@dataclass(frozen=True)
class OAuth2Token:
    """
    Canonical bearer token model for the publisher.
    expires_at is always an aware UTC datetime.
    """
    access_token: str
    expires_at: datetime

    def remaining(self, now: Optional[datetime] = None) -> timedelta:
        now = now or datetime.now(timezone.utc)
        return self.expires_at - now

    def is_fresh(self, skew: timedelta, now: Optional[datetime] = None) -> bool:
        """True while more than `skew` of validity is left."""
        return self.remaining(now) > skew

    def __repr__(self) -> str:
        preview = self.access_token[:6] + "..." if self.access_token else None
        return f"OAuth2Token(access_token={preview!r}, expires_at={self.expires_at.isoformat()})"


class TokenResponse(BaseModel):
    """Success body of the token endpoint."""
    access_token: str
    expires_in: int
    token_type: Optional[str] = None
