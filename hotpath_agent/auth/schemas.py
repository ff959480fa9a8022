"""
Pydantic schemas for the OAuth2 client-credentials exchange
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, Field

CLIENT_CREDS_GRANT_TYPE = "client_credentials"


class CredentialsRequest(BaseModel):
    """Body POSTed to the token endpoint"""

    client_id: str
    client_secret: str
    audience: str
    grant_type: str = CLIENT_CREDS_GRANT_TYPE


class TokenResponse(BaseModel):
    """Token endpoint response; expires_in is in seconds"""

    access_token: str = Field(..., min_length=1)
    token_type: str = "Bearer"
    scope: str = ""
    expires_in: int = Field(..., ge=0)


class Grant(BaseModel):
    """An access token together with the moment it was issued"""

    access_token: str
    token_type: str
    scope: str
    issued_at: datetime
    expires_in: timedelta

    @classmethod
    def from_token_response(cls, response: TokenResponse, issued_at: datetime) -> "Grant":
        return cls(
            access_token=response.access_token,
            token_type=response.token_type,
            scope=response.scope,
            issued_at=issued_at,
            expires_in=timedelta(seconds=response.expires_in),
        )

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + self.expires_in

    def is_expired(self, now: datetime) -> bool:
        """A grant is expired from issued_at + expires_in onwards."""
        return self.expires_at <= now
