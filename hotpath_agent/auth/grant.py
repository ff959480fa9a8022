"""
Access token cache for the Mindsight API.

Holds at most one client-credentials grant and renews it lazily: a token is
only fetched when none is held or the held one has expired. Renewal is
single-flight, so concurrent callers that find the grant expired share one
round trip to the token endpoint.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from hotpath_agent.auth.schemas import (
    CLIENT_CREDS_GRANT_TYPE,
    CredentialsRequest,
    Grant,
    TokenResponse,
)
from hotpath_agent.core import metrics
from hotpath_agent.core.config import Settings
from hotpath_agent.core.exceptions import CredentialError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AccessTokenCache:
    """Caches one OAuth2 grant and renews it when it expires."""

    def __init__(
        self,
        token_url: Optional[str],
        cred_request: Optional[CredentialsRequest],
        now_fn: Optional[Clock] = None,
        timeout: float = 30.0,
    ):
        self.token_url = token_url
        self.cred_request = cred_request
        self.timeout = timeout
        self._now = now_fn or utc_now
        self._grant: Optional[Grant] = None
        self._renew_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, now_fn: Optional[Clock] = None) -> "AccessTokenCache":
        """Build the cache from configuration; TEST_MODE yields a no-auth cache."""
        if settings.TEST_MODE:
            return cls.disabled()

        cred_request = CredentialsRequest(
            client_id=settings.MINDSIGHT_CLIENT_ID or "",
            client_secret=settings.MINDSIGHT_CLIENT_SECRET or "",
            audience=settings.CREDENTIALS_AUDIENCE,
            grant_type=CLIENT_CREDS_GRANT_TYPE,
        )
        return cls(
            settings.TOKEN_URL,
            cred_request,
            now_fn=now_fn,
            timeout=settings.HTTP_REQUEST_TIMEOUT_SECONDS,
        )

    @classmethod
    def disabled(cls) -> "AccessTokenCache":
        """A cache for no-auth operation; get_access_token must not be called."""
        return cls(token_url=None, cred_request=None)

    @property
    def auth_enabled(self) -> bool:
        return self.cred_request is not None

    @property
    def grant(self) -> Optional[Grant]:
        return self._grant

    def needs_renew(self) -> bool:
        if self._grant is None:
            return True
        return self._grant.is_expired(self._now())

    async def get_access_token(self) -> str:
        """
        Return a valid access token, renewing the grant first if needed.

        Raises:
            CredentialError: If auth is disabled or the renewal fails. A
                previously held grant is left in place on failure.
        """
        if not self.auth_enabled:
            raise CredentialError("access token requested but authentication is disabled")

        if self.needs_renew():
            async with self._renew_lock:
                # Another caller may have renewed while we waited
                if self.needs_renew():
                    await self._renew_grant()

        return self._grant.access_token

    async def verify(self) -> None:
        """
        Check that credentials are configured and accepted by the token endpoint.

        Called once at startup; any CredentialError is fatal there.
        """
        if not self.auth_enabled:
            return

        if not self.cred_request.client_id or not self.cred_request.client_secret:
            raise CredentialError(
                "Must supply env variables MINDSIGHT_CLIENT_ID and MINDSIGHT_CLIENT_SECRET"
            )

        try:
            await self.get_access_token()
        except CredentialError as e:
            raise CredentialError(f"testing credentials: {e}") from e

    async def _renew_grant(self) -> None:
        payload = self.cred_request.model_dump()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.token_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            metrics.token_renewals_total.labels(status="failed").inc()
            raise CredentialError(f"renew grant: cred http request: {e}") from e

        if response.status_code < 200 or response.status_code > 299:
            metrics.token_renewals_total.labels(status="failed").inc()
            raise CredentialError(
                f"renew grant: token endpoint status {response.status_code}, body: {response.text}"
            )

        try:
            token = TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            metrics.token_renewals_total.labels(status="failed").inc()
            raise CredentialError(f"renew grant: decode grant from response: {e}") from e

        self._grant = Grant.from_token_response(token, issued_at=self._now())
        metrics.token_renewals_total.labels(status="success").inc()
        logger.info(
            f"Renewed Mindsight access token, expires at {self._grant.expires_at.isoformat()}"
        )
