from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx

from spotter import config
from spotter.services.flight_provider import AuthUnavailable

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/security/oauth2/token"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credential:
    token: str
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


class TokenCache:
    """Single-slot cache for the Amadeus client-credentials bearer token.

    The cached credential is reused until ``expires_at``; after that the next
    ``get_token`` call performs a fresh exchange. There is no lock, so two
    concurrent callers that both see an expired token each refresh it and the
    last one to finish wins.
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        http_client: httpx.AsyncClient,
        base_url: str = config.AMADEUS_BASE_URL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client_id = client_id or ""
        self.client_secret = client_secret or ""
        self.http_client = http_client
        self.token_url = f"{base_url.rstrip('/')}{TOKEN_PATH}"
        self.clock = clock
        self._credential: Optional[Credential] = None

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    @property
    def is_configured(self) -> bool:
        return config.credentials_usable(self.client_id, self.client_secret)

    async def get_token(self) -> Credential:
        if not self.is_configured:
            raise AuthUnavailable("amadeus", "Amadeus API credentials missing or invalid")

        cached = self._credential
        if cached is not None and cached.is_valid(self.clock()):
            return cached
        return await self.refresh()

    async def refresh(self) -> Credential:
        if not self.is_configured:
            raise AuthUnavailable("amadeus", "Amadeus API credentials missing or invalid")

        self._credential = None
        logger.info("Fetching Amadeus token from %s", self.token_url)
        try:
            response = await self.http_client.post(
                self.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
            )
        except httpx.HTTPError as exc:
            logger.error("Token request to Amadeus failed: %s", exc)
            raise AuthUnavailable("amadeus", f"Token request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            logger.error("Amadeus token response is not JSON (status %s)", response.status_code)
            raise AuthUnavailable("amadeus", "Token response is not JSON") from exc

        if response.is_error:
            logger.error("Amadeus token error %s: %s", response.status_code, body)
            raise AuthUnavailable("amadeus", f"Token endpoint answered {response.status_code}")

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            logger.error("Amadeus token response has no access_token")
            raise AuthUnavailable("amadeus", "Token response has no access_token")

        try:
            expires_in = float(body.get("expires_in") or 0)
        except (TypeError, ValueError):
            expires_in = 0.0

        credential = Credential(token=token, expires_at=self.clock() + timedelta(seconds=expires_in))
        self._credential = credential
        logger.info("Amadeus token retrieved; valid for %.0fs", expires_in)
        return credential
