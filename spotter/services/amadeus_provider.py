from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional, Tuple

import httpx
from pydantic import ValidationError

from spotter import config
from spotter.schemas import SearchRequest
from spotter.services.flight_provider import (
    AuthUnavailable,
    FlightProvider,
    ProviderPayload,
    SearchValidationError,
    UpstreamError,
)
from spotter.services.mock_provider import MockFlightProvider
from spotter.services.token_cache import TokenCache

logger = logging.getLogger(__name__)

FLIGHT_OFFERS_PATH = "/v2/shopping/flight-offers"


class AuthPolicy(str, Enum):
    """What a search does when no bearer token can be obtained."""

    STRICT = "strict"  # surface AuthUnavailable (HTTP 401)
    LENIENT = "lenient"  # answer with mock offers

    @classmethod
    def parse(cls, value: Optional[str]) -> "AuthPolicy":
        try:
            return cls((value or cls.STRICT.value).strip().lower())
        except ValueError:
            logger.warning("Unknown auth failure policy %r; using strict", value)
            return cls.STRICT


def validate_search_params(
    origin: Optional[str],
    destination: Optional[str],
    departure_date: Optional[str],
    return_date: Optional[str] = None,
    adults: Optional[str] = None,
    travel_class: Optional[str] = None,
) -> SearchRequest:
    """Build a ``SearchRequest`` from raw query-string values."""
    required = {"origin": origin, "destination": destination, "date": departure_date}
    missing = [name for name, value in required.items() if not value or not value.strip()]
    if missing:
        raise SearchValidationError("Missing required parameters", fields=missing)

    try:
        return SearchRequest(
            origin=origin,
            destination=destination,
            departure_date=departure_date,
            return_date=return_date or None,
            adults=adults or 1,
            travel_class=travel_class or None,
        )
    except ValidationError as exc:
        fields = [".".join(str(part) for part in error["loc"]) for error in exc.errors()]
        raise SearchValidationError("Invalid search parameters", fields=fields) from exc


def build_query(
    request: SearchRequest,
    max_results: int = config.AMADEUS_MAX_RESULTS,
    currency: Optional[str] = None,
) -> List[Tuple[str, str]]:
    params = [
        ("originLocationCode", request.origin),
        ("destinationLocationCode", request.destination),
        ("departureDate", request.departure_date.isoformat()),
        ("adults", str(request.adults)),
        ("nonStop", "false"),
        ("max", str(max_results)),
    ]
    if request.return_date is not None:
        params.append(("returnDate", request.return_date.isoformat()))
    if request.travel_class is not None:
        params.append(("travelClass", request.travel_class.value))
    if currency:
        params.append(("currencyCode", currency))
    return params


class AmadeusFlightProvider(FlightProvider):
    """Provider backed by the Amadeus Self-Service flight-offers API."""

    def __init__(
        self,
        token_cache: TokenCache,
        http_client: httpx.AsyncClient,
        base_url: str = config.AMADEUS_BASE_URL,
        max_results: int = config.AMADEUS_MAX_RESULTS,
        currency: Optional[str] = config.AMADEUS_CURRENCY,
        auth_policy: AuthPolicy = AuthPolicy.STRICT,
        fallback: Optional[FlightProvider] = None,
    ) -> None:
        self.token_cache = token_cache
        self.http_client = http_client
        self.offers_url = f"{base_url.rstrip('/')}{FLIGHT_OFFERS_PATH}"
        self.max_results = max_results
        self.currency = currency
        self.auth_policy = auth_policy
        self.fallback = fallback or MockFlightProvider()

    @classmethod
    def from_env(cls) -> "AmadeusFlightProvider":
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(config.AMADEUS_TIMEOUT_SECONDS))
        token_cache = TokenCache(
            client_id=config.AMADEUS_CLIENT_ID,
            client_secret=config.AMADEUS_CLIENT_SECRET,
            http_client=http_client,
            base_url=config.AMADEUS_BASE_URL,
        )
        return cls(
            token_cache=token_cache,
            http_client=http_client,
            auth_policy=AuthPolicy.parse(config.AUTH_FAILURE_POLICY),
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()

    async def search(self, request: SearchRequest) -> ProviderPayload:
        try:
            credential = await self.token_cache.get_token()
        except AuthUnavailable as exc:
            if self.auth_policy is AuthPolicy.LENIENT:
                logger.warning("%s; serving mock offers for %s -> %s", exc, request.origin, request.destination)
                return await self.fallback.search(request)
            raise

        params = build_query(request, self.max_results, self.currency)
        logger.info(
            "Searching Amadeus %s -> %s on %s (adults=%s, class=%s)",
            request.origin,
            request.destination,
            request.departure_date,
            request.adults,
            request.travel_class.value if request.travel_class else "any",
        )
        try:
            response = await self.http_client.get(
                self.offers_url,
                params=params,
                headers={"Authorization": f"Bearer {credential.token}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Amadeus flight-offers request failed: %s", exc)
            raise UpstreamError("amadeus", f"Request failed: {exc}") from exc

        if response.is_error:
            logger.error("Amadeus error %s: %s", response.status_code, response.text[:500])
            raise UpstreamError("amadeus", f"Amadeus answered {response.status_code}", response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            logger.error("Amadeus flight-offers response is not JSON")
            raise UpstreamError("amadeus", "Response is not JSON", response.status_code) from exc

        if not isinstance(body, dict):
            raise UpstreamError("amadeus", f"Unexpected response body: {type(body).__name__}", response.status_code)

        data = body.get("data") or []
        dictionaries = body.get("dictionaries") or {}
        if not isinstance(data, list) or not isinstance(dictionaries, dict):
            raise UpstreamError("amadeus", "Response has an unexpected shape", response.status_code)

        logger.info("Amadeus returned %d offers", len(data))
        return ProviderPayload(offers=data, dictionaries=dictionaries, source="amadeus")
