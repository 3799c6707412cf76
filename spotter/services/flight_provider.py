from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Dict, List

from spotter.schemas import SearchRequest


@dataclass
class ProviderPayload:
    """Raw offers and dictionaries exactly as the provider returned them."""

    offers: List[Dict[str, Any]] = field(default_factory=list)
    dictionaries: Dict[str, Any] = field(default_factory=dict)
    source: str = "amadeus"

    @property
    def carriers(self) -> Dict[str, str]:
        carriers = self.dictionaries.get("carriers")
        return carriers if isinstance(carriers, dict) else {}


class FlightProvider(abc.ABC):
    """Abstraction for flight search providers."""

    @abc.abstractmethod
    async def search(self, request: SearchRequest) -> ProviderPayload:
        """Return the raw offers that match the request."""


class ProviderError(RuntimeError):
    """Raised when the provider cannot satisfy a request."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"[{provider}] {message}")
        self.provider = provider
        self.message = message


class SearchValidationError(ProviderError):
    """Required search fields are missing or unparsable; the user can fix it."""

    def __init__(self, message: str = "Missing required parameters", fields: List[str] | None = None):
        super().__init__("search", message)
        self.fields = list(fields or [])


class AuthUnavailable(ProviderError):
    """No bearer token can be obtained; live lookups are disabled."""


class UpstreamError(ProviderError):
    """The provider request failed or returned an unusable body."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        super().__init__(provider, message)
        self.status_code = status_code


class MalformedOffer(ProviderError):
    """A single raw offer lacks the nested fields needed to normalize it."""

    def __init__(self, offer_id: str | None, message: str):
        super().__init__("normalizer", message)
        self.offer_id = offer_id
