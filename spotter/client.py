"""Search controller used by front-ends that talk to ``GET /api/search``.

It owns the current result set, the loading state and the filter selections,
and exposes the derived views (visible offers, facets, histogram).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple, Union

import httpx
from pydantic import ValidationError

from spotter import config
from spotter.filters import apply_filters, build_histogram, default_filter_state, derive_facets
from spotter.schemas import FilterFacets, FilterState, FlightOffer, HistogramBucket, SearchRequest

logger = logging.getLogger(__name__)


class SearchStatus(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Ok:
    offers: List[FlightOffer]


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Malformed:
    body: Any
    reason: str


SearchResponse = Union[Ok, Empty, Malformed]


def parse_search_response(body: Any) -> SearchResponse:
    """Classify a ``/api/search`` body: bare list or ``{"data": [...]}``."""
    if isinstance(body, list):
        items = body
    elif isinstance(body, dict) and isinstance(body.get("data"), list):
        items = body["data"]
    else:
        return Malformed(body=body, reason="expected a list or an object with a 'data' list")

    if not items:
        return Empty()
    try:
        return Ok(offers=[FlightOffer.model_validate(item) for item in items])
    except ValidationError as exc:
        return Malformed(body=body, reason=f"offer does not match FlightOffer: {exc.error_count()} errors")


def build_query_params(request: SearchRequest) -> List[Tuple[str, str]]:
    params = [
        ("origin", request.origin),
        ("destination", request.destination),
        ("date", request.departure_date.isoformat()),
        ("adults", str(request.adults or 1)),
    ]
    if request.return_date is not None:
        params.append(("returnDate", request.return_date.isoformat()))
    if request.travel_class is not None:
        params.append(("travelClass", request.travel_class.value))
    return params


def build_query_string(request: SearchRequest) -> str:
    return str(httpx.QueryParams(build_query_params(request)))


@dataclass
class SearchController:
    http_client: httpx.AsyncClient
    endpoint: str = "/api/search"
    bucket_count: int = config.HISTOGRAM_BUCKETS
    offers: List[FlightOffer] = field(default_factory=list)
    filters: FilterState = field(default_factory=FilterState)
    status: SearchStatus = SearchStatus.IDLE
    is_loading: bool = False
    has_searched: bool = False
    _generation: int = field(default=0, init=False, repr=False)

    async def search(self, request: SearchRequest) -> Optional[SearchResponse]:
        """Run a search; the latest call wins and stale responses are dropped.

        Returns the classified response, or None when the call failed or was
        superseded by a newer search.
        """
        self._generation += 1
        generation = self._generation
        self.offers = []
        self.status = SearchStatus.SEARCHING
        self.is_loading = True
        self.has_searched = True

        url = f"{self.endpoint}?{build_query_string(request)}"
        try:
            response = await self.http_client.get(url)
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            if self._is_stale(generation):
                return None
            logger.error("Failed to fetch flights: %s", exc)
            self._finish([], SearchStatus.FAILED)
            return None

        if self._is_stale(generation):
            return None

        if response.is_error:
            logger.error("Flight search answered %s: %s", response.status_code, body)
            self._finish([], SearchStatus.FAILED)
            return None

        result = parse_search_response(body)
        if isinstance(result, Malformed):
            logger.warning("Unexpected API response format (%s): %r", result.reason, result.body)
        offers = result.offers if isinstance(result, Ok) else []
        self._finish(offers, SearchStatus.SUCCEEDED)
        return result

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug("Dropping response of search #%d; #%d is current", generation, self._generation)
            return True
        return False

    def _finish(self, offers: List[FlightOffer], status: SearchStatus) -> None:
        self.offers = offers
        self.filters = default_filter_state(offers)
        self.status = status
        self.is_loading = False

    @property
    def facets(self) -> FilterFacets:
        return derive_facets(self.offers)

    @property
    def visible_offers(self) -> List[FlightOffer]:
        return apply_filters(self.offers, self.filters)

    @property
    def histogram(self) -> List[HistogramBucket]:
        return build_histogram(self.offers, self.bucket_count)

    def update_filters(
        self,
        price_range: Optional[Tuple[float, float]] = None,
        stops: Optional[Sequence[str]] = None,
        airlines: Optional[Sequence[str]] = None,
    ) -> FilterState:
        data = self.filters.model_dump()
        if price_range is not None:
            data["price_range"] = price_range
        if stops is not None:
            data["stops"] = set(stops)
        if airlines is not None:
            data["airlines"] = set(airlines)
        self.filters = FilterState.model_validate(data)
        return self.filters

    def toggle_stop(self, bucket: str, checked: bool) -> FilterState:
        stops = set(self.filters.stops)
        if checked:
            stops.add(bucket)
        else:
            stops.discard(bucket)
        return self.update_filters(stops=stops)

    def toggle_airline(self, airline: str, checked: bool) -> FilterState:
        airlines = set(self.filters.airlines)
        if checked:
            airlines.add(airline)
        else:
            airlines.discard(airline)
        return self.update_filters(airlines=airlines)
