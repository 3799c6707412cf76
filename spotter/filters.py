"""Filter facets, filter predicates and the price histogram over a result set.

Everything here is a pure function of the offers (and the filter state); callers
re-run it whenever either changes.
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence

from spotter import config
from spotter.schemas import FilterFacets, FilterState, FlightOffer, HistogramBucket

EMPTY_FACETS = FilterFacets(min_price=0, max_price=1000, airlines=[])
# Bucket width used when every offer has the same price
FLAT_BUCKET_WIDTH = 100


def parse_price(offer: FlightOffer) -> Decimal:
    try:
        return Decimal(offer.price.total)
    except InvalidOperation as exc:
        raise ValueError(f"Offer {offer.id} has a non-numeric price {offer.price.total!r}") from exc


def stop_count(offer: FlightOffer) -> int:
    return len(offer.itineraries[0].segments) - 1


def stop_bucket(offer: FlightOffer) -> str:
    stops = stop_count(offer)
    if stops <= 0:
        return "0"
    if stops == 1:
        return "1"
    return "2+"


def price_bounds(offers: Sequence[FlightOffer]) -> Optional[tuple]:
    """Whole-number (floor, ceil) bounds of the prices, or None for no offers."""
    if not offers:
        return None
    prices = [parse_price(offer) for offer in offers]
    return math.floor(min(prices)), math.ceil(max(prices))


def derive_facets(offers: Sequence[FlightOffer]) -> FilterFacets:
    bounds = price_bounds(offers)
    if bounds is None:
        return EMPTY_FACETS.model_copy()
    return FilterFacets(
        min_price=bounds[0],
        max_price=bounds[1],
        airlines=sorted({offer.airline for offer in offers}),
    )


def default_filter_state(offers: Sequence[FlightOffer]) -> FilterState:
    """Fresh filters for a new result set: full price range, nothing selected."""
    facets = derive_facets(offers)
    return FilterState(price_range=(facets.min_price, facets.max_price))


def matches(offer: FlightOffer, state: FilterState) -> bool:
    price = parse_price(offer)
    low, high = state.price_range
    if price < Decimal(str(low)) or price > Decimal(str(high)):
        return False

    if state.airlines and offer.airline not in state.airlines:
        return False

    if state.stops and stop_bucket(offer) not in state.stops:
        return False

    return True


def apply_filters(offers: Iterable[FlightOffer], state: FilterState) -> List[FlightOffer]:
    return [offer for offer in offers if matches(offer, state)]


def build_histogram(
    offers: Sequence[FlightOffer],
    bucket_count: int = config.HISTOGRAM_BUCKETS,
) -> List[HistogramBucket]:
    """Equal-width price buckets, empty ones included."""
    if bucket_count < 1:
        raise ValueError("bucket_count must be at least 1")
    bounds = price_bounds(offers)
    if bounds is None:
        return []

    min_price, max_price = bounds
    width = (max_price - min_price) / bucket_count or FLAT_BUCKET_WIDTH

    buckets = []
    for idx in range(bucket_count):
        start = min_price + idx * width
        end = start + width
        buckets.append(
            HistogramBucket(
                label=f"${math.floor(start)}",
                full_range=f"${math.floor(start)} - ${math.floor(end)}",
                price_start=start,
                price_end=end,
            )
        )

    for offer in offers:
        price = float(parse_price(offer))
        index = min(math.floor((price - min_price) / width), bucket_count - 1)
        buckets[index].count += 1

    return buckets
