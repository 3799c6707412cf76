"""Tests for filter facets, filter predicates and the price histogram."""

import pytest

from spotter.filters import (
    apply_filters,
    build_histogram,
    default_filter_state,
    derive_facets,
    stop_bucket,
    stop_count,
)
from spotter.schemas import FilterState
from tests.mock_data import offer


def prices(offers):
    return [o.price.total for o in offers]


def test_price_range_inclusive():
    offers = [offer("a", "100.00"), offer("b", "200.00"), offer("c", "300.00")]

    visible = apply_filters(offers, FilterState(price_range=(150, 250)))
    assert prices(visible) == ["200.00"]

    edges = apply_filters(offers, FilterState(price_range=(100, 200)))
    assert prices(edges) == ["100.00", "200.00"]


def test_unknown_airline_empties_result_regardless_of_price():
    offers = [offer("a", "100.00"), offer("b", "200.00"), offer("c", "300.00")]

    state = FilterState(price_range=(0, 10000), airlines={"Q"})
    assert apply_filters(offers, state) == []

    state = FilterState(price_range=(150, 250), airlines={"Q"})
    assert apply_filters(offers, state) == []


def test_airlines_or_within_category():
    offers = [offer("a", airline="Alpha"), offer("b", airline="Beta"), offer("c", airline="Gamma")]

    visible = apply_filters(offers, FilterState(airlines={"Alpha", "Gamma"}))

    assert [o.id for o in visible] == ["a", "c"]


def test_stops_and_airline_combined():
    offers = [
        offer("a", airline="Alpha", segments=1),
        offer("b", airline="Alpha", segments=2),
        offer("c", airline="Beta", segments=1),
    ]

    visible = apply_filters(offers, FilterState(stops={"0"}, airlines={"Alpha"}))

    assert [o.id for o in visible] == ["a"]


@pytest.mark.parametrize("segments, bucket", [(1, "0"), (2, "1"), (3, "2+"), (4, "2+")])
def test_stop_bucket(segments, bucket):
    candidate = offer(segments=segments)
    assert stop_count(candidate) == segments - 1
    assert stop_bucket(candidate) == bucket


def test_stops_selection_or():
    offers = [offer("a", segments=1), offer("b", segments=2), offer("c", segments=3)]

    visible = apply_filters(offers, FilterState(stops={"0", "2+"}))

    assert [o.id for o in visible] == ["a", "c"]


def test_stops_use_first_itinerary_only():
    candidate = offer(segments=1)
    inbound = offer(segments=3).itineraries[0]
    candidate = candidate.model_copy(update={"itineraries": candidate.itineraries + [inbound]})

    assert stop_bucket(candidate) == "0"


def test_empty_selection_passes_everything():
    offers = [offer("a", "10.00"), offer("b", "20.00")]
    assert apply_filters(offers, default_filter_state(offers)) == offers


@pytest.mark.parametrize("total", ["N/A", "None", "sNaN", "-Infinity"])
def test_offers_with_unusable_totals_cannot_be_built(total):
    with pytest.raises(ValueError):
        offer(total=total)


def test_unknown_stop_bucket_rejected():
    with pytest.raises(ValueError):
        FilterState(stops={"3"})


def test_facets_from_result_set():
    offers = [offer("a", "99.40", airline="Zeta"), offer("b", "450.01", airline="Alpha"), offer("c", "120", airline="Zeta")]

    facets = derive_facets(offers)

    assert facets.min_price == 99
    assert facets.max_price == 451
    assert facets.airlines == ["Alpha", "Zeta"]


def test_facets_for_empty_result_set():
    facets = derive_facets([])
    assert (facets.min_price, facets.max_price, facets.airlines) == (0, 1000, [])


def test_default_filter_state_resets_selection():
    offers = [offer("a", "99.40"), offer("b", "450.01")]

    state = default_filter_state(offers)

    assert state.price_range == (99, 451)
    assert state.stops == set()
    assert state.airlines == set()


@pytest.mark.parametrize(
    "totals",
    [
        ["100.00"],
        ["100.00", "100.00", "100.00"],
        ["100.00", "200.00", "300.00"],
        ["12.34", "999.99", "500.00", "500.01", "77.70", "999.98"],
    ],
)
def test_histogram_bucket_count_and_sum(totals):
    offers = [offer(str(i), total) for i, total in enumerate(totals)]

    buckets = build_histogram(offers, bucket_count=20)

    assert len(buckets) == 20
    assert sum(b.count for b in buckets) == len(offers)


def test_histogram_assignment():
    offers = [offer("a", "100.00"), offer("b", "200.00"), offer("c", "300.00")]

    buckets = build_histogram(offers, bucket_count=20)

    assert buckets[0].count == 1
    assert buckets[10].count == 1
    assert buckets[19].count == 1  # max price clamped into the last bucket
    assert buckets[0].price_start == 100
    assert buckets[0].price_end == 110
    assert buckets[0].label == "$100"
    assert buckets[0].full_range == "$100 - $110"
    assert sum(1 for b in buckets if b.count == 0) == 17


def test_histogram_flat_range_uses_fixed_width():
    buckets = build_histogram([offer("a", "250.00"), offer("b", "250.00")], bucket_count=20)

    assert buckets[0].count == 2
    assert buckets[0].price_end - buckets[0].price_start == 100


def test_histogram_empty():
    assert build_histogram([], bucket_count=20) == []


def test_histogram_rejects_zero_buckets():
    with pytest.raises(ValueError):
        build_histogram([offer()], bucket_count=0)
