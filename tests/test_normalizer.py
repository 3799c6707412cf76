"""Tests for the offer normalizer."""

import logging

import pytest

from spotter.services.normalizer import UNKNOWN_AIRLINE, normalize_offers, resolve_airline_name
from tests.mock_data import AMADEUS_RESPONSE, raw_offer, raw_segment


def test_summary_uses_first_and_last_segment_of_outbound():
    raw = raw_offer("7", route=("AAA", "BBB", "CCC"), carrier="XY")

    result = normalize_offers([raw], {"carriers": {"XY": "Example Air"}})

    assert len(result.offers) == 1
    offer = result.offers[0]
    assert offer.id == "7"
    assert offer.departure.iata_code == "AAA"
    assert offer.arrival.iata_code == "CCC"
    assert len(offer.itineraries[0].segments) == 2
    assert offer.flight_number == "XY 100"
    assert offer.duration == "PT7H30M"


def test_values_kept_verbatim():
    result = normalize_offers(AMADEUS_RESPONSE["data"], AMADEUS_RESPONSE["dictionaries"])

    direct, connecting = result.offers
    assert direct.price.total == "520.10"
    assert direct.price.currency == "USD"
    assert direct.airline == "BRITISH AIRWAYS"
    assert connecting.airline == "KLM ROYAL DUTCH AIRLINES"
    segment = connecting.itineraries[0].segments[1]
    assert segment.departure.iata_code == "AMS"
    assert segment.carrier_code == "KL"
    assert segment.number == "101"
    assert segment.duration == "PT2H"
    assert result.skipped == []


def test_return_itinerary_kept_but_summary_uses_outbound():
    outbound = {"duration": "PT8H", "segments": [raw_segment("JFK", "LHR", depart="2025-06-01T18:00:00")]}
    inbound = {"duration": "PT9H", "segments": [raw_segment("LHR", "JFK", depart="2025-06-10T11:00:00")]}
    raw = raw_offer("9", itineraries=[outbound, inbound])

    offer = normalize_offers([raw], {}).offers[0]

    assert len(offer.itineraries) == 2
    assert offer.departure.at == "2025-06-01T18:00:00"
    assert offer.arrival.iata_code == "LHR"
    assert offer.duration == "PT8H"
    assert offer.itineraries[1].duration == "PT9H"


def test_camel_case_serialization():
    offer = normalize_offers([raw_offer()], {}).offers[0]

    dumped = offer.model_dump(by_alias=True)

    assert set(dumped) == {"id", "airline", "flightNumber", "departure", "arrival", "duration", "price", "itineraries"}
    assert dumped["departure"] == {"iataCode": "JFK", "at": "2025-06-01T08:00:00"}
    assert set(dumped["itineraries"][0]["segments"][0]) == {"departure", "arrival", "carrierCode", "number", "duration"}


def test_airline_fallback_chain():
    assert resolve_airline_name(["XY"], {"XY": "Example Air"}) == "Example Air"
    assert resolve_airline_name(["XY"], {}) == "XY"
    assert resolve_airline_name([], {"XY": "Example Air"}) == UNKNOWN_AIRLINE
    assert resolve_airline_name(None, {}) == "Unknown Airline"


def test_airline_fallback_through_normalize():
    dictionaries = {"carriers": {"XY": "Example Air"}}
    named, coded, unknown = normalize_offers(
        [
            raw_offer("1", validating=("XY",)),
            raw_offer("2", validating=("ZZ",)),
            raw_offer("3", validating=None),
        ],
        dictionaries,
    ).offers

    assert named.airline == "Example Air"
    assert coded.airline == "ZZ"
    assert unknown.airline == "Unknown Airline"


def test_missing_dictionaries():
    offer = normalize_offers([raw_offer(validating=("XY",))], None).offers[0]
    assert offer.airline == "XY"


def test_zero_segment_itinerary_skipped_with_warning(caplog):
    broken = raw_offer("bad", itineraries=[{"duration": "PT1H", "segments": []}])
    good = raw_offer("good")

    with caplog.at_level(logging.WARNING):
        result = normalize_offers([broken, good], {})

    assert [offer.id for offer in result.offers] == ["good"]
    assert len(result.skipped) == 1
    assert result.skipped[0].offer_id == "bad"
    assert "no segments" in result.skipped[0].reason
    assert any("Skipping malformed offer bad" in record.getMessage() for record in caplog.records)


def test_malformed_offers_never_raise():
    no_price = raw_offer("p")
    del no_price["price"]
    no_arrival = raw_offer("a")
    del no_arrival["itineraries"][0]["segments"][0]["arrival"]
    no_itineraries = raw_offer("i", itineraries=[])
    no_id = raw_offer()
    del no_id["id"]

    result = normalize_offers([no_price, no_arrival, no_itineraries, no_id, "garbage", None], {})

    assert result.offers == []
    assert [skip.offer_id for skip in result.skipped] == ["p", "a", "i", None, None, None]


@pytest.mark.parametrize("total", [None, "N/A", "", "NaN", "Infinity"])
def test_unusable_price_total_is_skipped(total):
    result = normalize_offers([raw_offer("np", total=total), raw_offer("ok")], {})

    assert [offer.id for offer in result.offers] == ["ok"]
    assert [skip.offer_id for skip in result.skipped] == ["np"]


def test_null_flight_number_is_skipped():
    broken = raw_offer("nn")
    broken["itineraries"][0]["segments"][0]["number"] = None

    result = normalize_offers([broken], {})

    assert result.offers == []
    assert result.skipped[0].offer_id == "nn"
    assert "number" in result.skipped[0].reason


def test_numeric_total_kept_as_text():
    offer = normalize_offers([raw_offer(total=389)], {}).offers[0]
    assert offer.price.total == "389"


def test_empty_input():
    assert normalize_offers([], {}).offers == []
    assert normalize_offers(None, None).offers == []
