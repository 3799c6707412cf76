"""Turn Amadeus flight-offer payloads into the canonical ``FlightOffer`` model."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from spotter.schemas import FlightOffer, Itinerary, Location, Price, Segment
from spotter.services.flight_provider import MalformedOffer

logger = logging.getLogger(__name__)

UNKNOWN_AIRLINE = "Unknown Airline"


@dataclass
class SkippedOffer:
    offer_id: Optional[str]
    reason: str


@dataclass
class NormalizationResult:
    offers: List[FlightOffer] = field(default_factory=list)
    skipped: List[SkippedOffer] = field(default_factory=list)


def normalize_offers(raw_offers: List[Any], dictionaries: Optional[Mapping[str, Any]] = None) -> NormalizationResult:
    """Normalize every raw offer, skipping (and recording) the malformed ones."""
    carriers = _carriers(dictionaries)
    result = NormalizationResult()
    for raw in raw_offers or []:
        try:
            result.offers.append(normalize_offer(raw, carriers))
        except MalformedOffer as exc:
            logger.warning("Skipping malformed offer %s: %s", exc.offer_id or "<no id>", exc.message)
            result.skipped.append(SkippedOffer(offer_id=exc.offer_id, reason=exc.message))
    return result


def normalize_offer(raw: Any, carriers: Mapping[str, str]) -> FlightOffer:
    if not isinstance(raw, dict):
        raise MalformedOffer(None, f"expected an object, got {type(raw).__name__}")
    offer_id = raw.get("id")
    offer_id = str(offer_id) if offer_id is not None else None

    raw_itineraries = raw.get("itineraries")
    if not isinstance(raw_itineraries, list) or not raw_itineraries:
        raise MalformedOffer(offer_id, "offer has no itineraries")

    try:
        itineraries = [_itinerary(item) for item in raw_itineraries]
        price = Price(currency=raw["price"]["currency"], total=_required_text(raw["price"], "total"))
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise MalformedOffer(offer_id, f"missing or invalid field: {exc}") from exc

    if offer_id is None:
        raise MalformedOffer(None, "offer has no id")

    outbound = itineraries[0]
    first_segment = outbound.segments[0]
    last_segment = outbound.segments[-1]

    return FlightOffer(
        id=offer_id,
        airline=resolve_airline_name(raw.get("validatingAirlineCodes"), carriers),
        flight_number=f"{first_segment.carrier_code} {first_segment.number}",
        departure=first_segment.departure,
        arrival=last_segment.arrival,
        duration=outbound.duration,
        price=price,
        itineraries=itineraries,
    )


def resolve_airline_name(validating_codes: Any, carriers: Mapping[str, str]) -> str:
    """Carrier display name, else the raw code, else ``Unknown Airline``."""
    code = None
    if isinstance(validating_codes, list) and validating_codes:
        code = validating_codes[0]
    if not code:
        return UNKNOWN_AIRLINE
    return carriers.get(code) or code


def _carriers(dictionaries: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    if not isinstance(dictionaries, Mapping):
        return {}
    carriers = dictionaries.get("carriers")
    return dict(carriers) if isinstance(carriers, Mapping) else {}


def _itinerary(raw: Dict[str, Any]) -> Itinerary:
    raw_segments = raw.get("segments")
    if not raw_segments:
        raise ValueError("itinerary has no segments")
    return Itinerary(
        duration=raw["duration"],
        segments=[
            Segment(
                departure=_location(segment["departure"]),
                arrival=_location(segment["arrival"]),
                carrier_code=segment["carrierCode"],
                number=_required_text(segment, "number"),
                duration=segment["duration"],
            )
            for segment in raw_segments
        ],
    )


def _required_text(raw: Dict[str, Any], key: str) -> str:
    value = raw[key]
    if value is None:
        raise ValueError(f"{key} is null")
    return str(value)


def _location(raw: Dict[str, Any]) -> Location:
    return Location(iata_code=raw["iataCode"], at=raw["at"])
