from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any, Dict, List

from spotter.schemas import SearchRequest
from spotter.services.flight_provider import FlightProvider, ProviderPayload

CABIN_FACTORS = {
    "ECONOMY": 1.0,
    "PREMIUM_ECONOMY": 1.6,
    "BUSINESS": 3.2,
    "FIRST": 5.5,
}


class MockFlightProvider(FlightProvider):
    """Provider that returns two deterministic offers in the Amadeus wire format.

    Used when live lookups are disabled so the search page still renders.
    """

    def __init__(self, base_price: float = 540.0, volatility: float = 90.0, currency: str = "USD"):
        self.base_price = base_price
        self.volatility = volatility
        self.currency = currency
        self.carriers = {
            "EK": "EMIRATES",
            "LH": "LUFTHANSA",
            "BA": "BRITISH AIRWAYS",
            "SQ": "SINGAPORE AIRLINES",
        }
        self.hubs = ["FRA", "DXB", "LHR"]

    async def search(self, request: SearchRequest) -> ProviderPayload:
        # Deterministic pseudo-variation based on route and date
        seed_value = sum(ord(c) for c in f"{request.origin}{request.destination}{request.departure_date}")
        oscillation = math.sin(seed_value) * self.volatility
        cabin = request.travel_class.value if request.travel_class else "ECONOMY"
        fare = max(120.0, self.base_price + oscillation) * CABIN_FACTORS[cabin] * request.adults

        codes = list(self.carriers)
        direct_carrier = codes[seed_value % len(codes)]
        connecting_carrier = codes[(seed_value + 1) % len(codes)]
        hub = next(h for h in self.hubs if h not in (request.origin, request.destination))

        departure = datetime.combine(request.departure_date, datetime.min.time()) + timedelta(hours=9)
        direct_legs = [(request.origin, request.destination, departure, timedelta(hours=7, minutes=30))]
        connecting_legs = [
            (request.origin, hub, departure + timedelta(hours=2), timedelta(hours=3, minutes=45)),
            (hub, request.destination, departure + timedelta(hours=8), timedelta(hours=6, minutes=15)),
        ]

        offers = [
            self._offer("1", direct_carrier, 101, fare, [direct_legs]),
            self._offer("2", connecting_carrier, 455, fare * 0.82, [connecting_legs]),
        ]
        if request.return_date is not None:
            back = datetime.combine(request.return_date, datetime.min.time()) + timedelta(hours=15)
            return_legs = [(request.destination, request.origin, back, timedelta(hours=7, minutes=50))]
            for offer, carrier in ((offers[0], direct_carrier), (offers[1], connecting_carrier)):
                offer["itineraries"].append(self._itinerary(carrier, 202, return_legs))

        return ProviderPayload(
            offers=offers,
            dictionaries={"carriers": {code: self.carriers[code] for code in (direct_carrier, connecting_carrier)}},
            source="mock",
        )

    def _offer(
        self,
        offer_id: str,
        carrier: str,
        first_number: int,
        total: float,
        legs_per_itinerary: List[list],
    ) -> Dict[str, Any]:
        return {
            "type": "flight-offer",
            "id": offer_id,
            "source": "MOCK",
            "numberOfBookableSeats": 9,
            "itineraries": [self._itinerary(carrier, first_number, legs) for legs in legs_per_itinerary],
            "price": {"currency": self.currency, "total": f"{total:.2f}"},
            "validatingAirlineCodes": [carrier],
        }

    def _itinerary(self, carrier: str, first_number: int, legs: list) -> Dict[str, Any]:
        segments = []
        for idx, (origin, destination, depart_at, flight_time) in enumerate(legs):
            segments.append(
                {
                    "departure": {"iataCode": origin, "at": depart_at.isoformat(timespec="seconds")},
                    "arrival": {"iataCode": destination, "at": (depart_at + flight_time).isoformat(timespec="seconds")},
                    "carrierCode": carrier,
                    "number": str(first_number + idx),
                    "duration": iso_duration(flight_time),
                }
            )
        total_time = legs[-1][2] + legs[-1][3] - legs[0][2]
        return {"duration": iso_duration(total_time), "segments": segments}


def iso_duration(delta: timedelta) -> str:
    minutes = int(delta.total_seconds() // 60)
    hours, minutes = divmod(minutes, 60)
    if hours and minutes:
        return f"PT{hours}H{minutes}M"
    if hours:
        return f"PT{hours}H"
    return f"PT{minutes}M"
