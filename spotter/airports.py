from __future__ import annotations

from typing import Dict, List, Optional

from spotter.schemas import Airport

AIRPORTS: List[Airport] = [
    Airport(code="JFK", city="New York", name="John F. Kennedy International Airport", country="USA"),
    Airport(code="LHR", city="London", name="Heathrow Airport", country="UK"),
    Airport(code="DXB", city="Dubai", name="Dubai International Airport", country="UAE"),
    Airport(code="SIN", city="Singapore", name="Changi Airport", country="Singapore"),
    Airport(code="HND", city="Tokyo", name="Haneda Airport", country="Japan"),
    Airport(code="NRT", city="Tokyo", name="Narita International Airport", country="Japan"),
    Airport(code="CDG", city="Paris", name="Charles de Gaulle Airport", country="France"),
    Airport(code="AMS", city="Amsterdam", name="Amsterdam Airport Schiphol", country="Netherlands"),
    Airport(code="FRA", city="Frankfurt", name="Frankfurt Airport", country="Germany"),
    Airport(code="IST", city="Istanbul", name="Istanbul Airport", country="Turkey"),
    Airport(code="LAX", city="Los Angeles", name="Los Angeles International Airport", country="USA"),
    Airport(code="SYD", city="Sydney", name="Kingsford Smith Airport", country="Australia"),
    Airport(code="BOM", city="Mumbai", name="Chhatrapati Shivaji Maharaj International Airport", country="India"),
    Airport(code="DEL", city="Delhi", name="Indira Gandhi International Airport", country="India"),
    Airport(code="KTM", city="Kathmandu", name="Tribhuvan International Airport", country="Nepal"),
    Airport(code="BKK", city="Bangkok", name="Suvarnabhumi Airport", country="Thailand"),
    Airport(code="HKG", city="Hong Kong", name="Hong Kong International Airport", country="Hong Kong"),
    Airport(code="SFO", city="San Francisco", name="San Francisco International Airport", country="USA"),
]

_BY_CODE: Dict[str, Airport] = {airport.code: airport for airport in AIRPORTS}


def get_airport(code: Optional[str]) -> Optional[Airport]:
    if not code:
        return None
    return _BY_CODE.get(code.strip().upper())


def search_airports(query: Optional[str] = None) -> List[Airport]:
    """Airports whose city, name or code contains ``query`` (case-insensitive)."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(AIRPORTS)
    return [
        airport
        for airport in AIRPORTS
        if needle in f"{airport.city} {airport.name} {airport.code}".lower()
    ]


def display_name(code: str) -> str:
    airport = get_airport(code)
    return f"{airport.city} ({airport.code})" if airport else code.upper()
