from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

STOP_BUCKETS = ("0", "1", "2+")


class CamelModel(BaseModel):
    """Base for models exchanged with the browser, serialized in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TravelClass(str, Enum):
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"


class SearchRequest(CamelModel):
    origin: str = Field(..., description="IATA code of the departure airport")
    destination: str = Field(..., description="IATA code of the arrival airport")
    departure_date: date
    return_date: Optional[date] = None
    adults: int = Field(1, ge=1, le=9)
    travel_class: Optional[TravelClass] = None

    @field_validator("origin", "destination")
    @classmethod
    def normalize_location_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Location code must not be blank")
        return code

    @model_validator(mode="after")
    def validate_return_not_before_departure(self) -> "SearchRequest":
        if self.return_date is not None and self.return_date < self.departure_date:
            raise ValueError("Return date must not be before departure date")
        return self


class Location(CamelModel):
    iata_code: str
    at: str = Field(..., description="Local date-time in ISO 8601 format")


class Segment(CamelModel):
    departure: Location
    arrival: Location
    carrier_code: str
    number: str
    duration: str = Field(..., description="ISO 8601 duration, e.g. PT7H35M")


class Itinerary(CamelModel):
    duration: str
    segments: List[Segment] = Field(..., min_length=1)


class Price(CamelModel):
    currency: str
    total: str = Field(..., description="Decimal string as quoted by the provider")

    @field_validator("total")
    @classmethod
    def require_finite_decimal(cls, value: str) -> str:
        try:
            amount = Decimal(value)
        except InvalidOperation:
            raise ValueError(f"price total {value!r} is not a decimal number") from None
        if not amount.is_finite():
            raise ValueError(f"price total {value!r} is not a finite amount")
        return value


class FlightOffer(CamelModel):
    id: str
    airline: str
    flight_number: str
    departure: Location
    arrival: Location
    duration: str
    price: Price
    itineraries: List[Itinerary] = Field(..., min_length=1)


class FilterState(CamelModel):
    price_range: Tuple[float, float] = (0, 10000)
    stops: Set[str] = Field(default_factory=set)
    airlines: Set[str] = Field(default_factory=set)

    @field_validator("stops")
    @classmethod
    def validate_stops(cls, value: Set[str]) -> Set[str]:
        unknown = value - set(STOP_BUCKETS)
        if unknown:
            raise ValueError(f"Unknown stop buckets: {sorted(unknown)}")
        return value


class FilterFacets(CamelModel):
    min_price: int
    max_price: int
    airlines: List[str] = Field(default_factory=list)


class HistogramBucket(CamelModel):
    label: str = Field(..., description="Short axis label, e.g. $450")
    full_range: str
    count: int = 0
    price_start: float
    price_end: float


class ResultsViewRequest(CamelModel):
    offers: List[FlightOffer] = Field(default_factory=list)
    filters: Optional[FilterState] = None
    bucket_count: int = Field(20, ge=1, le=100)


class ResultsView(CamelModel):
    visible: List[FlightOffer]
    facets: FilterFacets
    histogram: List[HistogramBucket]
    filters: FilterState


class Airport(CamelModel):
    code: str
    city: str
    name: str
    country: str


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
