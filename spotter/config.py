from __future__ import annotations

import os

AMADEUS_CLIENT_ID = os.getenv("AMADEUS_CLIENT_ID", "")
AMADEUS_CLIENT_SECRET = os.getenv("AMADEUS_CLIENT_SECRET", "")
AMADEUS_BASE_URL = os.getenv("AMADEUS_BASE_URL", "https://test.api.amadeus.com").rstrip("/")
AMADEUS_TIMEOUT_SECONDS = float(os.getenv("AMADEUS_TIMEOUT_SECONDS", 15))
AMADEUS_MAX_RESULTS = int(os.getenv("AMADEUS_MAX_RESULTS", 10))
AMADEUS_CURRENCY = os.getenv("AMADEUS_CURRENCY", "").strip().upper() or None

# Values copied from .env.example that were never filled in
PLACEHOLDER_MARKER = "REPLACE"


def credentials_usable(client_id: str | None, client_secret: str | None) -> bool:
    if not client_id or not client_secret:
        return False
    return PLACEHOLDER_MARKER not in client_id and PLACEHOLDER_MARKER not in client_secret


AMADEUS_CONFIGURED = credentials_usable(AMADEUS_CLIENT_ID, AMADEUS_CLIENT_SECRET)

# strict: answer 401 when no token can be obtained; lenient: serve mock offers
AUTH_FAILURE_POLICY = os.getenv("AUTH_FAILURE_POLICY", "strict").strip().lower()
# bare: FlightOffer[]; data: {"data": FlightOffer[]}
SEARCH_RESPONSE_ENVELOPE = os.getenv("SEARCH_RESPONSE_ENVELOPE", "bare").strip().lower()

HISTOGRAM_BUCKETS = int(os.getenv("HISTOGRAM_BUCKETS", 20))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
