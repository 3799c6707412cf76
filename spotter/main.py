from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse

from spotter import config
from spotter.airports import display_name, search_airports
from spotter.filters import apply_filters, build_histogram, default_filter_state, derive_facets
from spotter.schemas import Airport, ErrorResponse, ResultsView, ResultsViewRequest
from spotter.services.amadeus_provider import AmadeusFlightProvider, AuthPolicy, validate_search_params
from spotter.services.flight_provider import (
    AuthUnavailable,
    FlightProvider,
    ProviderError,
    SearchValidationError,
    UpstreamError,
)
from spotter.services.normalizer import normalize_offers

logging.basicConfig(level=config.LOG_LEVEL, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Spotter",
    description="Flight search proxy over the Amadeus flight-offers API",
    version="0.1.0",
)


class AppState:
    def __init__(self, provider: Optional[FlightProvider] = None, response_envelope: str = "bare"):
        self.provider = provider
        self.response_envelope = response_envelope


state = AppState(
    provider=None,  # initialized on startup
    response_envelope=config.SEARCH_RESPONSE_ENVELOPE,
)


def build_provider() -> FlightProvider:
    provider = AmadeusFlightProvider.from_env()
    if config.AMADEUS_CONFIGURED:
        logger.info("Using Amadeus provider at %s", config.AMADEUS_BASE_URL)
    else:
        logger.warning(
            "Amadeus credentials missing or placeholder; searches will %s",
            "serve mock offers" if provider.auth_policy is AuthPolicy.LENIENT else "answer 401",
        )
    return provider


def get_provider() -> FlightProvider:
    if state.provider is None:
        state.provider = build_provider()
    return state.provider


@app.on_event("startup")
async def on_startup() -> None:
    get_provider()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    provider = state.provider
    state.provider = None
    aclose = getattr(provider, "aclose", None)
    if aclose is not None:
        await aclose()


def error_response(status_code: int, error: str, detail: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(SearchValidationError)
async def handle_validation_error(request: Request, exc: SearchValidationError) -> JSONResponse:
    logger.info("Rejected search %s: %s (%s)", request.url.query, exc.message, ", ".join(exc.fields))
    return error_response(400, exc.message, ", ".join(exc.fields) or None)


@app.exception_handler(AuthUnavailable)
async def handle_auth_unavailable(request: Request, exc: AuthUnavailable) -> JSONResponse:
    logger.error("Search without Amadeus token: %s", exc)
    return error_response(401, "Failed to authenticate with Amadeus API")


@app.exception_handler(UpstreamError)
async def handle_upstream_error(request: Request, exc: UpstreamError) -> JSONResponse:
    logger.error("Search failed upstream: %s", exc)
    return error_response(500, "Failed to fetch flight offers")


@app.get("/health")
async def health() -> Dict[str, str]:
    provider = state.provider
    return {
        "status": "ok",
        "provider": provider.__class__.__name__ if provider else "uninitialized",
        "amadeus_ready": "yes" if config.AMADEUS_CONFIGURED else "no",
        "auth_policy": config.AUTH_FAILURE_POLICY,
        "response_envelope": state.response_envelope,
    }


@app.get("/api/airports", response_model=List[Airport])
async def list_airports(q: Optional[str] = Query(None, description="City, airport name or code")) -> List[Airport]:
    return search_airports(q)


@app.get(
    "/api/search",
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def search_flights(
    origin: Optional[str] = Query(None),
    destination: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="Departure date, yyyy-MM-dd"),
    return_date: Optional[str] = Query(None, alias="returnDate"),
    adults: Optional[str] = Query(None),
    travel_class: Optional[str] = Query(None, alias="travelClass"),
    provider: FlightProvider = Depends(get_provider),
) -> JSONResponse:
    request = validate_search_params(origin, destination, date, return_date, adults, travel_class)

    try:
        payload = await provider.search(request)
    except ProviderError:
        raise
    except Exception as exc:
        logger.exception("Unexpected failure searching %s -> %s", request.origin, request.destination)
        raise UpstreamError("amadeus", str(exc)) from exc

    result = normalize_offers(payload.offers, payload.dictionaries)
    logger.info(
        "Search %s -> %s on %s: %d offers (%d skipped, source=%s)",
        display_name(request.origin),
        display_name(request.destination),
        request.departure_date,
        len(result.offers),
        len(result.skipped),
        payload.source,
    )

    offers = [offer.model_dump(mode="json", by_alias=True) for offer in result.offers]
    if state.response_envelope == "data":
        return JSONResponse({"data": offers})
    return JSONResponse(offers)


@app.post("/api/results/view", response_model=ResultsView)
async def results_view(view: ResultsViewRequest) -> ResultsView:
    filters = view.filters or default_filter_state(view.offers)
    try:
        return ResultsView(
            visible=apply_filters(view.offers, filters),
            facets=derive_facets(view.offers),
            histogram=build_histogram(view.offers, view.bucket_count),
            filters=filters,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.get("/", response_class=HTMLResponse)
async def home_page() -> HTMLResponse:
    return HTMLResponse(build_homepage())


def build_homepage() -> str:
    return """
    <!DOCTYPE html>
    <html lang=\"en\">
    <head>
      <meta charset=\"UTF-8\" />
      <meta name=\"viewport\" content=\"width=device-width, initial-scale=1.0\" />
      <title>Spotter - Flight search</title>
      <style>
        :root {
          --bg: #fafaf8;
          --card: #ffffff;
          --accent: #c5a059;
          --text: #2c2c2c;
          --muted: #8c8c8c;
          --line: #e5e5e5;
        }
        body { margin: 0; font-family: Georgia, 'Times New Roman', serif; background: var(--bg); color: var(--text); }
        header { padding: 48px 24px 24px; text-align: center; }
        header h1 { font-weight: 300; font-size: 48px; margin: 0; }
        header p { color: var(--muted); letter-spacing: 0.25em; text-transform: uppercase; font-size: 13px; }
        main { max-width: 1200px; margin: 0 auto; padding: 0 24px 48px; }
        .search-form { background: var(--card); border: 1px solid var(--line); padding: 16px; display: grid; gap: 12px; grid-template-columns: repeat(auto-fit, minmax(160px, 1fr)); }
        .search-form input, .search-form select { width: 100%; padding: 10px; border: 1px solid var(--line); background: transparent; color: var(--text); box-sizing: border-box; }
        .search-form button { grid-column: -1 / 1; padding: 12px; border: none; background: var(--accent); color: #fff; letter-spacing: 0.2em; text-transform: uppercase; cursor: pointer; }
        .search-form button:disabled { opacity: 0.6; cursor: wait; }
        .layout { display: grid; grid-template-columns: 280px 1fr; gap: 24px; margin-top: 32px; }
        .panel { background: var(--card); border: 1px solid var(--line); padding: 16px; margin-bottom: 16px; }
        .panel h3 { margin: 0 0 12px; font-weight: 300; font-size: 13px; letter-spacing: 0.2em; text-transform: uppercase; color: var(--accent); }
        .histogram { display: flex; align-items: flex-end; gap: 2px; height: 120px; }
        .histogram div { flex: 1; background: var(--accent); opacity: 0.8; min-height: 1px; }
        .filter-row { display: flex; gap: 8px; align-items: center; font-size: 14px; margin: 6px 0; }
        .filter-row input[type=number] { width: 90px; }
        .card { background: var(--card); border: 1px solid var(--line); padding: 16px; margin-bottom: 12px; display: grid; grid-template-columns: 1fr auto; gap: 8px; }
        .price { font-size: 24px; color: var(--accent); }
        .small { color: var(--muted); font-size: 13px; }
        .empty { text-align: center; color: var(--muted); letter-spacing: 0.2em; text-transform: uppercase; margin-top: 48px; }
      </style>
    </head>
    <body>
      <header>
        <h1>Spotter</h1>
        <p>Flight search</p>
      </header>
      <main>
        <form id="searchForm" class="search-form" onsubmit="runSearch(event)">
          <input name="origin" placeholder="From (IATA)" list="airports" required />
          <input name="destination" placeholder="To (IATA)" list="airports" required />
          <input name="date" type="date" required />
          <input name="returnDate" type="date" />
          <select name="adults">
            <option value="1">1 Adult</option>
            <option value="2">2 Adults</option>
            <option value="3">3 Adults</option>
            <option value="4">4 Adults</option>
          </select>
          <select name="travelClass">
            <option value="ECONOMY">Economy</option>
            <option value="PREMIUM_ECONOMY">Premium Economy</option>
            <option value="BUSINESS">Business Class</option>
            <option value="FIRST">First Class</option>
          </select>
          <button type="submit" id="searchButton">Search Flights</button>
        </form>
        <datalist id="airports"></datalist>
        <div id="results"><div class="empty">Begin your journey</div></div>
      </main>
      <script>
        const results = document.getElementById('results');
        const button = document.getElementById('searchButton');
        let offers = [];
        let filters = null;
        let generation = 0;

        const formatTime = (value) => value ? new Date(value).toLocaleString('en-US', { month: 'short', day: 'numeric', hour: '2-digit', minute: '2-digit' }) : '-';
        const formatDuration = (value) => (value || '').replace('PT', '').toLowerCase();
        const escapeHtml = (value) => String(value ?? '').replace(/[&<>"']/g, (ch) => ({ '&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;' })[ch]);

        async function loadAirports() {
          const res = await fetch('/api/airports');
          const airports = await res.json();
          document.getElementById('airports').innerHTML = airports
            .map((a) => `<option value="${a.code}">${a.city} - ${a.name}</option>`).join('');
        }

        async function runSearch(event) {
          event.preventDefault();
          const current = ++generation;
          const form = new FormData(event.target);
          const params = new URLSearchParams();
          for (const [key, value] of form.entries()) {
            if (value) params.append(key, key === 'origin' || key === 'destination' ? value.toUpperCase() : value);
          }
          button.disabled = true;
          button.textContent = 'Searching...';
          offers = [];
          filters = null;
          let found = [];
          try {
            const res = await fetch(`/api/search?${params.toString()}`);
            const data = await res.json();
            if (Array.isArray(data)) found = data;
            else if (data && Array.isArray(data.data)) found = data.data;
            else console.warn('Unexpected API response format:', data);
          } catch (err) {
            console.error('Failed to fetch flights:', err);
          }
          if (current !== generation) return;
          offers = found;
          button.disabled = false;
          button.textContent = 'Search Flights';
          await refreshView();
        }

        async function refreshView() {
          const res = await fetch('/api/results/view', {
            method: 'POST',
            headers: { 'Content-Type': 'application/json' },
            body: JSON.stringify({ offers, filters }),
          });
          const view = await res.json();
          filters = view.filters;
          render(view);
        }

        function toggle(input) {
          const { kind, value } = input.dataset;
          const checked = input.checked;
          const selected = new Set(filters[kind]);
          checked ? selected.add(value) : selected.delete(value);
          filters[kind] = [...selected];
          refreshView();
        }

        function setPrice(index, value) {
          filters.priceRange[index] = Number(value);
          refreshView();
        }

        function render(view) {
          if (!offers.length) {
            results.innerHTML = '<div class="empty">No flights found</div>';
            return;
          }
          const peak = Math.max(...view.histogram.map((b) => b.count), 1);
          const bars = view.histogram
            .map((b) => `<div title="${b.fullRange}: ${b.count} flights" style="height:${(b.count / peak) * 100}%"></div>`).join('');
          const stopLabels = { '0': 'Non-stop', '1': '1 Stop', '2+': '2+ Stops' };
          const stops = Object.entries(stopLabels).map(([value, label]) => `
            <label class="filter-row"><input type="checkbox" ${filters.stops.includes(value) ? 'checked' : ''}
              data-kind="stops" data-value="${value}" onchange="toggle(this)" />${label}</label>`).join('');
          const airlines = view.facets.airlines.map((name) => `
            <label class="filter-row"><input type="checkbox" ${filters.airlines.includes(name) ? 'checked' : ''}
              data-kind="airlines" data-value="${escapeHtml(name)}" onchange="toggle(this)" />${escapeHtml(name)}</label>`).join('');
          const cards = view.visible.map((offer) => {
            const outbound = offer.itineraries[0];
            const stopCount = outbound.segments.length - 1;
            return `
              <div class="card">
                <div>
                  <div><strong>${escapeHtml(offer.airline)}</strong> <span class="small">${escapeHtml(offer.flightNumber)}</span></div>
                  <div>${escapeHtml(offer.departure.iataCode)} ${formatTime(offer.departure.at)} &rarr; ${escapeHtml(offer.arrival.iataCode)} ${formatTime(offer.arrival.at)}</div>
                  <div class="small">${formatDuration(offer.duration)} &middot; ${stopCount === 0 ? 'Non-stop' : stopCount + ' stop(s)'}</div>
                </div>
                <div class="price">${escapeHtml(offer.price.total)} ${escapeHtml(offer.price.currency)}</div>
              </div>`;
          }).join('');

          results.innerHTML = `
            <div class="layout">
              <aside>
                <div class="panel"><h3>Price trend</h3><div class="histogram">${bars}</div></div>
                <div class="panel">
                  <h3>Filters</h3>
                  <div class="filter-row">
                    <input type="number" value="${filters.priceRange[0]}" min="${view.facets.minPrice}" max="${view.facets.maxPrice}" onchange="setPrice(0, this.value)" />
                    <input type="number" value="${filters.priceRange[1]}" min="${view.facets.minPrice}" max="${view.facets.maxPrice}" onchange="setPrice(1, this.value)" />
                  </div>
                  ${stops}
                  ${airlines}
                </div>
              </aside>
              <section>
                <div class="small">${view.visible.length} flights found</div>
                ${cards || '<div class="empty">No flights match these filters</div>'}
              </section>
            </div>`;
        }

        loadAirports();
      </script>
    </body>
    </html>
    """
