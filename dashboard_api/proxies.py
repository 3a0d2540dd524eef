"""Stateless proxy handlers for the dashboard widgets.

Each handler validates its input, makes exactly one upstream call and returns
the upstream JSON verbatim or lightly reshaped. Failures are raised as
``ApiError`` and turned into JSON responses by the router.
"""

from urllib.parse import quote

from .responses import (
    ApiError,
    BadRequest,
    Request,
    Response,
    Unauthorized,
    UpstreamError,
    json_response,
)
from .upstream import UpstreamClient

MET_FORECAST_URL = "https://api.met.no/weatherapi/locationforecast/2.0/compact"
MET_USER_AGENT = "Dashboard App (kurokodairuwu@proton.me)"
COINGECKO_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"
GITHUB_API_URL = "https://api.github.com"
TWITCH_HELIX_URL = "https://api.twitch.tv/helix"
GOOGLE_SUGGEST_URL = "https://suggestqueries.google.com/complete/search"

DEFAULT_CRYPTO_IDS = "bitcoin,ethereum,cardano,polkadot,chainlink"
DEFAULT_VS_CURRENCIES = "usd"

# Crypto and Twitch widgets abort on the client after 10 s
SHORT_TIMEOUT = 10

TRUTHY = ("1", "true", "yes")


def upstream_failure(
    e: UpstreamError, error: str, passthrough: dict[int, str] | None = None
) -> ApiError:
    """Map an upstream failure onto the response the widget expects."""
    passthrough = passthrough or {}
    if e.status_code in passthrough:
        return ApiError(passthrough[e.status_code], e.message, status_code=e.status_code)
    return ApiError(error, e.message, status_code=500)


def handle_weather(request: Request, client: UpstreamClient) -> Response:
    params = request.require("lat", "lon")
    try:
        data = client.get_json(
            "weather",
            MET_FORECAST_URL,
            params={"lat": params["lat"], "lon": params["lon"]},
            headers={"User-Agent": MET_USER_AGENT},
        )
    except UpstreamError as e:
        raise upstream_failure(e, "Failed to fetch weather data")
    return json_response(data)


def handle_crypto(request: Request, client: UpstreamClient) -> Response:
    params = {
        "ids": request.param("ids") or DEFAULT_CRYPTO_IDS,
        "vs_currencies": request.param("vs_currencies") or DEFAULT_VS_CURRENCIES,
        "include_24hr_change": request.param("include_24hr_change") or "true",
    }
    try:
        data = client.get_json(
            "crypto", COINGECKO_PRICE_URL, params=params, timeout=SHORT_TIMEOUT
        )
    except UpstreamError as e:
        raise upstream_failure(e, "Failed to fetch crypto data")
    return json_response(data)


def handle_github(request: Request, client: UpstreamClient) -> Response:
    username = request.param("username")
    if not username:
        raise BadRequest("Missing GitHub username")

    want_repos = request.param("repos").lower() in TRUTHY
    url = f"{GITHUB_API_URL}/users/{quote(username, safe='')}"
    params = None
    if want_repos:
        url += "/repos"
        params = {
            "sort": request.param("sort") or "updated",
            "per_page": request.param("per_page") or "3",
        }

    try:
        data = client.get_json(
            "github",
            url,
            params=params,
            headers={"Accept": "application/vnd.github+json"},
        )
    except UpstreamError as e:
        raise upstream_failure(
            e,
            "Failed to fetch GitHub repositories" if want_repos else "Failed to fetch GitHub profile",
            passthrough={404: "GitHub user not found"},
        )
    return json_response(data)


def _twitch_headers(request: Request) -> dict[str, str]:
    authorization = request.header("Authorization")
    client_id = request.header("Client-Id")
    if not authorization or not client_id:
        raise Unauthorized("Missing authorization headers")
    return {
        "Authorization": authorization,
        "Client-Id": client_id,
        "Accept": "application/json",
    }


def handle_twitch_streams(request: Request, client: UpstreamClient) -> Response:
    headers = _twitch_headers(request)
    user_id = request.param("user_id")
    if not user_id:
        raise BadRequest("Missing required parameter: user_id")

    try:
        data = client.get_json(
            "twitch",
            f"{TWITCH_HELIX_URL}/streams/followed",
            params={"user_id": user_id},
            headers=headers,
            timeout=SHORT_TIMEOUT,
        )
    except UpstreamError as e:
        raise upstream_failure(
            e, "Failed to fetch Twitch data", passthrough={401: "Twitch authentication expired"}
        )
    return json_response(data)


def handle_twitch_users(request: Request, client: UpstreamClient) -> Response:
    headers = _twitch_headers(request)
    ids = [i.strip() for i in request.param("ids").split(",") if i.strip()]
    if not ids:
        raise BadRequest("Missing required parameter: ids")

    try:
        data = client.get_json(
            "twitch",
            f"{TWITCH_HELIX_URL}/users",
            params=[("id", user_id) for user_id in ids],
            headers=headers,
            timeout=SHORT_TIMEOUT,
        )
    except UpstreamError as e:
        raise upstream_failure(
            e,
            "Failed to fetch Twitch users data",
            passthrough={401: "Twitch authentication expired"},
        )
    return json_response(data)


def parse_suggestions(payload) -> list[str]:
    """Extract the suggestion list from Google's ``[query, [suggestions], ...]`` reply.

    Raises:
        ValueError: If the payload does not have that shape
    """
    if not isinstance(payload, list) or len(payload) < 2 or not isinstance(payload[1], list):
        raise ValueError("Unexpected suggestion payload")
    return [s for s in payload[1] if isinstance(s, str)]


def handle_suggest(request: Request, client: UpstreamClient) -> Response:
    query = request.param("q")
    if not query:
        raise BadRequest("Missing query")

    try:
        payload = client.get_json(
            "suggest", GOOGLE_SUGGEST_URL, params={"client": "firefox", "q": query}
        )
        suggestions = parse_suggestions(payload)
    except UpstreamError as e:
        raise upstream_failure(e, "Failed to fetch suggestions")
    except ValueError as e:
        raise ApiError("Failed to fetch suggestions", str(e), status_code=500)
    return json_response({"suggestions": suggestions})
