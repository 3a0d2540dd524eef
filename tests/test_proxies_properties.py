"""Property-based tests for request validation across the proxy routes."""

from unittest.mock import Mock

from hypothesis import given, settings
from hypothesis import strategies as st

from dashboard_api.cache import MemoryStore
from dashboard_api.commands import CommandOfTheDay
from dashboard_api.config import Config
from dashboard_api.responses import Request, json_response
from dashboard_api.router import Router

KNOWN_ROUTES = {
    "weather",
    "crypto",
    "github",
    "twitch",
    "twitch-users",
    "suggest",
    "calendar",
    "command",
    "vg-summary",
    "config",
}

blank = st.sampled_from(["", " ", "\t", "  \n"])
coordinate = st.floats(min_value=-90, max_value=90, allow_nan=False).map(lambda f: f"{f:.4f}")


def build_router():
    client = Mock()
    client.get_json.return_value = {"ok": True}
    store = MemoryStore()
    news = Mock(last_run={})
    news.get_summaries.return_value = json_response({"source": "none", "summaries": []})
    router = Router(
        config=Config(),
        store=store,
        client_factory=lambda request_id=None: client,
        news=news,
        commands=CommandOfTheDay([], store),
    )
    return router, client


class TestProxyValidationProperties:
    """Property-based tests for proxy input validation."""

    @given(
        st.fixed_dictionaries({}, optional={"lat": st.one_of(blank, coordinate), "lon": blank})
    )
    @settings(max_examples=50)
    def test_weather_without_both_coordinates_is_400(self, query):
        router, client = build_router()

        response = router.handle(Request(method="GET", path="/api/weather", query=query))

        assert response.status_code == 400
        assert response.body["error"].startswith("Missing required parameters")
        client.get_json.assert_not_called()

    @given(coordinate, coordinate)
    @settings(max_examples=50)
    def test_weather_with_coordinates_passes_through(self, lat, lon):
        router, client = build_router()

        response = router.handle(
            Request(method="GET", path="/api/weather", query={"lat": lat, "lon": lon})
        )

        assert response.status_code == 200
        assert response.body == {"ok": True}
        assert client.get_json.call_args[1]["params"] == {"lat": lat, "lon": lon}

    @given(st.sampled_from(["github", "suggest", "twitch-users"]), blank)
    @settings(max_examples=30)
    def test_blank_required_input_never_reaches_upstream(self, route, value):
        router, client = build_router()
        query = {"username": value, "q": value, "ids": value}
        headers = {"Authorization": "Bearer x", "Client-Id": "c"}

        response = router.handle(
            Request(method="GET", path=f"/api/{route}", query=query, headers=headers)
        )

        assert response.status_code == 400
        assert "error" in response.body
        client.get_json.assert_not_called()

    @given(st.text(alphabet="abcdefghijklmnopqrstuvwxyz-", min_size=1, max_size=20))
    @settings(max_examples=50)
    def test_unknown_routes_are_404(self, name):
        router, _ = build_router()

        response = router.handle(Request(method="GET", path=f"/api/{name}"))

        if name in KNOWN_ROUTES:
            assert response.status_code != 404
        else:
            assert response.status_code == 404
            assert response.body == {"error": "Not found"}
        assert response.headers["Access-Control-Allow-Origin"] == "*"
