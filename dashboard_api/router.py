"""Routing, CORS and error translation shared by every hosting adapter."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from . import proxies
from .cache import CacheStore, Clock, create_store
from .calendar_events import handle_calendar
from .commands import CommandOfTheDay
from .config import Config
from .credentials import resolve_api_key
from .logging_config import RequestLogger, create_request_logger
from .news import NewsSummaryService
from .responses import (
    ApiError,
    MethodNotAllowed,
    NotFound,
    Request,
    Response,
    error_response,
    json_response,
)
from .rss import FeedProcessor
from .summarize import Summarizer
from .upstream import UpstreamClient

API_PREFIX = "/api"
DEFAULT_ALLOW_HEADERS = "Content-Type"
TWITCH_ALLOW_HEADERS = "Content-Type, Authorization, Client-Id"


@dataclass(frozen=True)
class Route:
    """One API endpoint and the CORS policy it is served with."""

    name: str
    handler: Callable[[Request], Response]
    methods: tuple[str, ...] = ("GET",)
    allow_headers: str = DEFAULT_ALLOW_HEADERS

    @property
    def allow_methods(self) -> str:
        return ", ".join((*self.methods, "OPTIONS"))


def cors_headers(allow_methods: str = "GET, OPTIONS", allow_headers: str = DEFAULT_ALLOW_HEADERS) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": allow_methods,
        "Access-Control-Allow-Headers": allow_headers,
    }


class Router:
    """Dispatches requests under ``/api`` to handlers.

    Services holding cache state are built once per router, so a warm Lambda
    container or a long-running dev server keeps its caches across requests.
    """

    def __init__(
        self,
        config: Config | None = None,
        store: CacheStore | None = None,
        clock: Clock = time.time,
        client_factory: Callable[..., UpstreamClient] = UpstreamClient,
        news: NewsSummaryService | None = None,
        commands: CommandOfTheDay | None = None,
    ):
        self.config = config or Config()
        self.clock = clock
        self.client_factory = client_factory
        cache_config = self.config.get_cache_config()
        self.store = store if store is not None else create_store(cache_config.table_name, cache_config.region)
        self.news = news or self._build_news_service()
        self.commands = commands or CommandOfTheDay.from_config(self.config, self.store, clock=clock)
        self.calendar_config = self.config.get_calendar_config()
        self.calendar_config.api_key = resolve_api_key(
            self.calendar_config.api_key, self.config.calendar_secret_name, self.config.aws_region
        )
        self.last_metrics: dict[str, Any] = {}

        self.routes = {
            route.name: route
            for route in [
                Route("weather", self._proxy(proxies.handle_weather)),
                Route("crypto", self._proxy(proxies.handle_crypto)),
                Route("github", self._proxy(proxies.handle_github)),
                Route("twitch", self._proxy(proxies.handle_twitch_streams), allow_headers=TWITCH_ALLOW_HEADERS),
                Route("twitch-users", self._proxy(proxies.handle_twitch_users), allow_headers=TWITCH_ALLOW_HEADERS),
                Route("suggest", self._proxy(proxies.handle_suggest)),
                Route("calendar", self._calendar),
                Route("command", lambda request: self.commands.handle(request.request_id)),
                Route("vg-summary", lambda request: self.news.get_summaries(request.request_id)),
                Route("config", self._public_config),
            ]
        }

    def _build_news_service(self) -> NewsSummaryService:
        llm_config = self.config.get_llm_config()
        llm_config.api_key = resolve_api_key(
            llm_config.api_key, self.config.openai_secret_name, self.config.aws_region
        )
        return NewsSummaryService(
            self.config.get_news_config(),
            self.store,
            FeedProcessor(),
            Summarizer(llm_config),
            clock=self.clock,
        )

    def _proxy(self, handler: Callable[[Request, UpstreamClient], Response]) -> Callable[[Request], Response]:
        def run(request: Request) -> Response:
            return handler(request, self.client_factory(request_id=request.request_id))

        return run

    def _calendar(self, request: Request) -> Response:
        client = self.client_factory(request_id=request.request_id)
        return handle_calendar(request, client, self.calendar_config, clock=self.clock)

    def _public_config(self, request: Request) -> Response:
        return json_response(
            {
                "twitchClientId": self.config.twitch_client_id,
                "twitchRedirectUri": self.config.twitch_redirect_uri,
            },
            cache_control="public, max-age=300",
        )

    def route_name(self, path: str) -> str:
        path = path.split("?", 1)[0].rstrip("/") or "/"
        if path == "/healthz":
            return "healthz"
        if path.startswith(API_PREFIX + "/"):
            return path[len(API_PREFIX) + 1 :]
        return ""

    def is_api_path(self, path: str) -> bool:
        path = path.split("?", 1)[0]
        return path.rstrip("/") in ("/healthz", API_PREFIX) or path.startswith(API_PREFIX + "/")

    def handle(self, request: Request) -> Response:
        """Serve one request. Never raises."""
        logger = create_request_logger("router", request.request_id)
        start = time.monotonic()
        name = self.route_name(request.path)

        response = self._dispatch(request, name, logger)

        duration_ms = int((time.monotonic() - start) * 1000)
        self.last_metrics = {"status_code": response.status_code, "duration_ms": duration_ms}
        if name == "vg-summary":
            self.last_metrics.update(self.news.last_run)
        logger.info(
            f"{request.method} {request.path} -> {response.status_code}",
            route=name or "unknown",
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        return response

    def _dispatch(self, request: Request, name: str, logger: RequestLogger) -> Response:
        if name == "healthz":
            return json_response({"ok": True})

        route = self.routes.get(name)

        if request.method == "OPTIONS":
            response = Response(status_code=200)
            response.headers.update(cors_headers(allow_headers=TWITCH_ALLOW_HEADERS))
            return response

        try:
            if route is None:
                raise NotFound("Not found")
            if request.method not in route.methods:
                raise MethodNotAllowed("Method not allowed")
            response = route.handler(request)
        except ApiError as e:
            log = logger.warning if e.status_code < 500 else logger.error
            log(f"Request failed: {e.error}", status_code=e.status_code, detail=e.message)
            response = error_response(e)
        except Exception as e:
            logger.exception(f"Unhandled error in {name or request.path}: {e}", error=str(e))
            response = json_response({"error": "Internal server error"}, status_code=500)

        if route is not None:
            response.headers.update(cors_headers(route.allow_methods, route.allow_headers))
        else:
            response.headers.update(cors_headers())
        return response
