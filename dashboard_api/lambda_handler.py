"""AWS Lambda entry point for the dashboard API (API Gateway proxy integration)."""

import os
from typing import Any

from .config import Config
from .logging_config import create_request_logger, setup_structured_logging
from .metrics import send_cloudwatch_metrics
from .responses import Request
from .router import Router

setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))

# Reused across invocations while the container stays warm; this is what
# keeps the news and command caches alive between requests.
_router: Router | None = None


def get_router() -> Router:
    global _router
    if _router is None:
        _router = Router(Config())
    return _router


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Serve one API Gateway request.

    Args:
        event: API Gateway REST (v1) or HTTP API (v2) proxy event
        context: Lambda context object

    Returns:
        API Gateway proxy response dictionary
    """
    request = Request.from_event(event)
    if getattr(context, "aws_request_id", None):
        request.request_id = context.aws_request_id

    try:
        router = get_router()
    except Exception as e:
        create_request_logger("main", request.request_id).exception(
            f"Failed to initialize router: {e}", error=str(e)
        )
        return {
            "statusCode": 500,
            "headers": {"Content-Type": "application/json", "Access-Control-Allow-Origin": "*"},
            "body": '{"error": "Internal server error"}',
        }

    response = router.handle(request)

    if router.config.metrics_enabled:
        send_cloudwatch_metrics(
            router.route_name(request.path) or "unknown",
            router.last_metrics,
            router.config.aws_region,
            request.request_id,
        )

    return response.to_lambda()
