"""Optional CloudWatch metrics for served requests."""

from typing import Any

import boto3

from .logging_config import create_request_logger

NAMESPACE = "Dashboard-API"


def build_metric_data(route: str, metrics: dict[str, Any]) -> list[dict[str, Any]]:
    """Translate one request's metrics into CloudWatch ``MetricData`` entries."""
    dimensions = [{"Name": "Route", "Value": route}]
    status = metrics.get("status_code", 200)

    metric_data = [
        {"MetricName": "Requests", "Value": 1, "Unit": "Count", "Dimensions": dimensions},
        {
            "MetricName": "Errors",
            "Value": 1 if status >= 500 else 0,
            "Unit": "Count",
            "Dimensions": dimensions,
        },
        {
            "MetricName": "Latency",
            "Value": metrics.get("duration_ms", 0),
            "Unit": "Milliseconds",
            "Dimensions": dimensions,
        },
    ]

    # News runs report what the summary cache did
    if "cache_hit" in metrics:
        metric_data.append(
            {
                "MetricName": "CacheHit",
                "Value": 1 if metrics["cache_hit"] else 0,
                "Unit": "Count",
                "Dimensions": dimensions,
            }
        )
    for key, name in (("items_found", "ItemsFound"), ("items_summarized", "ItemsSummarized")):
        if key in metrics:
            metric_data.append(
                {"MetricName": name, "Value": metrics[key], "Unit": "Count", "Dimensions": dimensions}
            )
    return metric_data


def send_cloudwatch_metrics(
    route: str, metrics: dict[str, Any], aws_region: str, request_id: str
) -> None:
    """Send request metrics to CloudWatch. Failures are logged, never raised."""
    metrics_logger = create_request_logger("cloudwatch_metrics", request_id)

    try:
        metric_data = build_metric_data(route, metrics)
        cloudwatch = boto3.client("cloudwatch", region_name=aws_region)

        # CloudWatch accepts at most 20 metrics per call
        batch_size = 20
        for i in range(0, len(metric_data), batch_size):
            cloudwatch.put_metric_data(
                Namespace=NAMESPACE, MetricData=metric_data[i : i + batch_size]
            )

        metrics_logger.debug(
            "Sent metrics to CloudWatch", metrics_sent=len(metric_data), route=route
        )
    except Exception as e:
        metrics_logger.error(f"Failed to send CloudWatch metrics: {e}", error=str(e))
