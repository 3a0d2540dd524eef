"""API key resolution from the environment or AWS Secrets Manager."""

import json

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .logging_config import create_request_logger

SECRET_KEYS = ("api_key", "key", "token", "openai_api_key", "google_calendar_api_key")


def get_secret_value(secret_name: str, aws_region: str, request_id: str | None = None) -> str:
    """Retrieve an API key from AWS Secrets Manager.

    Supports plain string secrets and JSON objects holding the key under one
    of ``SECRET_KEYS`` (or as their only string value). The value itself is
    never logged.

    Raises:
        ValueError: If the secret name or region is empty
        RuntimeError: If the secret cannot be retrieved or holds no usable value
    """
    secrets_logger = create_request_logger("secrets_manager", request_id)

    if not secret_name or not secret_name.strip():
        raise ValueError("Secret name cannot be empty")
    if not aws_region or not aws_region.strip():
        raise ValueError("AWS region cannot be empty")

    try:
        secrets_logger.info(f"Retrieving API key from Secrets Manager: {secret_name}")
        client = boto3.client("secretsmanager", region_name=aws_region)
        response = client.get_secret_value(SecretId=secret_name)
    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        secrets_logger.error(f"Secrets Manager error retrieving {secret_name}: {error_code}")
        raise RuntimeError(f"Failed to retrieve secret {secret_name}") from e
    except BotoCoreError as e:
        secrets_logger.error(f"Secrets Manager unavailable: {type(e).__name__}")
        raise RuntimeError(f"Failed to retrieve secret {secret_name}") from e

    secret_value = (response.get("SecretString") or "").strip()
    if not secret_value:
        raise RuntimeError(f"Secret {secret_name} contains empty value")

    try:
        secret_data = json.loads(secret_value)
    except json.JSONDecodeError:
        return secret_value

    if not isinstance(secret_data, dict):
        raise RuntimeError(f"JSON secret {secret_name} must be an object")

    for key in SECRET_KEYS:
        value = secret_data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    for value in secret_data.values():
        if isinstance(value, str) and value.strip():
            secrets_logger.info("Using first available value from JSON secret")
            return value.strip()

    raise RuntimeError(f"No valid value found in JSON secret {secret_name}")


def resolve_api_key(
    env_value: str, secret_name: str, aws_region: str, request_id: str | None = None
) -> str:
    """Prefer the environment value; fall back to Secrets Manager; else "".

    A failed secret lookup degrades to "" so the endpoint can report that it
    is not configured instead of failing.
    """
    if env_value:
        return env_value
    if not secret_name:
        return ""
    try:
        return get_secret_value(secret_name, aws_region, request_id)
    except (RuntimeError, ValueError) as e:
        create_request_logger("secrets_manager", request_id).warning(
            f"API key unavailable: {e}", secret_name=secret_name
        )
        return ""
