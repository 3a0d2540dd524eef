"""Key/value cache stores backing the TTL caches."""

import json
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

import boto3
from botocore.exceptions import ClientError

from .logging_config import create_request_logger

Clock = Callable[[], float]


@dataclass
class CacheRecord:
    """A cached value and the epoch time it was stored at."""

    value: Any
    stored_at: float

    def age(self, now: float) -> float:
        return now - self.stored_at


class CacheStore(Protocol):
    """Minimal interface shared by the cache backends."""

    def get(self, key: str) -> CacheRecord | None: ...

    def put(self, key: str, value: Any, stored_at: float) -> CacheRecord: ...


class MemoryStore:
    """Process-local store. Contents are lost when the process exits."""

    def __init__(self):
        self._records: dict[str, CacheRecord] = {}

    def get(self, key: str) -> CacheRecord | None:
        return self._records.get(key)

    def put(self, key: str, value: Any, stored_at: float) -> CacheRecord:
        record = CacheRecord(value=value, stored_at=stored_at)
        self._records[key] = record
        return record

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: str) -> bool:
        return key in self._records


class DynamoDBStore:
    """Store shared by every instance of the function, backed by DynamoDB.

    Records expire through the table's TTL attribute after ``expire_after``.
    Read errors are treated as a cache miss; write errors are logged and
    swallowed, since every value can be recomputed from upstream.
    """

    def __init__(
        self,
        table_name: str,
        aws_region: str = "us-east-1",
        expire_after: timedelta = timedelta(days=7),
        request_id: str | None = None,
    ):
        """Initialize the store with DynamoDB configuration.

        Args:
            table_name: Name of the DynamoDB table (partition key ``cache_key``)
            aws_region: AWS region for the DynamoDB client
            expire_after: Lifetime after which DynamoDB may delete a record
            request_id: Request ID for logging context
        """
        self.table_name = table_name
        self.expire_after = expire_after
        self.logger = create_request_logger("cache", request_id)
        self.dynamodb = boto3.resource("dynamodb", region_name=aws_region)
        self.table = self.dynamodb.Table(table_name)

        self.logger.info(
            "DynamoDB cache store initialized", table_name=table_name, aws_region=aws_region
        )

    def get(self, key: str) -> CacheRecord | None:
        try:
            response = self.table.get_item(Key={"cache_key": key})
        except ClientError as e:
            self.logger.error(f"Error reading cache key {key}: {e}", cache_key=key, error=str(e))
            return None

        item = response.get("Item")
        if not item:
            return None
        return CacheRecord(value=json.loads(item["value"]), stored_at=float(item["stored_at"]))

    def put(self, key: str, value: Any, stored_at: float) -> CacheRecord:
        record = CacheRecord(value=value, stored_at=stored_at)
        ttl_timestamp = int((datetime.now() + self.expire_after).timestamp())
        try:
            # Numbers go in as strings; the resource API rejects Python floats
            self.table.put_item(
                Item={
                    "cache_key": key,
                    "value": json.dumps(value, ensure_ascii=False),
                    "stored_at": str(stored_at),
                    "ttl": ttl_timestamp,
                }
            )
        except ClientError as e:
            self.logger.error(f"Error writing cache key {key}: {e}", cache_key=key, error=str(e))
        return record


def get_or_compute(
    store: CacheStore,
    key: str,
    ttl_seconds: float,
    compute: Callable[[], Any],
    clock: Clock = time.time,
) -> tuple[Any, bool]:
    """Return the cached value for ``key`` or compute and store a new one.

    Returns:
        Tuple of (value, hit) where ``hit`` tells whether the cache answered
    """
    now = clock()
    record = store.get(key)
    if record is not None and record.age(now) < ttl_seconds:
        return record.value, True

    value = compute()
    store.put(key, value, stored_at=now)
    return value, False


def create_store(table_name: str = "", aws_region: str = "us-east-1") -> CacheStore:
    """Use DynamoDB when a table is configured, memory otherwise."""
    if table_name:
        return DynamoDBStore(table_name, aws_region)
    return MemoryStore()
