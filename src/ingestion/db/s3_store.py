"""
S3 backend for the sharded schedule store.

Each schedule is one JSON object whose key mirrors the document path:

    {prefix}/routes/{route}/{date}/flights/{id}.json

S3 has no multi-object transaction, so a batch is a sequence of puts; a
failed put aborts the rest of its batch and leaves earlier puts in place.
"""

import json
from typing import Any

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from src.utils import logger
from src.utils.exceptions import (
    ConfigurationError,
    StoreReadError,
    StoreWriteError,
)
from src.ingestion.config import settings
from src.ingestion.db.models import FlightSchedule, ROUTES_ROOT, schedule_path
from src.ingestion.db.store import ShardedStore


_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class S3ShardedStore(ShardedStore):
    """
    Sharded store on S3 objects.

    Handles:
    - Mapping composite keys to object keys
    - Existence checks via HEAD requests
    - Shard reads via prefix listing
    """

    def __init__(
        self,
        bucket_name: str | None = None,
        prefix: str | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        client: Any | None = None,
        batch_size: int | None = None,
        month_read_workers: int | None = None,
    ):
        """
        Initialize the S3 store.

        Args:
            bucket_name: S3 bucket name
            prefix: Key prefix for schedule objects
            region: AWS region
            endpoint_url: Custom endpoint URL (for LocalStack/MinIO)
            client: Pre-built boto3 S3 client
        """
        super().__init__(batch_size=batch_size, month_read_workers=month_read_workers)
        self.bucket_name = bucket_name or settings.s3.bucket_name
        self.prefix = (prefix if prefix is not None else settings.s3.prefix).strip("/")
        self.region = region or settings.s3.region
        self.endpoint_url = endpoint_url or settings.s3.endpoint_url

        self._client = client or self._create_client()
        logger.info(f"S3 schedule store initialized for bucket: {self.bucket_name}")

    def _create_client(self):
        """Create boto3 S3 client."""
        try:
            client_kwargs = {
                "service_name": "s3",
                "region_name": self.region,
            }

            if self.endpoint_url:
                client_kwargs["endpoint_url"] = self.endpoint_url
                logger.debug(f"Using custom S3 endpoint: {self.endpoint_url}")

            if settings.s3.access_key_id and settings.s3.secret_access_key:
                client_kwargs["aws_access_key_id"] = settings.s3.access_key_id
                client_kwargs["aws_secret_access_key"] = settings.s3.secret_access_key

            return boto3.client(**client_kwargs)

        except NoCredentialsError as e:
            raise ConfigurationError(f"AWS credentials not found: {e}")

    def _key(self, route: str, date: str, schedule_id: str) -> str:
        path = f"{schedule_path(route, date, schedule_id)}.json"
        return f"{self.prefix}/{path}" if self.prefix else path

    def _shard_prefix(self, route: str, date: str) -> str:
        path = f"{ROUTES_ROOT}/{route}/{date}/flights/"
        return f"{self.prefix}/{path}" if self.prefix else path

    def _routes_prefix(self) -> str:
        return f"{self.prefix}/{ROUTES_ROOT}/" if self.prefix else f"{ROUTES_ROOT}/"

    def _exists(self, route: str, date: str, schedule_id: str) -> bool:
        key = self._key(route, date, schedule_id)
        try:
            self._client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return False
            raise StoreReadError(f"Failed to check s3://{self.bucket_name}/{key}: {e}")

    def _commit(self, records: list[FlightSchedule]) -> int:
        written = 0
        for record in records:
            key = self._key(record.route, record.departure_date, record.id)
            try:
                self._client.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=json.dumps(record.to_document()).encode("utf-8"),
                    ContentType="application/json",
                )
            except ClientError as e:
                raise StoreWriteError(
                    f"Failed to write s3://{self.bucket_name}/{key} "
                    f"({written}/{len(records)} of batch written): {e}",
                    path=record.path,
                    batch_size=len(records),
                )
            written += 1
        return written

    def _read_shard(self, route: str, date: str) -> list[FlightSchedule]:
        flights = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=self._shard_prefix(route, date)):
                for obj in page.get("Contents", []):
                    body = self._client.get_object(Bucket=self.bucket_name, Key=obj["Key"])["Body"].read()
                    flights.append(FlightSchedule.from_document(json.loads(body)))
        except ClientError as e:
            raise StoreReadError(f"Failed to read {route}/{date} from S3: {e}")
        return flights

    def list_routes(self) -> list[str]:
        prefix = self._routes_prefix()
        routes = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix, Delimiter="/"):
                for common in page.get("CommonPrefixes", []):
                    routes.append(common["Prefix"][len(prefix):].rstrip("/"))
        except ClientError as e:
            raise StoreReadError(f"Failed to list routes from S3: {e}")
        return sorted(routes, key=lambda r: tuple(r.split("-", 1)))


__all__ = ["S3ShardedStore"]
