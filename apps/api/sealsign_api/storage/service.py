"""Object storage for original and sealed documents.

Uses MinIO (S3-compatible) for durable storage. Keys are generated by the
store (``{prefix}/{uuid}{suffix}``) so callers never build paths from user
input. Transient failures are retried here, at the storage boundary, and
nowhere else.
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import timedelta
from io import BytesIO
from typing import Callable, Optional, TypeVar

import urllib3
from minio import Minio
from minio.error import S3Error, ServerError
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from sealsign_api.errors import BlobNotFoundError, BlobStoreError, BlobStoreTimeout
from sealsign_api.settings import get_settings
from sealsign_api.utils.metrics import blob_store_retries

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BlobStore(ABC):
    """Content storage keyed by opaque keys."""

    @abstractmethod
    def put(
        self,
        data: bytes,
        prefix: str,
        suffix: str = "",
        content_type: str = "application/octet-stream",
    ) -> str:
        """Store bytes under a new key and return the key."""

    @abstractmethod
    def get(self, key: str) -> bytes:
        """Return stored bytes; raise BlobNotFoundError if absent."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove an object. Deleting a missing key is not an error."""

    @abstractmethod
    def presign(self, key: str, ttl_seconds: int) -> str:
        """Time-boxed read-only URL for an object."""

    def ping(self) -> bool:
        """Check backend reachability."""
        return True

    @staticmethod
    def new_key(prefix: str, suffix: str = "") -> str:
        return f"{prefix.strip('/')}/{uuid.uuid4()}{suffix}"


def _is_timeout(exc: Exception) -> bool:
    if isinstance(exc, urllib3.exceptions.TimeoutError):
        return True
    reason = getattr(exc, "reason", None)
    return isinstance(reason, urllib3.exceptions.TimeoutError)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, S3Error):
        status = getattr(exc.response, "status", None)
        return status is not None and status >= 500
    return isinstance(exc, (ServerError, urllib3.exceptions.HTTPError))


class MinioBlobStore(BlobStore):
    """MinIO-backed blob store with bounded retries and timeouts."""

    def __init__(self, client: Optional[Minio] = None, bucket: Optional[str] = None, sleep=time.sleep):
        """Initialize storage service with MinIO client."""
        settings = get_settings()
        self.bucket = bucket or settings.minio_bucket
        self.max_retries = settings.blob_max_retries
        self.backoff_seconds = settings.blob_retry_backoff_seconds
        self._sleep = sleep
        if client is None:
            # Retries are handled in _call, so urllib3 must not retry on its own
            http_client = urllib3.PoolManager(
                timeout=urllib3.Timeout(
                    connect=settings.blob_connect_timeout_seconds,
                    read=settings.blob_read_timeout_seconds,
                ),
                retries=urllib3.Retry(total=0),
            )
            client = Minio(
                endpoint=settings.minio_endpoint,
                access_key=settings.minio_access_key,
                secret_key=settings.minio_secret_key,
                secure=settings.minio_use_ssl,
                region=settings.minio_region,
                http_client=http_client,
            )
        self.client = client

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist."""
        if not self._call("bucket_exists", lambda: self.client.bucket_exists(bucket_name=self.bucket)):
            self._call("make_bucket", lambda: self.client.make_bucket(bucket_name=self.bucket))
            logger.info(f"Created bucket: {self.bucket}")

    def _call(self, operation: str, fn: Callable[[], T], key: Optional[str] = None) -> T:
        """Run a storage call, retrying transient failures with exponential backoff."""

        def _log_retry(retry_state: RetryCallState) -> None:
            blob_store_retries.labels(operation=operation).inc()
            logger.warning(
                f"Retrying blob store {operation} in {retry_state.next_action.sleep:.2f}s "
                f"(attempt {retry_state.attempt_number}/{self.max_retries})",
                extra={"operation": operation, "key": key},
            )

        retrying = Retrying(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.backoff_seconds),
            sleep=self._sleep,
            before_sleep=_log_retry,
            reraise=True,
        )
        try:
            return retrying(fn)
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                raise BlobNotFoundError(f"Object not found: {key}") from e
            error: Exception = e
        except (ServerError, urllib3.exceptions.HTTPError) as e:
            error = e

        logger.error(
            f"Blob store {operation} failed for {key}: {error}",
            extra={"operation": operation, "key": key, "attempts": retrying.statistics.get("attempt_number")},
        )
        if _is_timeout(error):
            raise BlobStoreTimeout(f"Blob store {operation} timed out") from error
        raise BlobStoreError(f"Blob store {operation} failed: {error}") from error

    def put(
        self,
        data: bytes,
        prefix: str,
        suffix: str = "",
        content_type: str = "application/octet-stream",
    ) -> str:
        """Upload object to storage under a fresh key."""
        key = self.new_key(prefix, suffix)
        self._call(
            "put",
            lambda: self.client.put_object(
                bucket_name=self.bucket,
                object_name=key,
                data=BytesIO(data),
                length=len(data),
                content_type=content_type,
            ),
            key,
        )
        logger.debug(f"Uploaded object: {key} ({len(data)} bytes)")
        return key

    def get(self, key: str) -> bytes:
        """Retrieve object from storage."""

        def _read() -> bytes:
            response = self.client.get_object(bucket_name=self.bucket, object_name=key)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()

        return self._call("get", _read, key)

    def delete(self, key: str) -> None:
        self._call("delete", lambda: self.client.remove_object(bucket_name=self.bucket, object_name=key), key)

    def presign(self, key: str, ttl_seconds: int) -> str:
        """Generate presigned URL for object access."""
        return self._call(
            "presign",
            lambda: self.client.presigned_get_object(
                bucket_name=self.bucket,
                object_name=key,
                expires=timedelta(seconds=ttl_seconds),
            ),
            key,
        )

    def ping(self) -> bool:
        try:
            return self.client.bucket_exists(bucket_name=self.bucket)
        except Exception as e:
            logger.error(f"Object storage check failed: {e}")
            return False


class InMemoryBlobStore(BlobStore):
    """Process-local store for development and tests."""

    def __init__(self, base_url: str = "memory://blobs"):
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.base_url = base_url.rstrip("/")

    def put(
        self,
        data: bytes,
        prefix: str,
        suffix: str = "",
        content_type: str = "application/octet-stream",
    ) -> str:
        key = self.new_key(prefix, suffix)
        self.objects[key] = bytes(data)
        self.content_types[key] = content_type
        return key

    def get(self, key: str) -> bytes:
        try:
            return self.objects[key]
        except KeyError:
            raise BlobNotFoundError(f"Object not found: {key}") from None

    def delete(self, key: str) -> None:
        self.objects.pop(key, None)
        self.content_types.pop(key, None)

    def presign(self, key: str, ttl_seconds: int) -> str:
        if key not in self.objects:
            raise BlobNotFoundError(f"Object not found: {key}")
        return f"{self.base_url}/{key}?expires_in={ttl_seconds}"


# Global instance
_blob_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """Get or create the process-wide blob store."""
    global _blob_store
    if _blob_store is None:
        settings = get_settings()
        if settings.environment.lower() == "test":
            _blob_store = InMemoryBlobStore()
        else:
            store = MinioBlobStore()
            try:
                store.ensure_bucket()
            except BlobStoreError as e:
                logger.error(f"Failed to ensure bucket {store.bucket}: {e}")
            _blob_store = store
    return _blob_store
