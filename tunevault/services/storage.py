"""
Remote storage clients.

The ingestion pipeline and the streaming proxy only see ``RemoteStorageClient``:
upload a local file under a key, make it publicly readable, and later open a
readable byte stream for the returned handle. Providers are S3-compatible
object stores (AWS S3, Cloudflare R2, MinIO, ...) through boto3, and a local
directory for self-hosting and tests.
"""

import logging
import os
import re
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import Settings
from ..core.errors import StorageError, StorageUnavailable

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024

_RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")


class StorageProvider(str, Enum):
    """Supported remote storage providers."""
    AWS_S3 = "s3"
    CLOUDFLARE_R2 = "r2"
    LOCAL = "local"


@dataclass
class StoredObject:
    """A readable remote object, possibly restricted to a byte range."""
    body: Iterator[bytes]
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    content_range: Optional[str] = None

    @property
    def is_partial(self) -> bool:
        return self.content_range is not None


class RemoteStorageClient(ABC):
    """Interface every remote storage provider implements."""

    @abstractmethod
    def upload_file(self, local_path: str, key: str, content_type: Optional[str] = None) -> str:
        """
        Upload a local file to storage.

        Args:
            local_path: Path to the local file
            key: Object name to store it under
            content_type: MIME type recorded with the object

        Returns:
            Handle that ``open_stream`` accepts later

        Raises:
            StorageError: If the upload fails
        """

    @abstractmethod
    def make_public(self, handle: str) -> None:
        """Mark an uploaded object as publicly readable."""

    @abstractmethod
    def open_stream(self, handle: str, byte_range: Optional[str] = None) -> StoredObject:
        """
        Open a readable stream for a stored object.

        Args:
            handle: Handle returned by ``upload_file``
            byte_range: Optional HTTP Range header value (``bytes=start-end``)

        Raises:
            StorageError: If the object cannot be read
        """

    @abstractmethod
    def delete(self, handle: str) -> None:
        """Remove a stored object."""


class S3StorageClient(RemoteStorageClient):
    """S3-compatible storage using a boto3 client."""

    def __init__(self, client, bucket: str, public_read: bool = True,
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.s3_client = client
        self.bucket_name = bucket
        self.public_read = public_read
        self.chunk_size = chunk_size

    def upload_file(self, local_path: str, key: str, content_type: Optional[str] = None) -> str:
        extra_args = {}
        if content_type:
            extra_args['ContentType'] = content_type
        try:
            self.s3_client.upload_file(local_path, self.bucket_name, key, ExtraArgs=extra_args)
        except (ClientError, BotoCoreError, S3UploadFailedError, OSError) as e:
            raise StorageError(f"Upload of {key} failed: {e}") from e
        return key

    def make_public(self, handle: str) -> None:
        # R2 and some other S3-compatible stores reject object ACLs; public access
        # is then configured on the bucket and STORAGE_PUBLIC_READ is turned off.
        if not self.public_read:
            return
        try:
            self.s3_client.put_object_acl(Bucket=self.bucket_name, Key=handle, ACL='public-read')
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Could not make {handle} public: {e}") from e

    def _get_object(self, handle: str, byte_range: Optional[str]) -> dict:
        if not byte_range:
            return self.s3_client.get_object(Bucket=self.bucket_name, Key=handle)
        try:
            return self.s3_client.get_object(Bucket=self.bucket_name, Key=handle, Range=byte_range)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') != 'InvalidRange':
                raise
        # Unsatisfiable range: serve the whole object, as the local provider does
        logger.info(f"Ignoring unsatisfiable range {byte_range} for {handle}")
        return self.s3_client.get_object(Bucket=self.bucket_name, Key=handle)

    def open_stream(self, handle: str, byte_range: Optional[str] = None) -> StoredObject:
        try:
            response = self._get_object(handle, byte_range)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Could not open {handle}: {e}") from e

        return StoredObject(
            body=response['Body'].iter_chunks(chunk_size=self.chunk_size),
            content_type=response.get('ContentType'),
            content_length=response.get('ContentLength'),
            content_range=response.get('ContentRange'),
        )

    def delete(self, handle: str) -> None:
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=handle)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Delete of {handle} failed: {e}") from e


def parse_byte_range(header: Optional[str], size: int) -> Optional[tuple[int, int]]:
    """Resolve a single ``bytes=start-end`` range against an object size.

    Returns an inclusive ``(start, end)`` pair, or None when the header is
    absent, malformed or unsatisfiable (the whole object is served then).
    """
    if not header or size <= 0:
        return None
    match = _RANGE_RE.match(header.strip())
    if not match:
        return None
    start_s, end_s = match.groups()
    if not start_s and not end_s:
        return None
    if not start_s:
        # Suffix range: last N bytes
        length = int(end_s)
        if length == 0:
            return None
        return max(size - length, 0), size - 1
    start = int(start_s)
    end = int(end_s) if end_s else size - 1
    if start >= size or end < start:
        return None
    return start, min(end, size - 1)


class LocalStorageClient(RemoteStorageClient):
    """
    Storage provider that uses the local filesystem.
    Useful for self-hosting on a NAS or local drive.
    """

    def __init__(self, base_path: str | os.PathLike, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.base_path = Path(base_path).expanduser().absolute()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.chunk_size = chunk_size

    def _get_path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def upload_file(self, local_path: str, key: str, content_type: Optional[str] = None) -> str:
        try:
            dest_path = self._get_path(key)
            dest_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(local_path, dest_path)
        except OSError as e:
            raise StorageError(f"Local upload of {key} failed: {e}") from e
        return key

    def make_public(self, handle: str) -> None:
        pass

    def _iter_file(self, path: Path, start: int, length: int) -> Iterator[bytes]:
        with open(path, "rb") as f:
            f.seek(start)
            remaining = length
            while remaining > 0:
                chunk = f.read(min(self.chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk

    def open_stream(self, handle: str, byte_range: Optional[str] = None) -> StoredObject:
        path = self._get_path(handle)
        if not path.is_file():
            raise StorageError(f"Object not found: {handle}")

        size = path.stat().st_size
        resolved = parse_byte_range(byte_range, size)
        if resolved is None:
            return StoredObject(body=self._iter_file(path, 0, size), content_length=size)

        start, end = resolved
        length = end - start + 1
        return StoredObject(
            body=self._iter_file(path, start, length),
            content_length=length,
            content_range=f"bytes {start}-{end}/{size}",
        )

    def delete(self, handle: str) -> None:
        try:
            path = self._get_path(handle)
            if path.exists():
                os.remove(path)
        except OSError as e:
            raise StorageError(f"Local delete of {handle} failed: {e}") from e


def get_storage_client(config: Settings) -> RemoteStorageClient:
    """
    Create a storage client from settings.

    Raises:
        StorageUnavailable: If the provider is unknown, misconfigured, or the
            client cannot be constructed
    """
    try:
        provider = StorageProvider(config.STORAGE_PROVIDER)
    except ValueError:
        raise StorageUnavailable(f"Unknown storage provider: {config.STORAGE_PROVIDER}")

    if provider == StorageProvider.LOCAL:
        try:
            return LocalStorageClient(config.LOCAL_STORAGE_PATH, chunk_size=config.STREAM_CHUNK_SIZE)
        except OSError as e:
            logger.error(f"Failed to initialize local storage: {str(e)}")
            raise StorageUnavailable() from e

    missing = [name for name, value in [
        ("STORAGE_BUCKET", config.STORAGE_BUCKET),
        ("STORAGE_ACCESS_KEY_ID", config.STORAGE_ACCESS_KEY_ID),
        ("STORAGE_SECRET_ACCESS_KEY", config.STORAGE_SECRET_ACCESS_KEY),
    ] if not value]
    if provider == StorageProvider.CLOUDFLARE_R2 and not config.STORAGE_ENDPOINT_URL:
        missing.append("R2_ACCOUNT_ID")
    if missing:
        logger.error(f"Remote storage is not configured, missing: {', '.join(missing)}")
        raise StorageUnavailable()

    try:
        client = boto3.client(
            's3',
            endpoint_url=config.STORAGE_ENDPOINT_URL,
            aws_access_key_id=config.STORAGE_ACCESS_KEY_ID,
            aws_secret_access_key=config.STORAGE_SECRET_ACCESS_KEY,
            # R2 uses the 'auto' region
            region_name=config.STORAGE_REGION or ('auto' if provider == StorageProvider.CLOUDFLARE_R2 else None),
            config=BotoConfig(connect_timeout=config.HTTP_TIMEOUT, retries={"mode": "standard", "total_max_attempts": 1}),
        )
    except (BotoCoreError, ValueError) as e:
        logger.error(f"Failed to initialize storage client: {str(e)}")
        raise StorageUnavailable() from e

    return S3StorageClient(
        client,
        config.STORAGE_BUCKET,
        public_read=config.STORAGE_PUBLIC_READ,
        chunk_size=config.STREAM_CHUNK_SIZE,
    )
