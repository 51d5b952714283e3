"""
Asynchronous S3 storage client.

Wraps boto3 with a small surface: list, upload, delete and download
against a selected bucket, returning public CDN URLs for stored files.
Works with AWS S3 and S3-compatible providers (Cloudflare R2, MinIO).
"""
import os
import copy
import asyncio
import logging
import tempfile
from typing import List, Optional, Union
from urllib.parse import quote, urlsplit, urlunsplit

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from .models import StorageConfig, StoredFile, guess_type


logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base storage error."""
    pass


class StorageConfigurationError(StorageError):
    """Client is not configured for the requested operation (no bucket selected)."""
    pass


class StorageAuthError(StorageError):
    """Storage authentication failed."""
    pass


class StorageNotFoundError(StorageError):
    """Storage resource not found (object, listing)."""
    pass


class StorageConflictError(StorageError):
    """Local destination already exists."""
    pass


class StorageOperationError(StorageError):
    """Provider or transport failure during an operation."""
    pass


FileSource = Union[str, "os.PathLike[str]", bytes, bytearray, memoryview]


class StorageClient:
    """
    S3 storage client bound to one bucket at a time.

    The selected bucket is the only mutable state. `set_bucket` changes it
    in place and returns the client for chaining; callers sharing one
    client between tasks should use `with_bucket` to get an independent
    client instead.
    """

    DEFAULT_CONTENT_TYPE = "application/octet-stream"

    # Download chunk size (1MB)
    CHUNK_SIZE = 1024 * 1024

    # head_object error codes meaning the key is absent
    MISSING_KEY_CODES = {'404', 'NoSuchKey', 'NotFound', '403'}

    # Characters left unescaped in key paths (matches WHATWG URL path encoding)
    URL_SAFE_CHARS = "/!$&'()*+,;=:@~"

    def __init__(self, config: StorageConfig):
        """
        Initialize storage client.

        Args:
            config: Storage configuration (region, credentials, CDN URL)
        """
        self.config = config
        self.bucket: Optional[str] = config.bucket
        self._base_url = urlsplit(config.cdn_url)
        self._init_client()

    def _init_client(self):
        """Initialize boto3 client."""
        options = {
            'region_name': self.config.region,
            'aws_access_key_id': self.config.credentials.access_key_id,
            'aws_secret_access_key': self.config.credentials.secret_access_key,
            'config': Config(signature_version='s3v4'),
        }
        if self.config.endpoint_url:
            options['endpoint_url'] = self.config.endpoint_url

        self.client = boto3.client('s3', **options)
        logger.info(f"Initialized S3 client (region: {self.config.region})")

    def set_bucket(self, bucket: str) -> "StorageClient":
        """Select the active bucket. Does not check that it exists."""
        self.bucket = bucket
        return self

    def with_bucket(self, bucket: str) -> "StorageClient":
        """Return a new client bound to `bucket`, sharing the S3 connection."""
        other = copy.copy(self)
        other.bucket = bucket
        return other

    def file_url(self, key: str) -> str:
        """
        Build the public URL for an object key.

        The CDN URL path is replaced by the key; its query string and
        fragment are dropped.
        """
        path = key if key.startswith("/") else f"/{key}"
        return urlunsplit((
            self._base_url.scheme,
            self._base_url.netloc,
            quote(path, safe=self.URL_SAFE_CHARS),
            "",
            "",
        ))

    def _to_file(self, key: str, size: int, last_modified) -> Optional[StoredFile]:
        """Build a StoredFile, skipping zero-byte directory markers."""
        if not key or not size:
            return None
        return StoredFile.build(key, size, last_modified, self.file_url(key))

    async def _check(self) -> str:
        """
        Verify credentials and bucket selection.

        Returns:
            The selected bucket name

        Raises:
            StorageAuthError: Credential check failed
            StorageConfigurationError: Bucket not set
        """
        await self._check_credentials()

        if self.bucket is None:
            raise StorageConfigurationError("Bucket is not set!")
        return self.bucket

    async def _check_credentials(self) -> None:
        """Issue a list-buckets call and require a 200 status."""
        try:
            response = await asyncio.to_thread(self.client.list_buckets)
        except Exception as e:
            raise StorageAuthError("Authentication failed!") from e

        status_code = response.get('ResponseMetadata', {}).get('HTTPStatusCode')
        if status_code != 200:
            logger.debug(f"Credential check returned status {status_code}")
            raise StorageAuthError("Authentication failed!")

    def _file_exists(self, bucket: str, key: str) -> bool:
        """
        Head the object.

        403 counts as absent: without s3:ListBucket, S3 answers a missing key
        with 403 instead of 404. Other client errors propagate.
        """
        try:
            self.client.head_object(Bucket=bucket, Key=key)
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in self.MISSING_KEY_CODES:
                return False
            raise

    async def list(self, path: Optional[str] = None) -> List[StoredFile]:
        """
        List files in the selected bucket.

        Only the first page of results is read (up to 1000 keys).

        Args:
            path: Optional key prefix

        Returns:
            StoredFile records in provider order, directory markers excluded

        Raises:
            StorageAuthError: Authentication failed
            StorageConfigurationError: Bucket not set
            StorageNotFoundError: No files under the prefix
            StorageOperationError: Listing failed
        """
        try:
            bucket = await self._check()

            params = {'Bucket': bucket}
            if path is not None:
                params['Prefix'] = path

            response = await asyncio.to_thread(self.client.list_objects_v2, **params)

            if response.get('IsTruncated'):
                logger.warning(
                    f"Listing of {bucket}/{path or ''} is truncated; "
                    "only the first page is returned"
                )

            files = []
            for item in response.get('Contents') or []:
                stored = self._to_file(item.get('Key'), item.get('Size', 0), item.get('LastModified'))
                if stored:
                    files.append(stored)

            if not files:
                raise StorageNotFoundError("No files found!")

            logger.info(f"Found {len(files)} files in {bucket}/{path or ''}")
            return files

        except StorageError:
            raise
        except Exception as e:
            logger.error(f"List failed: {e}")
            raise StorageOperationError(str(e) or "Failed to list files!") from e

    async def upload(self, file: FileSource, dest_file: str) -> StoredFile:
        """
        Upload a local file or an in-memory buffer.

        Args:
            file: Local file path, or bytes to send as-is
            dest_file: Destination object key

        Returns:
            StoredFile for the uploaded object

        Raises:
            StorageAuthError: Authentication failed
            StorageConfigurationError: Bucket not set
            StorageOperationError: Upload failed

        Example:
            stored = await client.upload(b"EXAMPLE", "assets/example.txt")
        """
        try:
            bucket = await self._check()
            is_buffer = isinstance(file, (bytes, bytearray, memoryview))

            def _upload() -> StoredFile:
                if is_buffer:
                    content_type = guess_type(dest_file)
                    body = bytes(file)
                    size = len(body)
                    self.client.put_object(
                        Bucket=bucket,
                        Key=dest_file,
                        Body=body,
                        ContentType=content_type or self.DEFAULT_CONTENT_TYPE,
                    )
                else:
                    file_path = os.fspath(file)
                    content_type = guess_type(file_path) or guess_type(dest_file)
                    size = os.path.getsize(file_path)
                    with open(file_path, 'rb') as body:
                        self.client.put_object(
                            Bucket=bucket,
                            Key=dest_file,
                            Body=body,
                            ContentType=content_type or self.DEFAULT_CONTENT_TYPE,
                        )

                head = self.client.head_object(Bucket=bucket, Key=dest_file)
                return StoredFile.build(
                    dest_file, size, head['LastModified'], self.file_url(dest_file)
                )

            stored = await asyncio.to_thread(_upload)
            logger.info(f"Uploaded {bucket}/{dest_file} ({stored.byte} bytes)")
            return stored

        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Upload of {dest_file} failed: {e}")
            raise StorageOperationError(str(e) or "Failed to upload file!") from e

    async def delete(self, file: str) -> None:
        """
        Delete an object from the selected bucket.

        Args:
            file: Object key

        Raises:
            StorageAuthError: Authentication failed
            StorageConfigurationError: Bucket not set
            StorageNotFoundError: Object does not exist
            StorageOperationError: Delete failed
        """
        try:
            bucket = await self._check()

            def _delete() -> None:
                if not self._file_exists(bucket, file):
                    raise StorageNotFoundError("File does not exist!")
                self.client.delete_object(Bucket=bucket, Key=file)

            await asyncio.to_thread(_delete)
            logger.info(f"Deleted {bucket}/{file}")

        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Delete of {file} failed: {e}")
            raise StorageOperationError(str(e) or "Failed to delete file!") from e

    async def download(self, file: str, out_file: Union[str, "os.PathLike[str]"]) -> None:
        """
        Download an object to a local path.

        The local path is checked before any request is made. The body is
        streamed to a temporary file beside `out_file` and moved into place
        once complete, so a failed transfer never leaves `out_file` behind.

        Args:
            file: Object key
            out_file: Local destination path (parent directories are created)

        Raises:
            StorageConflictError: `out_file` already exists
            StorageAuthError: Authentication failed
            StorageConfigurationError: Bucket not set
            StorageNotFoundError: Object does not exist
            StorageOperationError: Download failed
        """
        try:
            out_path = os.fspath(out_file)
            if os.path.exists(out_path):
                raise StorageConflictError("File already exists!")

            bucket = await self._check()

            def _download() -> int:
                out_dir = os.path.dirname(os.path.abspath(out_path))
                os.makedirs(out_dir, exist_ok=True)

                if not self._file_exists(bucket, file):
                    raise StorageNotFoundError("File does not exist!")

                response = self.client.get_object(Bucket=bucket, Key=file)
                body = response.get('Body')
                if body is None:
                    raise StorageOperationError("Response body is empty!")

                return self._stream_to_file(body, out_dir, out_path)

            written = await asyncio.to_thread(_download)
            logger.info(f"Downloaded {bucket}/{file} to {out_path} ({written} bytes)")

        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Download of {file} failed: {e}")
            raise StorageOperationError(str(e) or "Failed to download file!") from e

    def _stream_to_file(self, body, out_dir: str, out_path: str) -> int:
        """Copy a streaming body to `out_path` via a temporary file."""
        tmp = None
        written = 0
        try:
            tmp = tempfile.NamedTemporaryFile(
                dir=out_dir, prefix=".download-", suffix=".part", delete=False
            )
            with tmp:
                for chunk in body.iter_chunks(self.CHUNK_SIZE):
                    tmp.write(chunk)
                    written += len(chunk)
            os.replace(tmp.name, out_path)
        except BaseException:
            if tmp is not None and os.path.exists(tmp.name):
                os.remove(tmp.name)
            raise
        finally:
            body.close()
        return written
