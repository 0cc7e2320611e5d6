"""S3-compatible object store (AWS S3, Cloudflare R2, MinIO, GCS interop).

The retention timestamp is kept in the object's user metadata under
``custom-time``. Updating it copies the object onto itself, which leaves
the content untouched but also resets ``LastModified``, so bucket lifecycle
rules keyed on object age see the entry as fresh.
"""

import io
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Dict, Optional

import boto3
import botocore.session
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from ..logging_config import get_logger
from .base import (
    Blob,
    BlobMetadata,
    BlobNotFoundError,
    BlobStore,
    BlobStoreError,
    BlobTransportError,
    CredentialsError,
)

logger = get_logger(__name__)

CUSTOM_TIME_KEY = "custom-time"
NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound", "NoSuchBucket")


def format_custom_time(timestamp: datetime) -> str:
    """Render a retention timestamp as ISO-8601 UTC."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def parse_custom_time(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored retention timestamp; unparseable values yield None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        logger.debug(f"Ignoring malformed {CUSTOM_TIME_KEY} value: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def translate_error(error: Exception, name: Optional[str] = None) -> BlobStoreError:
    """Convert a boto3/botocore exception into a BlobStoreError.

    Args:
        error: Exception raised by boto3
        name: Object name, when the call addressed a single object

    Returns:
        BlobNotFoundError for a missing object, BlobTransportError when no
        response came back from the store, BlobStoreError otherwise
    """
    if isinstance(error, S3UploadFailedError) and isinstance(error.__context__, ClientError):
        return translate_error(error.__context__, name)

    if isinstance(error, ClientError):
        details = error.response.get("Error", {})
        code = str(details.get("Code", "")) or None
        status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if status is None and code and code.isdigit():
            status = int(code)
        if name is not None and code in NOT_FOUND_CODES and code != "NoSuchBucket":
            return BlobNotFoundError(name, str(error))
        return BlobStoreError(str(error), status_code=status, error_code=code)

    return BlobTransportError(str(error))


def load_session(
    credentials: str = "",
    profile: str = "",
) -> boto3.session.Session:
    """Build a boto3 session from a credential reference.

    Args:
        credentials: Empty to use the default credential chain, otherwise
            the path to an AWS shared-credentials (INI) file
        profile: Profile to select, empty for the default profile

    Returns:
        Configured boto3 session

    Raises:
        CredentialsError: If the credential file is missing, unreadable or
            holds no usable credentials
    """
    if not credentials:
        try:
            return boto3.session.Session(profile_name=profile or None)
        except BotoCoreError as e:
            raise CredentialsError(f"Unable to load credentials: {e}") from e

    path = Path(credentials).expanduser()
    try:
        with open(path, "rb"):
            pass
    except OSError as e:
        raise CredentialsError(f"Unable to load credentials from {credentials}.") from e

    core_session = botocore.session.Session()
    core_session.set_config_variable("credentials_file", str(path))
    if profile:
        core_session.set_config_variable("profile", profile)

    try:
        session = boto3.session.Session(botocore_session=core_session)
        resolved = session.get_credentials()
    except BotoCoreError as e:
        raise CredentialsError(f"Unable to load credentials from {credentials}.") from e

    if resolved is None:
        raise CredentialsError(f"No credentials found in {credentials}.")
    return session


class _ResponseStream(io.RawIOBase):
    """Readable wrapper over a botocore StreamingBody.

    Transport failures while streaming surface as BlobStoreError.
    """

    def __init__(self, body, name: str):
        super().__init__()
        self._body = body
        self._name = name

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        try:
            data = self._body.read(len(buffer))
        except (ClientError, BotoCoreError, Urllib3HTTPError) as e:
            raise translate_error(e, self._name) from e
        n = len(data)
        buffer[:n] = data
        return n

    def close(self) -> None:
        if not self.closed:
            self._body.close()
        super().close()


class S3BlobStore(BlobStore):
    """BlobStore backed by an S3-compatible bucket.

    Attributes:
        bucket: Bucket name
    """

    def __init__(self, bucket: str, client):
        """Initialize the store.

        Args:
            bucket: Bucket name
            client: boto3 S3 client
        """
        self.bucket = bucket
        self._client = client

    @classmethod
    def create(
        cls,
        bucket: str,
        credentials: str = "",
        profile: str = "",
        endpoint_url: str = "",
        region: str = "",
        connect_timeout: int = 10,
        read_timeout: int = 60,
    ) -> "S3BlobStore":
        """Resolve credentials and build a client bound to *bucket*.

        Raises:
            CredentialsError: If credentials cannot be loaded
            BlobStoreError: If the client cannot be constructed
        """
        session = load_session(credentials, profile)
        try:
            client = session.client(
                "s3",
                endpoint_url=endpoint_url or None,
                region_name=region or None,
                config=Config(connect_timeout=connect_timeout, read_timeout=read_timeout),
            )
        except BotoCoreError as e:
            raise BlobStoreError(f"Unable to create S3 client: {e}") from e
        return cls(bucket, client)

    def probe(self) -> bool:
        try:
            self._client.head_bucket(Bucket=self.bucket)
        except ClientError as e:
            error = translate_error(e)
            if error.status_code == 404 or error.error_code in NOT_FOUND_CODES:
                return False
            raise error from e
        except BotoCoreError as e:
            raise translate_error(e) from e
        return True

    def put(
        self,
        name: str,
        stream: BinaryIO,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        extra_args = {"Metadata": dict(metadata)} if metadata else None
        try:
            self._client.upload_fileobj(stream, self.bucket, name, ExtraArgs=extra_args)
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            raise translate_error(e) from e

    def get(self, name: str) -> Blob:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=name)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, name) from e
        return Blob(_ResponseStream(response["Body"], name), self._metadata_from(name, response))

    def head(self, name: str) -> BlobMetadata:
        """Fetch the metadata of *name* without its content."""
        try:
            response = self._client.head_object(Bucket=self.bucket, Key=name)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, name) from e
        return self._metadata_from(name, response)

    def set_custom_time(
        self,
        name: str,
        timestamp: datetime,
        metadata: Optional[BlobMetadata] = None,
    ) -> None:
        try:
            if metadata is None or metadata.user_metadata is None:
                metadata = self.head(name)
            user_metadata = dict(metadata.user_metadata or {})
            user_metadata[CUSTOM_TIME_KEY] = format_custom_time(timestamp)
            kwargs = {
                "Bucket": self.bucket,
                "Key": name,
                "CopySource": {"Bucket": self.bucket, "Key": name},
                "Metadata": user_metadata,
                "MetadataDirective": "REPLACE",
            }
            if metadata.content_type:
                kwargs["ContentType"] = metadata.content_type
            self._client.copy_object(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, name) from e

    def exists(self, name: str) -> bool:
        try:
            self.head(name)
        except BlobNotFoundError:
            return False
        return True

    def delete(self, name: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=name)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, name) from e

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _metadata_from(name: str, response: dict) -> BlobMetadata:
        user_metadata = dict(response.get("Metadata") or {})
        etag = response.get("ETag")
        return BlobMetadata(
            name=name,
            size=int(response.get("ContentLength") or 0),
            created=response.get("LastModified"),
            custom_time=parse_custom_time(user_metadata.get(CUSTOM_TIME_KEY)),
            etag=etag.strip('"') if etag else None,
            content_type=response.get("ContentType"),
            user_metadata=user_metadata,
        )
