"""
Configuration and result models for the S3 storage client.
"""
import os
import posixpath
import mimetypes
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Region(str, Enum):
    """AWS region identifiers."""
    US_EAST_1 = "us-east-1"
    US_EAST_2 = "us-east-2"
    US_WEST_1 = "us-west-1"
    US_WEST_2 = "us-west-2"
    AF_SOUTH_1 = "af-south-1"
    AP_EAST_1 = "ap-east-1"
    AP_SOUTH_1 = "ap-south-1"
    AP_SOUTH_2 = "ap-south-2"
    AP_NORTHEAST_1 = "ap-northeast-1"
    AP_NORTHEAST_2 = "ap-northeast-2"
    AP_NORTHEAST_3 = "ap-northeast-3"
    AP_SOUTHEAST_1 = "ap-southeast-1"
    AP_SOUTHEAST_2 = "ap-southeast-2"
    AP_SOUTHEAST_3 = "ap-southeast-3"
    AP_SOUTHEAST_4 = "ap-southeast-4"
    CA_CENTRAL_1 = "ca-central-1"
    CA_WEST_1 = "ca-west-1"
    EU_CENTRAL_1 = "eu-central-1"
    EU_CENTRAL_2 = "eu-central-2"
    EU_WEST_1 = "eu-west-1"
    EU_WEST_2 = "eu-west-2"
    EU_WEST_3 = "eu-west-3"
    EU_SOUTH_1 = "eu-south-1"
    EU_SOUTH_2 = "eu-south-2"
    EU_NORTH_1 = "eu-north-1"
    IL_CENTRAL_1 = "il-central-1"
    ME_SOUTH_1 = "me-south-1"
    ME_CENTRAL_1 = "me-central-1"
    SA_EAST_1 = "sa-east-1"


class Credentials(BaseModel):
    """Access key pair used to sign requests."""
    model_config = ConfigDict(frozen=True)

    access_key_id: str = Field(..., min_length=1, description="Access key ID")
    secret_access_key: str = Field(..., min_length=1, description="Secret access key")


class StorageConfig(BaseModel):
    """
    Storage client configuration.

    Immutable once built. `region` takes any provider region string so
    S3-compatible services (Cloudflare R2 uses "auto") work alongside
    the values in `Region`.
    """
    model_config = ConfigDict(frozen=True)

    region: str = Field(..., min_length=1, description="Provider region")
    credentials: Credentials
    cdn_url: str = Field(..., description="Base public URL used to build file URLs")
    bucket: Optional[str] = Field(
        default=None, description="Default bucket selected on client creation"
    )
    endpoint_url: Optional[str] = Field(
        default=None, description="Custom endpoint for S3-compatible providers"
    )

    @field_validator('region', mode='before')
    @classmethod
    def validate_region(cls, v):
        """Accept Region members as plain strings."""
        if isinstance(v, Region):
            return v.value
        return v

    @field_validator('cdn_url')
    @classmethod
    def validate_cdn_url(cls, v: str) -> str:
        """CDN URL must be absolute (scheme and host)."""
        parts = urlsplit(v)
        if not parts.scheme or not parts.netloc:
            raise ValueError('cdn_url must be an absolute URL (e.g. https://cdn.example.com)')
        return v

    @classmethod
    def from_env(cls) -> "StorageConfig":
        """
        Build configuration from environment variables.

        Reads STORAGE_REGION, STORAGE_ACCESS_KEY_ID, STORAGE_SECRET_ACCESS_KEY,
        STORAGE_CDN_URL, STORAGE_BUCKET and STORAGE_ENDPOINT_URL.

        Raises:
            StorageConfigurationError: A required variable is missing
        """
        from .client import StorageConfigurationError

        access_key = os.getenv("STORAGE_ACCESS_KEY_ID")
        secret_key = os.getenv("STORAGE_SECRET_ACCESS_KEY")
        cdn_url = os.getenv("STORAGE_CDN_URL")

        missing = []
        if not access_key:
            missing.append("STORAGE_ACCESS_KEY_ID")
        if not secret_key:
            missing.append("STORAGE_SECRET_ACCESS_KEY")
        if not cdn_url:
            missing.append("STORAGE_CDN_URL")
        if missing:
            raise StorageConfigurationError(
                f"Missing required storage settings: {', '.join(missing)}. "
                "Check environment variables."
            )

        return cls(
            region=os.getenv("STORAGE_REGION", Region.US_EAST_1.value),
            credentials=Credentials(
                access_key_id=access_key,
                secret_access_key=secret_key,
            ),
            cdn_url=cdn_url,
            bucket=os.getenv("STORAGE_BUCKET") or None,
            endpoint_url=os.getenv("STORAGE_ENDPOINT_URL") or None,
        )


@dataclass
class StoredFile:
    """Stored object as seen by the client."""
    name: str
    key: str
    byte: int
    type: str
    url: str
    last_modified: datetime

    @classmethod
    def build(cls, key: str, size: int, last_modified: datetime, url: str) -> "StoredFile":
        """Derive a record from an object key, size and timestamp."""
        return cls(
            name=posixpath.basename(key),
            key=key,
            byte=size,
            type=guess_type(key) or "unknown",
            url=url,
            last_modified=last_modified,
        )


# Compressed files are stored as their compression format, not the inner type
ENCODING_TYPES = {
    'gzip': 'application/gzip',
    'bzip2': 'application/x-bzip2',
    'xz': 'application/x-xz',
    'br': 'application/x-brotli',
    'compress': 'application/x-compress',
}


def guess_type(filename: str) -> Optional[str]:
    """MIME type from file extension, None when unrecognized."""
    content_type, encoding = mimetypes.guess_type(filename)
    if encoding:
        return ENCODING_TYPES.get(encoding, content_type)
    return content_type
