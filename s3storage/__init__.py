"""Asynchronous client for S3-compatible object storage."""

from .models import Region, Credentials, StorageConfig, StoredFile
from .client import (
    StorageClient,
    StorageError,
    StorageConfigurationError,
    StorageAuthError,
    StorageNotFoundError,
    StorageConflictError,
    StorageOperationError,
)

__all__ = [
    "Region",
    "Credentials",
    "StorageConfig",
    "StoredFile",
    "StorageClient",
    "StorageError",
    "StorageConfigurationError",
    "StorageAuthError",
    "StorageNotFoundError",
    "StorageConflictError",
    "StorageOperationError",
]
