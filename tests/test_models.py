"""Unit tests for configuration and result models."""

import os
from datetime import datetime
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from s3storage import Credentials, Region, StorageConfig, StorageConfigurationError, StoredFile


@pytest.fixture
def mock_env_vars():
    """Set up storage environment variables for testing."""
    env = {
        'STORAGE_REGION': 'eu-west-1',
        'STORAGE_ACCESS_KEY_ID': 'test-key',
        'STORAGE_SECRET_ACCESS_KEY': 'test-secret',
        'STORAGE_CDN_URL': 'https://cdn.example.com',
        'STORAGE_BUCKET': 'test-bucket',
    }
    with patch.dict(os.environ, env, clear=True):
        yield env


def _config(**overrides):
    values = {
        'region': 'us-east-1',
        'credentials': Credentials(access_key_id='key', secret_access_key='secret'),
        'cdn_url': 'https://cdn.example.com',
    }
    values.update(overrides)
    return StorageConfig(**values)


class TestStorageConfig:
    """Tests for StorageConfig validation."""

    def test_region_enum_accepted(self):
        assert _config(region=Region.AP_SOUTHEAST_1).region == 'ap-southeast-1'

    def test_provider_region_accepted(self):
        """S3-compatible providers use regions outside the AWS list."""
        assert _config(region='auto').region == 'auto'

    @pytest.mark.parametrize("cdn_url", ["cdn.example.com", "/assets", "not a url", ""])
    def test_relative_cdn_url_rejected(self, cdn_url):
        with pytest.raises(ValidationError) as exc:
            _config(cdn_url=cdn_url)

        assert 'cdn_url' in str(exc.value)

    def test_empty_credentials_rejected(self):
        with pytest.raises(ValidationError):
            Credentials(access_key_id='', secret_access_key='secret')

    def test_config_is_immutable(self):
        config = _config()

        with pytest.raises(ValidationError):
            config.bucket = 'other'


class TestFromEnv:
    """Tests for StorageConfig.from_env()."""

    def test_from_env(self, mock_env_vars):
        config = StorageConfig.from_env()

        assert config.region == 'eu-west-1'
        assert config.credentials.access_key_id == 'test-key'
        assert config.credentials.secret_access_key == 'test-secret'
        assert config.cdn_url == 'https://cdn.example.com'
        assert config.bucket == 'test-bucket'
        assert config.endpoint_url is None

    def test_from_env_defaults(self, mock_env_vars):
        env = mock_env_vars.copy()
        env.pop('STORAGE_REGION')
        env.pop('STORAGE_BUCKET')

        with patch.dict(os.environ, env, clear=True):
            config = StorageConfig.from_env()

        assert config.region == 'us-east-1'
        assert config.bucket is None

    def test_from_env_missing_values(self, mock_env_vars):
        """Should name every missing variable."""
        env = mock_env_vars.copy()
        env.pop('STORAGE_ACCESS_KEY_ID')
        env.pop('STORAGE_CDN_URL')

        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(StorageConfigurationError) as exc:
                StorageConfig.from_env()

        assert 'STORAGE_ACCESS_KEY_ID' in str(exc.value)
        assert 'STORAGE_CDN_URL' in str(exc.value)
        assert 'STORAGE_SECRET_ACCESS_KEY' not in str(exc.value)


class TestStoredFile:
    """Tests for StoredFile.build()."""

    def test_build(self):
        modified = datetime(2024, 1, 1)
        stored = StoredFile.build(
            'docs/2024/report.pdf', 2048, modified, 'https://cdn.example.com/docs/2024/report.pdf'
        )

        assert stored.name == 'report.pdf'
        assert stored.key == 'docs/2024/report.pdf'
        assert stored.byte == 2048
        assert stored.type == 'application/pdf'
        assert stored.last_modified == modified

    def test_build_unknown_type(self):
        stored = StoredFile.build('README', 10, datetime(2024, 1, 1), 'https://cdn.example.com/README')

        assert stored.name == 'README'
        assert stored.type == 'unknown'

    def test_build_compressed_type(self):
        stored = StoredFile.build('backups/db.tar.xz', 10, datetime(2024, 1, 1), 'https://cdn.example.com/backups/db.tar.xz')

        assert stored.type == 'application/x-xz'
