"""Unit tests for the command line script."""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from scripts import s3cli
from s3storage import StorageNotFoundError, StoredFile


@pytest.fixture
def mock_client():
    """Patch config loading and the storage client used by the CLI."""
    client = MagicMock()
    client.list = AsyncMock()
    client.upload = AsyncMock()
    client.delete = AsyncMock()
    client.download = AsyncMock()
    client.file_url.return_value = "https://cdn.example.com/assets/a.txt"

    with patch.object(s3cli, 'load_dotenv'), \
            patch.object(s3cli, 'StorageConfig'), \
            patch.object(s3cli, 'StorageClient', return_value=client):
        yield client


def _stored(key, size):
    return StoredFile.build(key, size, datetime(2024, 1, 1), f"https://cdn.example.com/{key}")


def test_format_size():
    assert s3cli.format_size(512) == "512.00 B"
    assert s3cli.format_size(2048) == "2.00 KB"
    assert s3cli.format_size(5 * 1024 ** 3) == "5.00 GB"


def test_list_command(mock_client, capsys):
    mock_client.list.return_value = [_stored("assets/a.txt", 10), _stored("assets/b.png", 2048)]

    assert s3cli.main(["--bucket", "media", "list", "--path", "assets"]) == 0

    mock_client.set_bucket.assert_called_once_with("media")
    mock_client.list.assert_awaited_once_with(path="assets")
    out = capsys.readouterr().out
    assert "assets/a.txt" in out
    assert "https://cdn.example.com/assets/b.png" in out
    assert "2 files" in out


def test_upload_command(mock_client, capsys):
    mock_client.upload.return_value = _stored("assets/a.txt", 10)

    assert s3cli.main(["upload", "./a.txt", "assets/a.txt"]) == 0

    mock_client.set_bucket.assert_not_called()
    mock_client.upload.assert_awaited_once_with("./a.txt", "assets/a.txt")
    assert "Upload successful" in capsys.readouterr().out


def test_download_and_delete_commands(mock_client):
    assert s3cli.main(["download", "assets/a.txt", "/tmp/out/a.txt"]) == 0
    assert s3cli.main(["delete", "assets/a.txt"]) == 0

    mock_client.download.assert_awaited_once_with("assets/a.txt", "/tmp/out/a.txt")
    mock_client.delete.assert_awaited_once_with("assets/a.txt")


def test_url_command(mock_client, capsys):
    assert s3cli.main(["url", "assets/a.txt"]) == 0

    assert capsys.readouterr().out.strip() == "https://cdn.example.com/assets/a.txt"


def test_storage_error_exit_code(mock_client, capsys):
    mock_client.delete.side_effect = StorageNotFoundError("File does not exist!")

    assert s3cli.main(["delete", "missing.txt"]) == 1

    assert "File does not exist!" in capsys.readouterr().out
