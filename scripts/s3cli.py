#!/usr/bin/env python3
"""
Command line access to S3 storage.

Usage:
    python scripts/s3cli.py [--bucket NAME] <command> [args]

Examples:
    python scripts/s3cli.py list --path assets
    python scripts/s3cli.py upload ./example.jpg assets/example.jpg
    python scripts/s3cli.py download assets/example.jpg ./out/example.jpg
    python scripts/s3cli.py delete assets/example.jpg
    python scripts/s3cli.py url assets/example.jpg
"""
import os
import sys
import asyncio
import logging
import argparse
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from s3storage import StorageClient, StorageConfig, StorageError


logger = logging.getLogger(__name__)


def format_size(bytes_size: float) -> str:
    """Format bytes to human-readable size."""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_size < 1024.0:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.2f} TB"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="S3 storage command line client")
    parser.add_argument(
        "--bucket", help="Bucket to use (defaults to STORAGE_BUCKET)"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List files")
    list_cmd.add_argument("--path", default=None, help="Key prefix")

    upload_cmd = commands.add_parser("upload", help="Upload a local file")
    upload_cmd.add_argument("file", help="Local file path")
    upload_cmd.add_argument("dest_file", help="Destination key")

    delete_cmd = commands.add_parser("delete", help="Delete a file")
    delete_cmd.add_argument("file", help="Object key")

    download_cmd = commands.add_parser("download", help="Download a file")
    download_cmd.add_argument("file", help="Object key")
    download_cmd.add_argument("out_file", help="Local destination path")

    url_cmd = commands.add_parser("url", help="Print the public URL of a key")
    url_cmd.add_argument("file", help="Object key")

    return parser


async def run(client: StorageClient, args: argparse.Namespace) -> None:
    """Dispatch a parsed command to the client."""
    if args.command == "list":
        files = await client.list(path=args.path)
        for stored in files:
            print(f"{stored.key}\t{format_size(stored.byte)}\t{stored.url}")
        print(f"\n✓ {len(files)} files")

    elif args.command == "upload":
        stored = await client.upload(args.file, args.dest_file)
        print("✅ Upload successful!")
        print(f"   Key: {stored.key}")
        print(f"   Size: {format_size(stored.byte)}")
        print(f"   Modified: {stored.last_modified}")
        print(f"   URL: {stored.url}")

    elif args.command == "delete":
        await client.delete(args.file)
        print(f"✅ Deleted {args.file}")

    elif args.command == "download":
        await client.download(args.file, args.out_file)
        print(f"✅ Downloaded {args.file} to {args.out_file}")

    elif args.command == "url":
        print(client.file_url(args.file))


def main(argv=None) -> int:
    """Main CLI function."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "info").upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args = build_parser().parse_args(argv)

    try:
        client = StorageClient(StorageConfig.from_env())
        if args.bucket:
            client.set_bucket(args.bucket)
        asyncio.run(run(client, args))
    except StorageError as e:
        print(f"❌ Storage Error: {e}")
        return 1
    except ValueError as e:
        # pydantic ValidationError, e.g. malformed STORAGE_CDN_URL
        print(f"❌ Configuration Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠️  Cancelled by user")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
