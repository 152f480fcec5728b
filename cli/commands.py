"""Command handler functions for CLI operations."""

import uuid
from pathlib import Path
from typing import Optional

import httpx

from common.logging_config import get_logger, set_correlation_id
from cli.config import Config
from cli.models import (
    ChunkSizeCommand,
    DeleteCommand,
    DownloadCommand,
    LookupCommand,
    ReplaceCommand,
    UploadCommand,
    UrlCommand,
)
from cli.utils import format_file_size, format_submit_result
from weedclient.exceptions import WeedError
from weedclient.http_client import HttpClient
from weedclient.seaweed import Seaweed

logger = get_logger(__name__)


_config: Optional[Config] = None
_client: Optional[Seaweed] = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config(Path.home() / '.weedclient' / 'config.json')
    return _config


def get_client() -> Seaweed:
    """
    Get or create global Seaweed client instance.

    Returns:
        Seaweed instance built from the CLI config
    """
    global _client
    if _client is None:
        config = get_config()
        logger.debug(f"Creating new Seaweed client [master={config.get_master()}]")
        _client = Seaweed(
            config.get_master(),
            chunk_size=config.get_chunk_size(),
            http=HttpClient(config.get_timeout(), config.get_max_connections()),
            use_public_url=config.use_public_url(),
        )
    return _client


def handle_upload(cmd: UploadCommand, client: Optional[Seaweed] = None, config: Optional[Config] = None) -> str:
    """
    Handle 'upload' command.

    A single file takes the plain/chunked path directly; several files share
    one batch assignment and are reported one line each.

    Args:
        cmd: UploadCommand with file_list and optional placement
        client: Optional Seaweed client for dependency injection (testing)
        config: Optional Config supplying default collection/ttl/workers

    Returns:
        Success or error message with upload results
    """
    logger.info(f"Executing upload command: {len(cmd.file_list)} file(s)")
    if client is None:
        client = get_client()
    if config is None:
        config = get_config()

    placement = config.get_placement()
    collection = cmd.collection if cmd.collection is not None else placement['collection']
    ttl = cmd.ttl if cmd.ttl is not None else placement['ttl']

    try:
        if len(cmd.file_list) == 1:
            result = client.upload_file(cmd.file_list[0], collection, ttl)
            return format_submit_result(result)

        batch_id = f"batch-{uuid.uuid4().hex[:8]}"
        set_correlation_id(get_logger('weedclient'), batch_id)
        try:
            results = client.batch_upload_files(
                list(cmd.file_list), collection, ttl, max_workers=config.get_max_workers()
            )
        finally:
            set_correlation_id(get_logger('weedclient'), "")
        return '\n'.join(format_submit_result(result) for result in results)
    except (WeedError, httpx.HTTPError, OSError) as e:
        logger.error(f"Upload failed: {e}")
        return f"Error: {e}"


def handle_replace(cmd: ReplaceCommand, client: Optional[Seaweed] = None) -> str:
    if client is None:
        client = get_client()
    try:
        result = client.replace_file(cmd.fid, cmd.file_path, cmd.delete_first)
    except (WeedError, httpx.HTTPError, OSError) as e:
        return f"Error: {e}"
    return f"Replaced: {format_submit_result(result)}"


def handle_delete(cmd: DeleteCommand, client: Optional[Seaweed] = None) -> str:
    """
    Handle 'delete' command.

    Args:
        cmd: DeleteCommand with fid
        client: Optional Seaweed client for dependency injection (testing)

    Returns:
        Success or error message
    """
    if client is None:
        client = get_client()
    try:
        client.delete_file(cmd.fid)
    except (WeedError, httpx.HTTPError) as e:
        return f"Error: {e}"
    return f"Deleted: {cmd.fid}"


def handle_download(cmd: DownloadCommand, client: Optional[Seaweed] = None) -> str:
    """
    Handle 'download' command.

    Args:
        cmd: DownloadCommand with a fid or full URL and a target directory
        client: Optional Seaweed client for dependency injection (testing)

    Returns:
        Success or error message with download details
    """
    logger.info(f"Executing download command: target={cmd.target} directory={cmd.directory}")
    if client is None:
        client = get_client()
    try:
        if cmd.target.startswith(('http://', 'https://')):
            file_path, written = client.download_file(cmd.target, cmd.directory)
        else:
            _, file_path, written = client.download_file_by_fid(cmd.target, cmd.directory)
    except (WeedError, httpx.HTTPError) as e:
        return f"Error: {e}"
    except IOError as e:
        return f"Error writing file: {e}"
    return f"Downloaded: {cmd.target} ({format_file_size(written)})\nSaved to: {Path(file_path).absolute()}"


def handle_lookup(cmd: LookupCommand, client: Optional[Seaweed] = None) -> str:
    if client is None:
        client = get_client()
    try:
        return client.lookup(cmd.fid)
    except (WeedError, httpx.HTTPError) as e:
        return f"Error: {e}"


def handle_url(cmd: UrlCommand, client: Optional[Seaweed] = None) -> str:
    if client is None:
        client = get_client()
    return client.weed_url(cmd.fid)


def _describe_chunk_size(size: int) -> str:
    if size <= 0:
        return "0 (chunking disabled)"
    return f"{size} bytes ({format_file_size(size)})"


def handle_chunk_size(cmd: ChunkSizeCommand, config: Optional[Config] = None) -> str:
    """
    Handle 'chunk-size' command.

    Without a size, reports the configured threshold. With one, saves it to
    the config file and drops the cached client so the next command uses it.

    Args:
        cmd: ChunkSizeCommand with optional size in bytes
        config: Optional Config for dependency injection (testing)

    Returns:
        Current or updated chunk size
    """
    global _client
    if config is None:
        config = get_config()

    if cmd.size is None:
        return f"Chunk size: {_describe_chunk_size(config.get_chunk_size())}"

    config.set_chunk_size(cmd.size)
    logger.info(f"Chunk size set [chunk_size={cmd.size}, config={config.config_path}]")
    if _client is not None:
        _client.close()
        _client = None
    return f"Chunk size set to {_describe_chunk_size(cmd.size)}"
