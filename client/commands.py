"""Command handler functions for CLI operations."""

import os
from pathlib import Path
from typing import Optional

from client.config import Config
from client.fingerprint import Fingerprinter
from client.models import AssetsCommand, StatusCommand, UploadCommand
from client.orchestrator import ProgressCallback, UploadOrchestrator
from client.retry import RetryPolicy
from client.upload_client import UploadClient
from client.utils import ChunkProgress, format_report
from common.exceptions import UploadError
from common.logging_config import get_logger
from common.utils import format_file_size

logger = get_logger(__name__)


_config: Optional[Config] = None
_client: Optional[UploadClient] = None


def get_config() -> Config:
    """
    Get or create global Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_client() -> UploadClient:
    """
    Get or create global UploadClient instance.

    Returns:
        UploadClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new UploadClient instance")
        _client = UploadClient(get_config())
    return _client


def build_orchestrator(
    client: UploadClient,
    config: Config,
    on_progress: Optional[ProgressCallback] = None,
) -> UploadOrchestrator:
    """
    Wire an UploadOrchestrator from client configuration.

    Args:
        client: UploadClient used for every request
        config: Configuration supplying chunk size, sample window and retry policy
        on_progress: Optional per-chunk progress callback

    Returns:
        UploadOrchestrator instance
    """
    return UploadOrchestrator(
        client,
        chunk_size=config.get_chunk_size(),
        fingerprinter=Fingerprinter(config.get_sample_window()),
        retry_policy=RetryPolicy.from_config(config),
        degrade_on_lookup_error=config.degrade_on_lookup_error(),
        on_progress=on_progress,
    )


def _check_local_file(file_path: str) -> Optional[str]:
    if not os.path.exists(file_path):
        return f"Error: File not found: {file_path}"
    if not os.path.isfile(file_path):
        return f"Error: Not a file: {file_path}"
    return None


def handle_upload(
    cmd: UploadCommand,
    client: Optional[UploadClient] = None,
    config: Optional[Config] = None,
) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with file_list
        client: Optional UploadClient for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        One result line per file
    """
    logger.info(f"Executing upload command: {len(cmd.file_list)} files")
    config = config or get_config()
    client = client or get_client()

    results = []
    for file_path in cmd.file_list:
        error = _check_local_file(file_path)
        if error:
            results.append(error)
            continue

        progress = ChunkProgress(Path(file_path).name, os.path.getsize(file_path))
        orchestrator = build_orchestrator(client, config, on_progress=progress)
        try:
            report = orchestrator.run(file_path)
        finally:
            progress.finish()
        results.append(format_report(report))

    return '\n'.join(results) if results else "No files uploaded."


def handle_status(
    cmd: StatusCommand,
    client: Optional[UploadClient] = None,
    config: Optional[Config] = None,
) -> str:
    """
    Handle 'status' command.

    Args:
        cmd: StatusCommand with file_path
        client: Optional UploadClient for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Fingerprint, chunk count and the chunks already stored on the server
    """
    error = _check_local_file(cmd.file_path)
    if error:
        return error

    config = config or get_config()
    client = client or get_client()
    report = build_orchestrator(client, config).status(cmd.file_path)

    if not report.success:
        return f"Error: {report.error.code}: {report.error.message}"

    stored = [i for i in report.skipped if i < report.total]
    stored_text = ", ".join(str(i) for i in stored) or "none"
    return (
        f"File: {cmd.file_path}\n"
        f"Fingerprint: {report.fingerprint}\n"
        f"Chunks: {report.total} x {format_file_size(config.get_chunk_size())}\n"
        f"On server: {len(stored)}/{report.total} ({stored_text})"
    )


def handle_assets(cmd: AssetsCommand, client: Optional[UploadClient] = None) -> str:
    """
    Handle 'assets' command.

    Args:
        cmd: AssetsCommand
        client: Optional UploadClient for dependency injection (testing)

    Returns:
        Formatted list of merged files
    """
    client = client or get_client()
    try:
        files = client.list_assets()
    except UploadError as e:
        return f"Error: {e.message}"

    if not files:
        return "No merged files on the server."

    output = [f"Found {len(files)} file(s):\n"]
    for asset in files:
        output.append(
            f"  - {asset['name']}\n"
            f"    Size: {asset.get('formatted_size') or format_file_size(asset['size'])}\n"
            f"    URL: {asset['url']}"
        )
    return '\n'.join(output)
