"""
File operation utilities

This module handles feed downloads with retry logic, temporary file cleanup
and output directory creation.
"""
import logging
from pathlib import Path
import asyncio

import aiofiles
import httpx


logger = logging.getLogger(__name__)


async def download_file(
    url: str,
    destination: Path,
    timeout: float = 120.0,
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    client: httpx.AsyncClient | None = None,
) -> Path:
    """
    Download a feed from URL with exponential backoff retry logic

    Retries on transient network errors (timeouts, connection errors) and 5xx.
    Does NOT retry on 4xx HTTP errors (client errors).

    Args:
        url: URL to download from
        destination: File path to write the body to
        timeout: HTTP timeout in seconds
        max_retries: Maximum number of attempts
        backoff_factor: Exponential backoff multiplier (wait = backoff_factor ^ (attempt - 1))
        client: Optional shared client; a short-lived one is created otherwise

    Returns:
        Path to the downloaded file

    Raises:
        httpx.HTTPError: If download fails after all retries
    """
    logger.info(f"Downloading feed from {url}...")

    last_error: Exception | None = None

    for attempt in range(1, max_retries + 1):
        try:
            if client is not None:
                response = await client.get(url, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned_client:
                    response = await owned_client.get(url)
            response.raise_for_status()

            async with aiofiles.open(destination, 'wb') as f:
                await f.write(response.content)

            file_size = len(response.content) / (1024 * 1024)
            logger.info(f"Downloaded {file_size:.2f} MB to {destination}")
            return destination

        except httpx.HTTPStatusError as e:
            if e.response.status_code < 500:
                logger.error(f"HTTP {e.response.status_code} (client error): {e}")
                raise
            last_error = e
            reason = f"HTTP {e.response.status_code} server error"

        except (httpx.TimeoutException, httpx.ConnectError) as e:
            last_error = e
            reason = f"transient error: {type(e).__name__}"

        if attempt == max_retries:
            logger.error(f"Download of {url} failed after {max_retries} attempts ({reason})")
            break

        wait_time = backoff_factor ** (attempt - 1)
        logger.warning(
            f"Download attempt {attempt}/{max_retries} failed ({reason}). Retrying in {wait_time:.1f}s..."
        )
        await asyncio.sleep(wait_time)

    if last_error:
        raise last_error

    raise RuntimeError(f"Failed to download {url} after {max_retries} attempts")


def cleanup_temp_file(file_path: Path) -> bool:
    """
    Safely delete a downloaded feed

    Args:
        file_path: Path to file to delete

    Returns:
        True if deleted successfully, False otherwise
    """
    if not file_path or not file_path.exists():
        return False

    try:
        file_path.unlink()
        logger.debug(f"Cleaned up temporary file: {file_path}")
        return True
    except (OSError, PermissionError) as e:
        logger.warning(f"Failed to delete temporary file {file_path}: {e}")
        return False


def ensure_directory(path: Path) -> Path:
    """
    Create a directory (and parents) if it does not exist

    Raises:
        OSError: If the directory cannot be created
    """
    if not path.is_dir():
        path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created output directory {path}")
    return path
