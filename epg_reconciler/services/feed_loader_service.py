"""
Feed Loader Service

Selects the feeds of a run in priority order, then downloads and parses them.
Separated from orchestration logic for better testability.
"""
import logging
import asyncio
from pathlib import Path

import httpx

from epg_reconciler.config import CustomSettings
from epg_reconciler.errors import FeedError
from epg_reconciler.epg_types import FeedSource, ProgrammePayload
from epg_reconciler.services.xmltv_parser_service import parse_xmltv_file
from epg_reconciler.utils.file_operations import download_file, cleanup_temp_file


logger = logging.getLogger(__name__)


def select_feed_sources(settings: CustomSettings) -> list[FeedSource]:
    """
    Decide which feeds to load and in what priority order

    Explicit feed_sources keep their configured order. Otherwise files matching
    feed_glob in feed_dir are ordered newest first (by modification time, then
    by name descending).

    Raises:
        FeedError: If no feed can be selected
    """
    if settings.feed_sources:
        if settings.feed_dir:
            logger.warning(
                "Both feed sources and feed directory configured, ignoring directory %s", settings.feed_dir
            )
        locations = list(settings.feed_sources)
    elif settings.feed_dir:
        feed_dir = Path(settings.feed_dir)
        if not feed_dir.is_dir():
            raise FeedError(f"Feed directory '{feed_dir}' does not exist")
        candidates = [path for path in feed_dir.glob(settings.feed_glob) if path.is_file()]
        candidates.sort(key=lambda path: (path.stat().st_mtime, path.name), reverse=True)
        locations = [str(path) for path in candidates]
    else:
        raise FeedError("No feed sources or feed directory configured")

    if not locations:
        raise FeedError(f"No feeds matching '{settings.feed_glob}' in '{settings.feed_dir}'")

    sources = [FeedSource(index=index, location=location) for index, location in enumerate(locations, start=1)]
    for source in sources:
        logger.debug("Feed priority %s: %s", source.index, source.location)
    return sources


async def load_feed(
    source: FeedSource,
    settings: CustomSettings,
    download_dir: Path,
    *,
    client: httpx.AsyncClient | None = None,
) -> list[ProgrammePayload]:
    """
    Fetch (when remote) and parse a single feed

    Args:
        source: Feed to load
        settings: Download and parse settings
        download_dir: Directory for downloaded copies of remote feeds
        client: Optional shared HTTP client

    Returns:
        Programmes of the feed in document order

    Raises:
        FeedError: If the feed cannot be downloaded, read or parsed in time
        MalformedInputError: If the feed is not valid XMLTV
    """
    temp_file = None
    try:
        if source.is_remote:
            logger.info(f"  [Source {source.index}] Starting download...")
            try:
                temp_file = await download_file(
                    source.location,
                    download_dir / f"epg_source_{source.index}.xml",
                    timeout=settings.download_timeout_sec,
                    max_retries=settings.download_max_retries,
                    backoff_factor=settings.download_backoff_factor,
                    client=client,
                )
            except httpx.HTTPError as e:
                raise FeedError(f"Could not download feed {source.index}: {e}") from e
            file_path = temp_file
        else:
            file_path = Path(source.location)
            if not file_path.is_file():
                raise FeedError(f"Feed file '{file_path}' does not exist")

        logger.info(f"  [Source {source.index}] Parsing XMLTV content...")
        programmes = await parse_xmltv_async(
            file_path,
            source.index,
            parse_timeout_seconds=settings.feed_parse_timeout_sec,
        )
        logger.info(f"  [Source {source.index}] Parsing complete: {len(programmes)} programmes")
        return programmes

    finally:
        if temp_file:
            logger.debug(f"  [Source {source.index}] Cleaning up downloaded file...")
            cleanup_temp_file(temp_file)


async def parse_xmltv_async(
    file_path: Path | str,
    source_index: int,
    *,
    parse_timeout_seconds: int | None = None
) -> list[ProgrammePayload]:
    """
    Parse XMLTV file asynchronously with timeout protection.

    File parsing is offloaded to thread pool to avoid blocking event loop.

    Args:
        file_path: Path to XMLTV file (Path or str)
        source_index: Priority of the feed

    Keyword Args:
        parse_timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)

    Raises:
        FeedError: If parsing times out or the file cannot be read
        MalformedInputError: If the document is malformed
    """
    if isinstance(file_path, str):
        file_path = Path(file_path)

    effective_timeout = parse_timeout_seconds if parse_timeout_seconds and parse_timeout_seconds > 0 else None
    timeout_display = f"{effective_timeout}s" if effective_timeout else "disabled"

    logger.debug("Offloading XML parsing of %s to thread pool executor (timeout: %s)...", file_path, timeout_display)
    loop = asyncio.get_running_loop()
    parse_task = loop.run_in_executor(None, parse_xmltv_file, str(file_path), source_index)

    try:
        if effective_timeout:
            programmes = await asyncio.wait_for(parse_task, timeout=effective_timeout)
        else:
            programmes = await parse_task
    except asyncio.TimeoutError as e:
        logger.error("XML parsing timed out after %s for %s", timeout_display, file_path)
        raise FeedError(f"XML parsing of '{file_path}' timed out - file may be too large or malformed") from e
    except OSError as e:
        raise FeedError(f"Could not read feed '{file_path}': {e}") from e

    if not programmes:
        logger.warning("No programmes found in %s", file_path)

    return programmes
