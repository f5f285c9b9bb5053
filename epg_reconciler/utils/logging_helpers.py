"""
Logging helpers shared by the run stages.

Keeps the run log readable: one line per stage boundary, per feed and per channel.
"""
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager

from epg_reconciler.epg_types import ChannelReconciliation


@contextmanager
def log_section(logger: logging.Logger, section_name: str) -> Iterator[None]:
    """
    Log the start and completion of a run stage with its duration.

    Nothing is logged as completed when the stage raises; the caller reports the error.
    """
    logger.info(f"Starting: {section_name}")
    started = time.perf_counter()
    yield
    logger.info(f"Completed: {section_name} in {time.perf_counter() - started:.2f}s")


def log_source_processing(logger: logging.Logger, source_index: int, total: int, location: str) -> None:
    """
    Log which feed is being loaded.

    Args:
        logger: Logger instance
        source_index: Feed priority (1-based)
        total: Number of feeds in the run
        location: Feed path or sanitized URL
    """
    logger.info(f"Processing source {source_index}/{total}: {location}")


def log_merge_summary(logger: logging.Logger, channel_keys: int, programmes: int) -> None:
    logger.info(f"Merged feeds: {channel_keys} channel keys, {programmes} programmes")


def log_channel_summary(logger: logging.Logger, result: ChannelReconciliation) -> None:
    """Log the counts of one reconciled channel"""
    channel = result.channel
    if result.skipped:
        logger.info(f"No programmes for channel {channel.display_name} ({channel.channel_id}), skipping")
        return
    logger.info(
        f"Reconciled {channel.display_name} ({channel.channel_id}): "
        f"{result.received} received, {result.accepted} accepted, {result.overlaps} overlaps, "
        f"{result.duplicates} duplicates, {result.identity_collisions} identity collisions"
    )


def log_run_summary(logger: logging.Logger, channels_written: int, total_events: int, elapsed: float) -> None:
    """
    Log the outcome of a finished run.

    Args:
        logger: Logger instance
        channels_written: Number of channel files written
        total_events: Events across written files
        elapsed: Run duration in seconds
    """
    logger.info(f"Reconciliation finished in {elapsed:.2f}s: {channels_written} files, {total_events} events")
