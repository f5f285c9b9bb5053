"""
Reconciliation Pipeline Service

Coordinates allow-list loading, feed loading, reconciliation and output of a run.
"""
from __future__ import annotations

import asyncio
import logging
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import httpx

from epg_reconciler.config import CustomSettings
from epg_reconciler.epg_types import ChannelReconciliation, FeedSource, ProgrammePayload
from epg_reconciler.schemas import ChannelReport, RunReport, SourceReport
from epg_reconciler.services.channel_list_service import load_requested_channels
from epg_reconciler.services.feed_loader_service import load_feed, select_feed_sources
from epg_reconciler.services.output_writer_service import write_channel_schedule
from epg_reconciler.services.reconciliation_service import reconcile_channels
from epg_reconciler.services.run_coordinator import RunCoordinator
from epg_reconciler.utils.data_merging import count_programmes, group_programmes_by_channel
from epg_reconciler.utils.logging_helpers import (
    log_merge_summary,
    log_run_summary,
    log_section,
    log_source_processing,
)


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SourceSummary:
    source: FeedSource
    sanitized_location: str
    started_at: datetime
    completed_at: datetime
    programmes: list[ProgrammePayload] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_report(self) -> SourceReport:
        return SourceReport(
            source_index=self.source.index,
            location=self.sanitized_location,
            programmes_parsed=len(self.programmes),
            duration_seconds=self.duration_seconds,
        )


class ReconcilePipeline:
    """Coordinates load, reconcile, and write stages for one run."""

    def __init__(
        self,
        settings: CustomSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self._http_client = http_client
        self._semaphore = asyncio.Semaphore(settings.download_max_concurrency)

    async def run(self) -> RunReport:
        started_at = datetime.now(timezone.utc)
        clock = time.perf_counter()
        logger.info(f"Reconciliation run started at {started_at.isoformat()}")

        # The allow-list is loaded first so a missing mapping aborts before any download
        channels = load_requested_channels(self.settings.channels_file)
        sources = select_feed_sources(self.settings)

        with log_section(logger, "feed loading"):
            summaries = await self._collect_sources(sources)

        grouped = group_programmes_by_channel(summary.programmes for summary in summaries)
        log_merge_summary(logger, len(grouped), count_programmes(grouped))

        with log_section(logger, "reconciliation"):
            results = reconcile_channels(
                channels,
                grouped,
                preferred_language=self.settings.preferred_title_lang or None,
                identity_scope=self.settings.identity_scope,
            )

        with log_section(logger, "output"):
            written = self._write_outputs(results)

        report = self._build_report(started_at, summaries, results, written)
        log_run_summary(logger, report.channels_written, report.total_events, time.perf_counter() - clock)
        return report

    async def _collect_sources(self, sources: list[FeedSource]) -> list[SourceSummary]:
        with tempfile.TemporaryDirectory(prefix="epg_reconciler_") as download_dir:
            if self._http_client is None and any(source.is_remote for source in sources):
                async with httpx.AsyncClient(
                    timeout=self.settings.download_timeout_sec,
                    follow_redirects=True,
                ) as client:
                    return await self._gather_sources(sources, Path(download_dir), client)
            return await self._gather_sources(sources, Path(download_dir), self._http_client)

    async def _gather_sources(
        self,
        sources: list[FeedSource],
        download_dir: Path,
        client: httpx.AsyncClient | None,
    ) -> list[SourceSummary]:
        tasks = [
            asyncio.create_task(self._process_source(source, len(sources), download_dir, client))
            for source in sources
        ]
        try:
            summaries = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        # Priority order, whatever order the downloads finished in
        summaries.sort(key=lambda summary: summary.source.index)
        return summaries

    async def _process_source(
        self,
        source: FeedSource,
        total: int,
        download_dir: Path,
        client: httpx.AsyncClient | None,
    ) -> SourceSummary:
        sanitized = _sanitize_url_for_logging(source.location)
        started_at = datetime.now(timezone.utc)

        async with self._semaphore:
            log_source_processing(logger, source.index, total, sanitized)
            try:
                programmes = await load_feed(source, self.settings, download_dir, client=client)
            except Exception as exc:
                logger.error("[Source %s] Failed to load %s: %s", source.index, sanitized, exc)
                raise

        return SourceSummary(
            source=source,
            sanitized_location=sanitized,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            programmes=programmes,
        )

    def _write_outputs(self, results: list[ChannelReconciliation]) -> dict[str, Path]:
        written: dict[str, Path] = {}
        for result in results:
            if result.skipped:
                continue
            if not result.events:
                logger.warning(
                    "No events left for %s (%s) after reconciliation, no file written",
                    result.channel.display_name,
                    result.channel.channel_id,
                )
                continue
            written[result.channel.channel_id] = write_channel_schedule(self.settings.output_dir, result)
        return written

    def _build_report(
        self,
        started_at: datetime,
        summaries: list[SourceSummary],
        results: list[ChannelReconciliation],
        written: dict[str, Path],
    ) -> RunReport:
        channel_reports = []
        for result in results:
            output_file = None
            if not result.skipped and result.channel.channel_id in written:
                output_file = str(written[result.channel.channel_id])
            channel_reports.append(ChannelReport.from_result(result, output_file))

        return RunReport(
            started_at=started_at.isoformat(),
            completed_at=datetime.now(timezone.utc).isoformat(),
            identity_scope=self.settings.identity_scope,
            preferred_title_lang=self.settings.preferred_title_lang,
            sources=[summary.to_report() for summary in summaries],
            channels_requested=len(results),
            channels_written=len(written),
            total_events=sum(result.accepted for result in results if not result.skipped),
            channels=channel_reports,
        )


def _sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    if "://" not in url:
        return url
    try:
        protocol, rest = url.split("://", 1)
        if "@" in rest:
            rest = rest.split("@", 1)[1]
            return f"{protocol}://***:***@{rest}"
        return url
    except (ValueError, IndexError):
        return url


async def run_reconciliation(
    settings: CustomSettings,
    coordinator: RunCoordinator,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> RunReport | None:
    """
    Main entry point for one reconciliation run with concurrency protection.

    Returns:
        RunReport, or None when another run is already in progress

    Raises:
        ReconcilerError: On any fatal input, feed or output error
    """
    pipeline = ReconcilePipeline(settings, http_client=http_client)
    return await coordinator.execute(pipeline.run)
