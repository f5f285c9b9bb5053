"""
Event Reconciliation Service

Turns a channel's raw programmes, merged across feeds in priority order, into a
single non-overlapping, deduplicated, chronologically ordered timeline.

The first programme processed wins both identity and overlap conflicts, so the
caller must pass programmes ordered from the most authoritative feed down.
"""
from __future__ import annotations

import bisect
import logging
import zlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from epg_reconciler.errors import IntervalConflictError, MalformedInputError
from epg_reconciler.epg_types import (
    ChannelReconciliation,
    Collision,
    EventRecord,
    LocalizedText,
    ProgrammePayload,
    RequestedChannel,
)
from epg_reconciler.utils.logging_helpers import log_channel_summary
from epg_reconciler.utils.timezone import (
    DateFormatError,
    format_output_time,
    parse_xmltv_time,
    truncate_to_seconds,
)

logger = logging.getLogger(__name__)

IdentityScope = Literal["channel", "run"]

# Width of the channel component packed into an identity
_CHANNEL_SLOTS = 10_000


@dataclass(slots=True, frozen=True)
class Interval:
    """Half-open [start, end) interval of an accepted event."""
    start: datetime
    end: datetime
    label: str = ""

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


class IntervalIndex:
    """
    Accepted intervals of one channel timeline, kept sorted by start.

    Accepted intervals never overlap, so they are also sorted by end and only
    the last interval starting before a candidate's end can collide with it.
    """

    def __init__(self) -> None:
        self._starts: list[datetime] = []
        self._intervals: list[Interval] = []

    def __len__(self) -> int:
        return len(self._intervals)

    def __iter__(self):
        return iter(self._intervals)

    def find_overlap(self, start: datetime, end: datetime) -> Interval | None:
        """Return the accepted interval intersecting [start, end), if any"""
        position = bisect.bisect_left(self._starts, end)
        if position == 0:
            return None
        candidate = self._intervals[position - 1]
        return candidate if candidate.overlaps(start, end) else None

    def intersects(self, start: datetime, end: datetime) -> bool:
        return self.find_overlap(start, end) is not None

    def accept(self, start: datetime, end: datetime, label: str = "") -> Interval:
        """
        Insert an interval the caller has checked with intersects()

        Raises:
            IntervalConflictError: If the interval overlaps an accepted one
        """
        conflict = self.find_overlap(start, end)
        if conflict is not None:
            raise IntervalConflictError(
                f"[{start.isoformat()}, {end.isoformat()}) overlaps accepted "
                f"[{conflict.start.isoformat()}, {conflict.end.isoformat()})"
            )

        interval = Interval(start=start, end=end, label=label)
        position = bisect.bisect_right(self._starts, start)
        self._starts.insert(position, start)
        self._intervals.insert(position, interval)
        return interval


class IdentityRegistry:
    """First record seen for every identity within one scope."""

    def __init__(self) -> None:
        self._records: dict[int, EventRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, identity: object) -> bool:
        return identity in self._records

    def register(self, identity: int, record: EventRecord) -> tuple[EventRecord, bool]:
        """
        Store record under identity unless the identity is already known.

        Returns:
            Tuple of (stored record, is_new). When is_new is False the stored
            record is the one registered first.
        """
        existing = self._records.get(identity)
        if existing is not None:
            return existing, False
        self._records[identity] = record
        return record, True


def derive_identity(start: datetime, channel_key: str) -> int:
    """
    Derive the stable identity of a broadcast slot.

    Epoch seconds of the start followed by four digits derived from the
    channel key. Ordering identities of one channel orders them by start.
    """
    seconds = int(truncate_to_seconds(start).timestamp())
    channel_slot = zlib.crc32(channel_key.encode("utf-8")) % _CHANNEL_SLOTS
    return seconds * _CHANNEL_SLOTS + channel_slot


def select_localized(variants: Sequence[LocalizedText], preferred_language: str | None) -> str:
    """
    Pick one text among localized variants.

    The first variant tagged with the preferred language wins, then the first
    variant, then the empty string.
    """
    if not variants:
        return ""
    if preferred_language:
        wanted = preferred_language.lower()
        for variant in variants:
            if variant.lang and variant.lang.lower() == wanted:
                return variant.text
    return variants[0].text


def join_values(values: Sequence[str]) -> str:
    return ", ".join(values)


def normalize_interval(programme: ProgrammePayload) -> tuple[datetime, datetime]:
    """
    Normalize programme start/stop to UTC.

    Raises:
        MalformedInputError: If a timestamp is invalid or start >= stop
    """
    try:
        start = parse_xmltv_time(programme.start)
        end = parse_xmltv_time(programme.stop)
    except DateFormatError as exc:
        raise MalformedInputError(
            f"Channel '{programme.channel_key}' (source {programme.source_index}): {exc}"
        ) from exc

    if start >= end:
        raise MalformedInputError(
            f"Channel '{programme.channel_key}' (source {programme.source_index}): "
            f"start {programme.start!r} is not before stop {programme.stop!r}"
        )
    return start, end


def reconcile_channel(
    channel: RequestedChannel,
    programmes: Sequence[ProgrammePayload],
    *,
    preferred_language: str | None,
    identity_registry: IdentityRegistry,
    interval_index: IntervalIndex | None = None,
) -> ChannelReconciliation:
    """
    Reconcile the raw programmes of one channel.

    Args:
        channel: Requested channel from the allow-list
        programmes: Raw programmes in priority order
        preferred_language: Language tag preferred when picking titles
        identity_registry: Registry for this channel or for the whole run
        interval_index: Fresh index for this channel (created when omitted)

    Returns:
        ChannelReconciliation with events sorted by identity

    Raises:
        MalformedInputError: If any programme has invalid times
    """
    index = interval_index if interval_index is not None else IntervalIndex()
    result = ChannelReconciliation(channel=channel, received=len(programmes))

    for programme in programmes:
        start, end = normalize_interval(programme)
        identity = derive_identity(start, programme.channel_key)

        record = EventRecord(
            identity=identity,
            channel_key=programme.channel_key,
            start=start,
            end=end,
            title=select_localized(programme.titles, preferred_language),
            description=select_localized(programme.descriptions, preferred_language),
            actors=join_values(programme.actors),
            directors=join_values(programme.directors),
            production_year=programme.production_year or "",
            production_countries=join_values(programme.countries),
            source_index=programme.source_index,
        )

        existing, is_new = identity_registry.register(identity, record)
        if not is_new:
            if existing.channel_key == record.channel_key:
                result.duplicates += 1
                logger.debug(
                    "Duplicate slot on %s at %s from source %s (kept source %s)",
                    channel.display_name,
                    format_output_time(start),
                    record.source_index,
                    existing.source_index,
                )
            else:
                result.identity_collisions += 1
                logger.warning(
                    "Identity %s of %s at %s already assigned to channel %s; event dropped",
                    identity,
                    record.channel_key,
                    format_output_time(start),
                    existing.channel_key,
                )
            continue

        conflict = index.find_overlap(start, end)
        if conflict is not None:
            collision = Collision(
                channel_key=record.channel_key,
                start=start,
                end=end,
                title=record.title,
                accepted_start=conflict.start,
                accepted_end=conflict.end,
                accepted_title=conflict.label,
            )
            result.collisions.append(collision)
            result.overlaps += 1
            logger.info(
                "Temporal collision on %s: '%s' [%s, %s) overlaps '%s' [%s, %s)",
                channel.display_name,
                collision.title,
                format_output_time(collision.start),
                format_output_time(collision.end),
                collision.accepted_title,
                format_output_time(collision.accepted_start),
                format_output_time(collision.accepted_end),
            )
            continue

        index.accept(start, end, record.title)
        result.events.append(record)

    result.events.sort(key=lambda event: event.identity)
    return result


def reconcile_channels(
    channels: Sequence[RequestedChannel],
    programmes_by_channel: Mapping[str, Sequence[ProgrammePayload]],
    *,
    preferred_language: str | None,
    identity_scope: IdentityScope = "channel",
) -> list[ChannelReconciliation]:
    """
    Reconcile every requested channel in allow-list order.

    Channels without raw programmes are returned with no events. A single
    MalformedInputError aborts the whole batch.
    """
    run_registry = IdentityRegistry() if identity_scope == "run" else None
    results: list[ChannelReconciliation] = []

    for channel in channels:
        programmes = programmes_by_channel.get(channel.display_name, ())
        if not programmes:
            skipped = ChannelReconciliation(channel=channel)
            log_channel_summary(logger, skipped)
            results.append(skipped)
            continue

        registry = run_registry if run_registry is not None else IdentityRegistry()
        result = reconcile_channel(
            channel,
            programmes,
            preferred_language=preferred_language,
            identity_registry=registry,
        )
        log_channel_summary(logger, result)
        results.append(result)

    return results
