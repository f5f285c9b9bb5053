"""
Data merging utilities

This module merges programmes from multiple feeds into per-channel lists.
"""
import logging
from collections.abc import Iterable, Sequence

from epg_reconciler.epg_types import ProgrammePayload

logger = logging.getLogger(__name__)


def group_programmes_by_channel(
    feeds: Iterable[Sequence[ProgrammePayload]]
) -> dict[str, list[ProgrammePayload]]:
    """
    Merge programmes of several feeds into one list per channel key.

    Feeds must be given in priority order. Within a channel, programmes keep
    feed order first and document order second, which is the order the
    reconciliation engine relies on for first-wins.

    Args:
        feeds: Programme sequences, most authoritative feed first

    Returns:
        Dictionary of channel_key -> programmes
    """
    grouped: dict[str, list[ProgrammePayload]] = {}

    for programmes in feeds:
        for programme in programmes:
            grouped.setdefault(programme.channel_key, []).append(programme)

    logger.debug("Grouped programmes into %s channel(s)", len(grouped))
    return grouped


def count_programmes(grouped: dict[str, list[ProgrammePayload]]) -> int:
    """Total number of programmes across all channels"""
    return sum(len(programmes) for programmes in grouped.values())
