"""
Shared dataclasses used across the reconciliation pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True, frozen=True)
class LocalizedText:
    """One language variant of a title or description."""
    text: str
    lang: str | None = None


@dataclass(slots=True, frozen=True)
class RequestedChannel:
    """Allow-list entry: output identifier plus the feed channel key it joins on."""
    channel_id: str
    display_name: str


@dataclass(slots=True, frozen=True)
class FeedSource:
    """A feed location with its priority (1 is the most authoritative)."""
    index: int
    location: str

    @property
    def is_remote(self) -> bool:
        return self.location.lower().startswith(("http://", "https://"))


@dataclass(slots=True)
class ProgrammePayload:
    """In-memory representation of a raw <programme> element before reconciliation."""
    channel_key: str
    start: str
    stop: str
    titles: list[LocalizedText] = field(default_factory=list)
    descriptions: list[LocalizedText] = field(default_factory=list)
    actors: list[str] = field(default_factory=list)
    directors: list[str] = field(default_factory=list)
    countries: list[str] = field(default_factory=list)
    production_year: str | None = None
    source_index: int = 1


@dataclass(slots=True, frozen=True)
class EventRecord:
    """Normalized event accepted into a channel timeline."""
    identity: int
    channel_key: str
    start: datetime
    end: datetime
    title: str
    description: str = ""
    actors: str = ""
    directors: str = ""
    production_year: str = ""
    production_countries: str = ""
    source_index: int = 1


@dataclass(slots=True, frozen=True)
class Collision:
    """A rejected event and the accepted interval it overlapped."""
    channel_key: str
    start: datetime
    end: datetime
    title: str
    accepted_start: datetime
    accepted_end: datetime
    accepted_title: str


@dataclass(slots=True)
class ChannelReconciliation:
    """Outcome of reconciling one requested channel."""
    channel: RequestedChannel
    events: list[EventRecord] = field(default_factory=list)
    received: int = 0
    overlaps: int = 0
    duplicates: int = 0
    identity_collisions: int = 0
    collisions: list[Collision] = field(default_factory=list)

    @property
    def accepted(self) -> int:
        return len(self.events)

    @property
    def skipped(self) -> bool:
        return self.received == 0


__all__ = [
    "ChannelReconciliation",
    "Collision",
    "EventRecord",
    "FeedSource",
    "LocalizedText",
    "ProgrammePayload",
    "RequestedChannel",
]
