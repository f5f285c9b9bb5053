from pydantic import BaseModel, Field

from epg_reconciler.epg_types import ChannelReconciliation, Collision
from epg_reconciler.utils.timezone import format_output_time


class CollisionDetail(BaseModel):
    """Rejected event and the accepted event it overlapped"""
    title: str
    time_from: str = Field(..., description="UTC start of the rejected event")
    time_till: str = Field(..., description="UTC end of the rejected event")
    accepted_title: str
    accepted_time_from: str
    accepted_time_till: str

    @classmethod
    def from_collision(cls, collision: Collision) -> "CollisionDetail":
        return cls(
            title=collision.title,
            time_from=format_output_time(collision.start),
            time_till=format_output_time(collision.end),
            accepted_title=collision.accepted_title,
            accepted_time_from=format_output_time(collision.accepted_start),
            accepted_time_till=format_output_time(collision.accepted_end),
        )


class ChannelReport(BaseModel):
    """Per-channel reconciliation counts"""
    channel_id: str
    display_name: str
    received: int = Field(..., description="Raw programmes matched to the channel")
    accepted: int
    overlaps: int = Field(..., description="Events rejected as temporal collisions")
    duplicates: int = Field(..., description="Events dropped as duplicate slots")
    identity_collisions: int = Field(0, description="Identities already assigned to another channel")
    skipped: bool = Field(False, description="True when the channel had no programmes")
    output_file: str | None = None
    collisions: list[CollisionDetail] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ChannelReconciliation, output_file: str | None = None) -> "ChannelReport":
        return cls(
            channel_id=result.channel.channel_id,
            display_name=result.channel.display_name,
            received=result.received,
            accepted=result.accepted,
            overlaps=result.overlaps,
            duplicates=result.duplicates,
            identity_collisions=result.identity_collisions,
            skipped=result.skipped,
            output_file=output_file,
            collisions=[CollisionDetail.from_collision(collision) for collision in result.collisions],
        )


class SourceReport(BaseModel):
    """Per-feed load summary"""
    source_index: int
    location: str
    programmes_parsed: int
    duration_seconds: float


class RunReport(BaseModel):
    """Summary of one reconciliation run"""
    status: str = "success"
    started_at: str
    completed_at: str
    identity_scope: str
    preferred_title_lang: str
    sources: list[SourceReport]
    channels_requested: int
    channels_written: int
    total_events: int
    channels: list[ChannelReport]
