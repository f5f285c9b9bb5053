"""
Channel allow-list loading

Reads the CSV mapping of output channel IDs to feed channel names.
"""
import csv
import logging
from pathlib import Path

from epg_reconciler.errors import MalformedInputError
from epg_reconciler.epg_types import RequestedChannel

logger = logging.getLogger(__name__)


def load_requested_channels(file_path: Path | str) -> list[RequestedChannel]:
    """
    Load the requested channels in file order

    Each row is 'channel_id,display_name'; extra columns are ignored.

    Args:
        file_path: Path to the CSV allow-list

    Returns:
        List of RequestedChannel

    Raises:
        MalformedInputError: If the file is missing, unreadable or has a malformed row
    """
    path = Path(file_path)
    try:
        with path.open(newline='', encoding='utf-8') as handle:
            rows = list(csv.reader(handle))
    except FileNotFoundError as e:
        raise MalformedInputError(f"Channels file '{path}' does not exist") from e
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise MalformedInputError(f"Could not read channels file '{path}': {e}") from e

    channels = []
    seen_ids: dict[str, int] = {}
    for line_number, row in enumerate(rows, start=1):
        if not row or all(not cell.strip() for cell in row):
            continue
        if len(row) < 2 or not row[0].strip():
            raise MalformedInputError(
                f"Channels file '{path}' line {line_number}: expected 'channel_id,display_name', got {row!r}"
            )
        channel_id = row[0].strip()
        if channel_id in seen_ids:
            raise MalformedInputError(
                f"Channels file '{path}' line {line_number}: channel id '{channel_id}' "
                f"already used on line {seen_ids[channel_id]}"
            )
        seen_ids[channel_id] = line_number
        channels.append(RequestedChannel(channel_id=channel_id, display_name=row[1].strip()))

    logger.info(f"Loaded {len(channels)} requested channels from {path}")
    return channels
