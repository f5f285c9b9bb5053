"""
Channel schedule writer

Serializes a reconciled channel timeline into its own XML document.
"""
import logging
from pathlib import Path

from lxml import etree # type: ignore

from epg_reconciler.errors import OutputWriteError
from epg_reconciler.epg_types import ChannelReconciliation, EventRecord
from epg_reconciler.utils.file_operations import ensure_directory
from epg_reconciler.utils.timezone import format_output_time

logger = logging.getLogger(__name__)

# Elements written only when they carry a value
_OPTIONAL_FIELDS = ("description", "actors", "directors", "production_year", "production_countries")


def build_channel_document(result: ChannelReconciliation) -> etree._Element:
    """Build the <channel> element for one reconciled channel"""
    root = etree.Element("channel", name=result.channel.display_name, id=result.channel.channel_id)
    events = etree.SubElement(root, "events")
    for event in result.events:
        events.append(_build_event(event))
    return root


def _build_event(event: EventRecord) -> etree._Element:
    element = etree.Element("event")
    etree.SubElement(element, "id").text = str(event.identity)
    etree.SubElement(element, "name").text = event.title
    etree.SubElement(element, "time_from").text = format_output_time(event.start)
    etree.SubElement(element, "time_till").text = format_output_time(event.end)

    for tag in _OPTIONAL_FIELDS:
        value = getattr(event, tag)
        if value:
            etree.SubElement(element, tag).text = value

    return element


def write_channel_schedule(output_dir: Path | str, result: ChannelReconciliation) -> Path:
    """
    Write one channel schedule to '<output_dir>/<channel_id>.xml'

    Args:
        output_dir: Target directory, created when missing
        result: Reconciled channel

    Returns:
        Path of the written file

    Raises:
        OutputWriteError: If the directory or file cannot be written
    """
    directory = Path(output_dir)
    target = directory / f"{result.channel.channel_id}.xml"

    try:
        ensure_directory(directory)
    except OSError as e:
        raise OutputWriteError(f"Unable to create output directory '{directory}': {e}") from e

    content = etree.tostring(
        build_channel_document(result),
        encoding="UTF-8",
        xml_declaration=True,
        pretty_print=True,
    )
    try:
        target.write_bytes(content)
    except OSError as e:
        raise OutputWriteError(f"Could not write to output file '{target}': {e}") from e

    logger.info(f"Wrote {len(result.events)} events for {result.channel.display_name} to {target}")
    return target
