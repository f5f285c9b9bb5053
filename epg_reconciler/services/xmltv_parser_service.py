from typing import Optional
import logging

from lxml import etree # type: ignore

from epg_reconciler.errors import MalformedInputError
from epg_reconciler.epg_types import LocalizedText, ProgrammePayload

logger = logging.getLogger(__name__)


def parse_xmltv_file(file_path: str, source_index: int = 1) -> list[ProgrammePayload]:
    """
    Parse XMLTV file and return its programmes in document order

    Args:
        file_path: Path to XMLTV file
        source_index: Priority of this feed (1 = most authoritative)

    Returns:
        List of raw ProgrammePayload objects, timestamps left unparsed

    Raises:
        MalformedInputError: If XML is malformed or a programme lacks required attributes
        OSError: If file can't be read
    """
    logger.debug(f"Parsing XMLTV file: {file_path}")

    try:
        tree = etree.parse(file_path)
        root = tree.getroot()
        logger.debug(f"  XML document loaded (root tag: {root.tag})")
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error in {file_path}: {e}")
        raise MalformedInputError(f"Malformed XMLTV document '{file_path}': {e}") from e

    programmes = [
        _parse_single_programme(programme, source_index)
        for programme in root.iter('programme')
    ]

    logger.info(f"XMLTV parsing complete: {len(programmes)} programmes from {file_path}")

    return programmes


def _parse_single_programme(programme: etree._Element, source_index: int) -> ProgrammePayload:
    """Parse single programme element"""
    channel_key = (programme.get('channel') or '').strip()
    start_str = programme.get('start')
    stop_str = programme.get('stop')

    if not channel_key or not start_str or not stop_str:
        raise MalformedInputError(
            f"Programme on line {programme.sourceline} is missing channel, start or stop attribute"
        )

    credits = programme.find('credits')

    return ProgrammePayload(
        channel_key=channel_key,
        start=start_str,
        stop=stop_str,
        titles=_get_localized(programme, 'title'),
        descriptions=_get_localized(programme, 'desc'),
        actors=_get_texts(credits, 'actor'),
        directors=_get_texts(credits, 'producer'),
        countries=_get_texts(programme, 'country'),
        production_year=_get_text(programme, 'date'),
        source_index=source_index,
    )


def _get_localized(element: etree._Element, tag: str) -> list[LocalizedText]:
    """Collect every language variant of a child element"""
    return [
        LocalizedText(text=(child.text or '').strip(), lang=child.get('lang'))
        for child in element.findall(tag)
    ]


def _get_texts(element: Optional[etree._Element], tag: str) -> list[str]:
    """Collect non-empty text of repeated child elements"""
    if element is None:
        return []
    return [child.text.strip() for child in element.findall(tag) if child.text and child.text.strip()]


def _get_text(element: etree._Element, tag: str, default: Optional[str] = None) -> Optional[str]:
    """Safely extract text from XML element"""
    child = element.find(tag)
    if child is None or not child.text:
        return default
    return child.text.strip()
