"""Shared fixtures for the EPG reconciler tests."""

from __future__ import annotations

import typing as typ
from pathlib import Path

import pytest

from epg_reconciler.config import CustomSettings
from epg_reconciler.epg_types import LocalizedText, ProgrammePayload

FEED_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n<tv generator-info-name="test">\n'
FEED_FOOTER = "</tv>\n"


def programme_xml(
    channel: str,
    start: str,
    stop: str,
    title: str = "Show",
    *,
    lang: str = "bg",
    body: str = "",
) -> str:
    """Render one <programme> element."""
    return (
        f'  <programme start="{start}" stop="{stop}" channel="{channel}">\n'
        f'    <title lang="{lang}">{title}</title>\n'
        f"{body}"
        "  </programme>\n"
    )


def make_programme(
    start: str,
    stop: str,
    title: str = "Show",
    *,
    channel: str = "Alfa",
    source_index: int = 1,
    titles: list[LocalizedText] | None = None,
    **fields: typ.Any,
) -> ProgrammePayload:
    """Build a raw programme with sensible defaults."""
    return ProgrammePayload(
        channel_key=channel,
        start=start,
        stop=stop,
        titles=titles if titles is not None else [LocalizedText(title, "bg")],
        source_index=source_index,
        **fields,
    )


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings from picking up a stray .env file."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def write_feed(tmp_path: Path) -> typ.Callable[..., Path]:
    """Write an XMLTV document made of the given programme snippets."""

    def _write(name: str, *programmes: str) -> Path:
        path = tmp_path / name
        path.write_text(FEED_HEADER + "".join(programmes) + FEED_FOOTER, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def channels_file(tmp_path: Path) -> Path:
    path = tmp_path / "channels.csv"
    path.write_text("101,Alfa\n102,Beta\n", encoding="utf-8")
    return path


@pytest.fixture
def make_settings(tmp_path: Path, channels_file: Path) -> typ.Callable[..., CustomSettings]:
    """Settings pointing at temporary channels and output locations."""

    def _make(**overrides: typ.Any) -> CustomSettings:
        values: dict[str, typ.Any] = {
            "channels_file": str(channels_file),
            "output_dir": str(tmp_path / "out"),
            "preferred_title_lang": "bg",
            "download_max_retries": 1,
        }
        values.update(overrides)
        return CustomSettings(**values)

    return _make
