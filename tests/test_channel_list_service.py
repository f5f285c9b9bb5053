"""Unit tests for the channel allow-list loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from epg_reconciler.epg_types import RequestedChannel
from epg_reconciler.errors import MalformedInputError
from epg_reconciler.services.channel_list_service import load_requested_channels


def test_loads_channels_in_file_order(tmp_path: Path) -> None:
    path = tmp_path / "channels.csv"
    path.write_text('102,Beta\n101,Alfa\n103,"Gamma, HD",extra\n', encoding="utf-8")

    assert load_requested_channels(path) == [
        RequestedChannel("102", "Beta"),
        RequestedChannel("101", "Alfa"),
        RequestedChannel("103", "Gamma, HD"),
    ]


def test_blank_lines_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "channels.csv"
    path.write_text("101,Alfa\n\n , \n102,Beta\n", encoding="utf-8")

    assert [channel.channel_id for channel in load_requested_channels(path)] == ["101", "102"]


def test_missing_file_is_malformed_input(tmp_path: Path) -> None:
    with pytest.raises(MalformedInputError, match="does not exist"):
        load_requested_channels(tmp_path / "missing.csv")


@pytest.mark.parametrize("content", ["101\n", ",Alfa\n"])
def test_incomplete_row_is_malformed_input(tmp_path: Path, content: str) -> None:
    path = tmp_path / "channels.csv"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(MalformedInputError, match="line 1"):
        load_requested_channels(path)


def test_repeated_channel_id_is_malformed_input(tmp_path: Path) -> None:
    path = tmp_path / "channels.csv"
    path.write_text("101,Alfa\n102,Beta\n101,Gamma\n", encoding="utf-8")

    with pytest.raises(MalformedInputError, match="line 3: channel id '101' already used on line 1"):
        load_requested_channels(path)
