from __future__ import annotations

from pathlib import Path

import pytest

from app.schemas import ReportType
from settings import get_settings
from storage.fixtures import (
    FixtureNotFoundError,
    FixtureStore,
    build_default_store,
    resolve_report_type,
)


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/240426_rpts_torn.csv", ReportType.torn),
        ("/climo/reports/250101_rpts_hail.csv", ReportType.hail),
        ("today_rpts_wind.csv", ReportType.wind),
        ("/240426_rpts_filtered_hail.csv", None),
        ("/240426_rpts_hail.csv.bak", None),
        ("/healthz", None),
        ("/", None),
    ],
)
def test_resolve_report_type(path: str, expected: ReportType | None) -> None:
    assert resolve_report_type(path) == expected


def test_find_returns_lexicographically_first_match(tmp_path: Path) -> None:
    (tmp_path / "240501_rpts_hail.csv").write_text("Time\n0100\n")
    (tmp_path / "240426_rpts_hail.csv").write_text("Time\n0200\n")
    (tmp_path / "240426_rpts_wind.csv").write_text("Time\n0300\n")
    store = FixtureStore(root_path=tmp_path)

    assert store.find(ReportType.hail).name == "240426_rpts_hail.csv"
    assert store.find(ReportType.wind).name == "240426_rpts_wind.csv"


def test_find_missing_type_raises(tmp_path: Path) -> None:
    (tmp_path / "240426_rpts_hail.csv").write_text("Time\n0100\n")
    store = FixtureStore(root_path=tmp_path)

    with pytest.raises(FixtureNotFoundError) as excinfo:
        store.find(ReportType.torn)

    assert "_rpts_torn.csv" in str(excinfo.value)


def test_find_in_missing_directory_raises(tmp_path: Path) -> None:
    store = FixtureStore(root_path=tmp_path / "absent")

    with pytest.raises(FixtureNotFoundError):
        store.find(ReportType.hail)


def test_read_returns_file_bytes(fixture_dir: Path) -> None:
    store = FixtureStore(root_path=fixture_dir)

    path = store.find(ReportType.hail)

    assert store.read(path) == (fixture_dir / "240426_rpts_hail.csv").read_bytes()


def test_default_store_uses_data_dir_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    get_settings.cache_clear()
    build_default_store.cache_clear()

    try:
        assert build_default_store().root_path == tmp_path
    finally:
        build_default_store.cache_clear()
        get_settings.cache_clear()
