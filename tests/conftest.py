"""Shared pytest configuration.

Live-stack scenarios under ``tests/e2e`` are skipped unless ``--e2e`` is given:
    pytest --e2e tests/e2e
"""

from __future__ import annotations

from pathlib import Path

import pytest

HAIL_CSV = (
    "Time,Size,Location,County,State,Lat,Lon,Comments\n"
    "1510,125,3 ESE Chappel,San Saba,TX,31.01,-98.52,(SJT)\n"
    "905,100,Hastings,Adams,NE,40.59,-98.39,(GID)\n"
    "5,75,Ord,Valley,NE,41.60,-98.93,(GID)\n"
)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--e2e",
        action="store_true",
        default=False,
        help="Run end-to-end scenarios against a running pipeline",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "e2e: scenarios that need the live collector, ETL and query API",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="E2E scenarios require --e2e")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture
def fixture_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "fixtures"
    directory.mkdir()
    (directory / "240426_rpts_hail.csv").write_text(HAIL_CSV)
    return directory
