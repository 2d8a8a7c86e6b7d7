from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from storage.fixtures import FixtureStore


@pytest.fixture
def store(fixture_dir: Path) -> FixtureStore:
    return FixtureStore(root_path=fixture_dir)


@pytest.fixture
def api_client(store: FixtureStore, monkeypatch) -> Iterator[TestClient]:
    def build_test_store(root_path: str | None = None) -> FixtureStore:
        return store

    build_test_store.cache_clear = lambda: None  # type: ignore[attr-defined]

    monkeypatch.setattr("app.main.build_default_store", build_test_store)
    monkeypatch.setattr("app.api.build_default_store", build_test_store)

    app = create_app()
    with TestClient(app) as client:
        yield client


def test_healthz_reports_healthy(api_client: TestClient) -> None:
    response = api_client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_serves_fixture_for_any_date_prefix(api_client: TestClient) -> None:
    response = api_client.get("/250101_rpts_hail.csv")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.splitlines()
    assert lines[0] == "Time,Size,Location,County,State,Lat,Lon,Comments"
    assert lines[1].startswith("2024-04-26T15:10:00Z,125,3 ESE Chappel,San Saba,TX")
    assert lines[2].startswith("2024-04-26T09:05:00Z,")
    assert lines[3].startswith("2024-04-26T00:00:00Z,")


def test_fixture_on_disk_is_unchanged_after_serving(
    api_client: TestClient, fixture_dir: Path
) -> None:
    original = (fixture_dir / "240426_rpts_hail.csv").read_bytes()

    api_client.get("/240426_rpts_hail.csv")
    api_client.get("/240426_rpts_hail.csv")

    assert (fixture_dir / "240426_rpts_hail.csv").read_bytes() == original


def test_undated_fixture_is_served_raw(api_client: TestClient, fixture_dir: Path) -> None:
    raw = "Time,Speed\n1510,65\n"
    (fixture_dir / "latest_rpts_wind.csv").write_text(raw)

    response = api_client.get("/240426_rpts_wind.csv")

    assert response.status_code == 200
    assert response.text == raw


def test_ragged_fixture_degrades_to_raw_bytes(api_client: TestClient, fixture_dir: Path) -> None:
    raw = "Time,F_Scale,State\n1510,EF1\n905,EF0,NE\n"
    (fixture_dir / "240426_rpts_torn.csv").write_text(raw)

    response = api_client.get("/240426_rpts_torn.csv")

    assert response.status_code == 200
    assert response.text == raw


def test_missing_fixture_type_returns_not_found(api_client: TestClient) -> None:
    response = api_client.get("/240426_rpts_torn.csv")

    assert response.status_code == 404
    assert response.text == "fixture not found"


def test_unknown_path_returns_not_found(api_client: TestClient) -> None:
    for path in ("/", "/index.html", "/240426_rpts_snow.csv"):
        response = api_client.get(path)
        assert response.status_code == 404


def test_read_failure_returns_server_error(monkeypatch, fixture_dir: Path, caplog) -> None:
    class UnreadableStore(FixtureStore):
        def read(self, path: Path) -> bytes:
            raise PermissionError(f"cannot read {path}")

    broken = UnreadableStore(root_path=fixture_dir)

    def build_test_store(root_path: str | None = None) -> FixtureStore:
        return broken

    build_test_store.cache_clear = lambda: None  # type: ignore[attr-defined]
    monkeypatch.setattr("app.main.build_default_store", build_test_store)
    monkeypatch.setattr("app.api.build_default_store", build_test_store)

    with TestClient(create_app()) as client:
        response = client.get("/240426_rpts_hail.csv")

    assert response.status_code == 500
    assert response.text == "fixture not found"
    records = [record for record in caplog.records if record.name == "app.api"]
    assert any(getattr(record, "fixture", None) == "240426_rpts_hail.csv" for record in records)
