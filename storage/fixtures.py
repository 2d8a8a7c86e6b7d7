from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from app.schemas import ReportType
from settings import get_settings

_SUFFIX_TEMPLATE = "_rpts_{kind}.csv"


class FixtureNotFoundError(LookupError):
    """No fixture file in the data directory matches the report type."""


def resolve_report_type(request_path: str) -> Optional[ReportType]:
    """Map a request path such as ``/240426_rpts_hail.csv`` to its report type."""
    name = request_path.lstrip("/")
    for report_type in ReportType:
        if name.endswith(_SUFFIX_TEMPLATE.format(kind=report_type.value)):
            return report_type
    return None


class FixtureStore:
    """Read-only view over a directory of ``{YYMMDD}_rpts_{type}.csv`` files."""

    def __init__(self, root_path: Path) -> None:
        self.root_path = root_path

    def find(self, report_type: ReportType) -> Path:
        pattern = "*" + _SUFFIX_TEMPLATE.format(kind=report_type.value)
        matches = sorted(path for path in self.root_path.glob(pattern) if path.is_file())
        if not matches:
            raise FixtureNotFoundError(
                f"No fixture matching {pattern!r} in {str(self.root_path)!r}."
            )
        return matches[0]

    def read(self, path: Path) -> bytes:
        return path.read_bytes()


@lru_cache
def build_default_store(root_path: Optional[str] = None) -> FixtureStore:
    settings = get_settings()
    directory = settings.data_dir if root_path is None else root_path
    return FixtureStore(root_path=Path(directory))
