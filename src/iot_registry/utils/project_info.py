"""
Name and version of the registry, stamped on every JSON log line.

The installed distribution is authoritative; a source checkout that was never
installed falls back to the nearest pyproject.toml above this package.
"""

import tomllib
from dataclasses import dataclass
from functools import lru_cache
from importlib import metadata as importlib_metadata
from pathlib import Path

DISTRIBUTION_NAME = "iot-registry"
UNKNOWN_VERSION = "unknown"


@dataclass(frozen=True)
class ProjectInfo:
    name: str
    version: str


def find_pyproject(start: Path, max_up: int = 5) -> Path | None:
    """Walk up from `start` looking for a pyproject.toml, at most `max_up` levels."""
    current = start
    for _ in range(max_up):
        candidate = current / "pyproject.toml"
        if candidate.exists():
            return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def _read_project_table(pyproject: Path) -> dict:
    try:
        with pyproject.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    project = data.get("project")
    return project if isinstance(project, dict) else {}


@lru_cache()
def get_project_info(start: Path | None = None) -> ProjectInfo:
    """
    Resolve the project name and version once per process.

    Order: installed `iot-registry` distribution metadata, then `[project]` of
    the nearest pyproject.toml, then `iot-registry` / "unknown".
    """
    try:
        return ProjectInfo(DISTRIBUTION_NAME, importlib_metadata.version(DISTRIBUTION_NAME))
    except importlib_metadata.PackageNotFoundError:
        pass

    pyproject = find_pyproject(start or Path(__file__).resolve().parent)
    project = _read_project_table(pyproject) if pyproject else {}
    return ProjectInfo(
        name=project.get("name", DISTRIBUTION_NAME),
        version=project.get("version", UNKNOWN_VERSION),
    )
