"""Where zotu keeps its catalog, covers, logs and settings.

By default everything lives in the per-user platformdirs locations. A single
`--data-dir` root replaces all of them, which keeps test runs and portable
installs self-contained.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from platformdirs import AppDirs

APP_NAME = "zotu"
DB_FILE_NAME = "library.db"
STATE_FILE_NAME = "state.json"


@lru_cache(maxsize=1)
def get_app_dirs() -> AppDirs:
    return AppDirs(APP_NAME, appauthor=False)


@dataclass(frozen=True)
class AppPaths:
    """Resolved storage locations for one process."""

    data: Path
    config: Path

    @classmethod
    def resolve(cls, data_dir: str | Path | None = None) -> AppPaths:
        """Use `data_dir` for both data and config, else the platform dirs."""
        if data_dir:
            root = Path(data_dir).expanduser()
            return cls(data=root, config=root)
        dirs = get_app_dirs()
        return cls(data=Path(dirs.user_data_dir), config=Path(dirs.user_config_dir))

    @property
    def db(self) -> Path:
        return self.data / DB_FILE_NAME

    @property
    def covers(self) -> Path:
        return self.data / "covers"

    @property
    def logs(self) -> Path:
        return self.data / "logs"

    @property
    def state(self) -> Path:
        return self.config / STATE_FILE_NAME

    def ensure(self) -> AppPaths:
        """Create the directories; files inside them are created on demand."""
        for path in (self.data, self.config, self.logs, self.covers):
            path.mkdir(parents=True, exist_ok=True)
        return self
