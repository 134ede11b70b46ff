"""Versioned SQL migrations kept as up/down file pairs in a folder."""

import re
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import BigInteger, Boolean, Column, MetaData, Table, create_engine, delete, insert, select
from sqlalchemy.engine import Engine

from .infrastructure import load_config

FOLDER_NAME = "migrations"
NIL_VERSION = -1

_FILE_PATTERN = re.compile(r"^([0-9]+)_(.*)\.(up|down)\.(.*)$")

_metadata = MetaData()
_version_table = Table(
    "schema_migrations",
    _metadata,
    Column("version", BigInteger, primary_key=True, autoincrement=False),
    Column("dirty", Boolean, nullable=False),
)


class MigrationError(Exception):
    """A migration could not be run."""


class NoChangeError(MigrationError):
    """There was nothing to migrate."""

    def __init__(self) -> None:
        super().__init__("no change")


class ShortLimitError(MigrationError):
    """Fewer migrations were available than the requested number of steps."""

    def __init__(self, limit: int, short: int) -> None:
        super().__init__(f"limit {limit} short by {short}")
        self.short = short


class DirtyError(MigrationError):
    """A previous migration failed half-way."""

    def __init__(self, version: int) -> None:
        super().__init__(f"Dirty database version {version}. Fix and force version.")
        self.version = version


@dataclass(frozen=True)
class MigrationFile:
    version: int
    name: str
    up: Optional[Path] = None
    down: Optional[Path] = None


def migration_file_names(
    folder_name: str, name: str, now: Optional[datetime] = None
) -> tuple[str, str]:
    """Return the up and down file names for a migration created at ``now``."""
    seconds = int(now.timestamp()) if now is not None else int(time.time())
    return (
        f"{folder_name}/{seconds}_{name}.up.sql",
        f"{folder_name}/{seconds}_{name}.down.sql",
    )


def create_migration(name: str, folder_name: str = FOLDER_NAME) -> tuple[str, str]:
    """Create an empty up/down migration pair and return their paths."""
    up_name, down_name = migration_file_names(folder_name, name)
    Path(folder_name).mkdir(parents=True, exist_ok=True)
    Path(up_name).write_bytes(b"")
    try:
        Path(down_name).write_bytes(b"")
    except OSError:
        Path(up_name).unlink(missing_ok=True)
        raise
    return up_name, down_name


def load_migrations(folder_name: Union[str, Path]) -> list[MigrationFile]:
    """Read the migration files in a folder, ordered by version."""
    folder = Path(folder_name)
    if not folder.is_dir():
        raise FileNotFoundError(f"migration folder not found: {folder}")
    found: dict[int, dict] = {}
    for path in folder.iterdir():
        match = _FILE_PATTERN.match(path.name)
        if match is None or not path.is_file():
            continue
        version, title, direction = int(match.group(1)), match.group(2), match.group(3)
        entry = found.setdefault(version, {"name": title})
        if direction in entry:
            raise MigrationError(f"duplicate migration file: {path.name}")
        entry[direction] = path
    return [
        MigrationFile(version, entry["name"], entry.get("up"), entry.get("down"))
        for version, entry in sorted(found.items())
    ]


class Migrator:
    """Applies the migrations of a folder to a database, one version at a time."""

    def __init__(self, engine: Engine, folder_name: Union[str, Path] = FOLDER_NAME) -> None:
        self._engine = engine
        self._folder = Path(folder_name)
        _metadata.create_all(engine)

    def close(self) -> None:
        self._engine.dispose()

    def __enter__(self) -> "Migrator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def version(self) -> tuple[Optional[int], bool]:
        """Return the current version (None before any migration) and the dirty flag."""
        with self._engine.connect() as conn:
            row = conn.execute(select(_version_table.c.version, _version_table.c.dirty)).first()
        if row is None:
            return None, False
        version = None if row.version == NIL_VERSION else int(row.version)
        return version, bool(row.dirty)

    def _set_version(self, version: Optional[int], dirty: bool) -> None:
        with self._engine.begin() as conn:
            conn.execute(delete(_version_table))
            if version is not None or dirty:
                stored = NIL_VERSION if version is None else version
                conn.execute(insert(_version_table).values(version=stored, dirty=dirty))

    def _run_script(self, path: Path) -> None:
        script = path.read_text(encoding="utf-8")
        if not script.strip():
            return
        raw = self._engine.raw_connection()
        try:
            cursor = raw.cursor()
            if hasattr(cursor, "executescript"):
                cursor.executescript(script)
            else:
                cursor.execute(script)
            cursor.close()
            raw.commit()
        finally:
            raw.close()

    def _apply(self, script: Optional[Path], target: Optional[int], label: str) -> None:
        if script is None:
            raise MigrationError(f"no {label} migration file")
        self._set_version(target, True)
        self._run_script(script)
        self._set_version(target, False)

    def _current(self) -> Optional[int]:
        current, dirty = self.version()
        if dirty:
            raise DirtyError(NIL_VERSION if current is None else current)
        return current

    @staticmethod
    def _position(migrations: list[MigrationFile], current: Optional[int]) -> int:
        if current is None:
            return -1
        for position, migration in enumerate(migrations):
            if migration.version == current:
                return position
        raise MigrationError(f"no migration found for version {current}")

    def _step_up(self, migration: MigrationFile) -> None:
        self._apply(migration.up, migration.version, f"up {migration.version}")

    def _step_down(self, migrations: list[MigrationFile], position: int) -> None:
        target = migrations[position - 1].version if position > 0 else None
        migration = migrations[position]
        self._apply(migration.down, target, f"down {migration.version}")

    def up(self) -> None:
        """Apply every migration newer than the current version."""
        migrations = load_migrations(self._folder)
        position = self._position(migrations, self._current())
        pending = migrations[position + 1:]
        if not pending:
            raise NoChangeError()
        for migration in pending:
            self._step_up(migration)

    def steps(self, n: int) -> None:
        """Move ``n`` versions up, or ``-n`` versions down when ``n`` is negative."""
        if n == 0:
            raise NoChangeError()
        migrations = load_migrations(self._folder)
        position = self._position(migrations, self._current())
        if n > 0:
            pending = migrations[position + 1:]
            if not pending:
                raise NoChangeError()
            for migration in pending[:n]:
                self._step_up(migration)
            available = len(pending)
        else:
            available = position + 1
            if available == 0:
                raise NoChangeError()
            for current in range(position, max(position + n, -1), -1):
                self._step_down(migrations, current)
        if available < abs(n):
            raise ShortLimitError(abs(n), abs(n) - available)


def open_migrator(directory: Union[str, Path] = ".", folder_name: str = FOLDER_NAME) -> Migrator:
    """Open the database named by the configuration in ``directory``."""
    config = load_config(directory)
    if config.database_url:
        url = config.database_url
    elif config.postgres is not None:
        url = config.postgres.url()
    else:
        raise ValueError("postgres config is not set")
    return Migrator(create_engine(url), folder_name)