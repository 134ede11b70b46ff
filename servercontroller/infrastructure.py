"""Configuration and the connections the controller depends on."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine

CONFIG_FILE_NAMES = ("config.yaml", "config.yml")
DEFAULT_POSTGRES_PORT = 5432


@dataclass(frozen=True)
class PostgresConfig:
    """Connection settings of the PostgreSQL database."""

    host: str = "localhost"
    port: int = DEFAULT_POSTGRES_PORT
    user: str = ""
    password: str = ""
    db: str = ""

    def dsn(self) -> str:
        """Return the key/value connection string with SSL disabled."""
        return (
            f"host={self.host} port={self.port} user={self.user} "
            f"password={self.password} dbname={self.db} sslmode=disable"
        )

    def url(self) -> str:
        """Return the database URL with SSL disabled."""
        return URL.create(
            "postgresql",
            username=self.user or None,
            password=self.password or None,
            host=self.host or None,
            port=self.port,
            database=self.db or None,
            query={"sslmode": "disable"},
        ).render_as_string(hide_password=False)


@dataclass(frozen=True)
class Config:
    """Settings of the controller.

    ``database_url``, when set, is used instead of the PostgreSQL settings.
    """

    postgres: Optional[PostgresConfig] = None
    database_url: Optional[str] = None


def _text(section: Mapping[str, Any], key: str, default: str) -> str:
    value = section.get(key, default)
    if value is None:
        return default
    if isinstance(value, (dict, list, bool)):
        raise ValueError(f"postgres.{key} must be a string")
    return str(value)


def _port(section: Mapping[str, Any]) -> int:
    value = section.get("port", DEFAULT_POSTGRES_PORT)
    if value is None:
        return DEFAULT_POSTGRES_PORT
    if isinstance(value, bool):
        raise ValueError("postgres.port must be an integer")
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("postgres.port must be an integer") from exc
    if not 0 < port < 65536:
        raise ValueError(f"postgres.port out of range: {port}")
    return port


def _postgres_config(section: Any) -> Optional[PostgresConfig]:
    if section is None:
        return None
    if not isinstance(section, dict):
        raise ValueError("postgres must be a mapping")
    return PostgresConfig(
        host=_text(section, "host", "localhost"),
        port=_port(section),
        user=_text(section, "user", ""),
        password=_text(section, "password", ""),
        db=_text(section, "db", ""),
    )


def load_config(directory: Union[str, Path] = ".") -> Config:
    """Read the configuration file found in ``directory``."""
    base = Path(directory)
    for name in CONFIG_FILE_NAMES:
        path = base / name
        if path.is_file():
            break
    else:
        raise FileNotFoundError(f"no configuration file found in {base}")

    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must hold a mapping")

    database_url = data.get("database_url")
    if database_url is not None and not isinstance(database_url, str):
        raise ValueError("database_url must be a string")

    return Config(postgres=_postgres_config(data.get("postgres")), database_url=database_url)


@dataclass
class Infrastructure:
    """Open connections shared by the controller's services."""

    postgres: Engine

    @classmethod
    def from_config(cls, config: Config) -> "Infrastructure":
        """Open the database described by ``config``."""
        if config.database_url:
            url = config.database_url
        elif config.postgres is not None:
            url = config.postgres.url()
        else:
            raise ValueError("postgres config is not set")
        return cls(postgres=create_engine(url, echo=True))

    def close(self) -> None:
        """Release every pooled connection."""
        self.postgres.dispose()

    def __enter__(self) -> "Infrastructure":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()