"""Database records and the messages the dashboard service returns."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from sqlalchemy import JSON, BigInteger, DateTime, Integer, String, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

_JSON_TYPE = JSON().with_variant(JSONB(), "postgresql")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EndpointType(str, Enum):
    """Endpoint type as exposed in service messages."""

    UNSPECIFIED = "ENDPOINT_TYPE_UNSPECIFIED"
    REST = "ENDPOINT_TYPE_REST"
    CRON = "ENDPOINT_TYPE_CRON"


@dataclass(frozen=True)
class SettingRest:
    """Settings of a REST endpoint."""

    data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class SettingCron:
    """Settings of a cron endpoint."""

    data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ApplicationMessage:
    id: str
    project_id: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    name: str
    description: str


@dataclass(frozen=True)
class ProjectMessage:
    id: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    name: str
    description: str


@dataclass(frozen=True)
class EndpointMessage:
    id: str
    application_id: str
    project_id: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    type: EndpointType
    name: str
    description: str
    settings: Union[SettingRest, SettingCron, None] = None


class EntrypointType(str, Enum):
    """Entrypoint type as stored in the database."""

    UNKNOWN = "unknown"
    REST = "rest"
    CRON = "cron"

    def __str__(self) -> str:
        return self.value

    def to_proto(self) -> EndpointType:
        """Return the message-level endpoint type for this entrypoint type."""
        if self is EntrypointType.REST:
            return EndpointType.REST
        if self is EntrypointType.CRON:
            return EndpointType.CRON
        return EndpointType.UNSPECIFIED

    @classmethod
    def from_proto(cls, endpoint_type: EndpointType) -> "EntrypointType":
        """Return the stored type for a message-level endpoint type."""
        if endpoint_type is EndpointType.REST:
            return cls.REST
        if endpoint_type is EndpointType.CRON:
            return cls.CRON
        return cls.UNKNOWN


class _Base(DeclarativeBase):
    pass


metadata = _Base.metadata


@event.listens_for(_Base, "before_insert", propagate=True)
def _run_before_create(mapper, connection, target) -> None:
    hook = getattr(target, "before_create", None)
    if hook is not None:
        hook()


@event.listens_for(_Base, "before_update", propagate=True)
def _run_before_update(mapper, connection, target) -> None:
    hook = getattr(target, "before_update", None)
    if hook is not None:
        hook()


class Application(_Base):
    __tablename__ = "application"

    project_id: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    name: Mapped[str] = mapped_column(String, default="")
    description: Mapped[str] = mapped_column(String, default="")

    def before_create(self) -> None:
        now = _now()
        self.created_at = now
        self.updated_at = now

    def before_update(self) -> None:
        self.updated_at = _now()

    def to_proto(self) -> ApplicationMessage:
        return ApplicationMessage(
            id=self.id,
            project_id=self.project_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            name=self.name or "",
            description=self.description or "",
        )


class Endpoint(_Base):
    __tablename__ = "endpoint"

    project_id: Mapped[str] = mapped_column(String, primary_key=True)
    application_id: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    method: Mapped[str] = mapped_column(String, default="")
    path: Mapped[str] = mapped_column(String, default="")
    name: Mapped[str] = mapped_column(String, default="")
    description: Mapped[str] = mapped_column(String, default="")
    settings: Mapped[Optional[Any]] = mapped_column(_JSON_TYPE)


class Workflow(_Base):
    __tablename__ = "workflow"

    project_id: Mapped[str] = mapped_column(String, primary_key=True)
    application_id: Mapped[str] = mapped_column(String, primary_key=True)
    endpoint_id: Mapped[str] = mapped_column(String, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    data: Mapped[Optional[Any]] = mapped_column(_JSON_TYPE)


class Project(_Base):
    __tablename__ = "project"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    name: Mapped[str] = mapped_column(String, default="")
    description: Mapped[str] = mapped_column(String, default="")

    def before_create(self) -> None:
        now = _now()
        self.created_at = now
        self.updated_at = now

    def before_update(self) -> None:
        self.updated_at = _now()

    def to_proto(self) -> ProjectMessage:
        return ProjectMessage(
            id=self.id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            name=self.name or "",
            description=self.description or "",
        )


class ProjectUser(_Base):
    __tablename__ = "project_user"

    project_id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def before_create(self) -> None:
        self.created_at = _now()


class Entrypoint(_Base):
    __tablename__ = "entrypoint"

    project_id: Mapped[str] = mapped_column(String, primary_key=True)
    application_id: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    type: Mapped[str] = mapped_column(String, default="")
    name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    settings: Mapped[Optional[Any]] = mapped_column(_JSON_TYPE)

    def before_create(self) -> None:
        now = _now()
        self.created_at = now
        self.updated_at = now

    def before_update(self) -> None:
        self.updated_at = _now()

    def _entrypoint_type(self) -> EntrypointType:
        try:
            return EntrypointType(self.type)
        except ValueError:
            return EntrypointType.UNKNOWN

    def _settings_message(self) -> Union[SettingRest, SettingCron, None]:
        raw = self.settings if isinstance(self.settings, dict) else {}
        kind = self._entrypoint_type()
        if kind is EntrypointType.REST:
            return SettingRest(dict(raw))
        if kind is EntrypointType.CRON:
            return SettingCron(dict(raw))
        return None

    def to_proto(self) -> EndpointMessage:
        return EndpointMessage(
            id=self.id,
            application_id=self.application_id,
            project_id=self.project_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            type=self._entrypoint_type().to_proto(),
            name=self.name or "",
            description=self.description or "",
            settings=self._settings_message(),
        )