"""SQL repositories for projects, applications and entrypoints."""

from collections.abc import Mapping
from typing import Any, Optional, Union

from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .errors import NotFoundError
from .models import Application, Entrypoint, EntrypointType, Project, ProjectUser, metadata

RECORD_NOT_FOUND = "record not found"


def create_tables(engine: Engine) -> None:
    """Create every table the controller uses, skipping ones that exist."""
    metadata.create_all(engine)


def _session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def _checked_values(model: type, values: Mapping[str, Any]) -> dict:
    columns = set(model.__table__.columns.keys())
    unknown = sorted(set(values) - columns)
    if unknown:
        raise ValueError(f"unknown fields for {model.__tablename__}: {', '.join(unknown)}")
    return dict(values)


class ApplicationRepository:
    """Stores and reads application records."""

    def __init__(self, engine: Engine) -> None:
        self._sessions = _session_factory(engine)

    def list_applications(
        self, project_id: Optional[str] = None, application_id: Optional[str] = None
    ) -> list[Application]:
        """Return applications, filtered by project and application id when given."""
        query = select(Application)
        if project_id is not None:
            query = query.where(Application.project_id == project_id)
        if application_id is not None:
            query = query.where(Application.id == application_id)
        with self._sessions() as session:
            return list(session.scalars(query))

    def create_application(self, project_id: str, application_id: str, name: str) -> Application:
        """Insert a new application and return it."""
        record = Application(project_id=project_id, id=application_id, name=name)
        with self._sessions.begin() as session:
            session.add(record)
        return record

    def update_application(
        self, project_id: str, application_id: str, values: Mapping[str, Any]
    ) -> None:
        """Set the given columns of one application."""
        changes = _checked_values(Application, values)
        if not changes:
            return
        statement = (
            update(Application)
            .where(Application.id == application_id, Application.project_id == project_id)
            .values(**changes)
        )
        with self._sessions.begin() as session:
            session.execute(statement)

    def delete_application(self, project_id: str, application_id: str) -> None:
        """Remove one application."""
        statement = delete(Application).where(
            Application.id == application_id, Application.project_id == project_id
        )
        with self._sessions.begin() as session:
            session.execute(statement)


class ProjectRepository:
    """Stores and reads project records and their members."""

    def __init__(self, engine: Engine) -> None:
        self._sessions = _session_factory(engine)

    def list_projects(self) -> list[Project]:
        """Return every project."""
        with self._sessions() as session:
            return list(session.scalars(select(Project)))

    def create_project(self, project_id: str, name: str) -> Project:
        """Insert a new project and return it."""
        record = Project(id=project_id, name=name)
        with self._sessions.begin() as session:
            session.add(record)
        return record

    def update_project(self, project_id: str, values: Mapping[str, Any]) -> None:
        """Set the given columns of one project."""
        changes = _checked_values(Project, values)
        if not changes:
            return
        statement = update(Project).where(Project.id == project_id).values(**changes)
        with self._sessions.begin() as session:
            session.execute(statement)

    def delete_project(self, project_id: str) -> None:
        """Remove one project."""
        with self._sessions.begin() as session:
            session.execute(delete(Project).where(Project.id == project_id))

    def create_project_user(self, project_id: str, user_id: int) -> ProjectUser:
        """Record that a user belongs to a project."""
        record = ProjectUser(project_id=project_id, user_id=user_id)
        with self._sessions.begin() as session:
            session.add(record)
        return record


class EntrypointRepository:
    """Reads entrypoint records."""

    def __init__(self, engine: Engine) -> None:
        self._sessions = _session_factory(engine)

    def list_entrypoints(
        self,
        project_id: str,
        application_id: str,
        entrypoint_type: Union[EntrypointType, str, None] = None,
    ) -> list[Entrypoint]:
        """Return an application's entrypoints, optionally of one type only."""
        query = select(Entrypoint).where(
            Entrypoint.project_id == project_id,
            Entrypoint.application_id == application_id,
        )
        if entrypoint_type is not None:
            query = query.where(Entrypoint.type == str(entrypoint_type))
        with self._sessions() as session:
            return list(session.scalars(query))

    def get_entrypoint(self, project_id: str, application_id: str, entrypoint_id: str) -> Entrypoint:
        """Return one entrypoint; raise NotFoundError if there is none."""
        query = select(Entrypoint).where(
            Entrypoint.project_id == project_id,
            Entrypoint.application_id == application_id,
            Entrypoint.id == entrypoint_id,
        )
        with self._sessions() as session:
            record = session.scalars(query).first()
        if record is None:
            raise NotFoundError(RECORD_NOT_FOUND)
        return record