"""Business rules for projects, applications and entrypoints."""

from collections.abc import Mapping
from typing import Any, Optional, Protocol

from .errors import (
    APPLICATION_ID_REQUIRED,
    ENTRYPOINT_ID_REQUIRED,
    ENTRYPOINT_NOT_FOUND,
    PROJECT_ID_REQUIRED,
    NotFoundError,
    ValidationError,
)
from .models import (
    Application,
    ApplicationMessage,
    EndpointMessage,
    Entrypoint,
    EntrypointType,
    Project,
    ProjectMessage,
    ProjectUser,
)

UPDATABLE_FIELDS = ("name", "description")


class _ApplicationStore(Protocol):
    def list_applications(
        self, project_id: Optional[str] = None, application_id: Optional[str] = None
    ) -> list[Application]: ...

    def create_application(self, project_id: str, application_id: str, name: str) -> Application: ...

    def update_application(
        self, project_id: str, application_id: str, values: Mapping[str, Any]
    ) -> None: ...

    def delete_application(self, project_id: str, application_id: str) -> None: ...


class _ProjectStore(Protocol):
    def list_projects(self) -> list[Project]: ...

    def create_project(self, project_id: str, name: str) -> Project: ...

    def update_project(self, project_id: str, values: Mapping[str, Any]) -> None: ...

    def delete_project(self, project_id: str) -> None: ...

    def create_project_user(self, project_id: str, user_id: int) -> ProjectUser: ...


class _EntrypointStore(Protocol):
    def list_entrypoints(
        self, project_id: str, application_id: str, entrypoint_type: Any = None
    ) -> list[Entrypoint]: ...

    def get_entrypoint(
        self, project_id: str, application_id: str, entrypoint_id: str
    ) -> Optional[Entrypoint]: ...


def _require(value: Any, message: str) -> None:
    if not value:
        raise ValidationError(message)


def _updatable_values(values: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Keep only the fields that may be changed; each must be a string."""
    changes: dict[str, str] = {}
    for key, value in (values or {}).items():
        if key not in UPDATABLE_FIELDS:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{key} must be a string")
        changes[key] = value
    return changes


class ApplicationUsecase:
    """Validates application requests and passes them to the repository."""

    def __init__(self, repository: _ApplicationStore) -> None:
        self._repository = repository

    def get_list_application(
        self, project_id: str, application_id: Optional[str] = None
    ) -> list[ApplicationMessage]:
        """Return a project's applications, or only the one with the given id."""
        _require(project_id, "ProjectID is required")
        records = self._repository.list_applications(
            project_id=project_id, application_id=application_id or None
        )
        return [record.to_proto() for record in records]

    def create_application(self, project_id: str, application_id: str, name: str) -> None:
        """Create an application in a project."""
        _require(project_id, "ProjectID is required")
        _require(application_id, "ApplicationID is required")
        _require(name, "Name is required")
        self._repository.create_application(project_id, application_id, name)

    def update_application(
        self, project_id: str, application_id: str, values: Optional[Mapping[str, Any]]
    ) -> None:
        """Change an application's name and description; other keys are ignored."""
        _require(project_id, "ProjectID is required")
        _require(application_id, "ApplicationID is required")
        changes = _updatable_values(values)
        if not changes:
            return
        self._repository.update_application(project_id, application_id, changes)

    def delete_application(self, project_id: str, application_id: str) -> None:
        """Delete an application."""
        _require(project_id, "ProjectID is required")
        _require(application_id, "ApplicationID is required")
        self._repository.delete_application(project_id, application_id)


class ProjectUsecase:
    """Validates project requests and passes them to the repository."""

    def __init__(self, repository: _ProjectStore) -> None:
        self._repository = repository

    def get_list_project(self) -> list[ProjectMessage]:
        """Return every project."""
        return [record.to_proto() for record in self._repository.list_projects()]

    def create_project(self, user_id: int, project_id: str, name: str) -> None:
        """Create a project and make the user a member of it."""
        _require(project_id, "ProjectID is required")
        _require(name, "Name is required")
        self._repository.create_project(project_id, name)
        self._repository.create_project_user(project_id, user_id)

    def update_project(self, project_id: str, values: Optional[Mapping[str, Any]]) -> None:
        """Change a project's name and description; other keys are ignored."""
        _require(project_id, "ProjectID is required")
        changes = _updatable_values(values)
        if not changes:
            return
        self._repository.update_project(project_id, changes)

    def delete_project(self, project_id: str) -> None:
        """Delete a project."""
        _require(project_id, "ProjectID is required")
        self._repository.delete_project(project_id)


class EntrypointUsecase:
    """Validates entrypoint requests and passes them to the repository."""

    def __init__(self, repository: _EntrypointStore) -> None:
        self._repository = repository

    def get_list_entrypoint(self, project_id: str, application_id: str) -> list[EndpointMessage]:
        """Return the REST entrypoints of an application."""
        _require(project_id, PROJECT_ID_REQUIRED)
        _require(application_id, APPLICATION_ID_REQUIRED)
        records = self._repository.list_entrypoints(
            project_id, application_id, EntrypointType.REST
        )
        return [record.to_proto() for record in records]

    def get_entrypoint(
        self, project_id: str, application_id: str, entrypoint_id: str
    ) -> EndpointMessage:
        """Return one entrypoint of an application."""
        _require(project_id, PROJECT_ID_REQUIRED)
        _require(application_id, APPLICATION_ID_REQUIRED)
        _require(entrypoint_id, ENTRYPOINT_ID_REQUIRED)
        record = self._repository.get_entrypoint(project_id, application_id, entrypoint_id)
        if record is None:
            raise NotFoundError(ENTRYPOINT_NOT_FOUND)
        return record.to_proto()