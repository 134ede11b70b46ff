"""The dashboard service: request handling on top of the use cases."""

from collections.abc import Mapping
from typing import Any, Optional

from sqlalchemy.engine import Engine

from .errors import ValidationError
from .models import ApplicationMessage, EndpointMessage, ProjectMessage
from .repositories import ApplicationRepository, EntrypointRepository, ProjectRepository
from .usecases import ApplicationUsecase, EntrypointUsecase, ProjectUsecase

DEFAULT_USER_ID = 2
EDITABLE_FIELDS = ("name", "description")


def _string_values(values: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Keep the editable fields; a value that is not a string becomes ''."""
    return {
        key: value if isinstance(value, str) else ""
        for key, value in (values or {}).items()
        if key in EDITABLE_FIELDS
    }


class DashboardService:
    """Handles the dashboard's project, application and endpoint requests."""

    def __init__(
        self,
        project_usecase: ProjectUsecase,
        application_usecase: ApplicationUsecase,
        entrypoint_usecase: EntrypointUsecase,
    ) -> None:
        self._projects = project_usecase
        self._applications = application_usecase
        self._entrypoints = entrypoint_usecase

    @classmethod
    def from_engine(cls, engine: Engine) -> "DashboardService":
        """Build the service with repositories on ``engine``."""
        return cls(
            project_usecase=ProjectUsecase(ProjectRepository(engine)),
            application_usecase=ApplicationUsecase(ApplicationRepository(engine)),
            entrypoint_usecase=EntrypointUsecase(EntrypointRepository(engine)),
        )

    def get_list_application(
        self, project_id: str, application_id: str = ""
    ) -> list[ApplicationMessage]:
        """Return a project's applications, or only one when its id is given."""
        return self._applications.get_list_application(project_id, application_id or None)

    def create_application(self, project_id: str, application_id: str, name: str) -> None:
        self._applications.create_application(project_id, application_id, name)

    def update_application(
        self, project_id: str, application_id: str, values: Optional[Mapping[str, Any]]
    ) -> None:
        self._applications.update_application(project_id, application_id, _string_values(values))

    def delete_application(self, project_id: str, application_id: str) -> None:
        self._applications.delete_application(project_id, application_id)

    def get_list_endpoint(
        self, project_id: str, application_id: str, endpoint_id: str = ""
    ) -> list[EndpointMessage]:
        """Return an application's endpoints, or only one when its id is given."""
        if not project_id or not application_id:
            raise ValidationError("project_id and application_id are required")
        if endpoint_id:
            return [self._entrypoints.get_entrypoint(project_id, application_id, endpoint_id)]
        return self._entrypoints.get_list_entrypoint(project_id, application_id)

    def get_list_project(self) -> list[ProjectMessage]:
        return self._projects.get_list_project()

    def create_project(self, project_id: str, name: str) -> None:
        """Create a project owned by the default user."""
        self._projects.create_project(DEFAULT_USER_ID, project_id, name)

    def update_project(self, project_id: str, values: Optional[Mapping[str, Any]]) -> None:
        self._projects.update_project(project_id, _string_values(values))

    def delete_project(self, project_id: str) -> None:
        self._projects.delete_project(project_id)