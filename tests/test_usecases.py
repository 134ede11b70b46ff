import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from servercontroller.errors import NotFoundError, ValidationError
from servercontroller.models import (
    EndpointType,
    Entrypoint,
    ProjectUser,
    SettingRest,
)
from servercontroller.repositories import (
    ApplicationRepository,
    EntrypointRepository,
    ProjectRepository,
    create_tables,
)
from servercontroller.usecases import (
    ApplicationUsecase,
    EntrypointUsecase,
    ProjectUsecase,
)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def apps(engine):
    return ApplicationUsecase(ApplicationRepository(engine))


@pytest.fixture
def projects(engine):
    return ProjectUsecase(ProjectRepository(engine))


@pytest.fixture
def entrypoints(engine):
    with Session(engine) as session:
        session.add_all(
            [
                Entrypoint(project_id="p1", application_id="a1", id="e1", type="rest",
                           name="first", settings={"path": "/x"}),
                Entrypoint(project_id="p1", application_id="a1", id="e2", type="cron",
                           name="second"),
                Entrypoint(project_id="p1", application_id="a2", id="e3", type="rest"),
            ]
        )
        session.commit()
    return EntrypointUsecase(EntrypointRepository(engine))


class _RecordingAppStore:
    def __init__(self):
        self.updates = []

    def update_application(self, project_id, application_id, values):
        self.updates.append((project_id, application_id, dict(values)))


class _EmptyEntrypointStore:
    def get_entrypoint(self, project_id, application_id, entrypoint_id):
        return None


# Applications


def test_create_and_list_application(apps):
    apps.create_application("p1", "a1", "Shop")
    result = apps.get_list_application("p1")
    assert [(a.id, a.project_id, a.name) for a in result] == [("a1", "p1", "Shop")]
    assert result[0].created_at is not None


def test_list_application_filters_by_id(apps):
    apps.create_application("p1", "a1", "One")
    apps.create_application("p1", "a2", "Two")
    apps.create_application("p2", "a3", "Three")
    assert sorted(a.id for a in apps.get_list_application("p1")) == ["a1", "a2"]
    assert [a.id for a in apps.get_list_application("p1", "a2")] == ["a2"]


def test_list_application_requires_project(apps):
    with pytest.raises(ValidationError, match="ProjectID is required"):
        apps.get_list_application("")


@pytest.mark.parametrize(
    "args, message",
    [
        (("", "a", "n"), "ProjectID is required"),
        (("p", "", "n"), "ApplicationID is required"),
        (("p", "a", ""), "Name is required"),
    ],
)
def test_create_application_validation(apps, args, message):
    with pytest.raises(ValidationError, match=message):
        apps.create_application(*args)


def test_update_application_changes_known_fields(apps):
    apps.create_application("p1", "a1", "Old")
    apps.update_application("p1", "a1", {"name": "New", "description": "Desc", "other": "x"})
    (app,) = apps.get_list_application("p1", "a1")
    assert (app.name, app.description) == ("New", "Desc")


def test_update_application_without_known_fields_skips_repository():
    store = _RecordingAppStore()
    ApplicationUsecase(store).update_application("p1", "a1", {"unknown": "x"})
    assert store.updates == []


def test_update_application_passes_only_known_fields():
    store = _RecordingAppStore()
    ApplicationUsecase(store).update_application("p1", "a1", {"name": "N", "id": "z"})
    assert store.updates == [("p1", "a1", {"name": "N"})]


def test_update_application_rejects_non_string(apps):
    with pytest.raises(ValidationError):
        apps.update_application("p1", "a1", {"name": 5})


@pytest.mark.parametrize(
    "args, message",
    [(("", "a"), "ProjectID is required"), (("p", ""), "ApplicationID is required")],
)
def test_update_and_delete_application_validation(apps, args, message):
    with pytest.raises(ValidationError, match=message):
        apps.update_application(*args, {"name": "x"})
    with pytest.raises(ValidationError, match=message):
        apps.delete_application(*args)


def test_delete_application(apps):
    apps.create_application("p1", "a1", "One")
    apps.create_application("p1", "a2", "Two")
    apps.delete_application("p1", "a1")
    assert [a.id for a in apps.get_list_application("p1")] == ["a2"]


# Projects


def test_create_project_adds_member(engine, projects):
    projects.create_project(7, "p1", "Proj")
    assert [(p.id, p.name) for p in projects.get_list_project()] == [("p1", "Proj")]
    with Session(engine) as session:
        members = session.scalars(select(ProjectUser)).all()
    assert [(m.project_id, m.user_id) for m in members] == [("p1", 7)]


@pytest.mark.parametrize(
    "args, message",
    [((1, "", "n"), "ProjectID is required"), ((1, "p", ""), "Name is required")],
)
def test_create_project_validation(projects, args, message):
    with pytest.raises(ValidationError, match=message):
        projects.create_project(*args)


def test_update_project(projects):
    projects.create_project(1, "p1", "Old")
    projects.update_project("p1", {"description": "About", "ignored": 3})
    (project,) = projects.get_list_project()
    assert (project.name, project.description) == ("Old", "About")


def test_update_and_delete_project_require_id(projects):
    with pytest.raises(ValidationError, match="ProjectID is required"):
        projects.update_project("", {"name": "x"})
    with pytest.raises(ValidationError, match="ProjectID is required"):
        projects.delete_project("")


def test_delete_project(projects):
    projects.create_project(1, "p1", "One")
    projects.create_project(1, "p2", "Two")
    projects.delete_project("p1")
    assert [p.id for p in projects.get_list_project()] == ["p2"]


# Entrypoints


def test_list_entrypoint_returns_rest_only(entrypoints):
    result = entrypoints.get_list_entrypoint("p1", "a1")
    assert [e.id for e in result] == ["e1"]
    assert result[0].type is EndpointType.REST
    assert result[0].settings == SettingRest({"path": "/x"})


@pytest.mark.parametrize(
    "args, message",
    [(("", "a1"), "project_id is required"), (("p1", ""), "application_id is required")],
)
def test_list_entrypoint_validation(entrypoints, args, message):
    with pytest.raises(ValidationError, match=message):
        entrypoints.get_list_entrypoint(*args)


def test_get_entrypoint(entrypoints):
    result = entrypoints.get_entrypoint("p1", "a1", "e2")
    assert (result.id, result.name, result.type) == ("e2", "second", EndpointType.CRON)


@pytest.mark.parametrize(
    "args, message",
    [
        (("", "a1", "e1"), "project_id is required"),
        (("p1", "", "e1"), "application_id is required"),
        (("p1", "a1", ""), "entrypoint_id is required"),
    ],
)
def test_get_entrypoint_validation(entrypoints, args, message):
    with pytest.raises(ValidationError, match=message):
        entrypoints.get_entrypoint(*args)


def test_get_entrypoint_missing_raises(entrypoints):
    with pytest.raises(NotFoundError):
        entrypoints.get_entrypoint("p1", "a1", "nope")


def test_get_entrypoint_none_from_store():
    with pytest.raises(NotFoundError, match="entrypoint not found"):
        EntrypointUsecase(_EmptyEntrypointStore()).get_entrypoint("p", "a", "e")