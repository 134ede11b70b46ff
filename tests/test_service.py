import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from servercontroller.errors import NotFoundError, ValidationError
from servercontroller.models import (
    EndpointType,
    Entrypoint,
    ProjectUser,
    SettingRest,
)
from servercontroller.repositories import create_tables
from servercontroller.service import DashboardService


@pytest.fixture
def engine():
    eng = create_engine("sqlite://")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def service(engine):
    return DashboardService.from_engine(engine)


def _add_entrypoints(engine):
    with Session(engine) as session:
        session.add_all(
            [
                Entrypoint(project_id="p", application_id="a", id="e1", type="rest",
                           name="first", settings={"path": "/x"}),
                Entrypoint(project_id="p", application_id="a", id="e2", type="cron",
                           name="second"),
                Entrypoint(project_id="p", application_id="a", id="e3", type="rest",
                           name="third"),
            ]
        )
        session.commit()


def test_create_and_list_projects(service):
    service.create_project("p1", "Project one")
    service.create_project("p2", "Project two")
    projects = sorted(service.get_list_project(), key=lambda p: p.id)
    assert [(p.id, p.name) for p in projects] == [("p1", "Project one"), ("p2", "Project two")]


def test_create_project_adds_default_user(service, engine):
    service.create_project("p1", "Project one")
    with Session(engine) as session:
        members = session.scalars(select(ProjectUser)).all()
    assert [(m.project_id, m.user_id) for m in members] == [("p1", 2)]


def test_create_project_requires_name(service):
    with pytest.raises(ValidationError, match="Name is required"):
        service.create_project("p1", "")


def test_update_project_keeps_only_editable_fields(service):
    service.create_project("p1", "Old")
    service.update_project("p1", {"name": "New", "id": "other"})
    projects = service.get_list_project()
    assert [(p.id, p.name) for p in projects] == [("p1", "New")]


def test_update_project_non_string_becomes_empty(service):
    service.create_project("p1", "Old")
    service.update_project("p1", {"description": "text"})
    service.update_project("p1", {"description": 5})
    assert service.get_list_project()[0].description == ""


def test_delete_project(service):
    service.create_project("p1", "Old")
    service.delete_project("p1")
    assert service.get_list_project() == []


def test_list_applications_all_or_one(service):
    service.create_application("p", "a1", "App one")
    service.create_application("p", "a2", "App two")
    service.create_application("q", "a3", "Elsewhere")
    all_ids = sorted(app.id for app in service.get_list_application("p"))
    assert all_ids == ["a1", "a2"]
    one = service.get_list_application("p", "a2")
    assert [(app.id, app.name) for app in one] == [("a2", "App two")]


def test_list_applications_requires_project(service):
    with pytest.raises(ValidationError, match="ProjectID is required"):
        service.get_list_application("")


def test_update_application(service):
    service.create_application("p", "a1", "Old")
    service.update_application("p", "a1", {"name": "New", "description": "desc", "x": "y"})
    app = service.get_list_application("p", "a1")[0]
    assert (app.name, app.description) == ("New", "desc")


def test_delete_application(service):
    service.create_application("p", "a1", "App")
    service.delete_application("p", "a1")
    assert service.get_list_application("p") == []


def test_create_application_requires_id(service):
    with pytest.raises(ValidationError, match="ApplicationID is required"):
        service.create_application("p", "", "App")


def test_list_endpoint_requires_ids(service):
    with pytest.raises(ValidationError, match="project_id and application_id are required"):
        service.get_list_endpoint("p", "")


def test_list_endpoint_returns_rest_only(service, engine):
    _add_entrypoints(engine)
    endpoints = service.get_list_endpoint("p", "a")
    assert sorted(e.id for e in endpoints) == ["e1", "e3"]
    assert {e.type for e in endpoints} == {EndpointType.REST}


def test_list_endpoint_single(service, engine):
    _add_entrypoints(engine)
    endpoints = service.get_list_endpoint("p", "a", "e1")
    assert len(endpoints) == 1
    assert endpoints[0].name == "first"
    assert endpoints[0].settings == SettingRest({"path": "/x"})


def test_list_endpoint_single_missing(service, engine):
    _add_entrypoints(engine)
    with pytest.raises(NotFoundError):
        service.get_list_endpoint("p", "a", "missing")