"""HTTP front end of the dashboard service, with CORS handling."""

import json
from collections.abc import Callable, Iterable, Mapping
from dataclasses import fields, is_dataclass
from datetime import datetime
from enum import Enum
from http import HTTPStatus
from socketserver import ThreadingMixIn
from typing import Any, Optional
from wsgiref.simple_server import WSGIServer, make_server

from .errors import ControllerError, NotFoundError, ValidationError
from .infrastructure import Config, Infrastructure
from .models import SettingCron, SettingRest
from .service import DashboardService

DEFAULT_PORT = 50052
SERVICE_PATH = "/dashboard.DashboardService/"

ALLOWED_ORIGIN = "http://localhost:5173"
CORS_HEADERS = (
    ("Access-Control-Allow-Origin", ALLOWED_ORIGIN),
    ("Access-Control-Allow-Credentials", "true"),
    (
        "Access-Control-Allow-Headers",
        "Content-Type, Content-Disposition, Content-Length, Accept-Encoding, "
        "X-CSRF-Token, Authorization, accept, origin, Cache-Control, "
        "X-Requested-With, x-grpc-web",
    ),
    ("Access-Control-Allow-Methods", "POST, OPTIONS, GET, PUT, PATCH, DELETE"),
    ("Access-Control-Max-Age", "600"),
)

WSGIApp = Callable[[dict, Callable], Iterable[bytes]]


def _status(code: HTTPStatus) -> str:
    return f"{code.value} {code.phrase}"


def cors_middleware(app: WSGIApp) -> WSGIApp:
    """Add the CORS headers to every response and answer preflight requests."""
    names = {name.lower() for name, _ in CORS_HEADERS}

    def wrapped(environ: dict, start_response: Callable) -> Iterable[bytes]:
        if environ.get("REQUEST_METHOD", "GET").upper() == "OPTIONS":
            start_response(_status(HTTPStatus.NO_CONTENT), list(CORS_HEADERS))
            return [b""]

        def start_with_cors(status, headers, exc_info=None):
            kept = [(name, value) for name, value in headers if name.lower() not in names]
            return start_response(status, kept + list(CORS_HEADERS), exc_info)

        return app(environ, start_with_cors)

    return wrapped


def _jsonable(value: Any) -> Any:
    if isinstance(value, SettingRest):
        return {"setting_rest": dict(value.data)}
    if isinstance(value, SettingCron):
        return {"setting_cron": dict(value.data)}
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def _text(body: Mapping[str, Any], key: str) -> str:
    value = body.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value


def _values(body: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    value = body.get("values")
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError("values must be an object")
    return value


class _DashboardApp:
    """Dispatches POST requests named after the service's methods."""

    def __init__(self, service: DashboardService) -> None:
        self._service = service
        self._routes: dict[str, Callable[[Mapping[str, Any]], dict]] = {
            "GetListApplication": self._get_list_application,
            "CreateApplication": self._create_application,
            "UpdateApplication": self._update_application,
            "DeleteApplication": self._delete_application,
            "GetListEndpoint": self._get_list_endpoint,
            "GetListProject": self._get_list_project,
            "CreateProject": self._create_project,
            "UpdateProject": self._update_project,
            "DeleteProject": self._delete_project,
        }

    def _get_list_application(self, body):
        apps = self._service.get_list_application(
            _text(body, "project_id"), _text(body, "application_id")
        )
        return {"applications": apps}

    def _create_application(self, body):
        self._service.create_application(
            _text(body, "project_id"), _text(body, "application_id"), _text(body, "name")
        )
        return {}

    def _update_application(self, body):
        self._service.update_application(
            _text(body, "project_id"), _text(body, "application_id"), _values(body)
        )
        return {}

    def _delete_application(self, body):
        self._service.delete_application(_text(body, "project_id"), _text(body, "application_id"))
        return {}

    def _get_list_endpoint(self, body):
        endpoints = self._service.get_list_endpoint(
            _text(body, "project_id"), _text(body, "application_id"), _text(body, "endpoint_id")
        )
        return {"endpoints": endpoints}

    def _get_list_project(self, body):
        return {"projects": self._service.get_list_project()}

    def _create_project(self, body):
        self._service.create_project(_text(body, "project_id"), _text(body, "name"))
        return {}

    def _update_project(self, body):
        self._service.update_project(_text(body, "project_id"), _values(body))
        return {}

    def _delete_project(self, body):
        self._service.delete_project(_text(body, "project_id"))
        return {}

    @staticmethod
    def _read_body(environ: dict) -> Mapping[str, Any]:
        try:
            length = int(environ.get("CONTENT_LENGTH") or 0)
        except ValueError as exc:
            raise ValidationError("invalid Content-Length") from exc
        raw = environ["wsgi.input"].read(length) if length > 0 else b""
        if not raw.strip():
            return {}
        try:
            body = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ValidationError("request body is not valid JSON") from exc
        if not isinstance(body, dict):
            raise ValidationError("request body must be a JSON object")
        return body

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        path = environ.get("PATH_INFO", "")
        handler = None
        if path.startswith(SERVICE_PATH):
            handler = self._routes.get(path[len(SERVICE_PATH):])
        if handler is None:
            return self._respond(start_response, HTTPStatus.NOT_FOUND, {"error": "not found"})
        if environ.get("REQUEST_METHOD", "GET").upper() != "POST":
            return self._respond(
                start_response, HTTPStatus.METHOD_NOT_ALLOWED, {"error": "method not allowed"}
            )
        try:
            result = handler(self._read_body(environ))
        except NotFoundError as exc:
            return self._respond(start_response, HTTPStatus.NOT_FOUND, {"error": str(exc)})
        except ControllerError as exc:
            return self._respond(start_response, HTTPStatus.BAD_REQUEST, {"error": str(exc)})
        except Exception as exc:  # reported to the caller like any failed call
            return self._respond(
                start_response, HTTPStatus.INTERNAL_SERVER_ERROR, {"error": str(exc)}
            )
        return self._respond(start_response, HTTPStatus.OK, result)

    @staticmethod
    def _respond(start_response: Callable, code: HTTPStatus, payload: Any) -> list[bytes]:
        data = json.dumps(_jsonable(payload)).encode("utf-8")
        start_response(
            _status(code),
            [("Content-Type", "application/json"), ("Content-Length", str(len(data)))],
        )
        return [data]


def create_wsgi_app(service: DashboardService) -> WSGIApp:
    """Return a WSGI application serving ``service`` as JSON over HTTP."""
    return _DashboardApp(service)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


def serve(config: Config, host: str = "", port: int = DEFAULT_PORT) -> None:
    """Open the database and serve the dashboard until interrupted."""
    with Infrastructure.from_config(config) as infra:
        app = cors_middleware(create_wsgi_app(DashboardService.from_engine(infra.postgres)))
        with make_server(host, port, app, server_class=_ThreadingWSGIServer) as httpd:
            print(f"dashboard server is running on port {port}")
            httpd.serve_forever()