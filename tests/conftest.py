"""
SGC Admin - Test Configuration and Fixtures

The backend is an in-process fake served through httpx.MockTransport; it
records every request so tests can assert on exactly what was sent.
"""
import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union
from urllib.parse import parse_qsl

import httpx
import pytest
from faker import Faker

from sgcadmin.api_client import ApiClient
from sgcadmin.config import AdminConfig
from sgcadmin.session import MemoryStorage, SessionContext

fake = Faker()

BASE_URL = "http://test/api/v1"
INSTITUTION_ID = "inst-1"
OTHER_INSTITUTION_ID = "inst-2"


@dataclass
class RecordedRequest:
    method: str
    path: str
    params: Dict[str, str]
    json: Any
    headers: Dict[str, str] = field(default_factory=dict)


Handler = Callable[[RecordedRequest], Union[httpx.Response, Awaitable[httpx.Response]]]


def envelope(data: Any = None, status: int = 200, message: Optional[str] = None, **extra: Any) -> httpx.Response:
    body: Dict[str, Any] = {"success": 200 <= status < 300}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    body.update(extra)
    return httpx.Response(status, json=body)


class FakeBackend:
    """
    Route table keyed by (METHOD, path relative to /api/v1).

    A route is either a fixed response or a handler called with the recorded
    request; handlers may be async (e.g. to hold a response back).
    """

    def __init__(self):
        self.routes: Dict[tuple, Union[httpx.Response, Handler]] = {}
        self.requests: List[RecordedRequest] = []

    def on(self, method: str, path: str, data: Any = None, status: int = 200,
           message: Optional[str] = None, handler: Optional[Handler] = None, **extra: Any) -> None:
        key = (method.upper(), path.strip("/"))
        self.routes[key] = handler if handler is not None else envelope(data, status, message, **extra)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        prefix = "/api/v1/"
        if path.startswith(prefix):
            path = path[len(prefix):]
        body = json.loads(request.content) if request.content else None
        recorded = RecordedRequest(
            method=request.method,
            path=path.strip("/"),
            params=dict(parse_qsl(request.url.query.decode())),
            json=body,
            headers=dict(request.headers),
        )
        self.requests.append(recorded)

        route = self.routes.get((recorded.method, recorded.path))
        if route is None:
            return envelope(status=404, message=f"No route for {recorded.method} {recorded.path}")
        if isinstance(route, httpx.Response):
            return httpx.Response(route.status_code, content=route.content,
                                  headers={"content-type": "application/json"})
        result = route(recorded)
        if asyncio.iscoroutine(result):
            result = await result
        return result

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[RecordedRequest]:
        return [
            r for r in self.requests
            if (method is None or r.method == method.upper()) and (path is None or r.path == path)
        ]

    def reset(self) -> None:
        self.requests.clear()


def make_user(role: str = "admin", institution: Any = INSTITUTION_ID) -> Dict[str, Any]:
    user = {"_id": fake.uuid4(), "name": fake.name(), "email": fake.email(), "role": role}
    if institution is not None:
        user["institution"] = institution
    return user


def make_institution(institution_id: str = INSTITUTION_ID, is_active: bool = True) -> Dict[str, Any]:
    return {
        "_id": institution_id,
        "name": fake.company(),
        "code": fake.lexify("???").upper(),
        "type": "school",
        "isActive": is_active,
    }


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def config(tmp_path) -> AdminConfig:
    return AdminConfig(config_dir=str(tmp_path), api_origin="http://test", success_banner_seconds=3.0)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def session(storage: MemoryStorage) -> SessionContext:
    """Anonymous session; use the admin / super_admin fixtures to log in"""
    return SessionContext(storage)


@pytest.fixture
def admin(session: SessionContext) -> SessionContext:
    """Institution admin pinned to INSTITUTION_ID"""
    user = make_user("admin")
    session.store_login("admin-token", user, selected_institution=user["institution"])
    return session


@pytest.fixture
def super_admin(session: SessionContext) -> SessionContext:
    """Super admin who selected INSTITUTION_ID at login"""
    session.store_login("super-token", make_user("super_admin", institution=None),
                        selected_institution=INSTITUTION_ID)
    return session


@pytest.fixture
async def api(backend: FakeBackend, session: SessionContext):
    client = ApiClient(BASE_URL, session=session, transport=httpx.MockTransport(backend))
    yield client
    await client.aclose()
