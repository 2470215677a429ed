from __future__ import annotations

import asyncio
import copy
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from azure.cosmos.exceptions import CosmosAccessConditionFailedError, CosmosResourceNotFoundError
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from app.core.config import Settings
from app.core.database import (
    ALL_ITEMS_QUERY,
    BY_DEPARTMENT_QUERY,
    COUNT_QUERY,
    MISSING_VIEWS_PREDICATE,
    MISSING_VIEWS_QUERY,
    DocumentStore,
)
from app.core.dependencies import get_employee_service
from app.core.result_cache import MemoryCacheBackend, ResultCache
from app.main import app
from app.services.employee_service import EmployeeService

TEST_SETTINGS = Settings(
    COSMOS_DB_ENDPOINT="https://example.documents.azure.com:443/",
    COSMOS_DB_KEY="test-key",
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeContainer:
    """In-memory stand-in for an azure.cosmos.aio ContainerProxy.

    Reads yield to the event loop before returning so concurrent callers
    interleave; patches apply without yielding, like a server-side patch.
    """

    def __init__(self, docs: list[dict[str, Any]] | None = None) -> None:
        self.docs: dict[str, dict[str, Any]] = {d["id"]: copy.deepcopy(d) for d in docs or []}
        self.query_count = 0
        self.read_count = 0
        self.fail_with: Exception | None = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def _with_system_fields(self, doc: dict[str, Any]) -> dict[str, Any]:
        return {**copy.deepcopy(doc), "_rid": "rid", "_etag": "etag", "_ts": 1700000000}

    def query_items(self, query: str, parameters: list[dict[str, Any]] | None = None, **kwargs: Any):
        self.query_count += 1
        params = {p["name"]: p["value"] for p in parameters or []}
        return self._iterate(query, params)

    async def _iterate(self, query: str, params: dict[str, Any]):
        self._check()
        await asyncio.sleep(0)
        if query == COUNT_QUERY:
            yield len(self.docs)
        elif query == ALL_ITEMS_QUERY:
            for doc in list(self.docs.values()):
                yield self._with_system_fields(doc)
        elif query == BY_DEPARTMENT_QUERY:
            for doc in list(self.docs.values()):
                if doc.get("department") == params["@department"]:
                    yield self._with_system_fields(doc)
        elif query == MISSING_VIEWS_QUERY:
            for doc in list(self.docs.values()):
                if "views" not in doc:
                    yield {"id": doc["id"]}
        else:
            raise AssertionError(f"Unexpected query: {query}")

    async def read_item(self, item: str, partition_key: str) -> dict[str, Any]:
        self._check()
        self.read_count += 1
        await asyncio.sleep(0)
        if item not in self.docs:
            raise CosmosResourceNotFoundError(status_code=404, message="Resource Not Found")
        return self._with_system_fields(self.docs[item])

    async def create_item(self, body: dict[str, Any]) -> dict[str, Any]:
        self._check()
        self.docs[body["id"]] = copy.deepcopy(body)
        return self._with_system_fields(body)

    async def patch_item(
        self,
        item: str,
        partition_key: str,
        patch_operations: list[dict[str, Any]],
        filter_predicate: str | None = None,
    ) -> dict[str, Any]:
        self._check()
        doc = self.docs.get(item)
        if doc is None:
            raise CosmosResourceNotFoundError(status_code=404, message="Resource Not Found")
        if filter_predicate == MISSING_VIEWS_PREDICATE and "views" in doc:
            raise CosmosAccessConditionFailedError(status_code=412, message="Precondition failed")
        for op in patch_operations:
            field = op["path"].lstrip("/")
            if op["op"] == "incr":
                doc[field] = doc.get(field, 0) + op["value"]
            elif op["op"] == "set":
                doc[field] = op["value"]
            else:
                raise AssertionError(f"Unexpected patch op: {op['op']}")
        return self._with_system_fields(doc)


EMPLOYEE_DOCS: list[dict[str, Any]] = [
    {
        "id": "6f1c2a3b-0000-4000-8000-000000000001",
        "name": "Bob Smith",
        "position": "Backend Developer",
        "department": "Engineering",
        "salary": 80000,
        "views": 2,
    },
    {
        "id": "6f1c2a3b-0000-4000-8000-000000000002",
        "name": "Alice Johnson",
        "position": "Senior Developer",
        "department": "Engineering",
        "salary": 95000,
        "views": 0,
    },
    {
        "id": "6f1c2a3b-0000-4000-8000-000000000003",
        "name": "Carol Williams",
        "position": "Marketing Manager",
        "department": "Marketing",
        "salary": 75000,
        "views": 5,
    },
]

DEPARTMENT_DOCS: list[dict[str, Any]] = [
    {"id": "7a2b3c4d-0000-4000-8000-000000000001", "name": "Marketing", "floor": 2},
    {"id": "7a2b3c4d-0000-4000-8000-000000000002", "name": "Engineering", "floor": 3},
]

MISSING_ID = "6f1c2a3b-0000-4000-8000-0000000000ff"


def make_store(employees: FakeContainer, departments: FakeContainer) -> DocumentStore:
    store = DocumentStore(TEST_SETTINGS)
    store.employees = employees
    store.departments = departments
    store.initialized = True
    return store


def make_cosmos_client(employees: FakeContainer, departments: FakeContainer) -> MagicMock:
    db = MagicMock()
    db.create_container_if_not_exists = AsyncMock(side_effect=[employees, departments])
    client = MagicMock()
    client.create_database_if_not_exists = AsyncMock(return_value=db)
    client.close = AsyncMock()
    return client


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def employees_container() -> FakeContainer:
    return FakeContainer(EMPLOYEE_DOCS)


@pytest.fixture
def departments_container() -> FakeContainer:
    return FakeContainer(DEPARTMENT_DOCS)


@pytest.fixture
def store(employees_container, departments_container) -> DocumentStore:
    return make_store(employees_container, departments_container)


@pytest.fixture
def cache() -> ResultCache:
    return ResultCache(MemoryCacheBackend(max_size=100))


@pytest.fixture
def service(store, cache) -> EmployeeService:
    return EmployeeService(store, cache, TEST_SETTINGS)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_employee_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(service):
    app.dependency_overrides[get_employee_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
