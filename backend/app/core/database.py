"""Cosmos DB document store for employees and departments."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from azure.cosmos import PartitionKey
from azure.cosmos.aio import CosmosClient
from azure.cosmos.exceptions import CosmosAccessConditionFailedError, CosmosResourceNotFoundError

from app.core.config import Settings
from app.core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

SEED_DEPARTMENTS: list[dict[str, Any]] = [
    {"name": "Engineering", "floor": 3},
    {"name": "Marketing", "floor": 2},
    {"name": "Human Resources", "floor": 1},
]

SEED_EMPLOYEES: list[dict[str, Any]] = [
    {"name": "Alice Johnson", "position": "Senior Developer", "department": "Engineering", "salary": 95000},
    {"name": "Bob Smith", "position": "Backend Developer", "department": "Engineering", "salary": 80000},
    {"name": "Carol Williams", "position": "Marketing Manager", "department": "Marketing", "salary": 75000},
    {"name": "David Brown", "position": "Content Strategist", "department": "Marketing", "salary": 65000},
    {"name": "Emma Davis", "position": "HR Director", "department": "Human Resources", "salary": 85000},
    {"name": "Frank Miller", "position": "Frontend Developer", "department": "Engineering", "salary": 78000},
]

ALL_ITEMS_QUERY = "SELECT * FROM c"
COUNT_QUERY = "SELECT VALUE COUNT(1) FROM c"
BY_DEPARTMENT_QUERY = "SELECT * FROM c WHERE c.department = @department"
MISSING_VIEWS_QUERY = "SELECT c.id FROM c WHERE NOT IS_DEFINED(c.views)"
MISSING_VIEWS_PREDICATE = "FROM c WHERE NOT IS_DEFINED(c.views)"


def new_id() -> str:
    return str(uuid.uuid4())


def _strip_system_fields(doc: dict[str, Any]) -> dict[str, Any]:
    # Cosmos adds _rid, _self, _etag, _attachments and _ts to every document
    return {k: v for k, v in doc.items() if not k.startswith("_")}


async def _query(container: Any, query: str, parameters: list[dict[str, Any]] | None = None) -> list[Any]:
    items: list[Any] = []
    async for item in container.query_items(
        query=query,
        parameters=parameters or [],
        enable_cross_partition_query=True,
    ):
        items.append(item)
    return items


async def _count(container: Any) -> int:
    counts = await _query(container, COUNT_QUERY)
    return int(counts[0]) if counts else 0


async def seed_if_empty(employees: Any, departments: Any) -> bool:
    """Insert the initial departments and employees when both containers are empty."""
    if await _count(employees) > 0 or await _count(departments) > 0:
        return False

    for department in SEED_DEPARTMENTS:
        await departments.create_item(body={"id": new_id(), **department})
    for employee in SEED_EMPLOYEES:
        await employees.create_item(body={"id": new_id(), **employee, "views": 0})

    logger.info(
        "Seeded database with %d departments and %d employees",
        len(SEED_DEPARTMENTS),
        len(SEED_EMPLOYEES),
    )
    return True


async def ensure_views_field(employees: Any) -> int:
    """Set ``views`` to 0 on legacy employee documents that lack it."""
    migrated = 0
    for row in await _query(employees, MISSING_VIEWS_QUERY):
        try:
            await employees.patch_item(
                item=row["id"],
                partition_key=row["id"],
                patch_operations=[{"op": "set", "path": "/views", "value": 0}],
                filter_predicate=MISSING_VIEWS_PREDICATE,
            )
        except CosmosAccessConditionFailedError:
            # Another writer added the field first
            continue
        migrated += 1

    if migrated:
        logger.info("Added views field to %d employees", migrated)
    return migrated


class DocumentStore:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.client: CosmosClient | None = None
        self.employees: Any = None
        self.departments: Any = None
        self.initialized = False
        self.seeded = False
        self.migrated = 0
        self._lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.settings.COSMOS_DB_ENDPOINT and self.settings.COSMOS_DB_KEY)

    async def connect(self) -> None:
        if self.initialized:
            return

        async with self._lock:
            if self.initialized:
                return

            if not self.configured:
                raise StoreUnavailableError("Cosmos DB credentials missing")

            client = CosmosClient(self.settings.COSMOS_DB_ENDPOINT, credential=self.settings.COSMOS_DB_KEY)
            try:
                db = await client.create_database_if_not_exists(id=self.settings.COSMOS_DB_DATABASE)
                employees = await db.create_container_if_not_exists(
                    id=self.settings.COSMOS_DB_EMPLOYEES_CONTAINER,
                    partition_key=PartitionKey(path="/id"),
                )
                departments = await db.create_container_if_not_exists(
                    id=self.settings.COSMOS_DB_DEPARTMENTS_CONTAINER,
                    partition_key=PartitionKey(path="/id"),
                )
                self.seeded = await seed_if_empty(employees, departments)
                self.migrated = await ensure_views_field(employees)
            except Exception:
                await client.close()
                raise

            self.client = client
            self.employees = employees
            self.departments = departments
            self.initialized = True
            logger.info("DocumentStore connected (database=%s)", self.settings.COSMOS_DB_DATABASE)

    async def close(self) -> None:
        if self.client:
            await self.client.close()
        self.client = None
        self.employees = None
        self.departments = None
        self.initialized = False

    async def _employees(self) -> Any:
        await self.connect()
        return self.employees

    async def _departments(self) -> Any:
        await self.connect()
        return self.departments

    async def list_employees(self) -> list[dict[str, Any]]:
        docs = await _query(await self._employees(), ALL_ITEMS_QUERY)
        return [_strip_system_fields(d) for d in docs]

    async def list_employees_by_department(self, department: str) -> list[dict[str, Any]]:
        docs = await _query(
            await self._employees(),
            BY_DEPARTMENT_QUERY,
            [{"name": "@department", "value": department}],
        )
        return [_strip_system_fields(d) for d in docs]

    async def get_employee(self, employee_id: str) -> dict[str, Any] | None:
        container = await self._employees()
        try:
            doc = await container.read_item(item=employee_id, partition_key=employee_id)
        except CosmosResourceNotFoundError:
            return None
        return _strip_system_fields(doc)

    async def insert_employee(self, fields: dict[str, Any]) -> dict[str, Any]:
        container = await self._employees()
        doc = await container.create_item(body={"id": new_id(), **fields})
        return _strip_system_fields(doc)

    async def increment_views(self, employee_id: str) -> dict[str, Any] | None:
        """Atomically add 1 to ``views``; the server applies the patch, not us."""
        container = await self._employees()
        try:
            doc = await container.patch_item(
                item=employee_id,
                partition_key=employee_id,
                patch_operations=[{"op": "incr", "path": "/views", "value": 1}],
            )
        except CosmosResourceNotFoundError:
            return None
        return _strip_system_fields(doc)

    async def list_departments(self) -> list[dict[str, Any]]:
        docs = await _query(await self._departments(), ALL_ITEMS_QUERY)
        return [_strip_system_fields(d) for d in docs]

    async def check_connection(self) -> bool:
        if not self.initialized:
            return False
        try:
            await _count(self.employees)
            return True
        except Exception:
            logger.exception("Cosmos DB connection check failed")
            return False
