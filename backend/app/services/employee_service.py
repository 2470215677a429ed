"""Query/mutation service for the employee directory.

Reads go through the result cache (cache-aside); every mutation invalidates the
keys whose cached value it could have made stale.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import pydantic

from app.core.config import Settings
from app.core.database import DocumentStore
from app.core.exceptions import (
    DirectoryError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    ValidationError,
)
from app.core.result_cache import ResultCache
from app.models.employee import MAX_SALARY, MIN_SALARY, Department, Employee, EmployeeCreate

logger = logging.getLogger(__name__)

EMPLOYEES_KEY = "employees:all"
DEPARTMENTS_KEY = "departments:all"

_FIELD_MESSAGES: dict[str, str] = {
    "name": "Name must be at least 2 characters",
    "position": "Position must be at least 2 characters",
    "department": "Department is required",
    "salary": f"Salary must be between ${MIN_SALARY:,} and ${MAX_SALARY:,}",
}


def employee_key(employee_id: str) -> str:
    return f"employee:{employee_id}"


def department_key(department: str) -> str:
    return f"employees:dept:{department}"


def parse_employee_id(raw: Any) -> str:
    if not isinstance(raw, str):
        raise InvalidInputError("Invalid employee ID format")
    try:
        employee_id = raw.strip()
        uuid.UUID(employee_id)
    except ValueError as err:
        raise InvalidInputError("Invalid employee ID format") from err
    return employee_id


def _to_employee(doc: dict[str, Any]) -> Employee:
    return Employee(
        id=doc["id"],
        name=doc["name"],
        position=doc["position"],
        department=doc["department"],
        salary=doc["salary"],
        views=doc.get("views") or 0,
    )


def _to_department(doc: dict[str, Any]) -> Department:
    return Department(id=doc["id"], name=doc["name"], floor=doc["floor"])


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except DirectoryError:
        raise
    except Exception as err:
        logger.exception("Failed to %s", action)
        raise InternalError(f"Failed to {action}") from err


class EmployeeService:
    def __init__(self, store: DocumentStore, cache: ResultCache, settings: Settings) -> None:
        self.store = store
        self.cache = cache
        self.employees_ttl = settings.CACHE_TTL_EMPLOYEES
        self.employee_details_ttl = settings.CACHE_TTL_EMPLOYEE_DETAILS
        self.departments_ttl = settings.CACHE_TTL_DEPARTMENTS

    async def list_employees(self) -> list[Employee]:
        cached = await self.cache.get(EMPLOYEES_KEY)
        if cached is not None:
            return [Employee.model_validate(item) for item in cached]

        with _store_errors("fetch employees"):
            docs = await self.store.list_employees()
            employees = sorted((_to_employee(d) for d in docs), key=lambda e: e.name)

        await self.cache.set(EMPLOYEES_KEY, [e.model_dump() for e in employees], self.employees_ttl)
        return employees

    async def get_employee(self, employee_id: Any) -> Employee:
        employee_id = parse_employee_id(employee_id)
        key = employee_key(employee_id)

        cached = await self.cache.get(key)
        if cached is not None:
            return Employee.model_validate(cached)

        with _store_errors("fetch employee"):
            doc = await self.store.get_employee(employee_id)
        if doc is None:
            raise NotFoundError("Employee not found")

        employee = _to_employee(doc)
        await self.cache.set(key, employee.model_dump(), self.employee_details_ttl)
        return employee

    async def list_employees_by_department(self, department: str) -> list[Employee]:
        with _store_errors("fetch employees by department"):
            docs = await self.store.list_employees_by_department(department)
            return [_to_employee(d) for d in docs]

    async def list_departments(self) -> list[Department]:
        cached = await self.cache.get(DEPARTMENTS_KEY)
        if cached is not None:
            return [Department.model_validate(item) for item in cached]

        with _store_errors("fetch departments"):
            docs = await self.store.list_departments()
            departments = sorted((_to_department(d) for d in docs), key=lambda d: d.name)

        await self.cache.set(DEPARTMENTS_KEY, [d.model_dump() for d in departments], self.departments_ttl)
        return departments

    async def add_employee(self, name: Any, position: Any, department: Any, salary: Any) -> Employee:
        try:
            data = EmployeeCreate(name=name, position=position, department=department, salary=salary)
        except pydantic.ValidationError as err:
            fields: dict[str, str] = {}
            for error in err.errors():
                field = str(error["loc"][0]) if error["loc"] else "input"
                fields.setdefault(field, _FIELD_MESSAGES.get(field, error["msg"]))
            raise ValidationError(fields) from err

        with _store_errors("add employee"):
            doc = await self.store.insert_employee({**data.model_dump(), "views": 0})

        employee = _to_employee(doc)
        await self.cache.delete_many([EMPLOYEES_KEY, department_key(employee.department)])
        logger.info("Employee added (id=%s, department=%s)", employee.id, employee.department)
        return employee

    async def increment_view(self, employee_id: Any) -> Employee:
        employee_id = parse_employee_id(employee_id)

        with _store_errors("increment views"):
            # Existence check first so a missing record is NotFound, not a failed patch
            if await self.store.get_employee(employee_id) is None:
                raise NotFoundError("Employee not found")
            doc = await self.store.increment_views(employee_id)
        if doc is None:
            raise NotFoundError("Employee not found")

        employee = _to_employee(doc)
        await self.cache.delete_many(
            [employee_key(employee_id), EMPLOYEES_KEY, department_key(employee.department)]
        )
        return employee

    async def check_connection(self) -> bool:
        return await self.store.check_connection()
