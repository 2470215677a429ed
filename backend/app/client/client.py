"""Caching client for the employee directory endpoint.

Reads are ``cache-first`` by default. Mutations write the returned entity into
the normalized cache and then refetch the cached list queries they could have
changed instead of patching fields in place.
"""

from __future__ import annotations

import logging
from typing import Any

from app.client.cache import NormalizedCache
from app.client.transport import Transport
from app.models.employee import Department, Employee

logger = logging.getLogger(__name__)

CACHE_FIRST = "cache-first"
NETWORK_ONLY = "network-only"

ALL_EMPLOYEES = "getAllEmployees"
EMPLOYEE_DETAILS = "getEmployeeDetails"
EMPLOYEES_BY_DEPARTMENT = "getEmployeesByDepartment"
DEPARTMENTS = "getDepartments"

_TYPENAMES: dict[str, str] = {
    ALL_EMPLOYEES: "Employee",
    EMPLOYEE_DETAILS: "Employee",
    EMPLOYEES_BY_DEPARTMENT: "Employee",
    DEPARTMENTS: "Department",
}


class OperationError(Exception):
    def __init__(self, message: str, code: str, fields: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.fields = fields or {}


class EmployeeNotFoundError(OperationError):
    pass


class InvalidEmployeeIdError(OperationError):
    pass


class ValidationFailedError(OperationError):
    pass


_ERRORS_BY_CODE: dict[str, type[OperationError]] = {
    "NOT_FOUND": EmployeeNotFoundError,
    "INVALID_INPUT": InvalidEmployeeIdError,
    "VALIDATION_ERROR": ValidationFailedError,
}


def _to_error(error: dict[str, Any]) -> OperationError:
    extensions = error.get("extensions") or {}
    code = extensions.get("code", "INTERNAL_SERVER_ERROR")
    error_cls = _ERRORS_BY_CODE.get(code, OperationError)
    return error_cls(error.get("message", "An unknown error occurred"), code, extensions.get("fields"))


def filter_employees(
    employees: list[Employee],
    department: str | None = None,
    search: str | None = None,
) -> list[Employee]:
    """Department exact match plus case-insensitive name search, as list views apply them."""
    term = (search or "").strip().lower()
    return [
        e
        for e in employees
        if (not department or e.department == department) and (not term or term in e.name.lower())
    ]


class EmployeeDirectoryClient:
    def __init__(self, transport: Transport, cache: NormalizedCache | None = None) -> None:
        self.transport = transport
        self.cache = cache if cache is not None else NormalizedCache()

    async def _execute(self, operation_name: str, variables: dict[str, Any]) -> Any:
        envelope = await self.transport.execute(operation_name, variables)
        errors = envelope.get("errors")
        if errors:
            raise _to_error(errors[0])

        data = envelope.get("data") or {}
        if operation_name not in data:
            raise OperationError(f"Response is missing {operation_name}", "INTERNAL_SERVER_ERROR")
        return data[operation_name]

    async def _query(self, operation_name: str, variables: dict[str, Any], fetch_policy: str) -> Any:
        if fetch_policy == CACHE_FIRST:
            cached = self.cache.read_query(operation_name, variables)
            if cached is not None:
                return cached
        elif fetch_policy != NETWORK_ONLY:
            raise ValueError(f"Unsupported fetch policy: {fetch_policy}")

        result = await self._execute(operation_name, variables)
        self.cache.write_query(operation_name, variables, _TYPENAMES[operation_name], result)
        return self.cache.read_query(operation_name, variables)

    async def get_all_employees(self, fetch_policy: str = CACHE_FIRST) -> list[Employee]:
        result = await self._query(ALL_EMPLOYEES, {}, fetch_policy)
        return [Employee.model_validate(item) for item in result]

    async def get_employee_details(self, employee_id: str, fetch_policy: str = CACHE_FIRST) -> Employee:
        try:
            result = await self._query(EMPLOYEE_DETAILS, {"id": employee_id}, fetch_policy)
        except EmployeeNotFoundError:
            await self._forget_employee(employee_id)
            raise
        return Employee.model_validate(result)

    async def get_employees_by_department(self, department: str, fetch_policy: str = CACHE_FIRST) -> list[Employee]:
        result = await self._query(EMPLOYEES_BY_DEPARTMENT, {"department": department}, fetch_policy)
        return [Employee.model_validate(item) for item in result]

    async def get_departments(self, fetch_policy: str = CACHE_FIRST) -> list[Department]:
        result = await self._query(DEPARTMENTS, {}, fetch_policy)
        return [Department.model_validate(item) for item in result]

    async def add_employee(self, name: str, position: str, department: str, salary: float) -> Employee:
        result = await self._execute(
            "addEmployee",
            {"name": name, "position": position, "department": department, "salary": salary},
        )
        self.cache.write_entity("Employee", result)
        employee = Employee.model_validate(result)
        await self._refetch_employee_queries(employee.department)
        return employee

    async def increment_view(self, employee_id: str) -> Employee:
        try:
            result = await self._execute("incrementView", {"id": employee_id})
        except EmployeeNotFoundError:
            await self._forget_employee(employee_id)
            raise

        self.cache.write_entity("Employee", result)
        employee = Employee.model_validate(result)
        await self._refetch_employee_queries(employee.department)
        return employee

    async def refetch_queries(self, operation_name: str, variables: dict[str, Any] | None = None) -> None:
        """Refetch cached instances of a query; never-fetched queries are left alone."""
        if variables is not None:
            targets = [variables] if self.cache.has_query(operation_name, variables) else []
        else:
            targets = self.cache.cached_variables(operation_name)

        for target in targets:
            try:
                await self._query(operation_name, target, NETWORK_ONLY)
            except Exception:
                logger.exception("Error refetching %s", operation_name)
                self.cache.evict_query(operation_name, target)

    async def refresh_employees(self) -> None:
        await self.refetch_queries(ALL_EMPLOYEES)

    async def refresh_departments(self) -> None:
        await self.refetch_queries(DEPARTMENTS)

    async def clear_and_refresh_all(self) -> list[Employee]:
        self.cache.clear()
        return await self.get_all_employees(fetch_policy=NETWORK_ONLY)

    async def close(self) -> None:
        await self.transport.close()

    async def _refetch_employee_queries(self, department: str) -> None:
        await self.refetch_queries(ALL_EMPLOYEES)
        await self.refetch_queries(EMPLOYEES_BY_DEPARTMENT, {"department": department})

    async def _forget_employee(self, employee_id: str) -> None:
        # A NOT_FOUND for a known id means the record was removed elsewhere
        logger.warning("Employee %s not found on server; evicting from cache", employee_id)
        self.cache.evict("Employee", employee_id)
        self.cache.evict_query(EMPLOYEE_DETAILS, {"id": employee_id})
        await self.refetch_queries(ALL_EMPLOYEES)
        await self.refetch_queries(DEPARTMENTS)
