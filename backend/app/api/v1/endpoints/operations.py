"""Single typed query/mutation endpoint.

Callers post ``{"operationName": ..., "variables": {...}}`` and get back
``{"data": {operationName: result}}`` or an ``errors`` list carrying a message
and a machine-readable code.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from app.core.dependencies import get_employee_service
from app.core.exceptions import DirectoryError, InternalError, UnknownOperationError, ValidationError
from app.models.operations import ErrorExtensions, OperationErrorDetail, OperationRequest, OperationResponse
from app.services.employee_service import EmployeeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/operations", tags=["operations"])

Handler = Callable[[EmployeeService, dict[str, Any]], Awaitable[Any]]


def _required(variables: dict[str, Any], name: str) -> Any:
    if variables.get(name) is None:
        raise ValidationError({name: f"Variable '{name}' is required"})
    return variables[name]


def _required_str(variables: dict[str, Any], name: str) -> str:
    value = _required(variables, name)
    if not isinstance(value, str):
        raise ValidationError({name: f"Variable '{name}' must be a string"})
    return value


async def _get_all_employees(service: EmployeeService, variables: dict[str, Any]) -> Any:
    return await service.list_employees()


async def _get_employee_details(service: EmployeeService, variables: dict[str, Any]) -> Any:
    return await service.get_employee(_required(variables, "id"))


async def _get_employees_by_department(service: EmployeeService, variables: dict[str, Any]) -> Any:
    return await service.list_employees_by_department(_required_str(variables, "department"))


async def _get_departments(service: EmployeeService, variables: dict[str, Any]) -> Any:
    return await service.list_departments()


async def _add_employee(service: EmployeeService, variables: dict[str, Any]) -> Any:
    return await service.add_employee(
        name=variables.get("name"),
        position=variables.get("position"),
        department=variables.get("department"),
        salary=variables.get("salary"),
    )


async def _increment_view(service: EmployeeService, variables: dict[str, Any]) -> Any:
    return await service.increment_view(_required(variables, "id"))


OPERATIONS: dict[str, Handler] = {
    "getAllEmployees": _get_all_employees,
    "getEmployeeDetails": _get_employee_details,
    "getEmployeesByDepartment": _get_employees_by_department,
    "getDepartments": _get_departments,
    "addEmployee": _add_employee,
    "incrementView": _increment_view,
}


def error_response(exc: DirectoryError) -> OperationResponse:
    return OperationResponse(
        errors=[
            OperationErrorDetail(
                message=exc.message,
                extensions=ErrorExtensions(
                    code=exc.code,
                    timestamp=datetime.now(timezone.utc).isoformat(),
                    fields=getattr(exc, "fields", None),
                ),
            )
        ]
    )


@router.post("", response_model=OperationResponse, response_model_exclude_none=True)
async def execute_operation(
    request: OperationRequest,
    service: EmployeeService = Depends(get_employee_service),  # noqa: B008
):
    handler = OPERATIONS.get(request.operation_name)
    if handler is None:
        raise UnknownOperationError(f"Unknown operation '{request.operation_name}'")

    try:
        result = await handler(service, request.variables)
    except DirectoryError:
        raise
    except Exception as err:
        logger.exception("Operation %s failed", request.operation_name)
        raise InternalError("Internal server error") from err

    return OperationResponse(data={request.operation_name: jsonable_encoder(result)})
