from __future__ import annotations

from fastapi import Request

from app.core.exceptions import InternalError
from app.services.employee_service import EmployeeService


def get_employee_service(request: Request) -> EmployeeService:
    service = getattr(request.app.state, "employee_service", None)
    if service is None:
        raise InternalError("Employee service not initialized")
    return service
