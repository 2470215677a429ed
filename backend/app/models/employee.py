"""Employee and department models for the directory document store."""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

MIN_SALARY = 1000
MAX_SALARY = 1_000_000


class Employee(BaseModel):
    """Employee as returned to callers.

    Range constraints are not applied here so legacy documents pass through.
    """

    id: str
    name: str
    position: str
    department: str
    salary: float
    views: int = 0


class Department(BaseModel):
    id: str
    name: str
    floor: int


class EmployeeCreate(BaseModel):
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2)]
    position: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2)]
    department: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    salary: float = Field(ge=MIN_SALARY, le=MAX_SALARY, allow_inf_nan=False)
