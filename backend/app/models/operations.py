"""Request/response envelope for the operations endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OperationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    operation_name: str = Field(alias="operationName")
    variables: dict[str, Any] | None = {}

    @field_validator("variables", mode="before")
    @classmethod
    def default_variables(cls, v: Any) -> Any:
        return {} if v is None else v


class ErrorExtensions(BaseModel):
    code: str
    timestamp: str
    fields: dict[str, str] | None = None


class OperationErrorDetail(BaseModel):
    message: str
    extensions: ErrorExtensions


class OperationResponse(BaseModel):
    data: dict[str, Any] | None = None
    errors: list[OperationErrorDetail] | None = None
