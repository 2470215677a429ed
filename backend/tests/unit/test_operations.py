from __future__ import annotations

import asyncio

import pytest

from tests.conftest import EMPLOYEE_DOCS, MISSING_ID

URL = "/api/v1/operations"
BOB_ID = EMPLOYEE_DOCS[0]["id"]


def _op(name: str, /, **variables) -> dict:
    return {"operationName": name, "variables": variables}


def test_get_all_employees(client):
    response = client.post(URL, json=_op("getAllEmployees"))

    assert response.status_code == 200
    employees = response.json()["data"]["getAllEmployees"]
    assert [e["name"] for e in employees] == ["Alice Johnson", "Bob Smith", "Carol Williams"]
    assert set(employees[0]) == {"id", "name", "position", "department", "salary", "views"}


def test_get_employee_details(client):
    response = client.post(URL, json=_op("getEmployeeDetails", id=BOB_ID))

    assert response.status_code == 200
    assert response.json()["data"]["getEmployeeDetails"]["name"] == "Bob Smith"


def test_get_employee_details_invalid_id(client):
    response = client.post(URL, json=_op("getEmployeeDetails", id="not-a-valid-id"))

    assert response.status_code == 400
    body = response.json()
    assert body["data"] is None
    assert body["errors"][0]["extensions"]["code"] == "INVALID_INPUT"
    assert body["errors"][0]["message"] == "Invalid employee ID format"
    assert "timestamp" in body["errors"][0]["extensions"]


def test_get_employee_details_not_found(client):
    response = client.post(URL, json=_op("getEmployeeDetails", id=MISSING_ID))

    assert response.status_code == 404
    assert response.json()["errors"][0]["extensions"]["code"] == "NOT_FOUND"


def test_get_employee_details_missing_variable(client):
    response = client.post(URL, json=_op("getEmployeeDetails"))

    assert response.status_code == 400
    extensions = response.json()["errors"][0]["extensions"]
    assert extensions["code"] == "VALIDATION_ERROR"
    assert "id" in extensions["fields"]


def test_get_employees_by_department(client):
    response = client.post(URL, json=_op("getEmployeesByDepartment", department="Marketing"))

    assert response.status_code == 200
    assert [e["name"] for e in response.json()["data"]["getEmployeesByDepartment"]] == ["Carol Williams"]


def test_get_employees_by_department_requires_string(client):
    response = client.post(URL, json=_op("getEmployeesByDepartment", department=3))

    assert response.status_code == 400
    assert response.json()["errors"][0]["extensions"]["fields"] == {
        "department": "Variable 'department' must be a string"
    }


def test_get_departments(client):
    response = client.post(URL, json=_op("getDepartments"))

    assert response.status_code == 200
    assert response.json()["data"]["getDepartments"][0] == {
        "id": "7a2b3c4d-0000-4000-8000-000000000002",
        "name": "Engineering",
        "floor": 3,
    }


def test_add_employee_then_list_includes_it(client):
    client.post(URL, json=_op("getAllEmployees"))

    created = client.post(
        URL,
        json=_op("addEmployee", name="Jane Doe", position="Engineer", department="Engineering", salary=90000),
    )
    listed = client.post(URL, json=_op("getAllEmployees"))

    assert created.status_code == 200
    new_id = created.json()["data"]["addEmployee"]["id"]
    assert new_id in {e["id"] for e in listed.json()["data"]["getAllEmployees"]}


def test_add_employee_validation_error(client):
    response = client.post(
        URL,
        json=_op("addEmployee", name="Jane Doe", position="Engineer", department="Engineering", salary=999),
    )

    assert response.status_code == 400
    error = response.json()["errors"][0]
    assert error["extensions"]["code"] == "VALIDATION_ERROR"
    assert error["extensions"]["fields"] == {"salary": "Salary must be between $1,000 and $1,000,000"}


def test_increment_view(client):
    response = client.post(URL, json=_op("incrementView", id=BOB_ID))

    assert response.status_code == 200
    assert response.json()["data"]["incrementView"]["views"] == 3


def test_unknown_operation(client):
    response = client.post(URL, json=_op("deleteEmployee", id=BOB_ID))

    assert response.status_code == 400
    assert response.json()["errors"][0]["extensions"]["code"] == "UNKNOWN_OPERATION"


@pytest.mark.parametrize("body", [
    {"operationName": "getDepartments", "variables": None},
    {"operationName": "getDepartments"},
])
def test_null_or_missing_variables(client, body):
    response = client.post(URL, json=body)

    assert response.status_code == 200
    assert [d["name"] for d in response.json()["data"]["getDepartments"]] == ["Engineering", "Marketing"]


def test_null_variables_still_validates_required_fields(client):
    response = client.post(URL, json={"operationName": "getEmployeeDetails", "variables": None})

    assert response.status_code == 400
    assert "id" in response.json()["errors"][0]["extensions"]["fields"]


def test_malformed_envelope(client):
    response = client.post(URL, json={"variables": {}})

    assert response.status_code == 400
    extensions = response.json()["errors"][0]["extensions"]
    assert extensions["code"] == "VALIDATION_ERROR"
    assert "operationName" in extensions["fields"]


def test_store_failure_is_opaque(client, employees_container):
    employees_container.fail_with = ConnectionError("cosmos at 10.0.0.4 refused")

    response = client.post(URL, json=_op("getAllEmployees"))

    assert response.status_code == 500
    error = response.json()["errors"][0]
    assert error["extensions"]["code"] == "INTERNAL_SERVER_ERROR"
    assert "10.0.0.4" not in error["message"]


@pytest.mark.anyio
async def test_concurrent_increments_over_http(async_client):
    responses = await asyncio.gather(
        *(async_client.post(URL, json=_op("incrementView", id=BOB_ID)) for _ in range(10))
    )
    assert all(r.status_code == 200 for r in responses)

    details = await async_client.post(URL, json=_op("getEmployeeDetails", id=BOB_ID))
    assert details.json()["data"]["getEmployeeDetails"]["views"] == 12
